"""
Inventory guard: stock checks and the guarded stock decrement.

The decrement is the only concurrency mechanism of the order pipeline. It is
one ``UPDATE ... WHERE stock_quantity >= :qty`` statement: two orders racing
for the last unit both reach the store, exactly one of them matches the
predicate, and the other gets a ConflictError.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError
from ..models import Product
from farmops.time_utils import utcnow
from .transaction import guarded_update


@dataclass(frozen=True)
class StockCheck:
    product_id: int
    product_name: str
    farm_id: int
    is_available: bool
    available: bool
    current_stock: int
    unit_price: float

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "is_available": self.is_available,
            "available": self.available,
            "current_stock": self.current_stock,
            "unit_price": self.unit_price,
        }


def check_stock(session: Session, product_id: int, required_qty: int) -> StockCheck:
    """
    Report whether ``required_qty`` units of a product can be sold right now.

    The returned price is the authoritative server-side price. A product
    flagged unavailable is reported unavailable whatever its stock.

    Raises:
        NotFoundError if the product does not exist.
    """
    product = session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})

    current_stock = product.stock_quantity or 0
    available = bool(product.is_available) and current_stock >= required_qty

    return StockCheck(
        product_id=product.id,
        product_name=product.name,
        farm_id=product.farm_id,
        is_available=bool(product.is_available),
        available=available,
        current_stock=current_stock,
        unit_price=float(product.current_price),
    )


def decrement_stock(session: Session, product_id: int, qty: int) -> Product:
    """
    Atomically take ``qty`` units out of stock.

    Applies only while ``stock_quantity >= qty`` and the product is available
    at the moment of the write. Does not commit; runs inside the caller's unit.

    Raises:
        ConflictError if the predicate no longer holds (stock consumed by a
        concurrent order, or the product was withdrawn).
    """
    affected = guarded_update(
        session,
        Product,
        where=[
            Product.id == product_id,
            Product.stock_quantity >= qty,
            Product.is_available.is_(True),
        ],
        values={
            "stock_quantity": Product.stock_quantity - qty,
            "updated_at": utcnow(),
        },
    )

    product = session.query(Product).populate_existing().filter_by(id=product_id).first()

    if not affected:
        if not product:
            raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
        current_app.logger.warning(
            "Stock conflict on product %s: requested %s, available %s",
            product_id, qty, product.stock_quantity,
        )
        raise ConflictError(
            f"Insufficient stock for product {product.name}. "
            f"Required: {qty}, Available: {product.stock_quantity}",
            details={
                "product_id": product_id,
                "requested_quantity": qty,
                "current_stock": product.stock_quantity,
            },
        )

    return product
