"""
Order assembly: server-priced, stock-checked marketplace orders.

WHY: Clients never supply prices. Every line is priced from the product row
at order time and captured on the OrderItem, so later price changes do not
rewrite history. The order row, all of its items and every stock decrement
commit in one transaction or not at all.
"""

from __future__ import annotations

import secrets
import string
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models import Customer, Farm, Order, OrderItem, User
from ..models.marketplace import (
    ORDER_STATUS_PENDING,
    PAYMENT_STATUS_PENDING,
    VALID_DELIVERY_METHODS,
)
from ..validation import coerce_date, coerce_int, round_money
from . import inventory_service
from .transaction import run_in_transaction


REASON_INSUFFICIENT_STOCK = "insufficient_stock"
REASON_UNAVAILABLE = "unavailable"
REASON_NOT_FOUND = "not_found"

_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class DeliveryInfo:
    method: str
    address: str | None = None
    required_date: date | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping) -> "DeliveryInfo":
        method = (data.get("delivery_method") or data.get("method") or "").strip().lower()
        if method not in VALID_DELIVERY_METHODS:
            raise ValidationError(
                "delivery_method must be 'pickup' or 'delivery'",
                details={"delivery_method": method or None},
            )

        address = data.get("delivery_address") or data.get("address")
        if method == "delivery" and not address:
            raise ValidationError("delivery_address is required for delivery orders")

        required_date = data.get("required_date")
        return cls(
            method=method,
            address=address,
            required_date=coerce_date("required_date", required_date) if required_date else None,
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ValidatedItem:
    product_id: int
    product_name: str
    quantity: int
    unit_price: float
    total_price: float


@dataclass
class ItemValidation:
    errors: list[dict] = field(default_factory=list)
    validated_items: list[ValidatedItem] = field(default_factory=list)
    total_amount: float = 0.0

    @property
    def valid(self) -> bool:
        return not self.errors and bool(self.validated_items)


@dataclass
class OrderResult:
    order: Order
    order_items: list[OrderItem]
    total_amount: float

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "order_items": [item.to_dict() for item in self.order_items],
            "total_amount": self.total_amount,
        }


def normalize_items(items) -> list[LineRequest]:
    """
    Turn raw item payloads into LineRequests.

    Only product_id and quantity are read; any client-side price keys are
    ignored. Fails fast on an empty list or a non-positive quantity.
    """
    if not items:
        raise ValidationError("Order must contain at least one item")
    if isinstance(items, (str, bytes)) or not isinstance(items, (list, tuple)):
        raise ValidationError("items must be a list")

    lines = []
    for index, item in enumerate(items):
        if isinstance(item, LineRequest):
            lines.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValidationError(f"Item {index} must be an object")
        if item.get("product_id") is None:
            raise ValidationError(f"Item {index} is missing product_id")
        product_id = coerce_int(f"items[{index}].product_id", item.get("product_id"))
        quantity = coerce_int(f"items[{index}].quantity", item.get("quantity"))
        if quantity <= 0:
            raise ValidationError(
                f"Invalid quantity {quantity} for product {product_id}",
                details={"product_id": product_id, "quantity": quantity},
            )
        lines.append(LineRequest(product_id=product_id, quantity=quantity))
    return lines


def validate_order_items(session: Session, tenant_id: int, lines: list[LineRequest]) -> ItemValidation:
    """
    Check every line against live stock and price it from the product row.

    Unknown products and stock shortages are collected rather than raised so
    the caller can report every problem at once. A product owned by another
    farm is a tenant violation and raises immediately.
    """
    result = ItemValidation()
    requested: dict[int, int] = {}
    total = 0.0

    for line in lines:
        # Several lines for one product must fit in its stock together
        cumulative = requested.get(line.product_id, 0) + line.quantity
        requested[line.product_id] = cumulative

        try:
            check = inventory_service.check_stock(session, line.product_id, cumulative)
        except NotFoundError as e:
            result.errors.append({
                "product_id": line.product_id,
                "reason": REASON_NOT_FOUND,
                "message": e.message,
            })
            continue

        if check.farm_id != tenant_id:
            current_app.logger.warning(
                "Cross-tenant order line rejected: product %s belongs to farm %s, not %s",
                line.product_id, check.farm_id, tenant_id,
            )
            raise ForbiddenError(
                f"Product {line.product_id} is not sold by this farm",
                details={"product_id": line.product_id},
            )

        if not check.available:
            reason = REASON_INSUFFICIENT_STOCK
            message = (
                f"Insufficient stock for {check.product_name}. "
                f"Required: {cumulative}, Available: {check.current_stock}"
            )
            if not check.is_available:
                reason = REASON_UNAVAILABLE
                message = f"{check.product_name} is not available for sale"
            result.errors.append({
                "product_id": line.product_id,
                "reason": reason,
                "message": message,
                "requested_quantity": cumulative,
                "current_stock": check.current_stock,
            })
            continue

        line_total = check.unit_price * line.quantity
        total += line_total
        result.validated_items.append(ValidatedItem(
            product_id=line.product_id,
            product_name=check.product_name,
            quantity=line.quantity,
            unit_price=check.unit_price,
            total_price=line_total,
        ))

    result.total_amount = round_money(total)
    return result


def _rejection(validation: ItemValidation) -> Exception:
    errors = validation.errors
    messages = "; ".join(e["message"] for e in errors) or "No valid items in order"
    details = {"errors": errors}

    # Pure stock shortages are concurrency outcomes: the caller raced another
    # order for the same units.
    if errors and all(e["reason"] == REASON_INSUFFICIENT_STOCK for e in errors):
        return ConflictError(f"Insufficient stock: {messages}", details=details)
    return ValidationError(f"Order rejected: {messages}", details=details)


def generate_order_number() -> str:
    prefix = current_app.config.get("ORDER_NUMBER_PREFIX", "ORD")
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(5))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def create_order_with_items(
    tenant_id: int,
    customer_id: int,
    actor_id: int,
    delivery,
    items,
    *,
    session: Session | None = None,
) -> OrderResult:
    """
    Create an order, its items and the matching stock decrements atomically.

    Args:
        tenant_id: Farm selling the goods (resolved by the request layer)
        customer_id: Buying customer
        actor_id: Staff user processing the order
        delivery: DeliveryInfo or a mapping with delivery_method etc.
        items: Sequence of {"product_id", "quantity"} mappings

    Raises:
        ValidationError: malformed input or non-stock line problems
        NotFoundError: tenant, customer or actor missing
        ForbiddenError: actor or product belongs to another farm
        ConflictError: insufficient stock, at validation or at decrement time
    """
    lines = normalize_items(items)
    if not isinstance(delivery, DeliveryInfo):
        delivery = DeliveryInfo.from_dict(delivery or {})

    def _op(session: Session) -> OrderResult:
        if not session.query(Farm.id).filter_by(id=tenant_id).first():
            raise NotFoundError("Farm not found", details={"farm_id": tenant_id})

        if not session.query(Customer.id).filter_by(id=customer_id).first():
            raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

        actor = session.query(User).filter_by(id=actor_id).first()
        if not actor:
            raise NotFoundError("User not found", details={"user_id": actor_id})
        if not actor.is_admin and actor.farm_id != tenant_id:
            raise ForbiddenError("You can only create orders for your own farm")

        validation = validate_order_items(session, tenant_id, lines)
        if not validation.valid:
            raise _rejection(validation)

        order = Order(
            order_number=generate_order_number(),
            farm_id=tenant_id,
            customer_id=customer_id,
            user_id=actor_id,
            required_date=delivery.required_date,
            delivery_method=delivery.method,
            delivery_address=delivery.address,
            notes=delivery.notes,
            status=ORDER_STATUS_PENDING,
            total_amount=validation.total_amount,
            paid_amount=0.0,
            payment_status=PAYMENT_STATUS_PENDING,
        )
        session.add(order)
        try:
            session.flush()
        except IntegrityError as e:
            raise ConflictError("Order number collision, please retry") from e

        order_items = []
        for item in validation.validated_items:
            order_item = OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=round_money(item.unit_price),
                total_price=round_money(item.total_price),
            )
            session.add(order_item)
            session.flush()
            order_items.append(order_item)

            inventory_service.decrement_stock(session, item.product_id, item.quantity)

        return OrderResult(order=order, order_items=order_items, total_amount=validation.total_amount)

    result = run_in_transaction(_op, session=session)
    current_app.logger.info(
        "Order %s created for farm %s: %s items, total %.2f",
        result.order.order_number, tenant_id, len(result.order_items), result.total_amount,
    )
    return result


def get_order_for_farm(session: Session, order_id: int, farm_id: int) -> OrderResult:
    """Load an order with its items; orders of other farms look missing."""
    order = session.query(Order).filter_by(id=order_id, farm_id=farm_id).first()
    if not order:
        raise NotFoundError("Order not found")
    items = session.query(OrderItem).filter_by(order_id=order.id).order_by(OrderItem.id).all()
    return OrderResult(order=order, order_items=items, total_amount=order.total_amount)
