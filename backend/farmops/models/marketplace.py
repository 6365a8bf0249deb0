from __future__ import annotations

from ..extensions import db
from farmops.time_utils import to_utc_z, to_iso_date


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_FULFILLED = "fulfilled"
ORDER_STATUS_CANCELLED = "cancelled"

PAYMENT_STATUS_PENDING = "pending"

DELIVERY_PICKUP = "pickup"
DELIVERY_DELIVERY = "delivery"
VALID_DELIVERY_METHODS = {DELIVERY_PICKUP, DELIVERY_DELIVERY}


class Customer(db.Model):
    """Marketplace buyer. Customers are platform-wide, not farm-scoped."""
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=False)
    address = db.Column(db.Text, nullable=True)
    customer_type = db.Column(db.String(16), nullable=False, default="retail")  # retail, wholesale, distributor
    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "customer_type": self.customer_type,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Sellable farm product.

    STOCK INVARIANT: stock_quantity never goes negative and an unavailable
    product is never sold. Both are enforced by the guarded decrement in
    inventory_service; the check constraint is the storage backstop.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_price >= 0 AND stock_quantity >= 0", name="chk_products_nonneg"),
        db.Index("ix_products_farm_available", "farm_id", "is_available"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    farm_id = db.Column(db.Integer, db.ForeignKey("farms.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, default="eggs")  # eggs, chickens, feed
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(32), nullable=False, default="crates")  # crates, pieces, kg

    current_price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_available = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    farm = db.relationship("Farm", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "farm_id": self.farm_id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "unit": self.unit,
            "current_price": self.current_price,
            "stock_quantity": self.stock_quantity,
            "is_available": self.is_available,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Order(db.Model):
    """
    Marketplace order. Created once, atomically, together with its items.

    total_amount is computed server-side from captured item prices and is
    never updated afterwards.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "total_amount >= 0 AND paid_amount >= 0 AND paid_amount <= total_amount",
            name="chk_orders_amounts",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=False, unique=True)
    farm_id = db.Column(db.Integer, db.ForeignKey("farms.id", ondelete="RESTRICT"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    required_date = db.Column(db.Date, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)
    total_amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    paid_amount = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PENDING)

    delivery_method = db.Column(db.String(16), nullable=False)
    delivery_address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} total={self.total_amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "farm_id": self.farm_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "order_date": to_utc_z(self.order_date),
            "required_date": to_iso_date(self.required_date),
            "status": self.status,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "payment_status": self.payment_status,
            "delivery_method": self.delivery_method,
            "delivery_address": self.delivery_address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Order line. unit_price and total_price are captured at order time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint(
            "quantity > 0 AND unit_price >= 0 AND total_price >= 0",
            name="chk_order_items_nonneg",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)
    total_price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("items", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "created_at": to_utc_z(self.created_at),
        }
