from __future__ import annotations

from ..extensions import db
from farmops.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_FARM_OWNER = "farm_owner"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"
ROLE_CUSTOMER = "customer"

# Global roles never carry a farm binding; farm roles always do.
GLOBAL_ROLES = (ROLE_ADMIN, ROLE_CUSTOMER)
FARM_ROLES = (ROLE_FARM_OWNER, ROLE_MANAGER, ROLE_STAFF)
VALID_ROLES = set(GLOBAL_ROLES) | set(FARM_ROLES)

# Recipients of review notifications
REVIEWER_ROLES = (ROLE_MANAGER, ROLE_FARM_OWNER)


class Farm(db.Model):
    """
    Multi-tenant root: every tenant is a Farm.

    Flocks, products, orders and notifications all belong to exactly one farm,
    and no write may cross farm boundaries.
    """
    __tablename__ = "farms"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=False)  # city, region
    address = db.Column(db.Text, nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)

    specialization = db.Column(db.String(32), nullable=False, default="layers")  # layers, broilers, mixed
    status = db.Column(db.String(16), nullable=False, default="active", index=True)
    is_approved = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Farm id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "address": self.address,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "specialization": self.specialization,
            "status": self.status,
            "is_approved": self.is_approved,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class User(db.Model):
    """
    Platform user.

    MULTI-TENANT: a user is bound to at most one farm. The check constraint
    keeps admins and customers unbound and every farm role bound, so a
    half-applied promotion can never be committed.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "(role IN ('admin', 'customer') AND farm_id IS NULL) OR "
            "(role IN ('farm_owner', 'manager', 'staff') AND farm_id IS NOT NULL)",
            name="chk_users_role_farm",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=True, unique=True)
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)

    role = db.Column(db.String(32), nullable=False, default=ROLE_CUSTOMER, index=True)
    farm_id = db.Column(db.Integer, db.ForeignKey("farms.id", ondelete="RESTRICT"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    farm = db.relationship("Farm", backref=db.backref("users", lazy=True))

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role!r} farm_id={self.farm_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "farm_id": self.farm_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
