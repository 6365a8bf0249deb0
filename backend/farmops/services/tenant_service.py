"""
Multi-Tenant Service: farm creation, owner binding and tenant checks.

SECURITY INVARIANTS:
1. An admin user never carries a farm_id
2. A non-admin who creates a farm is bound to it as farm_owner in the same
   transaction that creates the farm, so no farm exists without its owner
3. Flock IDs from client input are validated against the caller's farm
   before any write touches them

USAGE:
    from farmops.services.tenant_service import create_farm_with_owner

    binding = create_farm_with_owner({"name": "Sunrise", "location": "Nakuru"}, g.current_user.id)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.orm import Session

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..models import Farm, Flock, User
from ..models.tenancy import ROLE_FARM_OWNER
from ..validation import reject_unknown_fields, require_fields
from farmops.time_utils import utcnow
from .transaction import guarded_update, run_in_transaction


FARM_WRITABLE_FIELDS = {
    "name",
    "description",
    "location",
    "address",
    "contact_email",
    "contact_phone",
    "specialization",
}
FARM_REQUIRED_FIELDS = ("name", "location")


@dataclass
class FarmBinding:
    farm: Farm
    user: User

    def to_dict(self) -> dict:
        return {"farm": self.farm.to_dict(), "user": self.user.to_dict()}


def _load_actor(session: Session, actor_id: int) -> User | None:
    return session.query(User).filter_by(id=actor_id).first()


def create_farm_with_owner(farm_data: Mapping, actor_id: int, *, session: Session | None = None) -> FarmBinding:
    """
    Create a farm and bind the creating user to it.

    Admins stay global: their role and farm_id are left alone. Everyone else
    is promoted to farm_owner of the new farm. Farm insert and promotion
    commit together.

    Raises:
        ValidationError: farm data missing name/location or carrying unknown keys
        NotFoundError: actor missing, or vanished before the promotion
    """
    if not isinstance(farm_data, Mapping):
        raise ValidationError("Farm data must be an object")
    reject_unknown_fields(farm_data, FARM_WRITABLE_FIELDS)
    require_fields(farm_data, FARM_REQUIRED_FIELDS)

    def _op(session: Session) -> FarmBinding:
        farm = Farm(**{k: v for k, v in farm_data.items() if k in FARM_WRITABLE_FIELDS})
        session.add(farm)
        session.flush()

        actor = _load_actor(session, actor_id)
        if not actor:
            raise NotFoundError("User not found", details={"user_id": actor_id})

        if actor.is_admin:
            # Admins may create many farms without being tied to any of them
            values = {"updated_at": utcnow()}
        else:
            values = {"farm_id": farm.id, "role": ROLE_FARM_OWNER, "updated_at": utcnow()}

        affected = guarded_update(session, User, where=[User.id == actor.id], values=values)
        if not affected:
            raise NotFoundError(
                "Failed to bind user to farm - user not found",
                details={"user_id": actor_id},
            )

        user = session.query(User).populate_existing().filter_by(id=actor_id).first()
        return FarmBinding(farm=farm, user=user)

    binding = run_in_transaction(_op, session=session)
    current_app.logger.info(
        "Farm %s created by user %s (role=%s)", binding.farm.id, actor_id, binding.user.role,
    )
    return binding


def require_flock_in_farm(session: Session, flock_id: int, farm_id: int) -> Flock:
    """
    Validate that a flock belongs to the given farm.

    Raises:
        NotFoundError if the flock does not exist
        ForbiddenError if it belongs to another farm
    """
    flock = session.query(Flock).filter_by(id=flock_id).first()
    if not flock:
        raise NotFoundError("Flock not found", details={"flock_id": flock_id})

    if flock.farm_id != farm_id:
        current_app.logger.warning(
            "Cross-tenant access denied: flock %s belongs to farm %s, not %s",
            flock_id, flock.farm_id, farm_id,
        )
        raise ForbiddenError("Access denied. You can only create records for your own farm's flocks.")

    return flock
