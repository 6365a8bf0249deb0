# Overview: Reviewer notification fan-out plus the caller-facing inbox helpers.

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models import Notification, User
from ..models.tenancy import REVIEWER_ROLES
from farmops.time_utils import utcnow


@dataclass(frozen=True)
class NotificationTemplate:
    type: str
    title: str
    message: str
    meta: dict = field(default_factory=dict)


def resolve_reviewers(session: Session, farm_id: int) -> list[User]:
    """Users with role manager or farm_owner bound to ``farm_id``."""
    return (
        session.query(User)
        .filter(User.farm_id == farm_id, User.role.in_(REVIEWER_ROLES))
        .order_by(User.id)
        .all()
    )


def fan_out_to_reviewers(
    session: Session,
    farm_id: int,
    template: NotificationTemplate,
    *,
    extra_meta: dict | None = None,
) -> list[Notification]:
    """
    Insert one unread notification per reviewer of ``farm_id``.

    Runs inside the caller's transaction and never commits. An empty
    recipient set writes nothing.
    """
    meta = {**template.meta, **(extra_meta or {})}

    notifications = [
        Notification(
            recipient_user_id=reviewer.id,
            farm_id=farm_id,
            type=template.type,
            title=template.title,
            message=template.message,
            meta=dict(meta),
            is_read=False,
        )
        for reviewer in resolve_reviewers(session, farm_id)
    ]

    if notifications:
        session.add_all(notifications)
        session.flush()

    return notifications


def list_notifications(session: Session, user_id: int, limit: int = 20) -> list[Notification]:
    return (
        session.query(Notification)
        .filter_by(recipient_user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def mark_read(session: Session, notification_id: int, user_id: int) -> Notification:
    """Mark one of the user's notifications read. Other users' rows look missing."""
    notification = (
        session.query(Notification)
        .filter_by(id=notification_id, recipient_user_id=user_id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")

    notification.is_read = True
    notification.updated_at = utcnow()
    session.commit()
    return notification
