from __future__ import annotations

from ..extensions import db
from farmops.time_utils import to_utc_z


NOTIFICATION_DUPLICATE_ENTRY = "duplicate_entry"


class Notification(db.Model):
    """
    In-app notification for one recipient.

    Rows are only written by the reviewer fan-out, inside the transaction of
    the write that triggered them.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_recipient_created", "recipient_user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    farm_id = db.Column(db.Integer, db.ForeignKey("farms.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False)  # duplicate_entry, system_alert, ...
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    meta = db.Column(db.JSON, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)

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
            "recipient_user_id": self.recipient_user_id,
            "farm_id": self.farm_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "meta": self.meta,
            "is_read": self.is_read,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
