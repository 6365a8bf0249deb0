from __future__ import annotations

import enum

from ..extensions import db
from farmops.time_utils import to_utc_z, to_iso_date


class ReviewStatus(str, enum.Enum):
    """
    Review state of a daily record.

    APPROVED records count towards flock totals. PENDING_REVIEW records are
    duplicate submissions parked until a reviewer accepts or rejects them.
    """
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"


class Flock(db.Model):
    __tablename__ = "flocks"
    __table_args__ = (
        db.CheckConstraint("initial_count >= 0 AND current_count >= 0", name="chk_flocks_counts"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    farm_id = db.Column(db.Integer, db.ForeignKey("farms.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    breed = db.Column(db.String(120), nullable=True)
    initial_count = db.Column(db.Integer, nullable=False)
    current_count = db.Column(db.Integer, nullable=False)
    hatch_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="brooding")  # brooding, laying, retired

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    farm = db.relationship("Farm", backref=db.backref("flocks", lazy=True))

    def __repr__(self) -> str:
        return f"<Flock id={self.id} farm_id={self.farm_id} current_count={self.current_count}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "farm_id": self.farm_id,
            "name": self.name,
            "breed": self.breed,
            "initial_count": self.initial_count,
            "current_count": self.current_count,
            "hatch_date": to_iso_date(self.hatch_date),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class DailyRecord(db.Model):
    """
    One submission of daily production data for a flock.

    UNIQUENESS: at most one approved, non-duplicate record per (flock, date).
    The partial unique index is the storage-level backstop for submissions
    that race past the duplicate lookup.
    """
    __tablename__ = "daily_records"
    __table_args__ = (
        db.Index("ix_daily_records_actor_flock_date", "user_id", "flock_id", "record_date"),
        db.Index(
            "uq_daily_records_flock_date_approved",
            "flock_id",
            "record_date",
            unique=True,
            sqlite_where=db.text("review_status = 'approved' AND is_duplicate = 0"),
            postgresql_where=db.text("review_status = 'approved' AND is_duplicate = false"),
        ),
        db.CheckConstraint(
            "eggs_collected >= 0 AND broken_eggs >= 0 AND crates_produced >= 0 AND mortality_count >= 0",
            name="chk_daily_records_nonneg",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    flock_id = db.Column(db.Integer, db.ForeignKey("flocks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    record_date = db.Column(db.Date, nullable=False)

    # Egg production
    eggs_collected = db.Column(db.Integer, nullable=True)
    broken_eggs = db.Column(db.Integer, nullable=True)
    crates_produced = db.Column(db.Integer, nullable=True)

    # Mortality
    mortality_count = db.Column(db.Integer, nullable=False, default=0)
    mortality_reason = db.Column(db.Text, nullable=True)

    # Feed
    feed_consumed = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=True)
    feed_type = db.Column(db.String(64), nullable=True)

    # Brooding
    temperature = db.Column(db.Numeric(5, 2, asdecimal=False), nullable=True)
    lighting_hours = db.Column(db.Numeric(4, 2, asdecimal=False), nullable=True)

    # Weight sampling
    average_weight = db.Column(db.Numeric(6, 2, asdecimal=False), nullable=True)
    sample_size = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    # Review state
    review_status = db.Column(
        db.Enum(
            ReviewStatus,
            name="review_status",
            native_enum=False,
            length=16,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=ReviewStatus.APPROVED,
    )
    is_duplicate = db.Column(db.Boolean, nullable=False, default=False)
    duplicate_of_id = db.Column(db.Integer, db.ForeignKey("daily_records.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    flock = db.relationship("Flock", backref=db.backref("daily_records", lazy=True))
    duplicate_of = db.relationship("DailyRecord", remote_side=[id])

    @property
    def is_pending_review(self) -> bool:
        return self.review_status == ReviewStatus.PENDING_REVIEW

    def __repr__(self) -> str:
        return (
            f"<DailyRecord id={self.id} flock_id={self.flock_id} date={self.record_date} "
            f"status={self.review_status.value if self.review_status else None}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "flock_id": self.flock_id,
            "user_id": self.user_id,
            "record_date": to_iso_date(self.record_date),
            "eggs_collected": self.eggs_collected,
            "broken_eggs": self.broken_eggs,
            "crates_produced": self.crates_produced,
            "mortality_count": self.mortality_count,
            "mortality_reason": self.mortality_reason,
            "feed_consumed": self.feed_consumed,
            "feed_type": self.feed_type,
            "temperature": self.temperature,
            "lighting_hours": self.lighting_hours,
            "average_weight": self.average_weight,
            "sample_size": self.sample_size,
            "notes": self.notes,
            "review_status": self.review_status.value if self.review_status else None,
            "is_duplicate": self.is_duplicate,
            "duplicate_of_id": self.duplicate_of_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
