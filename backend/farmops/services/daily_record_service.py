"""
Daily record ingestion with double-entry detection.

A second submission by the same user for the same flock and date is not
applied. It is stored as a pending_review duplicate pointing at the record it
repeats, and every manager/farm_owner of the farm is notified in the same
transaction. Submissions racing past the lookup hit the partial unique index
on (flock_id, record_date) and surface as ConflictError.

When the user's latest record is itself a pending duplicate, a further
submission is linked to the approved original that record duplicates. It is
parked for review again rather than retried as an approved insert, which the
unique index would reject with a conflict.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

from flask import current_app
from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import DailyRecord, Flock, User
from ..models.flocks import ReviewStatus
from ..models.notifications import NOTIFICATION_DUPLICATE_ENTRY
from ..validation import coerce_date, coerce_float, coerce_int, reject_unknown_fields
from farmops.time_utils import utcnow
from .notification_service import NotificationTemplate, fan_out_to_reviewers
from .tenant_service import require_flock_in_farm
from .transaction import guarded_update, run_in_transaction


COUNT_FIELDS = ("eggs_collected", "broken_eggs", "crates_produced", "mortality_count", "sample_size")
MEASURE_FIELDS = ("feed_consumed", "temperature", "lighting_hours", "average_weight")
TEXT_FIELDS = ("mortality_reason", "feed_type", "notes")
PAYLOAD_FIELDS = set(COUNT_FIELDS) | set(MEASURE_FIELDS) | set(TEXT_FIELDS)

PENDING_REVIEW_MESSAGE = "Record submitted for manager review due to potential duplicate."


def normalize_payload(payload: Mapping | None) -> dict:
    """Restrict a record payload to known fields and coerce their types."""
    payload = dict(payload or {})
    reject_unknown_fields(payload, PAYLOAD_FIELDS)

    values = {}
    for key, value in payload.items():
        if value is None or value == "":
            continue
        if key in COUNT_FIELDS:
            values[key] = coerce_int(key, value, minimum=0)
        elif key == "temperature":
            values[key] = coerce_float(key, value)
        elif key in MEASURE_FIELDS:
            values[key] = coerce_float(key, value, minimum=0)
        else:
            values[key] = str(value)

    values.setdefault("mortality_count", 0)
    return values


def find_latest_record(session: Session, actor_id: int, flock_id: int, record_date: date) -> DailyRecord | None:
    """Most recent record submitted by ``actor_id`` for this flock and date."""
    return (
        session.query(DailyRecord)
        .filter_by(user_id=actor_id, flock_id=flock_id, record_date=record_date)
        .order_by(DailyRecord.created_at.desc(), DailyRecord.id.desc())
        .first()
    )


def _apply_mortality(session: Session, flock_id: int, mortality: int) -> None:
    # Single statement so concurrent submissions cannot lose an update;
    # the live count floors at zero.
    guarded_update(
        session,
        Flock,
        where=[Flock.id == flock_id],
        values={
            "current_count": case(
                (Flock.current_count > mortality, Flock.current_count - mortality),
                else_=0,
            ),
            "updated_at": utcnow(),
        },
    )


def _duplicate_template(record_date: date, existing: DailyRecord, flock_id: int, actor_id: int) -> NotificationTemplate:
    return NotificationTemplate(
        type=NOTIFICATION_DUPLICATE_ENTRY,
        title="Duplicate Daily Record Detected",
        message=(
            f"A potential duplicate daily record has been submitted for {record_date.isoformat()}. "
            "Please review and approve or reject."
        ),
        meta={
            "duplicate_of_id": existing.id,
            "flock_id": flock_id,
            "submitted_by": actor_id,
        },
    )


def ingest_daily_record(
    actor_id: int,
    flock_id: int,
    record_date,
    payload: Mapping | None = None,
    *,
    session: Session | None = None,
) -> DailyRecord:
    """
    Store a daily record, routing repeats to review.

    Returns the created record. ``record.review_status`` tells the caller
    which branch was taken.

    Raises:
        ValidationError: bad payload, or actor not bound to a farm
        NotFoundError: actor or flock missing
        ForbiddenError: flock belongs to another farm
        ConflictError: an approved record for this flock and date already exists
    """
    record_date = coerce_date("record_date", record_date)
    values = normalize_payload(payload)

    def _op(session: Session) -> DailyRecord:
        actor = session.query(User).filter_by(id=actor_id).first()
        if not actor:
            raise NotFoundError("User not found", details={"user_id": actor_id})
        if not actor.farm_id:
            raise ValidationError("User must be associated with a farm to create records")

        flock = require_flock_in_farm(session, flock_id, actor.farm_id)

        existing = find_latest_record(session, actor_id, flock.id, record_date)
        if existing is not None and existing.is_duplicate and existing.duplicate_of is not None:
            # Repeats of a repeat point at the approved original
            existing = existing.duplicate_of

        if existing is not None and existing.review_status == ReviewStatus.APPROVED:
            record = DailyRecord(
                flock_id=flock.id,
                user_id=actor_id,
                record_date=record_date,
                review_status=ReviewStatus.PENDING_REVIEW,
                is_duplicate=True,
                duplicate_of_id=existing.id,
                **values,
            )
            session.add(record)
            session.flush()

            notifications = fan_out_to_reviewers(
                session,
                flock.farm_id,
                _duplicate_template(record_date, existing, flock.id, actor_id),
                extra_meta={"record_id": record.id},
            )
            current_app.logger.info(
                "Daily record %s for flock %s on %s routed to review (duplicate of %s, %s reviewers notified)",
                record.id, flock.id, record_date, existing.id, len(notifications),
            )
            return record

        record = DailyRecord(
            flock_id=flock.id,
            user_id=actor_id,
            record_date=record_date,
            review_status=ReviewStatus.APPROVED,
            is_duplicate=False,
            **values,
        )
        session.add(record)
        try:
            session.flush()
        except IntegrityError as e:
            current_app.logger.warning(
                "Duplicate approved record rejected for flock %s on %s", flock_id, record_date,
            )
            raise ConflictError(
                f"Duplicate record: flock {flock_id} already has an approved record for {record_date.isoformat()}",
                details={"flock_id": flock_id, "record_date": record_date.isoformat()},
            ) from e

        if values["mortality_count"] > 0:
            _apply_mortality(session, flock.id, values["mortality_count"])

        return record

    return run_in_transaction(_op, session=session)
