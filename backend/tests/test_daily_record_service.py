# Overview: Pytest coverage for daily record ingestion and duplicate routing.

"""
Duplicate detection tests

These tests submit daily records for flocks of two farms and verify that:
1. The first submission for (user, flock, date) is approved and applied
2. A repeat is stored as a pending_review duplicate and reviewers are notified
3. Mortality reduces the flock's live count only for approved records
4. Races past the lookup are rejected by the storage constraint as conflicts
5. Cross-tenant flocks are refused
"""

from datetime import date

import pytest

from farmops.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from farmops.models import DailyRecord, Flock, Notification
from farmops.models.flocks import ReviewStatus
from farmops.services import daily_record_service


DAY = date(2026, 10, 18)


def _current_count(session, flock_id):
    session.expire_all()
    return session.get(Flock, flock_id).current_count


class TestFirstSubmission:

    def test_first_record_is_approved(self, db_session, staff_a, flock_a):
        record = daily_record_service.ingest_daily_record(
            staff_a.id, flock_a.id, DAY, {"eggs_collected": 85, "broken_eggs": 2},
        )

        assert record.review_status == ReviewStatus.APPROVED
        assert record.is_duplicate is False
        assert record.duplicate_of_id is None
        assert record.eggs_collected == 85
        assert db_session.query(Notification).count() == 0

    def test_date_string_accepted(self, db_session, staff_a, flock_a):
        record = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, "2026-10-18", {})

        assert record.record_date == DAY

    def test_mortality_reduces_live_count(self, db_session, staff_a, flock_a):
        daily_record_service.ingest_daily_record(
            staff_a.id, flock_a.id, DAY, {"mortality_count": 4, "mortality_reason": "heat"},
        )

        assert _current_count(db_session, flock_a.id) == 96

    def test_mortality_floors_at_zero(self, db_session, staff_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"mortality_count": 250})

        assert _current_count(db_session, flock_a.id) == 0


class TestDuplicateRouting:

    def test_second_submission_goes_to_review(
        self, db_session, staff_a, owner_a, manager_a, manager_b, flock_a
    ):
        first = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"eggs_collected": 85})
        second = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"eggs_collected": 90})

        assert first.review_status == ReviewStatus.APPROVED
        assert second.review_status == ReviewStatus.PENDING_REVIEW
        assert second.is_duplicate is True
        assert second.duplicate_of_id == first.id
        assert second.is_pending_review

        notifications = db_session.query(Notification).order_by(Notification.recipient_user_id).all()
        assert sorted(n.recipient_user_id for n in notifications) == sorted([owner_a.id, manager_a.id])
        for n in notifications:
            assert n.type == "duplicate_entry"
            assert n.farm_id == flock_a.farm_id
            assert n.is_read is False
            assert n.meta["record_id"] == second.id
            assert n.meta["duplicate_of_id"] == first.id
            assert n.meta["submitted_by"] == staff_a.id
            assert "2026-10-18" in n.message

    def test_third_submission_points_at_original(self, db_session, staff_a, manager_a, flock_a):
        first = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})
        third = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})

        assert third.review_status == ReviewStatus.PENDING_REVIEW
        assert third.duplicate_of_id == first.id
        assert db_session.query(Notification).count() == 2

    def test_duplicate_does_not_apply_mortality(self, db_session, staff_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"mortality_count": 3})
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"mortality_count": 3})

        assert _current_count(db_session, flock_a.id) == 97

    def test_duplicate_without_reviewers(self, db_session, staff_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})
        second = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})

        assert second.review_status == ReviewStatus.PENDING_REVIEW
        assert db_session.query(Notification).count() == 0

    def test_other_dates_are_independent(self, db_session, staff_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})
        other = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, date(2026, 10, 19), {})

        assert other.review_status == ReviewStatus.APPROVED

    def test_notification_failure_rolls_back_record(self, db_session, monkeypatch, staff_a, manager_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})

        def broken_fan_out(*args, **kwargs):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(daily_record_service, "fan_out_to_reviewers", broken_fan_out)

        with pytest.raises(RuntimeError):
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})

        assert db_session.query(DailyRecord).count() == 1
        assert db_session.query(Notification).count() == 0


class TestStorageBoundary:

    def test_race_past_lookup_is_conflict(self, db_session, monkeypatch, staff_a, manager_a, flock_a):
        """Simulate a concurrent submission that committed after our lookup."""
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})
        monkeypatch.setattr(daily_record_service, "find_latest_record", lambda *args: None)

        with pytest.raises(ConflictError, match="Duplicate record") as exc_info:
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"mortality_count": 10})

        assert exc_info.value.details == {"flock_id": flock_a.id, "record_date": "2026-10-18"}
        assert db_session.query(DailyRecord).count() == 1
        assert db_session.query(Notification).count() == 0
        assert _current_count(db_session, flock_a.id) == 100

    def test_second_actor_same_flock_and_date(self, db_session, staff_a, manager_a, flock_a):
        daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {})

        with pytest.raises(ConflictError):
            daily_record_service.ingest_daily_record(manager_a.id, flock_a.id, DAY, {})

        assert db_session.query(DailyRecord).count() == 1


class TestTenantIsolation:

    def test_flock_of_other_farm(self, db_session, staff_a, flock_b):
        with pytest.raises(ForbiddenError):
            daily_record_service.ingest_daily_record(staff_a.id, flock_b.id, DAY, {"mortality_count": 5})

        assert db_session.query(DailyRecord).count() == 0
        assert _current_count(db_session, flock_b.id) == 500

    def test_unknown_flock(self, db_session, staff_a):
        with pytest.raises(NotFoundError):
            daily_record_service.ingest_daily_record(staff_a.id, 98765, DAY, {})

    def test_unbound_actor(self, db_session, admin_user, flock_a):
        with pytest.raises(ValidationError, match="associated with a farm"):
            daily_record_service.ingest_daily_record(admin_user.id, flock_a.id, DAY, {})

    def test_unknown_actor(self, db_session, flock_a):
        with pytest.raises(NotFoundError):
            daily_record_service.ingest_daily_record(55555, flock_a.id, DAY, {})


class TestPayload:

    def test_unknown_field_rejected(self, db_session, staff_a, flock_a):
        with pytest.raises(ValidationError, match="Unknown field"):
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"review_status": "approved"})

    def test_negative_count_rejected(self, db_session, staff_a, flock_a):
        with pytest.raises(ValidationError):
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, DAY, {"eggs_collected": -1})

        assert db_session.query(DailyRecord).count() == 0

    def test_missing_date_rejected(self, db_session, staff_a, flock_a):
        with pytest.raises(ValidationError, match="record_date"):
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, None, {})

    def test_measurements_coerced(self, db_session, staff_a, flock_a):
        record = daily_record_service.ingest_daily_record(
            staff_a.id, flock_a.id, DAY, {"feed_consumed": "12.5", "temperature": -1.5, "notes": "cold night"},
        )

        assert record.feed_consumed == 12.5
        assert record.temperature == -1.5
        assert record.notes == "cold night"

    def test_date_with_trailing_text_rejected(self, db_session, staff_a, flock_a):
        with pytest.raises(ValidationError, match="record_date"):
            daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, "2026-10-18garbage", {})

        assert db_session.query(DailyRecord).count() == 0

    def test_datetime_string_truncated_to_date(self, db_session, staff_a, flock_a):
        record = daily_record_service.ingest_daily_record(staff_a.id, flock_a.id, "2026-10-18T06:30:00Z", {})

        assert record.record_date == DAY
