# Overview: Pytest coverage for reviewer fan-out and the notification inbox.

import pytest

from farmops.errors import NotFoundError
from farmops.models import Notification
from farmops.services import notification_service
from farmops.services.notification_service import NotificationTemplate
from farmops.services.transaction import run_in_transaction


TEMPLATE = NotificationTemplate(
    type="duplicate_entry",
    title="Duplicate entry",
    message="A duplicate record needs review.",
    meta={"flock_id": 1},
)


class TestResolveReviewers:

    def test_only_managers_and_owners_of_the_farm(
        self, db_session, farm_a, owner_a, manager_a, staff_a, manager_b, admin_user
    ):
        reviewers = notification_service.resolve_reviewers(db_session, farm_a.id)

        assert sorted(u.id for u in reviewers) == sorted([owner_a.id, manager_a.id])


class TestFanOut:

    def test_one_unread_row_per_reviewer(self, db_session, farm_a, owner_a, manager_a, staff_a):
        created = run_in_transaction(
            lambda session: notification_service.fan_out_to_reviewers(
                session, farm_a.id, TEMPLATE, extra_meta={"record_id": 7},
            )
        )

        assert len(created) == 2
        rows = db_session.query(Notification).all()
        assert sorted(n.recipient_user_id for n in rows) == sorted([owner_a.id, manager_a.id])
        for n in rows:
            assert n.is_read is False
            assert n.farm_id == farm_a.id
            assert n.meta == {"flock_id": 1, "record_id": 7}

    def test_no_reviewers_writes_nothing(self, db_session, farm_a, staff_a):
        created = run_in_transaction(
            lambda session: notification_service.fan_out_to_reviewers(session, farm_a.id, TEMPLATE)
        )

        assert created == []
        assert db_session.query(Notification).count() == 0

    def test_rolls_back_with_enclosing_transaction(self, db_session, farm_a, manager_a):
        def work(session):
            notification_service.fan_out_to_reviewers(session, farm_a.id, TEMPLATE)
            raise RuntimeError("record insert failed")

        with pytest.raises(RuntimeError):
            run_in_transaction(work)

        assert db_session.query(Notification).count() == 0


class TestInbox:

    def _notify(self, farm_id):
        return run_in_transaction(
            lambda session: notification_service.fan_out_to_reviewers(session, farm_id, TEMPLATE)
        )

    def test_lists_own_notifications_only(self, db_session, farm_a, farm_b, manager_a, manager_b):
        self._notify(farm_a.id)
        self._notify(farm_a.id)
        self._notify(farm_b.id)

        mine = notification_service.list_notifications(db_session, manager_a.id)

        assert len(mine) == 2
        assert all(n.recipient_user_id == manager_a.id for n in mine)

    def test_limit(self, db_session, farm_a, manager_a):
        for _ in range(3):
            self._notify(farm_a.id)

        assert len(notification_service.list_notifications(db_session, manager_a.id, limit=2)) == 2

    def test_mark_read(self, db_session, farm_a, manager_a):
        [created] = self._notify(farm_a.id)

        notification = notification_service.mark_read(db_session, created.id, manager_a.id)

        assert notification.is_read is True
        db_session.expire_all()
        assert db_session.get(Notification, created.id).is_read is True

    def test_cannot_mark_someone_elses(self, db_session, farm_a, manager_a, staff_a):
        [created] = self._notify(farm_a.id)

        with pytest.raises(NotFoundError):
            notification_service.mark_read(db_session, created.id, staff_a.id)

        db_session.expire_all()
        assert db_session.get(Notification, created.id).is_read is False
