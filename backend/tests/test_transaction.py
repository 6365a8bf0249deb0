# Overview: Pytest coverage for the unit-of-work boundary.

import pytest

from farmops.models import Farm, Product
from farmops.services.transaction import run_in_transaction, guarded_update


class TestRunInTransaction:

    def test_commits_all_writes(self, db_session):
        def work(session):
            session.add(Farm(name="North", location="Nyeri"))
            session.add(Farm(name="South", location="Kisii"))
            session.flush()
            return "done"

        assert run_in_transaction(work) == "done"

        db_session.expire_all()
        assert db_session.query(Farm).count() == 2

    def test_error_discards_every_write(self, db_session):
        def work(session):
            session.add(Farm(name="North", location="Nyeri"))
            session.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            run_in_transaction(work)

        assert db_session.query(Farm).count() == 0

    def test_uses_given_session(self, db_session):
        seen = []

        run_in_transaction(lambda session: seen.append(session), session=db_session)

        assert seen == [db_session]


class TestGuardedUpdate:

    def test_returns_zero_when_predicate_fails(self, db_session, product_a):
        affected = guarded_update(
            db_session,
            Product,
            where=[Product.id == product_a.id, Product.stock_quantity >= 99],
            values={"stock_quantity": Product.stock_quantity - 99},
        )
        db_session.commit()

        assert affected == 0
        assert db_session.get(Product, product_a.id).stock_quantity == 5

    def test_returns_one_when_predicate_holds(self, db_session, product_a):
        affected = guarded_update(
            db_session,
            Product,
            where=[Product.id == product_a.id, Product.stock_quantity >= 2],
            values={"stock_quantity": Product.stock_quantity - 2},
        )
        db_session.commit()

        assert affected == 1
        db_session.expire_all()
        assert db_session.get(Product, product_a.id).stock_quantity == 3
