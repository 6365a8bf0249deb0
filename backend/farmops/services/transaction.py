# Overview: Unit-of-work boundary shared by every multi-entity write.

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..extensions import db

T = TypeVar("T")


def run_in_transaction(work: Callable[[Session], T], *, session: Session | None = None) -> T:
    """
    Run ``work(session)`` as one unit and commit it once.

    Any exception raised by the closure, or by the final commit, rolls back
    every write the closure made and is re-raised unchanged. There is no
    retry here; retrying is a caller policy.

    The session is handed to the closure explicitly. Services pass it down
    to every helper they call instead of reaching for ``db.session``.
    """
    if session is None:
        session = db.session

    try:
        result = work(session)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return result


def guarded_update(session: Session, model, *, where: list, values: dict) -> int:
    """
    Execute a single conditional UPDATE and return the affected row count.

    The predicate in ``where`` is evaluated by the store at write time, so a
    concurrent writer that already invalidated it makes this return 0 instead
    of overwriting its change.
    """
    stmt = (
        update(model)
        .where(*where)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    return result.rowcount
