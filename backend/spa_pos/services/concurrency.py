# Overview: Row locking, compare-and-set updates and retry for concurrent writers.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for stock-changing reads.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Product.version_id covers SQLite through StaleDataError.
    """
    return query.with_for_update()


def compare_and_set(model, row_id: int, column: str, expected, new) -> bool:
    """
    Atomically move model.column from expected to new for one row.

    Issues UPDATE ... WHERE id = :id AND column = :expected and commits.
    Returns False when another writer got there first (no row matched).
    """
    col = getattr(model, column)
    result = db.session.execute(
        update(model)
        .where(model.id == row_id, col == expected)
        .values({column: new})
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return result.rowcount == 1


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (database locked) and StaleDataError
    (Product.version_id mismatch). func must be safe to re-run from scratch.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
