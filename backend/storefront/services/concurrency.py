# Overview: Row locking and the retry wrapper shared by every write path.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """SELECT ... FOR UPDATE. A no-op on SQLite, honoured by server databases."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 5, backoff_base: float = 0.05):
    """
    Call func() until it succeeds or attempts run out.

    Only lock contention ("database is locked", deadlocks) and stale
    version_id writes are retried; the session is rolled back before each
    new try, so func must re-read whatever it decides on. Any other
    exception propagates on the first occurrence.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Concurrent write conflict, retrying (%d/%d): %s",
                attempt, attempts, type(exc).__name__,
            )
            time.sleep(backoff_base * 2 ** (attempt - 1))
