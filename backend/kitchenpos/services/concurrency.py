# Overview: Row locking and retry helpers for read-modify-write service operations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Lock the selected rows for the rest of the DB transaction.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id columns
    catch lost updates instead (StaleDataError, retried below).
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run a unit of DB work, retrying on lock contention (OperationalError)
    and optimistic-lock conflicts (StaleDataError).

    func must re-read everything it mutates; the session is rolled back
    between attempts.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Retrying %s after %s (attempt %d/%d)",
                getattr(func, "__qualname__", "db operation"),
                type(exc).__name__,
                attempt,
                attempts,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
