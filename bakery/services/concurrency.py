# Overview: Row locking and retry helpers shared by every multi-row mutation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (it serializes writers on the
    whole database instead); PostgreSQL/MySQL honor it per row.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError.
    Every retry starts from a rolled-back session, so func must redo all of
    its reads.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying after concurrency failure (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))


def commit_session() -> None:
    """
    Commit the request's unit of work exactly once.

    A failed commit is rolled back and re-raised, never retried. Retries go
    through run_in_transaction, which replays the whole unit of work.
    """
    try:
        db.session.commit()
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        current_app.logger.warning("Commit failed, unit of work rolled back: %s", exc)
        raise


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func and commit its writes as one unit.

    Any exception rolls back everything func wrote. Concurrency failures
    replay func from scratch.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
        except (OperationalError, StaleDataError):
            raise
        except Exception:
            db.session.rollback()
            raise
        return result
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
