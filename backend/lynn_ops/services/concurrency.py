# Overview: Write-lock and retry helpers shared by every stock-mutating service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the database-wide lock comes from begin_write().
    Rows already in the identity map are reloaded, never trusted.
    """
    return query.with_for_update().populate_existing()


def begin_write() -> None:
    """
    Take the write lock before reading quantities that will be mutated.

    SQLite: BEGIN IMMEDIATE serializes writers, so the read-check-write of a
    stock change cannot interleave with another one.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks, busy database) and StaleDataError
    (optimistic version_id conflicts). func must do all of its work,
    including commit, so a retry replays the whole unit.
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
            current_app.logger.warning(
                "Retrying write after %s (attempt %s/%s)", type(exc).__name__, attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def commit_or_fail() -> None:
    """
    Commit the current unit of work.

    A failing commit is rolled back and surfaced as StorageError without a
    retry: nothing from the request is applied and the caller is told so.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Commit failed")
        raise StorageError("The change could not be saved") from exc


def atomic_write(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func under the write lock and commit it as one unit.

    func takes no arguments; its return value is handed back to the caller.
    Service errors raised inside func roll the session back and propagate
    unchanged. Lock and version conflicts hit before commit are retried;
    if they persist they surface as StorageError.
    """
    def _op():
        begin_write()
        try:
            result = func()
            db.session.flush()
        except (OperationalError, StaleDataError):
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Write failed before commit")
            raise StorageError("The change could not be saved") from exc
        except Exception:
            db.session.rollback()
            raise
        commit_or_fail()
        return result

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except (OperationalError, StaleDataError) as exc:
        current_app.logger.error("Write failed after %s attempts: %s", attempts, exc)
        raise StorageError("The change could not be saved, please retry") from exc
