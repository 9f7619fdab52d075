# Overview: Transaction helpers: row locks, the unit-of-work boundary, and retry for idempotent writes.

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import FulfillmentError, PersistenceError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; unit_of_work takes the
    database write lock up front there instead (BEGIN IMMEDIATE).
    """
    return query.with_for_update()


def _begin_write() -> None:
    """On SQLite, open the transaction as a writer so readers can't race us."""
    if db.engine.dialect.name != "sqlite":
        return
    if not current_app.config.get("SQLITE_IMMEDIATE_TRANSACTIONS", True):
        return
    connection = db.session.connection()
    if not connection.connection.driver_connection.in_transaction:
        connection.exec_driver_sql("BEGIN IMMEDIATE")


@contextmanager
def unit_of_work():
    """
    Run one workflow operation as a single transaction.

    Commits once on success. Any exception rolls back every change made
    inside the block (order, lines, inventory, receipt) and is re-raised.
    Storage-level failures are translated to PersistenceError so callers
    see one retryable error type:

    - OperationalError: lock timeout, deadlock, database busy
    - StaleDataError: optimistic version check failed
    - IntegrityError: a uniqueness race lost at commit time

    Operations are not retried here: receiving and selling are not idempotent.
    """
    try:
        _begin_write()
        yield db.session
        db.session.commit()
    except FulfillmentError:
        db.session.rollback()
        raise
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        logger.warning("Unit of work aborted by concurrent writer: %s", exc)
        raise PersistenceError(
            "The record was changed or locked by another operation; please retry",
            {"reason": type(exc).__name__},
        ) from exc
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Unit of work hit an integrity conflict: %s", exc.orig)
        raise PersistenceError(
            "Conflicting concurrent write; please retry",
            {"reason": "IntegrityError"},
        ) from exc
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute an idempotent DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locks) and StaleDataError (optimistic locking
    conflicts), rolling the session back between attempts.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
