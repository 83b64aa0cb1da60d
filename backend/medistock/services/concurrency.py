# Overview: Transaction helpers shared by the stock services (locking, retry, write transactions).

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Row-lock the lots a stock operation is about to change.

    SQLite compiles this away; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write():
    """
    Take the database write lock up front on SQLite.

    SQLite transactions start DEFERRED, so two writers can both read before
    either writes. BEGIN IMMEDIATE serializes multi-step operations from
    their first read. Other dialects rely on lock_for_update() and the
    conditional ledger UPDATE.
    """
    if db.engine.dialect.name == "sqlite" and not db.session().in_transaction():
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a stock operation, retrying when the database reports contention.

    Retries on OperationalError (locked database, deadlock) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the session
    back and propagates unchanged.
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
            logger.warning("Retrying after concurrency failure (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """Run func inside one write transaction and commit it, with retry."""
    def _op():
        begin_write()
        result = func()
        db.session.commit()
        return result
    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
