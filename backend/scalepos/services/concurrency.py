# Overview: Locking, write-transaction and retry helpers shared by stock and loyalty writes.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Lost stock/loyalty races and a busy SQLite file both surface as these
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """Row-lock a stock read until the checkout transaction ends (no-op on SQLite)."""
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    On SQLite, start the current transaction with BEGIN IMMEDIATE so two
    checkouts cannot both read stock before either writes it.

    No-op on other dialects, where lock_for_update() holds the product row,
    and when the connection is already inside a transaction.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func(), rolling back and calling it again when a write loses a
    race (stale version_id) or the database is locked.

    func owns its commit and must redo every read after a rollback. The
    wait doubles from backoff_base between tries; the last error is raised
    once attempts are spent.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS:
            db.session.rollback()
            if attempt == attempts:
                raise
            time.sleep(backoff_base * 2 ** (attempt - 1))
