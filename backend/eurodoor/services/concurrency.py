# Overview: Transaction wrapper shared by every workflow operation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking before a read-check-write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; version_id_col on the
    mapped rows still catches lost updates there.
    """
    return query.with_for_update()


def run_with_retry(
    func,
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
    retry_on: tuple = (),
):
    """
    Run one unit of work (which commits on success) in its own transaction.

    - OperationalError / StaleDataError (plus any `retry_on` types): rollback,
      back off, retry. The unit of work re-reads its rows on every attempt.
    - Anything else (domain errors included): rollback and re-raise, so a
      failed transition never leaves partial writes in the session.

    Pass retry_on=(IntegrityError,) for get-or-create work where a
    concurrent insert of the same unique row is expected.
    """
    if attempts is None:
        attempts = current_app.config.get("WORKFLOW_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("WORKFLOW_RETRY_BACKOFF", 0.1)
    attempts = max(1, int(attempts))
    retryable = RETRYABLE_ERRORS + tuple(retry_on)

    for attempt in range(attempts):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update conflict (%s), retrying %d/%d",
                exc.__class__.__name__,
                attempt + 1,
                attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
