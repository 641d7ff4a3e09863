# Overview: Row locking and retry helpers shared by the stock and numbering services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..extensions import db


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE for rows whose counters we are about to change.

    NOTE: SQLite ignores FOR UPDATE; its database-level write lock serializes writers instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of work, retrying on lock contention / deadlock (OperationalError).

    func must be safe to re-run from scratch: it is called again after a rollback.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning("Retrying after database lock contention (attempt %s)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
