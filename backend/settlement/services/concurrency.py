# Overview: Service-layer helpers for locking, retries and the settlement unit of work.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
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
            logger.warning("Concurrency conflict (attempt %s/%s): %s", attempt + 1, attempts, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


class SettlementUnitOfWork:
    """
    Write boundary for one settlement operation.

    atomic=True: steps only flush, complete() commits everything at once.
    atomic=False: every step commits on its own. A failure part-way leaves
    the earlier steps in place (the legacy behaviour); abort() can only roll
    back the step in flight.
    """

    def __init__(self, atomic: bool):
        self.atomic = atomic
        self.steps_committed = 0

    def step(self) -> None:
        if self.atomic:
            db.session.flush()
        else:
            db.session.commit()
            self.steps_committed += 1

    def complete(self) -> None:
        db.session.commit()

    def abort(self) -> None:
        db.session.rollback()
        if not self.atomic and self.steps_committed:
            logger.warning(
                "Settlement aborted after %s committed step(s); earlier writes were not undone",
                self.steps_committed,
            )


def atomic_writes_enabled() -> bool:
    return bool(current_app.config.get("SETTLEMENT_ATOMIC_WRITES", True))


def run_settlement(func, *, atomic: bool | None = None):
    """
    Run func(uow) inside a SettlementUnitOfWork.

    Only the atomic mode is retried: in step-commit mode a retry would
    re-insert payments that were already committed.
    """
    if atomic is None:
        atomic = atomic_writes_enabled()

    def _op():
        uow = SettlementUnitOfWork(atomic)
        try:
            result = func(uow)
            uow.complete()
            return result
        except Exception:
            uow.abort()
            raise

    if atomic:
        return run_with_retry(_op)
    return _op()
