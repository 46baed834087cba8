# Overview: Service-layer operations for cashier sessions; encapsulates business logic and database work.

"""
Cashier Session Ledger

WHY: Each cashier works a shift against a cash drawer. The session keeps
running sales totals per tender bucket and, at close, compares counted cash
with what the drawer should hold.

DESIGN PRINCIPLES:
- One open session per cashier at a time (checked on open, not by the schema)
- Sessions are frozen once closed; there is no reopen
- Running totals are for display; close recomputes cash from payments
- Variance = counted closing cash - (opening cash + cash payments)

CONCURRENCY: open() is check-then-insert. Two simultaneous opens for the
same cashier can both pass the check. Accumulator bumps rely on the
version_id column to surface lost updates as StaleDataError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..identity import IdentityRef
from ..models import CashierSession, Order, Payment
from ..time_utils import business_day_start, utcnow
from ..validation import InvariantViolation, NotFoundError, ValidationError, to_money
from .concurrency import lock_for_update, run_with_retry
from .tenders import (
    SESSION_BUCKETS,
    TENDER_CARD,
    TENDER_CASH,
    TENDER_CREDIT,
    TENDER_FONEPAY,
    TENDER_QR,
    bucket_for,
)


logger = logging.getLogger(__name__)

SESSION_OPEN = "open"
SESSION_CLOSED = "closed"

ZERO = Decimal("0.00")


# =============================================================================
# QUERIES
# =============================================================================

def get_active(cashier_id) -> CashierSession | None:
    """Get the cashier's open session, if any."""
    cashier = IdentityRef.parse(cashier_id)
    return db.session.query(CashierSession).filter_by(
        cashier_id=cashier.subject,
        status=SESSION_OPEN,
    ).order_by(CashierSession.id).first()


def get_by_id(session_id: int) -> CashierSession | None:
    return db.session.get(CashierSession, session_id)


def get_open_sessions() -> list[CashierSession]:
    """All open sessions across cashiers, oldest first."""
    return db.session.query(CashierSession).filter_by(
        status=SESSION_OPEN
    ).order_by(CashierSession.id).all()


def get_today_session(cashier_id, *, now: datetime | None = None) -> CashierSession | None:
    """First session of the cashier dated today or later."""
    cashier = IdentityRef.parse(cashier_id)
    today = business_day_start(now)
    return db.session.query(CashierSession).filter(
        CashierSession.cashier_id == cashier.subject,
        CashierSession.session_date >= today,
    ).order_by(CashierSession.id).first()


def get_history(
    cashier_id=None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[CashierSession]:
    """
    Session history, newest business day first.

    Both date bounds are inclusive and compare against session_date.
    """
    query = db.session.query(CashierSession)

    if cashier_id:
        cashier = IdentityRef.parse(cashier_id)
        query = query.filter(CashierSession.cashier_id == cashier.subject)

    if start_date:
        query = query.filter(CashierSession.session_date >= start_date)

    if end_date:
        query = query.filter(CashierSession.session_date <= end_date)

    return query.order_by(CashierSession.session_date.desc(), CashierSession.id.desc()).all()


def _require_session(session_id: int, *, lock: bool = False) -> CashierSession:
    query = db.session.query(CashierSession).filter_by(id=session_id)
    if lock:
        query = lock_for_update(query)
    session = query.first()
    if not session:
        raise NotFoundError("Session not found")
    return session


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_session(cashier_id, opening_cash) -> CashierSession:
    """
    Open a new session for a cashier.

    Raises:
        InvariantViolation: cashier already has an open session
        ValidationError: negative opening cash or malformed cashier id
    """
    cashier = IdentityRef.parse(cashier_id)
    opening_cash = to_money(opening_cash, field="opening_cash")
    if opening_cash < 0:
        raise ValidationError("opening_cash cannot be negative")

    existing_open = get_active(cashier)
    if existing_open:
        raise InvariantViolation("You already have an open session. Please close it first.")

    now = utcnow()
    session = CashierSession(
        cashier_id=cashier.subject,
        session_date=business_day_start(now),
        opening_cash=opening_cash,
        total_cash_sales=ZERO,
        total_card_sales=ZERO,
        total_qr_sales=ZERO,
        total_credit_sales=ZERO,
        total_orders=0,
        status=SESSION_OPEN,
        opened_at=now,
        created_at=now,
        updated_at=now,
    )

    db.session.add(session)
    db.session.commit()

    logger.info("Opened cashier session %s for %s with float %s", session.id, cashier, opening_cash)
    return session


def close_session(session_id: int, closing_cash, notes: str | None = None) -> CashierSession:
    """
    Close a session and freeze its cash variance.

    Cash sales are summed from the session's cash payments rather than taken
    from total_cash_sales, so drift in the running total never leaks into
    the variance.
    """
    closing_cash = to_money(closing_cash, field="closing_cash")
    if closing_cash < 0:
        raise ValidationError("closing_cash cannot be negative")

    def _op():
        session = _require_session(session_id, lock=True)

        if session.status == SESSION_CLOSED:
            raise InvariantViolation("Session is already closed")

        cash_sales = _sum_payments(session.id, methods=[TENDER_CASH])
        expected_cash = Decimal(session.opening_cash) + cash_sales
        variance = closing_cash - expected_cash

        now = utcnow()
        session.closing_cash = closing_cash
        session.expected_cash = expected_cash
        session.cash_variance = variance
        session.status = SESSION_CLOSED
        session.closed_at = now
        session.notes = notes
        session.updated_at = now

        db.session.commit()
        return session

    session = run_with_retry(_op)

    if session.cash_variance:
        logger.warning(
            "Cashier session %s closed with variance %s (expected %s, counted %s)",
            session.id, session.cash_variance, session.expected_cash, session.closing_cash,
        )
    else:
        logger.info("Cashier session %s closed balanced", session.id)
    return session


# =============================================================================
# ACCUMULATORS
# =============================================================================

def apply_tender(session: CashierSession, method: str, amount: Decimal) -> str:
    """Add amount to the bucket for method on an already-loaded session. Returns the bucket name."""
    field = bucket_for(method)
    current = getattr(session, field) or ZERO
    setattr(session, field, Decimal(current) + amount)
    session.updated_at = utcnow()
    return field


def update_totals(session_id: int, method: str, amount) -> CashierSession:
    """Bump one tender bucket directly (for flows outside payment recording)."""
    amount = to_money(amount)
    bucket_for(method)

    def _op():
        session = _require_session(session_id, lock=True)
        apply_tender(session, method, amount)
        db.session.commit()
        return session

    return run_with_retry(_op)


def increment_order_count(session_id: int) -> CashierSession:
    def _op():
        session = _require_session(session_id, lock=True)
        session.total_orders = (session.total_orders or 0) + 1
        session.updated_at = utcnow()
        db.session.commit()
        return session

    return run_with_retry(_op)


# =============================================================================
# RECONCILIATION
# =============================================================================

def _sum_payments(session_id: int, methods: list[str] | None = None) -> Decimal:
    query = db.session.query(Payment).filter(Payment.session_id == session_id)
    if methods:
        query = query.filter(Payment.method.in_(methods))
    return sum((Decimal(p.amount) for p in query.all()), ZERO)


def recompute_session_totals(session_id: int) -> dict:
    """
    Bucket totals summed from the session's payments. Read-only.

    Returns a mapping keyed by accumulator field name.
    """
    _require_session(session_id)
    totals = {field: ZERO for field in set(SESSION_BUCKETS.values())}
    payments = db.session.query(Payment).filter_by(session_id=session_id).all()
    for payment in payments:
        field = SESSION_BUCKETS[payment.method]
        totals[field] += Decimal(payment.amount)
    return totals


def reconcile_session_totals(session_id: int, *, apply: bool = True) -> dict:
    """
    Compare running accumulators with payment-derived totals.

    Returns {field: drift} where drift = stored - recomputed. With apply=True
    the stored fields are overwritten with the recomputed values.
    """
    recomputed = recompute_session_totals(session_id)

    def _op():
        session = _require_session(session_id, lock=apply)
        drift = {
            field: Decimal(getattr(session, field) or ZERO) - value
            for field, value in recomputed.items()
        }
        if apply and any(drift.values()):
            for field, value in recomputed.items():
                setattr(session, field, value)
            session.updated_at = utcnow()
            db.session.commit()
            logger.warning("Reconciled cashier session %s accumulators, drift=%s", session_id, drift)
        return drift

    return run_with_retry(_op)


# =============================================================================
# REPORTING
# =============================================================================

def get_summary(session_id: int) -> dict:
    """
    Orders and payments rollup for one session.

    sales.qr includes fonepay. sales.total leaves credit out;
    sales.grand_total includes it.
    """
    session = _require_session(session_id)

    orders = db.session.query(Order).filter_by(session_id=session_id).all()
    payments = db.session.query(Payment).filter_by(session_id=session_id).all()

    def _total(*methods):
        return sum((Decimal(p.amount) for p in payments if p.method in methods), ZERO)

    cash_total = _total(TENDER_CASH)
    card_total = _total(TENDER_CARD)
    qr_total = _total(TENDER_QR, TENDER_FONEPAY)
    credit_total = _total(TENDER_CREDIT)

    return {
        "session": session,
        "orders": {
            "total": len(orders),
            "completed": sum(1 for o in orders if o.status == "completed"),
            "cancelled": sum(1 for o in orders if o.status == "cancelled"),
        },
        "sales": {
            "cash": cash_total,
            "card": card_total,
            "qr": qr_total,
            "credit": credit_total,
            "total": cash_total + card_total + qr_total,
            "grand_total": cash_total + card_total + qr_total + credit_total,
        },
        "expected_cash": Decimal(session.opening_cash) + cash_total,
    }
