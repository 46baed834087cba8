# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Processing Service

WHY: Orders are settled with cash, card, QR, fonepay or store credit,
possibly several tenders for one order. Every payment has to keep three
denormalized aggregates in step: the order's payment status, the cashier
session's tender buckets and, for credit, the customer's balance.

DESIGN PRINCIPLES:
- Payments are separate from orders (many-to-one relationship)
- Payments are immutable: no update, no delete, corrections are new payments
- Order payment status is always recomputed from the full payment set
- Two status policies exist and are kept apart on purpose:
    single: any credit tender in this call forces "credit"
    split:  "credit" only when fully paid AND some payment is credit
- Write boundaries come from SettlementUnitOfWork (see concurrency.py)

PARTIAL APPLICATION: with SETTLEMENT_ATOMIC_WRITES off each step commits on
its own, so a failure after the payment insert leaves the payment in place.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from ..extensions import db
from ..identity import IdentityRef
from ..models import CashierSession, Customer, Order, Payment
from ..time_utils import utcnow
from ..validation import InvariantViolation, NotFoundError, ValidationError, to_money
from . import cashier_session_service
from .concurrency import lock_for_update, run_settlement
from .tenders import (
    CREDIT_PAYOFF_TENDER_TYPES,
    TENDER_CREDIT,
    VALID_TENDER_TYPES,
    validate_tender,
)


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_CREDIT = "credit"

STATUS_POLICY_SINGLE = "single"
STATUS_POLICY_SPLIT = "split"


def single_payment_status(method: str, total_paid: Decimal, grand_total: Decimal) -> str:
    """
    Status after recording one payment.

    A credit tender forces "credit" whatever the amount.
    """
    if method == TENDER_CREDIT:
        return PAYMENT_STATUS_CREDIT
    if total_paid >= grand_total:
        return PAYMENT_STATUS_PAID
    if total_paid > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def split_payment_status(payments: Iterable[Payment], grand_total: Decimal) -> str:
    """
    Status after a split payment, from the order's complete payment set.

    "credit" needs both full payment and at least one credit tender.
    """
    payments = list(payments)
    total_paid = sum((Decimal(p.amount) for p in payments), ZERO)
    has_credit = any(p.method == TENDER_CREDIT for p in payments)

    if has_credit and total_paid >= grand_total:
        return PAYMENT_STATUS_CREDIT
    if total_paid >= grand_total:
        return PAYMENT_STATUS_PAID
    if total_paid > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


# =============================================================================
# QUERIES
# =============================================================================

def get_payments_by_order(order_id: int) -> list[Payment]:
    return db.session.query(Payment).filter_by(
        order_id=order_id
    ).order_by(Payment.created_at, Payment.id).all()


def get_payments_by_session(session_id: int) -> list[Payment]:
    return db.session.query(Payment).filter_by(
        session_id=session_id
    ).order_by(Payment.created_at, Payment.id).all()


def total_paid_for_order(order_id: int) -> Decimal:
    return sum((Decimal(p.amount) for p in get_payments_by_order(order_id)), ZERO)


def get_summary_by_method(session_id: int) -> dict:
    """
    Payment totals per tender for a session.

    Unlike the session buckets, qr and fonepay are reported separately here.
    """
    summary = {method: ZERO for method in VALID_TENDER_TYPES}
    summary["total"] = ZERO

    for payment in get_payments_by_session(session_id):
        amount = Decimal(payment.amount)
        summary[payment.method] += amount
        summary["total"] += amount

    return summary


def recompute_order_status(order_id: int, policy: str, *, last_method: str | None = None) -> str:
    """
    What payment_status should be for an order under a given policy.

    For the single policy, last_method is the tender of the payment that
    triggered the update. Read-only.
    """
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")

    payments = get_payments_by_order(order_id)
    grand_total = Decimal(order.grand_total)

    if policy == STATUS_POLICY_SINGLE:
        if last_method is None:
            last_method = payments[-1].method if payments else None
        total_paid = sum((Decimal(p.amount) for p in payments), ZERO)
        return single_payment_status(last_method, total_paid, grand_total)
    if policy == STATUS_POLICY_SPLIT:
        return split_payment_status(payments, grand_total)
    raise ValueError(f"Unknown status policy: {policy}")


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def _require_order(order_id: int) -> Order:
    """Load the order locked; its payment_status is rewritten from a read of all its payments."""
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def _insert_payment(
    *,
    order_id: int,
    session_id: int,
    method: str,
    amount: Decimal,
    received_by: IdentityRef,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    payment = Payment(
        order_id=order_id,
        session_id=session_id,
        method=method,
        amount=amount,
        reference=reference,
        received_by=received_by.subject,
        notes=notes,
        created_at=utcnow(),
    )
    db.session.add(payment)
    db.session.flush()  # Get payment ID
    return payment


def _apply_to_session(session_id: int, method: str, amount: Decimal) -> None:
    """Bump the session bucket. A missing session is skipped, not an error."""
    session = lock_for_update(
        db.session.query(CashierSession).filter_by(id=session_id)
    ).first()
    if not session:
        logger.warning("Payment recorded against unknown cashier session %s; totals not updated", session_id)
        return
    cashier_session_service.apply_tender(session, method, amount)


def _charge_customer_credit(order: Order, amount: Decimal) -> None:
    """Add a credit-tender amount to the order's customer balance, if any."""
    if not order.customer_id:
        return
    customer = lock_for_update(db.session.query(Customer).filter_by(id=order.customer_id)).first()
    if not customer:
        logger.warning("Order %s references unknown customer %s; credit not charged", order.id, order.customer_id)
        return
    customer.current_credit = Decimal(customer.current_credit or ZERO) + amount
    customer.updated_at = utcnow()


def _set_order_status(order: Order, payment_status: str) -> None:
    order.payment_status = payment_status
    order.updated_at = utcnow()


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def record_payment(
    order_id: int,
    session_id: int,
    method: str,
    amount,
    received_by,
    reference: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record a single payment against an order.

    Steps, each a separate write: insert payment, patch order status,
    bump session bucket, charge customer credit (credit tender only).

    Returns:
        The new Payment

    Raises:
        NotFoundError: order does not resolve
        ValidationError: bad tender, non-positive amount, bad identity
    """
    validate_tender(method)
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    receiver = IdentityRef.parse(received_by)

    def _op(uow):
        order = _require_order(order_id)

        payment = _insert_payment(
            order_id=order.id,
            session_id=session_id,
            method=method,
            amount=amount,
            received_by=receiver,
            reference=reference,
            notes=notes,
        )
        uow.step()

        total_paid = total_paid_for_order(order.id)
        _set_order_status(order, single_payment_status(method, total_paid, Decimal(order.grand_total)))
        uow.step()

        _apply_to_session(session_id, method, amount)
        uow.step()

        if method == TENDER_CREDIT:
            _charge_customer_credit(order, amount)
            uow.step()

        return payment

    payment = run_settlement(_op)
    logger.info(
        "Recorded %s payment %s of %s on order %s (session %s)",
        method, payment.id, amount, order_id, session_id,
    )
    return payment


def record_split_payment(
    order_id: int,
    session_id: int,
    received_by,
    payments: list[dict],
) -> list[Payment]:
    """
    Record several tenders for one order in one call.

    Entries with amount <= 0 are skipped silently: no payment, no session
    or credit side effects. The order status is recomputed once at the end
    from the complete payment set using the split policy.

    Args:
        payments: sequence of {"method", "amount", "reference"?}

    Returns:
        Created payments, in input order, skipped entries omitted
    """
    receiver = IdentityRef.parse(received_by)

    entries = []
    for entry in payments:
        method = validate_tender(entry.get("method"))
        amount = to_money(entry.get("amount"))
        entries.append((method, amount, entry.get("reference")))

    def _op(uow):
        order = _require_order(order_id)
        created = []

        for method, amount, reference in entries:
            if amount <= 0:
                continue

            payment = _insert_payment(
                order_id=order.id,
                session_id=session_id,
                method=method,
                amount=amount,
                received_by=receiver,
                reference=reference,
            )
            created.append(payment)
            uow.step()

            _apply_to_session(session_id, method, amount)
            uow.step()

            if method == TENDER_CREDIT:
                _charge_customer_credit(order, amount)
                uow.step()

        all_payments = get_payments_by_order(order.id)
        _set_order_status(order, split_payment_status(all_payments, Decimal(order.grand_total)))
        uow.step()

        return created

    created = run_settlement(_op)
    logger.info(
        "Recorded split payment on order %s: %s of %s entries applied",
        order_id, len(created), len(entries),
    )
    return created


# =============================================================================
# CREDIT PAYOFF
# =============================================================================

def pay_off_credit(
    customer_id: int,
    amount,
    method: str,
    received_by,
    reference: str | None = None,
    notes: str | None = None,
) -> dict:
    """
    Reduce a customer's outstanding credit.

    Pure ledger adjustment on the customer: no Payment row, no order or
    session change. See customer_credit_service.record_credit_payment for
    the variant that also records a payment against an order.

    Returns:
        {"new_balance": Decimal}

    Raises:
        NotFoundError: customer does not resolve
        InvariantViolation: amount exceeds the outstanding credit
    """
    validate_tender(method, CREDIT_PAYOFF_TENDER_TYPES)
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    receiver = IdentityRef.parse(received_by)

    def _op(uow):
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("Customer not found")

        current = Decimal(customer.current_credit or ZERO)
        if amount > current:
            raise InvariantViolation("Payment amount exceeds outstanding credit")

        customer.current_credit = current - amount
        customer.updated_at = utcnow()
        uow.step()

        return {"new_balance": current - amount}

    result = run_settlement(_op)
    logger.info(
        "Customer %s paid off %s of credit by %s (ref=%s, by %s); balance now %s",
        customer_id, amount, method, reference, receiver, result["new_balance"],
    )
    return result
