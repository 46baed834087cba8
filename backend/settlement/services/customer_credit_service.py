# Overview: Service-layer operations for customer credit accounts; encapsulates business logic and database work.

"""
Customer Credit Service

WHY: Customers who settle on account carry an outstanding balance. This
module is the customer-management side of credit: listing who owes what,
and taking a repayment that is tied to a specific order.

Two payoff entry points exist and they differ on purpose:
- payment_service.pay_off_credit: balance adjustment only
- record_credit_payment (here): balance adjustment, plus a cash Payment and
  an order status update when an order is given
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..extensions import db
from ..identity import IdentityRef
from ..models import Customer, Order, Payment
from ..time_utils import utcnow
from ..validation import InvariantViolation, NotFoundError, ValidationError, to_money
from . import cashier_session_service
from .concurrency import lock_for_update, run_settlement
from .payment_service import (
    PAYMENT_STATUS_CREDIT,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    total_paid_for_order,
)
from .tenders import TENDER_CASH, TENDER_CREDIT


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

DEFAULT_CREDIT_PAYMENT_NOTE = "Credit payment"


# =============================================================================
# QUERIES
# =============================================================================

def get_credit_orders(customer_id: int) -> list[Order]:
    """Orders of a customer still marked as settled on credit."""
    return db.session.query(Order).filter_by(
        customer_id=customer_id,
        payment_status=PAYMENT_STATUS_CREDIT,
    ).order_by(Order.id).all()


def get_customers_with_credit() -> list[dict]:
    """Active customers with an outstanding balance, each with their credit orders."""
    customers = db.session.query(Customer).filter(
        Customer.is_active.is_(True),
        Customer.current_credit > 0,
    ).order_by(Customer.name).all()

    return [
        {
            "customer": customer,
            "credit_orders": get_credit_orders(customer.id),
        }
        for customer in customers
    ]


def get_credit_transactions(customer_id: int | None = None) -> list[dict]:
    """
    Credit-tender payments, newest last.

    Unfiltered: every credit payment on an order that has a customer, with the
    customer's name. Filtered: only that customer's orders, without the name.
    """
    query = db.session.query(Payment, Order).join(
        Order, Payment.order_id == Order.id
    ).filter(
        Payment.method == TENDER_CREDIT,
        Order.customer_id.isnot(None),
    )

    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)

    rows = query.order_by(Payment.created_at, Payment.id).all()

    transactions = []
    for payment, order in rows:
        txn = {
            "id": payment.id,
            "date": payment.created_at,
            "order_number": order.order_number,
            "type": TENDER_CREDIT,
            "amount": Decimal(payment.amount),
        }
        if customer_id is None:
            txn["customer_id"] = order.customer_id
            txn["customer_name"] = order.customer.name if order.customer else "Unknown"
        transactions.append(txn)
    return transactions


# =============================================================================
# REPAYMENT
# =============================================================================

def record_credit_payment(
    customer_id: int,
    amount,
    received_by,
    order_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Take a repayment of outstanding credit, optionally against one order.

    With an order:
    - total paid is the order's prior payments plus this amount
    - a cash Payment is recorded against the first open cashier session,
      if any session is open (session totals are not bumped)
    - the order becomes "paid" when fully covered, else "partial"

    Returns:
        {"new_balance": Decimal}

    Raises:
        NotFoundError: customer does not resolve
        InvariantViolation: amount exceeds the credit balance
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")
    receiver = IdentityRef.parse(received_by)

    def _op(uow):
        # Order before customer, same lock order as payment_service
        order = None
        if order_id is not None:
            order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()

        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise NotFoundError("Customer not found")

        current = Decimal(customer.current_credit or ZERO)
        if amount > current:
            raise InvariantViolation("Payment amount exceeds credit balance")

        now = utcnow()
        customer.current_credit = current - amount
        customer.updated_at = now
        uow.step()

        if order:
            total_paid = total_paid_for_order(order.id) + amount

            open_sessions = cashier_session_service.get_open_sessions()
            if open_sessions:
                payment = Payment(
                    order_id=order.id,
                    session_id=open_sessions[0].id,
                    method=TENDER_CASH,
                    amount=amount,
                    notes=notes or DEFAULT_CREDIT_PAYMENT_NOTE,
                    received_by=receiver.subject,
                    created_at=now,
                )
                db.session.add(payment)
                uow.step()
            else:
                logger.warning("No open cashier session; credit repayment on order %s not recorded as a payment", order.id)

            order.payment_status = (
                PAYMENT_STATUS_PAID if total_paid >= Decimal(order.grand_total) else PAYMENT_STATUS_PARTIAL
            )
            order.updated_at = now
            uow.step()

        return {"new_balance": current - amount}

    result = run_settlement(_op)
    logger.info(
        "Customer %s repaid %s of credit (order %s); balance now %s",
        customer_id, amount, order_id, result["new_balance"],
    )
    return result
