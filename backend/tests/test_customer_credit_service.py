from decimal import Decimal

import pytest

from settlement.extensions import db
from settlement.models import CashierSession, Customer, Order, Payment
from settlement.services import customer_credit_service, payment_service
from settlement.validation import InvariantViolation, NotFoundError

from conftest import CASHIER


def _reload(model, pk):
    db.session.expire_all()
    return db.session.get(model, pk)


def _credit_order(make_order, customer, session, grand_total="1000", credit="1000"):
    order = make_order(grand_total=grand_total, customer=customer)
    payment_service.record_payment(order.id, session.id, "credit", credit, CASHIER)
    return order


def test_repayment_against_order_records_cash_payment(make_order, make_customer, cashier_session):
    customer = make_customer()
    order = _credit_order(make_order, customer, cashier_session)

    result = customer_credit_service.record_credit_payment(
        customer.id, "1000", CASHIER, order_id=order.id
    )

    assert result["new_balance"] == Decimal("0")
    assert _reload(Customer, customer.id).current_credit == Decimal("0")

    repayment = db.session.query(Payment).filter_by(order_id=order.id, method="cash").one()
    assert repayment.amount == Decimal("1000")
    assert repayment.session_id == cashier_session.id
    assert repayment.notes == "Credit payment"
    assert repayment.received_by == CASHIER

    # Prior credit payment counts towards the total, so the order is covered
    assert _reload(Order, order.id).payment_status == "paid"


def test_repayment_does_not_touch_session_totals(make_order, make_customer, cashier_session):
    customer = make_customer()
    order = _credit_order(make_order, customer, cashier_session, credit="400")

    customer_credit_service.record_credit_payment(customer.id, "100", CASHIER, order_id=order.id, notes="cash at door")

    session = _reload(CashierSession, cashier_session.id)
    assert session.total_cash_sales == Decimal("0")
    assert session.total_credit_sales == Decimal("400")
    repayment = db.session.query(Payment).filter_by(order_id=order.id, method="cash").one()
    assert repayment.notes == "cash at door"
    assert _reload(Order, order.id).payment_status == "partial"


def test_repayment_without_open_session_still_updates_order(make_order, make_customer, cashier_session):
    customer = make_customer()
    order = _credit_order(make_order, customer, cashier_session, credit="300")
    cashier_session.status = "closed"
    db.session.commit()

    customer_credit_service.record_credit_payment(customer.id, "300", CASHIER, order_id=order.id)

    assert db.session.query(Payment).filter_by(order_id=order.id, method="cash").count() == 0
    assert _reload(Order, order.id).payment_status == "partial"
    assert _reload(Customer, customer.id).current_credit == Decimal("0")


def test_repayment_without_order_is_balance_only(make_customer):
    customer = make_customer(current_credit="600")

    result = customer_credit_service.record_credit_payment(customer.id, "250", CASHIER)

    assert result["new_balance"] == Decimal("350")
    assert db.session.query(Payment).count() == 0


def test_repayment_over_balance_rejected(make_customer):
    customer = make_customer(current_credit="50")

    with pytest.raises(InvariantViolation, match="Payment amount exceeds credit balance"):
        customer_credit_service.record_credit_payment(customer.id, "60", CASHIER)

    assert _reload(Customer, customer.id).current_credit == Decimal("50")


def test_repayment_unknown_customer(db_session):
    with pytest.raises(NotFoundError, match="Customer not found"):
        customer_credit_service.record_credit_payment(404, "1", CASHIER)


def test_customers_with_credit_lists_active_debtors_and_their_orders(make_order, make_customer, cashier_session):
    debtor = make_customer(name="Asha")
    make_customer(name="Bikash")
    make_customer(name="Chandra", current_credit="90", is_active=False)

    credit_order = _credit_order(make_order, debtor, cashier_session, credit="1000")
    make_order(customer=debtor)

    rows = customer_credit_service.get_customers_with_credit()

    assert [row["customer"].id for row in rows] == [debtor.id]
    assert [o.id for o in rows[0]["credit_orders"]] == [credit_order.id]


def test_credit_transactions_filtered_and_unfiltered(make_order, make_customer, cashier_session):
    first = make_customer(name="Asha")
    second = make_customer(name="Bikash")
    order_a = _credit_order(make_order, first, cashier_session, credit="100")
    _credit_order(make_order, second, cashier_session, credit="200")
    payment_service.record_payment(order_a.id, cashier_session.id, "cash", "50", CASHIER)

    everything = customer_credit_service.get_credit_transactions()
    assert [t["amount"] for t in everything] == [Decimal("100"), Decimal("200")]
    assert [t["customer_name"] for t in everything] == ["Asha", "Bikash"]

    mine = customer_credit_service.get_credit_transactions(first.id)
    assert len(mine) == 1
    assert mine[0]["order_number"] == _reload(Order, order_a.id).order_number
    assert mine[0]["type"] == "credit"
    assert "customer_name" not in mine[0]
