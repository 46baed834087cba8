from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from settlement.extensions import db
from settlement.models import CashierSession
from settlement.services import cashier_session_service, payment_service
from settlement.time_utils import business_day_start
from settlement.validation import InvariantViolation, NotFoundError, ValidationError

from conftest import CASHIER, OTHER_CASHIER


def _reload(session_id):
    db.session.expire_all()
    return db.session.get(CashierSession, session_id)


def _add_session(cashier_id, session_date, status="closed"):
    session = CashierSession(
        cashier_id=cashier_id,
        session_date=session_date,
        opening_cash=Decimal("0"),
        status=status,
        opened_at=session_date,
    )
    db.session.add(session)
    db.session.commit()
    return session


# =============================================================================
# OPEN
# =============================================================================

def test_open_creates_zeroed_session_for_today(db_session):
    session = cashier_session_service.open_session(CASHIER, "150.00")

    stored = _reload(session.id)
    assert stored.status == "open"
    assert stored.cashier_id == CASHIER
    assert stored.opening_cash == Decimal("150.00")
    assert stored.total_cash_sales == Decimal("0")
    assert stored.total_card_sales == Decimal("0")
    assert stored.total_qr_sales == Decimal("0")
    assert stored.total_credit_sales == Decimal("0")
    assert stored.total_orders == 0
    assert stored.session_date == business_day_start()
    assert stored.closed_at is None


def test_second_open_for_same_cashier_fails(db_session):
    first = cashier_session_service.open_session(CASHIER, "100")

    with pytest.raises(InvariantViolation, match="You already have an open session"):
        cashier_session_service.open_session(CASHIER, "50")

    active = cashier_session_service.get_active(CASHIER)
    assert active.id == first.id
    assert db.session.query(CashierSession).count() == 1


def test_each_cashier_can_hold_one_open_session(db_session):
    first = cashier_session_service.open_session(CASHIER, "100")
    second = cashier_session_service.open_session(OTHER_CASHIER, "100")

    assert first.id != second.id
    assert cashier_session_service.get_active(OTHER_CASHIER).id == second.id


def test_open_after_close_is_allowed(db_session):
    first = cashier_session_service.open_session(CASHIER, "100")
    cashier_session_service.close_session(first.id, "100")

    second = cashier_session_service.open_session(CASHIER, "80")

    assert second.id != first.id
    assert cashier_session_service.get_active(CASHIER).id == second.id


def test_open_rejects_negative_float_and_bad_cashier(db_session):
    with pytest.raises(ValidationError):
        cashier_session_service.open_session(CASHIER, "-1")
    with pytest.raises(ValidationError):
        cashier_session_service.open_session("", "10")

    assert db.session.query(CashierSession).count() == 0


# =============================================================================
# CLOSE
# =============================================================================

def test_close_computes_expected_cash_and_variance(make_order, cashier_session):
    order = make_order(grand_total="1000")
    payment_service.record_payment(order.id, cashier_session.id, "cash", "200", CASHIER)
    payment_service.record_payment(order.id, cashier_session.id, "cash", "150", CASHIER)
    payment_service.record_payment(order.id, cashier_session.id, "card", "500", CASHIER)

    cashier_session_service.close_session(cashier_session.id, "500", notes="end of day")

    closed = _reload(cashier_session.id)
    assert closed.status == "closed"
    assert closed.expected_cash == Decimal("450")
    assert closed.cash_variance == Decimal("50")
    assert closed.closing_cash == Decimal("500")
    assert closed.closed_at is not None
    assert closed.notes == "end of day"


def test_close_recomputes_cash_from_payments_not_running_total(make_order, cashier_session):
    order = make_order(grand_total="1000")
    payment_service.record_payment(order.id, cashier_session.id, "cash", "300", CASHIER)

    session = _reload(cashier_session.id)
    session.total_cash_sales = Decimal("9999")
    db.session.commit()

    cashier_session_service.close_session(cashier_session.id, "380")

    closed = _reload(cashier_session.id)
    assert closed.expected_cash == Decimal("400")
    assert closed.cash_variance == Decimal("-20")


def test_close_twice_fails(cashier_session):
    cashier_session_service.close_session(cashier_session.id, "100")

    with pytest.raises(InvariantViolation, match="Session is already closed"):
        cashier_session_service.close_session(cashier_session.id, "100")


def test_close_unknown_session(db_session):
    with pytest.raises(NotFoundError, match="Session not found"):
        cashier_session_service.close_session(31337, "0")


# =============================================================================
# ACCUMULATORS
# =============================================================================

def test_update_totals_routes_fonepay_to_qr_bucket(cashier_session):
    cashier_session_service.update_totals(cashier_session.id, "fonepay", "75.50")
    cashier_session_service.update_totals(cashier_session.id, "credit", "20")

    session = _reload(cashier_session.id)
    assert session.total_qr_sales == Decimal("75.50")
    assert session.total_credit_sales == Decimal("20")


def test_update_totals_unknown_session_or_method(cashier_session):
    with pytest.raises(NotFoundError):
        cashier_session_service.update_totals(424242, "cash", "1")
    with pytest.raises(ValidationError):
        cashier_session_service.update_totals(cashier_session.id, "voucher", "1")


def test_increment_order_count(cashier_session):
    cashier_session_service.increment_order_count(cashier_session.id)
    cashier_session_service.increment_order_count(cashier_session.id)

    assert _reload(cashier_session.id).total_orders == 2


def test_increment_order_count_unknown_session(db_session):
    with pytest.raises(NotFoundError):
        cashier_session_service.increment_order_count(5)


def test_each_write_bumps_version(cashier_session):
    before = _reload(cashier_session.id).version_id

    cashier_session_service.update_totals(cashier_session.id, "cash", "1")

    assert _reload(cashier_session.id).version_id == before + 1


# =============================================================================
# RECONCILIATION
# =============================================================================

def test_reconcile_reports_and_repairs_drift(make_order, cashier_session):
    order = make_order(grand_total="1000")
    payment_service.record_payment(order.id, cashier_session.id, "card", "250", CASHIER)
    cashier_session_service.update_totals(cashier_session.id, "card", "40")

    preview = cashier_session_service.reconcile_session_totals(cashier_session.id, apply=False)
    assert preview["total_card_sales"] == Decimal("40")
    assert _reload(cashier_session.id).total_card_sales == Decimal("290")

    drift = cashier_session_service.reconcile_session_totals(cashier_session.id)
    assert drift["total_card_sales"] == Decimal("40")
    assert _reload(cashier_session.id).total_card_sales == Decimal("250")

    assert not any(cashier_session_service.reconcile_session_totals(cashier_session.id).values())


def test_recompute_totals_groups_qr_and_fonepay(make_order, cashier_session):
    order = make_order(grand_total="1000")
    payment_service.record_split_payment(
        order.id, cashier_session.id, CASHIER,
        [{"method": "qr", "amount": "10"}, {"method": "fonepay", "amount": "15"}],
    )

    totals = cashier_session_service.recompute_session_totals(cashier_session.id)

    assert totals["total_qr_sales"] == Decimal("25")
    assert totals["total_cash_sales"] == Decimal("0")


# =============================================================================
# REPORTING
# =============================================================================

def test_summary_rolls_up_orders_and_payments(make_order, cashier_session):
    done = make_order(grand_total="500", session=cashier_session, status="completed")
    make_order(grand_total="200", session=cashier_session, status="cancelled")
    make_order(grand_total="300", session=cashier_session, status="preparing")

    payment_service.record_split_payment(
        done.id, cashier_session.id, CASHIER,
        [
            {"method": "cash", "amount": "100"},
            {"method": "card", "amount": "150"},
            {"method": "fonepay", "amount": "50"},
            {"method": "credit", "amount": "200"},
        ],
    )

    summary = cashier_session_service.get_summary(cashier_session.id)

    assert summary["orders"] == {"total": 3, "completed": 1, "cancelled": 1}
    assert summary["sales"]["cash"] == Decimal("100")
    assert summary["sales"]["qr"] == Decimal("50")
    assert summary["sales"]["credit"] == Decimal("200")
    assert summary["sales"]["total"] == Decimal("300")
    assert summary["sales"]["grand_total"] == Decimal("500")
    assert summary["expected_cash"] == Decimal("200")


def test_summary_unknown_session(db_session):
    with pytest.raises(NotFoundError):
        cashier_session_service.get_summary(99)


def test_today_session_ignores_older_days(db_session):
    today = business_day_start()
    _add_session(CASHIER, today - timedelta(days=1))
    current = _add_session(CASHIER, today, status="open")

    assert cashier_session_service.get_today_session(CASHIER).id == current.id
    assert cashier_session_service.get_today_session(OTHER_CASHIER) is None


def test_history_filters_and_sorts_newest_first(db_session):
    base = datetime(2026, 3, 10)
    oldest = _add_session(CASHIER, base)
    middle = _add_session(CASHIER, base + timedelta(days=1))
    newest = _add_session(CASHIER, base + timedelta(days=2))
    other = _add_session(OTHER_CASHIER, base + timedelta(days=1))

    everything = cashier_session_service.get_history()
    assert everything[0].id == newest.id
    assert {s.id for s in everything} == {oldest.id, middle.id, newest.id, other.id}

    mine = cashier_session_service.get_history(cashier_id=CASHIER)
    assert [s.id for s in mine] == [newest.id, middle.id, oldest.id]

    window = cashier_session_service.get_history(
        cashier_id=CASHIER,
        start_date=base + timedelta(days=1),
        end_date=base + timedelta(days=1),
    )
    assert [s.id for s in window] == [middle.id]
