"""
Pytest fixtures for settlement backend tests.

Provides an in-memory app, per-test table wipe, and small factories for
customers, orders and cashier sessions.
"""

import itertools
from decimal import Decimal

import pytest
from sqlalchemy import event

from settlement import create_app
from settlement.extensions import db
from settlement.models import Customer, Order
from settlement.services import cashier_session_service


CASHIER = "user_cashier_01"
OTHER_CASHIER = "user_cashier_02"

_order_numbers = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SETTLEMENT_ATOMIC_WRITES': True,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    """App on a file database with foreign keys enforced, so two connections see the same rows."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'settlement.sqlite3'}",
    })
    with app.app_context():
        event.listen(db.engine, "connect", _enable_foreign_keys)
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def _enable_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Clear all data but keep schema."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture
def step_commits(app):
    """Run the test with SETTLEMENT_ATOMIC_WRITES switched off."""
    app.config['SETTLEMENT_ATOMIC_WRITES'] = False
    yield
    app.config['SETTLEMENT_ATOMIC_WRITES'] = True


@pytest.fixture
def make_customer(db_session):
    def _make(current_credit="0", credit_limit="5000", name="Walk-in Regular", is_active=True):
        customer = Customer(
            name=name,
            phone="9800000000",
            credit_limit=Decimal(credit_limit),
            current_credit=Decimal(current_credit),
            is_active=is_active,
        )
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture
def make_order(db_session):
    def _make(grand_total="1000", customer=None, session=None, status="served"):
        order = Order(
            order_number=f"ORD-{next(_order_numbers):05d}",
            customer_id=customer.id if customer else None,
            cashier_id=CASHIER,
            session_id=session.id if session else None,
            grand_total=Decimal(grand_total),
            status=status,
            payment_status="unpaid",
        )
        db_session.add(order)
        db_session.commit()
        return order
    return _make


@pytest.fixture
def cashier_session(db_session):
    """Open session for CASHIER with 100.00 float."""
    return cashier_session_service.open_session(CASHIER, "100")


def identity_headers(subject: str = CASHIER) -> dict:
    """Helper to create identity headers."""
    return {'X-Identity-Subject': subject}
