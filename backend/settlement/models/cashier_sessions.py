from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class CashierSession(db.Model):
    """
    One cashier's shift, from drawer open to drawer close.

    WHY: Cashier accountability. Sales are accumulated per tender bucket
    while the shift runs, and the close computes expected cash and variance.

    BUCKETS: cash, card, qr (shared by "qr" and "fonepay" tenders), credit.

    LIFECYCLE:
    - open: shift is active, payments can be recorded against it
    - closed: cash counted, variance frozen; never reopened

    At most one open session per cashier_id. Enforced by the open operation,
    not by a table constraint.
    """
    __tablename__ = "cashier_sessions"
    __table_args__ = (
        db.Index("ix_cashier_sessions_cashier_status", "cashier_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.String(128), nullable=False, index=True)

    # Midnight at the start of the business day
    session_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    opening_cash = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Running accumulators
    total_cash_sales = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_card_sales = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_qr_sales = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_credit_sales = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, closed

    # Set when closing
    closing_cash = db.Column(db.Numeric(12, 2), nullable=True)
    expected_cash = db.Column(db.Numeric(12, 2), nullable=True)  # opening + cash payments
    cash_variance = db.Column(db.Numeric(12, 2), nullable=True)  # closing - expected

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "session_date": to_utc_z(self.session_date),
            "opening_cash": money_str(self.opening_cash),
            "total_cash_sales": money_str(self.total_cash_sales),
            "total_card_sales": money_str(self.total_card_sales),
            "total_qr_sales": money_str(self.total_qr_sales),
            "total_credit_sales": money_str(self.total_credit_sales),
            "total_orders": self.total_orders,
            "status": self.status,
            "closing_cash": money_str(self.closing_cash),
            "expected_cash": money_str(self.expected_cash),
            "cash_variance": money_str(self.cash_variance),
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
            "version_id": self.version_id,
        }
