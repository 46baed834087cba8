from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class Payment(db.Model):
    """
    One tender applied to an order.

    TENDERS: cash, card, qr, fonepay, credit

    IMMUTABLE: there is no update or delete. A mistake is corrected by
    recording a further payment. Split payments are simply several rows
    for the same order.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    # No foreign key: a payment may name a session that does not resolve;
    # the session buckets are skipped in that case.
    session_id = db.Column(db.Integer, nullable=False, index=True)

    method = db.Column(db.String(16), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    # Card slip / QR transaction id
    reference = db.Column(db.String(128), nullable=True)

    # Identity-provider subject of the operator
    received_by = db.Column(db.String(128), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    order = db.relationship("Order", backref=db.backref("payments", lazy=True))
    session = db.relationship(
        "CashierSession",
        primaryjoin="foreign(Payment.session_id) == CashierSession.id",
        viewonly=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "session_id": self.session_id,
            "method": self.method,
            "amount": money_str(self.amount),
            "reference": self.reference,
            "received_by": self.received_by,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
