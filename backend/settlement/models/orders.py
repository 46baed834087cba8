from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


ORDER_STATUSES = ("pending", "confirmed", "preparing", "ready", "served", "completed", "cancelled")

PAYMENT_STATUSES = ("unpaid", "partial", "paid", "credit")


class Order(db.Model):
    """
    Restaurant order (dine-in, takeaway or delivery).

    Orders are owned by the ordering side of the system. Settlement only
    reads grand_total / customer_id and writes payment_status.

    payment_status is always derived from the order's payments; it is never
    set by hand outside the settlement services. version_id is the optimistic
    lock on payment_status writes.
    """
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)
    order_type = db.Column(db.String(16), nullable=False, default="dine_in")  # dine_in, takeaway, delivery

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.String(128), nullable=False)
    session_id = db.Column(db.Integer, db.ForeignKey("cashier_sessions.id"), nullable=True, index=True)

    grand_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    session = db.relationship("CashierSession", backref=db.backref("orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_type": self.order_type,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "session_id": self.session_id,
            "grand_total": money_str(self.grand_total),
            "status": self.status,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
