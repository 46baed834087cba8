from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_str


class Customer(db.Model):
    """
    Restaurant customer with an account-credit balance.

    WHY: Regulars may settle orders on account ("credit" tender). The
    outstanding amount is kept as a running balance on the customer.

    DENORMALIZED: current_credit only grows when a credit-tender payment is
    recorded against one of this customer's orders, and only shrinks through
    an explicit credit payoff. It is never driven below zero.

    credit_limit is informational; payments do not enforce it.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_active_credit", "is_active", "current_credit"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(128), nullable=False, index=True)
    phone = db.Column(db.String(32), nullable=False, index=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    credit_limit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    current_credit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "credit_limit": money_str(self.credit_limit),
            "current_credit": money_str(self.current_credit),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
