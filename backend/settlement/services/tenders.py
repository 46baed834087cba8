# Overview: Tender types and the cashier-session bucket each one accumulates into.

from __future__ import annotations

from ..validation import ValidationError


TENDER_CASH = "cash"
TENDER_CARD = "card"
TENDER_QR = "qr"
TENDER_FONEPAY = "fonepay"
TENDER_CREDIT = "credit"

VALID_TENDER_TYPES = [
    TENDER_CASH,
    TENDER_CARD,
    TENDER_QR,
    TENDER_FONEPAY,
    TENDER_CREDIT,
]

# Tenders accepted when a customer settles an outstanding credit balance
CREDIT_PAYOFF_TENDER_TYPES = [
    TENDER_CASH,
    TENDER_CARD,
    TENDER_QR,
]

# qr and fonepay share one bucket
SESSION_BUCKETS = {
    TENDER_CASH: "total_cash_sales",
    TENDER_CARD: "total_card_sales",
    TENDER_QR: "total_qr_sales",
    TENDER_FONEPAY: "total_qr_sales",
    TENDER_CREDIT: "total_credit_sales",
}


def validate_tender(method: str, allowed: list[str] = VALID_TENDER_TYPES) -> str:
    if method not in allowed:
        raise ValidationError(f"Invalid payment method: {method}. Must be one of {allowed}")
    return method


def bucket_for(method: str) -> str:
    return SESSION_BUCKETS[validate_tender(method)]
