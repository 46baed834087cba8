# Overview: Flask API routes for payment operations; parses input and returns JSON responses.

# backend/settlement/routes/payments.py
"""
Payment API Routes

DESIGN:
- Record a single payment or a split payment against an order
- Pay off customer credit (balance adjustment only)
- List payments per order / per session, totals per tender

All routes require an identity subject; it becomes received_by.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..extensions import db
from ..models import Order
from ..services import payment_service
from ..validation import SettlementError, money_str


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _summary_to_json(summary: dict) -> dict:
    return {key: money_str(value) for key, value in summary.items()}


# =============================================================================
# PAYMENT CREATION
# =============================================================================

@payments_bp.post("")
@require_identity
def record_payment_route():
    """
    Record one payment against an order.

    Request body:
    {
        "order_id": 12,
        "session_id": 3,
        "method": "cash",         // cash, card, qr, fonepay, credit
        "amount": "400.00",
        "reference": "SLIP-991",  (optional)
        "notes": "..."            (optional)
    }

    Returns:
        201: {"payment_id", "payment", "order"}
        400: invalid input
        404: order not found
    """
    try:
        data = request.get_json(silent=True) or {}

        order_id = data.get("order_id")
        session_id = data.get("session_id")
        method = data.get("method")
        amount = data.get("amount")

        if not all([order_id, session_id, method]) or amount is None:
            return jsonify({"error": "order_id, session_id, method and amount required"}), 400

        payment = payment_service.record_payment(
            order_id=order_id,
            session_id=session_id,
            method=method,
            amount=amount,
            received_by=g.identity,
            reference=data.get("reference"),
            notes=data.get("notes"),
        )

        return jsonify({
            "payment_id": payment.id,
            "payment": payment.to_dict(),
            "order": payment.order.to_dict(),
        }), 201

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/split")
@require_identity
def record_split_payment_route():
    """
    Record several tenders for one order.

    Request body:
    {
        "order_id": 12,
        "session_id": 3,
        "payments": [
            {"method": "cash", "amount": "300.00"},
            {"method": "card", "amount": "700.00", "reference": "AUTH-1"}
        ]
    }

    Entries with a zero or negative amount are skipped; the response lists
    only the payments actually created.
    """
    try:
        data = request.get_json(silent=True) or {}

        order_id = data.get("order_id")
        session_id = data.get("session_id")
        entries = data.get("payments")

        if not all([order_id, session_id]) or not isinstance(entries, list):
            return jsonify({"error": "order_id, session_id and payments[] required"}), 400

        if not all(isinstance(entry, dict) for entry in entries):
            return jsonify({"error": "each payment must be an object"}), 400

        created = payment_service.record_split_payment(
            order_id=order_id,
            session_id=session_id,
            received_by=g.identity,
            payments=entries,
        )

        order = db.session.get(Order, order_id)
        return jsonify({
            "payment_ids": [p.id for p in created],
            "payments": [p.to_dict() for p in created],
            "order": order.to_dict() if order else None,
        }), 201

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record split payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.post("/credit-payoff")
@require_identity
def pay_off_credit_route():
    """
    Reduce a customer's outstanding credit. No payment record is created.

    Request body:
    {
        "customer_id": 7,
        "amount": "250.00",
        "method": "cash",        // cash, card, qr
        "reference": "...",      (optional)
        "notes": "..."           (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}

        customer_id = data.get("customer_id")
        amount = data.get("amount")
        method = data.get("method")

        if not all([customer_id, method]) or amount is None:
            return jsonify({"error": "customer_id, method and amount required"}), 400

        result = payment_service.pay_off_credit(
            customer_id=customer_id,
            amount=amount,
            method=method,
            received_by=g.identity,
            reference=data.get("reference"),
            notes=data.get("notes"),
        )

        return jsonify({"success": True, "new_balance": money_str(result["new_balance"])}), 200

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to pay off credit")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("/orders/<int:order_id>")
@require_identity
def get_order_payments_route(order_id: int):
    try:
        payments = payment_service.get_payments_by_order(order_id)
        return jsonify({
            "order_id": order_id,
            "payments": [p.to_dict() for p in payments],
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list order payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/sessions/<int:session_id>")
@require_identity
def get_session_payments_route(session_id: int):
    try:
        payments = payment_service.get_payments_by_session(session_id)
        return jsonify({
            "session_id": session_id,
            "payments": [p.to_dict() for p in payments],
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list session payments")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.get("/sessions/<int:session_id>/summary")
@require_identity
def get_session_summary_by_method_route(session_id: int):
    """Totals per tender (qr and fonepay separate) plus overall total."""
    try:
        summary = payment_service.get_summary_by_method(session_id)
        return jsonify(_summary_to_json(summary)), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to summarize session payments")
        return jsonify({"error": "Internal server error"}), 500
