# Overview: Flask API routes for customer credit accounts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..services import customer_credit_service
from ..time_utils import to_utc_z
from ..validation import SettlementError, ValidationError, money_str


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/credit")
@require_identity
def get_customers_with_credit_route():
    try:
        rows = customer_credit_service.get_customers_with_credit()
        return jsonify({
            "customers": [
                {
                    **row["customer"].to_dict(),
                    "credit_orders": [o.to_dict() for o in row["credit_orders"]],
                }
                for row in rows
            ]
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list customers with credit")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>/credit-orders")
@require_identity
def get_credit_orders_route(customer_id: int):
    try:
        orders = customer_credit_service.get_credit_orders(customer_id)
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list credit orders")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/credit-transactions")
@require_identity
def get_credit_transactions_route():
    """
    Query params:
    - customer_id: restrict to one customer (optional)
    """
    try:
        customer_id = request.args.get("customer_id", type=int)
        transactions = customer_credit_service.get_credit_transactions(customer_id)
        return jsonify({
            "transactions": [
                {**txn, "date": to_utc_z(txn["date"]), "amount": money_str(txn["amount"])}
                for txn in transactions
            ]
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list credit transactions")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/credit-payments")
@require_identity
def record_credit_payment_route(customer_id: int):
    """
    Take a credit repayment, optionally tied to an order.

    Request body:
    {
        "amount": "250.00",
        "order_id": 12,     (optional)
        "notes": "..."      (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        amount = data.get("amount")
        if amount is None:
            raise ValidationError("amount required")

        result = customer_credit_service.record_credit_payment(
            customer_id=customer_id,
            amount=amount,
            received_by=g.identity,
            order_id=data.get("order_id"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "new_balance": money_str(result["new_balance"])}), 200

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record credit payment")
        return jsonify({"error": "Internal server error"}), 500
