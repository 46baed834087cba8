# Overview: Flask API routes for cashier sessions; parses input and returns JSON responses.

# backend/settlement/routes/cashier_sessions.py
"""
Cashier Session API Routes

DESIGN:
- Open / close the caller's drawer session
- Look up active, today's and historical sessions
- Session summary with expected cash
- Direct accumulator bumps and reconciliation for back-office use

The cashier is always the caller's identity unless a cashier_id query
parameter is given (history and lookups by managers).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_identity
from ..identity import IdentityRef
from ..services import cashier_session_service
from ..time_utils import parse_iso_datetime
from ..validation import SettlementError, ValidationError, money_str


cashier_sessions_bp = Blueprint("cashier_sessions", __name__, url_prefix="/api/cashier-sessions")


def _cashier_from_request() -> IdentityRef:
    cashier_id = request.args.get("cashier_id")
    return IdentityRef.parse(cashier_id) if cashier_id else g.identity


def _session_or_none(session):
    return session.to_dict() if session else None


# =============================================================================
# QUERIES
# =============================================================================

@cashier_sessions_bp.get("/active")
@require_identity
def get_active_route():
    try:
        session = cashier_session_service.get_active(_cashier_from_request())
        return jsonify({"session": _session_or_none(session)}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load active session")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.get("/today")
@require_identity
def get_today_route():
    try:
        session = cashier_session_service.get_today_session(_cashier_from_request())
        return jsonify({"session": _session_or_none(session)}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load today's session")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.get("/history")
@require_identity
def get_history_route():
    """
    Session history, newest first.

    Query params:
    - cashier_id: restrict to one cashier (default: all cashiers)
    - start_date / end_date: ISO dates, inclusive, compared to session_date
    """
    try:
        try:
            start_date = parse_iso_datetime(request.args.get("start_date"))
            end_date = parse_iso_datetime(request.args.get("end_date"))
        except ValueError:
            raise ValidationError("start_date and end_date must be ISO-8601 dates")

        sessions = cashier_session_service.get_history(
            cashier_id=request.args.get("cashier_id") or None,
            start_date=start_date,
            end_date=end_date,
        )
        return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load session history")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.get("/<int:session_id>")
@require_identity
def get_session_route(session_id: int):
    try:
        session = cashier_session_service.get_by_id(session_id)
        if not session:
            return jsonify({"error": "Session not found"}), 404
        return jsonify({"session": session.to_dict()}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load cashier session")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.get("/<int:session_id>/summary")
@require_identity
def get_summary_route(session_id: int):
    try:
        summary = cashier_session_service.get_summary(session_id)
        return jsonify({
            "session": summary["session"].to_dict(),
            "orders": summary["orders"],
            "sales": {key: money_str(value) for key, value in summary["sales"].items()},
            "expected_cash": money_str(summary["expected_cash"]),
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load session summary")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LIFECYCLE
# =============================================================================

@cashier_sessions_bp.post("/open")
@require_identity
def open_session_route():
    """
    Open a session for the calling cashier.

    Request body:
    {
        "opening_cash": "100.00"
    }

    Returns 400 if the cashier already has an open session.
    """
    try:
        data = request.get_json(silent=True) or {}
        session = cashier_session_service.open_session(
            cashier_id=g.identity,
            opening_cash=data.get("opening_cash", 0),
        )
        return jsonify({"session": session.to_dict()}), 201

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to open cashier session")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.post("/<int:session_id>/close")
@require_identity
def close_session_route(session_id: int):
    """
    Close a session and compute cash variance.

    Request body:
    {
        "closing_cash": "500.00",  // cash counted in the drawer
        "notes": "..."             (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        closing_cash = data.get("closing_cash")

        if closing_cash is None:
            return jsonify({"error": "closing_cash required"}), 400

        session = cashier_session_service.close_session(
            session_id=session_id,
            closing_cash=closing_cash,
            notes=data.get("notes"),
        )
        return jsonify({"session": session.to_dict()}), 200

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to close cashier session")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ACCUMULATORS
# =============================================================================

@cashier_sessions_bp.post("/<int:session_id>/totals")
@require_identity
def update_totals_route(session_id: int):
    """
    Request body:
    {
        "method": "card",
        "amount": "120.00"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        method = data.get("method")
        amount = data.get("amount")

        if not method or amount is None:
            return jsonify({"error": "method and amount required"}), 400

        session = cashier_session_service.update_totals(session_id, method, amount)
        return jsonify({"session": session.to_dict()}), 200

    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update session totals")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.post("/<int:session_id>/orders/increment")
@require_identity
def increment_order_count_route(session_id: int):
    try:
        session = cashier_session_service.increment_order_count(session_id)
        return jsonify({"session": session.to_dict()}), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to increment order count")
        return jsonify({"error": "Internal server error"}), 500


@cashier_sessions_bp.post("/<int:session_id>/reconcile")
@require_identity
def reconcile_route(session_id: int):
    """
    Compare running totals with payment-derived totals.

    Query params:
    - apply: write recomputed totals back (default: true)
    """
    try:
        apply = request.args.get("apply", "true").lower() == "true"
        drift = cashier_session_service.reconcile_session_totals(session_id, apply=apply)
        return jsonify({
            "applied": apply,
            "drift": {field: money_str(value) for field, value in drift.items()},
        }), 200
    except SettlementError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconcile session totals")
        return jsonify({"error": "Internal server error"}), 500
