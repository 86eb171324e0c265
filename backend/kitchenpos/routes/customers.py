# Overview: Flask API routes for customers and tabs; parses input and returns JSON responses.

# backend/kitchenpos/routes/customers.py
"""
Customer Tab API Routes

DESIGN:
- Tab balance only changes through sales (charge) and settlements
- Settlements are append-only history records
- Charge preview runs the same credit decision used at checkout

SECURITY:
- Tab reads and settlements require SETTLE_TAB
- Charge preview requires CHARGE_TAB; preview with override also needs OVERRIDE_CREDIT_LIMIT
- Status changes require OVERRIDE_CREDIT_LIMIT (manager and above)
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..services import tab_service
from ..services.credit_service import validate_tab_charge
from ..services.tab_service import TabError, CustomerNotFound
from ..validation import ValidationError, parse_amount, parse_bool, require_json_object
from ..decorators import require_auth, require_permission
from ..money import to_number


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("SETTLE_TAB")
def get_customer_route(customer_id: int):
    try:
        customer = tab_service.get_customer(customer_id)
        data = customer.to_dict()
        data["credit"] = tab_service.get_credit_position(customer)
        return jsonify(data), 200
    except CustomerNotFound as e:
        return jsonify({"error": str(e)}), 404


@customers_bp.get("/<int:customer_id>/tab")
@require_auth
@require_permission("SETTLE_TAB")
def get_tab_route(customer_id: int):
    """
    Tab balance, credit position, and settlement history (newest first).
    """
    try:
        return jsonify(tab_service.get_tab_history(customer_id)), 200
    except CustomerNotFound as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to fetch tab history")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/tab/settle")
@require_auth
@require_permission("SETTLE_TAB")
def settle_tab_route(customer_id: int):
    """
    Record a payment against a customer's tab.

    Request body:
    {
        "amount": 250.00,
        "payment_method": "Cash" | "GCash",
        "reference": "GCASH12345"  (required for GCash)
    }

    Returns:
        201: {"settlement": {...}, "customer": {...}}
        400: Invalid amount, method or reference
        404: Customer not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        amount = parse_amount(data.get("amount"), "amount")

        settlement = tab_service.settle_tab(
            customer_id=customer_id,
            amount=amount,
            payment_method=data.get("payment_method"),
            payment_info=data.get("reference"),
            user_id=g.current_user.id,
        )
        current_app.logger.info(
            "Tab settlement %s: customer=%s amount=%s new_balance=%s",
            settlement.id, customer_id, amount, to_number(settlement.new_balance),
        )
        return jsonify({
            "settlement": settlement.to_dict(),
            "customer": settlement.customer.to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CustomerNotFound as e:
        return jsonify({"error": str(e)}), 404
    except TabError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to settle tab")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/tab/check")
@require_auth
@require_permission("CHARGE_TAB")
def check_tab_charge_route(customer_id: int):
    """
    Preview whether a charge would be accepted. Nothing is written.

    Request body: {"amount": 120.00, "override": false}
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        amount = parse_amount(data.get("amount"), "amount")
        override = parse_bool(data.get("override"), "override")

        if override and not g.current_user.has_permission("OVERRIDE_CREDIT_LIMIT"):
            return jsonify({
                "error": "Permission denied",
                "required_permission": "OVERRIDE_CREDIT_LIMIT",
            }), 403

        customer = tab_service.get_customer(customer_id)
        result = validate_tab_charge(
            amount=amount,
            current_balance=to_number(customer.tab_balance),
            credit_limit=to_number(customer.credit_limit),
            tab_status=customer.tab_status,
            allow_override=override,
        )
        return jsonify(result.to_dict()), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CustomerNotFound as e:
        return jsonify({"error": str(e)}), 404


@customers_bp.patch("/<int:customer_id>/tab-status")
@require_auth
@require_permission("OVERRIDE_CREDIT_LIMIT")
def set_tab_status_route(customer_id: int):
    """Request body: {"tab_status": "active" | "suspended" | "frozen"}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        customer = tab_service.set_tab_status(customer_id, data.get("tab_status"))
        current_app.logger.info(
            "Tab status for customer %s set to %s by user %s",
            customer.id, customer.tab_status, g.current_user.id,
        )
        return jsonify({"customer": customer.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CustomerNotFound as e:
        return jsonify({"error": str(e)}), 404
    except TabError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update tab status")
        return jsonify({"error": "Internal server error"}), 500
