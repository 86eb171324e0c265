# Overview: Flask API routes for transactions; parses input and returns JSON responses.

# backend/kitchenpos/routes/transactions.py
"""
Transaction API Routes

DESIGN:
- A sale is created complete: items, payment, stock deduction in one request
- Voids write an overlay (who, when, why); the recorded figures stay intact
- Tab payments raise the customer's balance; credit override is permission-gated

SECURITY:
- CREATE_TRANSACTION to ring up a sale; Tab payments also need CHARGE_TAB
- Exceeding a credit limit needs OVERRIDE_CREDIT_LIMIT
- VOID_TRANSACTION to void
"""

from flask import Blueprint, jsonify, request, current_app, g

from ..services import transaction_service
from ..services.payment_service import PaymentType
from ..services.transaction_service import TransactionError, TransactionNotFound, VoidError
from ..validation import (
    ValidationError,
    parse_amount,
    parse_bool,
    parse_datetime_arg,
    parse_optional_int,
    require_json_object,
)
from ..decorators import require_auth, require_permission


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _forbidden(permission_code: str):
    return jsonify({
        "error": "Permission denied",
        "required_permission": permission_code,
    }), 403


# =============================================================================
# SALE CREATION
# =============================================================================

@transactions_bp.post("/")
@require_auth
@require_permission("CREATE_TRANSACTION")
def create_transaction_route():
    """
    Ring up a sale.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_type": "Cash" | "GCash" | "Tab" | "Split",
        "customer_id": 7,                 (required for Tab)
        "discount": 0,
        "amount_tendered": 500.00,        (Cash)
        "reference": "GCASH12345",        (GCash)
        "components": [{"method": "Cash", "amount": 100}, ...],  (Split)
        "override_credit_limit": false    (Tab)
    }

    Returns:
        201: {"transaction": {...}}
        400: Invalid items, out of stock, or payment rejected
        403: Missing CHARGE_TAB / OVERRIDE_CREDIT_LIMIT
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        payment_type = data.get("payment_type")
        override = parse_bool(data.get("override_credit_limit"), "override_credit_limit")

        user = g.current_user
        if payment_type == PaymentType.TAB.value and not user.has_permission("CHARGE_TAB"):
            return _forbidden("CHARGE_TAB")
        if override and not user.has_permission("OVERRIDE_CREDIT_LIMIT"):
            return _forbidden("OVERRIDE_CREDIT_LIMIT")

        transaction = transaction_service.create_transaction(
            user_id=user.id,
            items=data.get("items"),
            payment_type=payment_type,
            customer_id=parse_optional_int(data.get("customer_id"), "customer_id"),
            discount=parse_amount(data.get("discount"), "discount", required=False) or 0,
            amount_tendered=parse_amount(data.get("amount_tendered"), "amount_tendered", required=False),
            reference=data.get("reference"),
            components=data.get("components"),
            allow_override=override,
        )

        if transaction.credit_override:
            current_app.logger.warning(
                "Credit limit override: transaction=%s customer=%s user=%s",
                transaction.order_number, transaction.customer_id, user.id,
            )
        return jsonify({"transaction": transaction.to_dict()}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TransactionError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# QUERIES
# =============================================================================

@transactions_bp.get("/")
@require_auth
@require_permission("CREATE_TRANSACTION")
def list_transactions_route():
    """
    Query params:
    - from / to: ISO-8601 datetimes (to is exclusive)
    - include_voided: default true
    - limit: default 100, max 500
    """
    try:
        start = parse_datetime_arg(request.args.get("from"), "from")
        end = parse_datetime_arg(request.args.get("to"), "to")
        include_voided = parse_bool(request.args.get("include_voided"), "include_voided", default=True)
        limit = min(request.args.get("limit", 100, type=int), 500)

        transactions = transaction_service.list_transactions(start, end, include_voided, limit)
        return jsonify([t.to_dict() for t in transactions]), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("CREATE_TRANSACTION")
def get_transaction_route(transaction_id: int):
    try:
        transaction = transaction_service.get_transaction(transaction_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except TransactionNotFound as e:
        return jsonify({"error": str(e)}), 404


# =============================================================================
# VOIDS
# =============================================================================

@transactions_bp.post("/<int:transaction_id>/void")
@require_auth
@require_permission("VOID_TRANSACTION")
def void_transaction_route(transaction_id: int):
    """
    Void a transaction.

    Request body:
    {
        "reason": "Wrong Items" | "Test Transaction" | "Customer Dispute" | "Duplicate Entry" | "Other",
        "custom_reason": "..."   (required when reason is "Other")
    }

    Returns:
        200: {"transaction": {...}}
        400: Already voided, older than 7 days, or invalid reason
        404: Transaction not found
    """
    try:
        data = require_json_object(request.get_json(silent=True))

        # Not found, already voided and the window outrank a missing reason
        transaction = transaction_service.void_transaction(
            transaction_id,
            user=g.current_user,
            reason=data.get("reason"),
            custom_reason=data.get("custom_reason"),
        )
        current_app.logger.info(
            "Transaction %s voided by user %s: %s",
            transaction.order_number, g.current_user.id, transaction.void_reason,
        )
        return jsonify({"transaction": transaction.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except TransactionNotFound as e:
        return jsonify({"error": str(e)}), 404
    except VoidError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to void transaction")
        return jsonify({"error": "Internal server error"}), 500
