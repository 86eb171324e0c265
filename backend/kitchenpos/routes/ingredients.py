# Overview: Flask API routes for ingredient stock; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, current_app, g

from ..extensions import db
from ..models import Ingredient
from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..validation import ValidationError, parse_amount, require_json_object
from ..decorators import require_auth, require_permission
from ..money import to_number


ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")


@ingredients_bp.get("/")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_ingredients_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"

    query = db.session.query(Ingredient)
    if not include_inactive:
        query = query.filter(Ingredient.is_active.is_(True))
    ingredients = query.order_by(Ingredient.name).all()

    result = []
    for ingredient in ingredients:
        data = ingredient.to_dict()
        packages = inventory_service.packages_on_hand(ingredient)
        data["packages_on_hand"] = round(packages, 2)
        data["stock_status"] = inventory_service.calculate_stock_status(packages, ingredient.par_level).value
        result.append(data)
    return jsonify(result), 200


@ingredients_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    """
    Active ingredients below PAR, most urgent first.

    Returns:
        200: {count, items: [{..., priority: critical|high|medium, stock_ratio}]}
    """
    try:
        items = inventory_service.get_low_stock_ingredients()
        return jsonify({"count": len(items), "items": items}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch low-stock ingredients")
        return jsonify({"error": "Internal server error"}), 500


@ingredients_bp.post("/<int:ingredient_id>/restock")
@require_auth
@require_permission("MANAGE_INVENTORY")
def restock_route(ingredient_id: int):
    """
    Add purchased packages to stock.

    Request body:
    {
        "packages": 2,
        "cost_per_package": 420.00  (optional)
    }
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        packages = parse_amount(data.get("packages"), "packages")
        cost = parse_amount(data.get("cost_per_package"), "cost_per_package", required=False)

        ingredient = inventory_service.restock_ingredient(ingredient_id, packages, cost, user=g.current_user)
        current_app.logger.info(
            "Restocked ingredient %s by %s packages (now %s)",
            ingredient.id, packages, to_number(ingredient.quantity),
        )
        return jsonify({"ingredient": ingredient.to_dict()}), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        status = 404 if str(e) == "Ingredient not found" else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        current_app.logger.exception("Failed to restock ingredient")
        return jsonify({"error": "Internal server error"}), 500


@ingredients_bp.get("/<int:ingredient_id>/history")
@require_auth
@require_permission("VIEW_INVENTORY")
def ingredient_history_route(ingredient_id: int):
    """
    Query params:
    - page: default 1
    - limit: default 20, max 100
    """
    try:
        page = request.args.get("page", 1, type=int)
        limit = request.args.get("limit", 20, type=int)
        return jsonify(inventory_service.get_ingredient_history(ingredient_id, page, limit)), 200
    except InventoryError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to fetch ingredient history")
        return jsonify({"error": "Internal server error"}), 500


@ingredients_bp.post("/count")
@require_auth
@require_permission("MANAGE_INVENTORY")
def submit_count_route():
    """
    Submit a physical stock count.

    Request body:
    {
        "counts": [
            {"ingredient_id": 1, "expected": 1000, "actual": 940,
             "reason": "waste", "reason_note": "..."}
        ]
    }

    Returns:
        200: {change_id, total_counted, discrepancies, applied}
        400: Malformed count sheet
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        result = inventory_service.submit_inventory_count(data.get("counts"), user=g.current_user)
        current_app.logger.info(
            "Inventory count %s by user %s: %s counted, %s discrepancies",
            result["change_id"], g.current_user.id, result["total_counted"], result["discrepancies"],
        )
        return jsonify(result), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to submit inventory count")
        return jsonify({"error": "Internal server error"}), 500
