# Overview: Flask API routes for categories and products; stock health, availability and costing.

# backend/kitchenpos/routes/catalog.py
"""
Catalog API Routes

DESIGN:
- Category list carries a stock-health roll-up (available/low/critical/out)
- Product list and detail carry derived availability
- Costing (cost, margin) is recomputed on every read

SECURITY:
- VIEW_INVENTORY permission required for all endpoints
"""

from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Category, Product, RecipeItem
from ..services import availability_service, costing_service
from ..decorators import require_auth, require_permission


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


def _product_query():
    return db.session.query(Product).options(
        selectinload(Product.recipe_items).selectinload(RecipeItem.ingredient),
        selectinload(Product.linked_ingredient),
        selectinload(Product.category),
    )


def _product_payload(product: Product, include_costing: bool = False) -> dict:
    data = product.to_dict()
    data["availability"] = availability_service.calculate_availability(
        availability_service.product_descriptor(product)
    ).to_dict()
    if include_costing:
        data["costing"] = costing_service.calculate_product_costing(product)
    return data


# =============================================================================
# CATEGORIES
# =============================================================================

@catalog_bp.get("/categories")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_categories_route():
    """
    List categories with product count and stock health.

    Returns:
        200: [{id, name, display_order, product_count, stock_health: {available, low, critical, out}}]
    """
    try:
        categories = db.session.query(Category).options(
            selectinload(Category.products).selectinload(Product.recipe_items).selectinload(RecipeItem.ingredient),
            selectinload(Category.products).selectinload(Product.linked_ingredient),
        ).order_by(Category.display_order, Category.name).all()

        result = []
        for category in categories:
            descriptors = [availability_service.product_descriptor(p) for p in category.products]
            data = category.to_dict()
            data["product_count"] = len(descriptors)
            data["stock_health"] = availability_service.summarize_stock_health(descriptors)
            result.append(data)

        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to fetch categories")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PRODUCTS
# =============================================================================

@catalog_bp.get("/products")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products_route():
    """
    List products with derived availability.

    Query params:
    - include_costing: include cost/margin (default: false)
    - category_id: filter by category
    """
    try:
        include_costing = request.args.get("include_costing", "false").lower() == "true"
        category_id = request.args.get("category_id", type=int)

        query = _product_query()
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        products = query.order_by(Product.name).all()

        return jsonify([_product_payload(p, include_costing) for p in products]), 200
    except Exception:
        current_app.logger.exception("Failed to fetch products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    product = _product_query().filter(Product.id == product_id).first()
    if not product:
        return jsonify({"error": "Product not found"}), 404

    data = _product_payload(product, include_costing=True)
    data["recipe_items"] = [item.to_dict() for item in product.recipe_items]
    return jsonify(data), 200


@catalog_bp.get("/products/attention")
@require_auth
@require_permission("VIEW_INVENTORY")
def products_needing_attention_route():
    """Active products that are out of stock or critically low."""
    try:
        products = _product_query().filter(Product.is_active.is_(True)).order_by(Product.name).all()
        by_id = {p.id: p for p in products}
        flagged = availability_service.products_needing_attention(
            availability_service.product_descriptor(p) for p in products
        )

        items = []
        for descriptor, availability in flagged:
            data = by_id[descriptor.id].to_dict()
            data["availability"] = availability.to_dict()
            items.append(data)

        return jsonify({"count": len(items), "items": items}), 200
    except Exception:
        current_app.logger.exception("Failed to fetch products needing attention")
        return jsonify({"error": "Internal server error"}), 500
