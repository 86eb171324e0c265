# Overview: Recomputes product cost and margin from current ingredient prices on read.

"""
Product Costing

WHY: Cost and margin are derived figures. They are recomputed from the
recipe (or linked ingredient) every time they are read, so they can never
drift from ingredient prices.

- Recipe: cost = sum(required_qty x cost_per_package / package_size)
- Linked ingredient: cost = cost_per_package (one package per unit)
- Neither: cost unknown (None)
"""

from __future__ import annotations

from decimal import Decimal

from ..models import Ingredient, Product
from ..money import round2


def cost_per_base_unit(ingredient: Ingredient) -> Decimal:
    package_size = Decimal(str(ingredient.package_size))
    if package_size <= 0:
        raise ValueError("Package size must be greater than 0")
    return Decimal(str(ingredient.cost_per_package)) / package_size


def calculate_product_cost(product: Product) -> float | None:
    if product.recipe_items:
        total = Decimal("0")
        for item in product.recipe_items:
            if item.ingredient is None or Decimal(str(item.ingredient.package_size)) <= 0:
                continue
            total += Decimal(str(item.quantity)) * cost_per_base_unit(item.ingredient)
        return round2(total)

    if product.linked_ingredient is not None:
        return round2(product.linked_ingredient.cost_per_package)

    return None


def calculate_product_costing(product: Product) -> dict:
    price = round2(product.price)
    cost = calculate_product_cost(product)
    if cost is None:
        return {"price": price, "cost": None, "margin": None, "margin_percent": None}

    margin = round2(price - cost)
    margin_percent = round(margin / price * 100, 1) if price > 0 else None
    return {
        "price": price,
        "cost": cost,
        "margin": margin,
        "margin_percent": margin_percent,
    }
