# Overview: Derives a product's sellable status from ingredient stock; pure, no database work.

"""
Product Availability

WHY: Products carry no stock of their own. What can be sold is derived from
ingredient stock, either through a recipe (bill of materials) or a 1:1 link
to a sellable ingredient.

MODES (first match wins):
1. Recipe: servings = min(floor(on_hand_i / required_i)) over recipe items.
   The scarcest ingredient binds.
2. Linked ingredient: servings = floor(on_hand / package_size), one package
   per unit sold.
3. Neither: unlimited (service items), always available.

CLASSIFICATION (ratio = servings / reference threshold):
- OUT:       servings <= 0
- CRITICAL:  ratio <= 0.25
- LOW:       0.25 < ratio < 1
- AVAILABLE: ratio >= 1, or no threshold defined
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable

from ..money import to_number


class AvailabilityStatus(str, Enum):
    AVAILABLE = "available"
    LOW = "low"
    CRITICAL = "critical"
    OUT = "out"


CRITICAL_RATIO = 0.25

NO_VALID_INGREDIENTS = "No valid ingredients in recipe"


# =============================================================================
# INPUT / OUTPUT SHAPES
# =============================================================================

@dataclass(frozen=True)
class AvailabilityIngredient:
    id: int
    name: str
    quantity: float          # base units on hand
    package_size: float      # base units per package
    par_level: float = 0     # reorder threshold, in packages


@dataclass(frozen=True)
class AvailabilityRecipeItem:
    quantity: float          # base units required per serving
    ingredient: AvailabilityIngredient | None


@dataclass(frozen=True)
class AvailabilityProduct:
    id: int
    name: str
    recipe_items: tuple[AvailabilityRecipeItem, ...] = ()
    linked_ingredient: AvailabilityIngredient | None = None


@dataclass(frozen=True)
class LimitingIngredient:
    id: int
    name: str


@dataclass(frozen=True)
class Availability:
    status: AvailabilityStatus
    quantity_available: int | None       # None = unlimited
    limiting_ingredient: LimitingIngredient | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "quantity_available": self.quantity_available,
            "limiting_ingredient": (
                {"id": self.limiting_ingredient.id, "name": self.limiting_ingredient.name}
                if self.limiting_ingredient
                else None
            ),
            "warnings": list(self.warnings),
        }


UNLIMITED = Availability(status=AvailabilityStatus.AVAILABLE, quantity_available=None)


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify_servings(servings: int, reference: float | None) -> AvailabilityStatus:
    """Map available servings against a reference threshold to a status."""
    if servings <= 0:
        return AvailabilityStatus.OUT
    if reference is None or reference <= 0:
        return AvailabilityStatus.AVAILABLE

    ratio = servings / reference
    if ratio <= CRITICAL_RATIO:
        return AvailabilityStatus.CRITICAL
    if ratio < 1:
        return AvailabilityStatus.LOW
    return AvailabilityStatus.AVAILABLE


def _floor_div(numerator: float, denominator: float) -> int:
    # Decimal keeps 0.3 / 0.1 at 3 instead of 2.9999999999999996
    return math.floor(Decimal(str(numerator)) / Decimal(str(denominator)))


# =============================================================================
# CALCULATORS
# =============================================================================

def calculate_linked_availability(ingredient: AvailabilityIngredient) -> Availability:
    limiting = LimitingIngredient(id=ingredient.id, name=ingredient.name)

    if ingredient.package_size <= 0:
        return Availability(
            status=AvailabilityStatus.OUT,
            quantity_available=0,
            limiting_ingredient=limiting,
            warnings=(f"{ingredient.name}: Invalid package size",),
        )

    servings = max(_floor_div(ingredient.quantity, ingredient.package_size), 0)
    return Availability(
        status=classify_servings(servings, ingredient.par_level),
        quantity_available=servings,
        limiting_ingredient=limiting,
    )


def calculate_recipe_availability(recipe_items: Iterable[AvailabilityRecipeItem]) -> Availability:
    items = list(recipe_items)
    if not items:
        return UNLIMITED

    warnings: list[str] = []
    min_possible: float = math.inf
    limiting_item: AvailabilityRecipeItem | None = None

    for item in items:
        ingredient = item.ingredient
        if ingredient is None:
            warnings.append("Recipe item missing ingredient data")
            continue
        if ingredient.package_size <= 0:
            warnings.append(f"{ingredient.name}: Invalid package size")
            continue

        if item.quantity <= 0:
            # Requires none of this ingredient, so it cannot limit yield
            possible: float = math.inf
        else:
            possible = _floor_div(ingredient.quantity, item.quantity)

        if possible < min_possible:
            min_possible = possible
            limiting_item = item

    if limiting_item is None:
        return Availability(
            status=AvailabilityStatus.OUT,
            quantity_available=0,
            warnings=tuple(warnings) or (NO_VALID_INGREDIENTS,),
        )

    servings = max(int(min_possible), 0)
    ingredient = limiting_item.ingredient
    # Par level (packages) expressed as servings of this product
    reference = ingredient.par_level * ingredient.package_size / limiting_item.quantity

    return Availability(
        status=classify_servings(servings, reference),
        quantity_available=servings,
        limiting_ingredient=LimitingIngredient(id=ingredient.id, name=ingredient.name),
        warnings=tuple(warnings),
    )


def calculate_availability(product: AvailabilityProduct) -> Availability:
    """
    Calculate a product's availability from its ingredients.

    Recipe items take precedence over a linked ingredient; a product with
    neither is unlimited.
    """
    if product.recipe_items:
        return calculate_recipe_availability(product.recipe_items)

    if product.linked_ingredient is not None:
        return calculate_linked_availability(product.linked_ingredient)

    return UNLIMITED


# =============================================================================
# BATCH / ROLL-UP
# =============================================================================

def calculate_batch_availability(products: Iterable[AvailabilityProduct]) -> dict[int, Availability]:
    return {product.id: calculate_availability(product) for product in products}


def summarize_stock_health(products: Iterable[AvailabilityProduct]) -> dict[str, int]:
    """Count products per availability status (category stock-health badge)."""
    counts = {status.value: 0 for status in AvailabilityStatus}
    for product in products:
        counts[calculate_availability(product).status.value] += 1
    return counts


def products_needing_attention(
    products: Iterable[AvailabilityProduct],
) -> list[tuple[AvailabilityProduct, Availability]]:
    """Products that are out or critically low."""
    flagged = []
    for product in products:
        availability = calculate_availability(product)
        if availability.status in (AvailabilityStatus.OUT, AvailabilityStatus.CRITICAL):
            flagged.append((product, availability))
    return flagged


# =============================================================================
# ORM ADAPTER
# =============================================================================

def ingredient_descriptor(ingredient) -> AvailabilityIngredient:
    return AvailabilityIngredient(
        id=ingredient.id,
        name=ingredient.name,
        quantity=to_number(ingredient.quantity) or 0.0,
        package_size=to_number(ingredient.package_size) or 0.0,
        par_level=to_number(ingredient.par_level) or 0.0,
    )


def product_descriptor(product) -> AvailabilityProduct:
    """
    Convert a Product row (with recipe_items / linked_ingredient loaded) into
    the plain descriptor the calculator takes. ORM Decimals become floats here.
    """
    recipe_items = tuple(
        AvailabilityRecipeItem(
            quantity=to_number(item.quantity) or 0.0,
            ingredient=ingredient_descriptor(item.ingredient) if item.ingredient else None,
        )
        for item in product.recipe_items
    )
    linked = product.linked_ingredient
    return AvailabilityProduct(
        id=product.id,
        name=product.name,
        recipe_items=recipe_items,
        linked_ingredient=ingredient_descriptor(linked) if linked is not None else None,
    )
