# Overview: Service-layer operations for ingredient stock; status rules, low-stock list, restock, sale deduction, counts and history.

from __future__ import annotations

import math
import secrets
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..extensions import db
from ..models import Ingredient, IngredientHistory, Product, User
from ..money import to_number
from kitchenpos.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry


class InventoryError(Exception):
    """Raised for ingredient stock operation errors."""
    pass


class StockStatus(str, Enum):
    OK = "ok"
    LOW = "low"
    CRITICAL = "critical"
    OUT = "out"


class RestockPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


PRIORITY_ORDER = {
    RestockPriority.CRITICAL: 0,
    RestockPriority.HIGH: 1,
    RestockPriority.MEDIUM: 2,
}


# =============================================================================
# STOCK STATUS (pure)
# =============================================================================

def calculate_stock_status(quantity: float, par_level: float) -> StockStatus:
    """
    Status of an ingredient against its PAR level.

    - out: nothing on hand
    - ok: no PAR level set, or at least half of PAR
    - critical: under a quarter of PAR
    - low: between a quarter and half of PAR
    """
    if quantity <= 0:
        return StockStatus.OUT
    if par_level <= 0:
        return StockStatus.OK

    ratio = quantity / par_level
    if ratio < 0.25:
        return StockStatus.CRITICAL
    if ratio < 0.5:
        return StockStatus.LOW
    return StockStatus.OK


def calculate_stock_ratio(quantity: float, par_level: float) -> int | None:
    """Stock as a whole percentage of PAR, or None when no PAR is set."""
    if par_level <= 0:
        return None
    return round(quantity / par_level * 100)


def restock_priority(quantity: float, par_level: float) -> RestockPriority | None:
    """Priority for the reorder list; None means stock is at or above PAR."""
    ratio = quantity / par_level if par_level > 0 else 1
    if quantity <= 0 or ratio <= 0.25:
        return RestockPriority.CRITICAL
    if ratio <= 0.5:
        return RestockPriority.HIGH
    if ratio < 1:
        return RestockPriority.MEDIUM
    return None


def packages_on_hand(ingredient: Ingredient) -> float:
    package_size = to_number(ingredient.package_size) or 0.0
    if package_size <= 0:
        return 0.0
    return (to_number(ingredient.quantity) or 0.0) / package_size


# =============================================================================
# QUERIES
# =============================================================================

def get_low_stock_ingredients() -> list[dict]:
    """
    Active ingredients below PAR, most urgent first.

    Sorted by priority, then by stock ratio (lowest first).
    """
    ingredients = db.session.query(Ingredient).filter(
        Ingredient.is_active.is_(True),
        Ingredient.par_level > 0,
    ).order_by(Ingredient.name).all()

    items = []
    for ingredient in ingredients:
        packages = packages_on_hand(ingredient)
        priority = restock_priority(packages, ingredient.par_level)
        if priority is None:
            continue
        items.append({
            "id": ingredient.id,
            "name": ingredient.name,
            "category": ingredient.category,
            "unit": ingredient.unit,
            "par_level": ingredient.par_level,
            "quantity": to_number(ingredient.quantity),
            "packages_on_hand": round(packages, 2),
            "stock_status": calculate_stock_status(packages, ingredient.par_level).value,
            "priority": priority.value,
            "stock_ratio": calculate_stock_ratio(packages, ingredient.par_level),
        })

    items.sort(key=lambda i: (PRIORITY_ORDER[RestockPriority(i["priority"])], i["stock_ratio"]))
    return items


# =============================================================================
# HISTORY
# =============================================================================

class HistorySource(str, Enum):
    RESTOCK = "restock"
    SALE = "sale"
    INVENTORY_COUNT = "inventory_count"


# Discrepancy reasons for a count; True means a note is required
DISCREPANCY_REASONS = {
    "waste": False,
    "breakage": False,
    "theft": True,
    "miscount": False,
    "testing": False,
    "promo": False,
    "other": True,
}


def new_change_id() -> str:
    return secrets.token_hex(5)


def _quantity_text(value) -> str:
    return format(Decimal(str(value)).normalize(), "f")


def record_change(
    ingredient: Ingredient,
    field: str,
    old_value,
    new_value,
    *,
    source: HistorySource,
    change_id: str,
    user: User | None = None,
    user_id: int | None = None,
    reason: str | None = None,
    reason_note: str | None = None,
) -> IngredientHistory:
    """Add a history row to the session. Does not commit."""
    entry = IngredientHistory(
        ingredient_id=ingredient.id,
        ingredient_name=ingredient.name,
        change_id=change_id,
        field=field,
        old_value=None if old_value is None else _quantity_text(old_value),
        new_value=None if new_value is None else _quantity_text(new_value),
        source=source.value,
        reason=reason,
        reason_note=reason_note,
        user_id=user.id if user else user_id,
        user_name=user.display_name if user else None,
        created_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def get_ingredient_history(ingredient_id: int, page: int = 1, limit: int = 20) -> dict:
    """
    Change history for one ingredient, newest first, paginated.

    Raises:
        InventoryError: If ingredient not found
    """
    ingredient = db.session.get(Ingredient, ingredient_id)
    if not ingredient:
        raise InventoryError("Ingredient not found")

    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.session.query(IngredientHistory).filter_by(ingredient_id=ingredient_id)
    total = query.count()
    rows = query.order_by(
        IngredientHistory.created_at.desc(),
        IngredientHistory.id.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        "ingredient_id": ingredient.id,
        "ingredient_name": ingredient.name,
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit),
        "history": [row.to_dict() for row in rows],
    }


# =============================================================================
# MUTATIONS
# =============================================================================

def restock_ingredient(
    ingredient_id: int,
    packages: float,
    cost_per_package: float | None = None,
    user: User | None = None,
) -> Ingredient:
    """
    Add purchased packages to an ingredient's stock.

    Raises:
        InventoryError: If ingredient not found, inactive, or quantity invalid
    """
    def _op():
        if packages is None or packages <= 0:
            raise InventoryError("Quantity must be a positive number")
        if cost_per_package is not None and cost_per_package < 0:
            raise InventoryError("Cost per package must be 0 or greater")

        ingredient = lock_for_update(db.session.query(Ingredient).filter_by(id=ingredient_id)).first()
        if not ingredient:
            raise InventoryError("Ingredient not found")
        if not ingredient.is_active:
            raise InventoryError("Ingredient is inactive")

        change_id = new_change_id()
        old_quantity = Decimal(str(ingredient.quantity))
        added = Decimal(str(packages)) * Decimal(str(ingredient.package_size))
        ingredient.quantity = old_quantity + added
        record_change(ingredient, "quantity", old_quantity, ingredient.quantity,
                      source=HistorySource.RESTOCK, change_id=change_id, user=user)

        if cost_per_package is not None:
            old_cost = Decimal(str(ingredient.cost_per_package))
            new_cost = Decimal(str(cost_per_package))
            if new_cost != old_cost:
                ingredient.cost_per_package = new_cost
                record_change(ingredient, "cost_per_package", old_cost, new_cost,
                              source=HistorySource.RESTOCK, change_id=change_id, user=user)
        ingredient.last_restock_at = utcnow()

        db.session.commit()
        return ingredient

    return run_with_retry(_op)


def deduct_for_sale(
    product: Product,
    quantity: int,
    *,
    change_id: str | None = None,
    user_id: int | None = None,
) -> None:
    """
    Consume ingredient stock for `quantity` units of a sold product.

    Recipe products consume quantity x required of each ingredient; linked
    products consume one package per unit. Each deduction is written to
    ingredient history under change_id (the order number). Does not commit.
    """
    change_id = change_id or new_change_id()
    units = Decimal(quantity)

    if product.recipe_items:
        consumed = [(item.ingredient, Decimal(str(item.quantity)) * units) for item in product.recipe_items]
    elif product.linked_ingredient is not None:
        ingredient = product.linked_ingredient
        consumed = [(ingredient, Decimal(str(ingredient.package_size)) * units)]
    else:
        return

    for ingredient, amount in consumed:
        old_quantity = Decimal(str(ingredient.quantity))
        ingredient.quantity = old_quantity - amount
        record_change(ingredient, "quantity", old_quantity, ingredient.quantity,
                      source=HistorySource.SALE, change_id=change_id, user_id=user_id)


# =============================================================================
# INVENTORY COUNT
# =============================================================================

@dataclass(frozen=True)
class CountEntry:
    ingredient_id: int
    expected: float
    actual: float
    reason: str | None = None
    reason_note: str | None = None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_count_entries(raw_counts) -> list[CountEntry]:
    """
    Validate a submitted count sheet.

    Each entry: {"ingredient_id", "expected", "actual", "reason"?, "reason_note"?}

    Raises:
        InventoryError: On a malformed sheet
    """
    if not isinstance(raw_counts, list) or not raw_counts:
        raise InventoryError("counts must be a non-empty array")

    entries = []
    for raw in raw_counts:
        if not isinstance(raw, dict):
            raise InventoryError("Each count must be an object")
        ingredient_id = raw.get("ingredient_id")
        actual = raw.get("actual")
        expected = raw.get("expected")
        if (
            not isinstance(ingredient_id, int) or isinstance(ingredient_id, bool) or ingredient_id <= 0
            or not _is_number(actual) or actual < 0
        ):
            raise InventoryError("Each count must have a valid ingredient_id and non-negative actual value")
        if not _is_number(expected):
            raise InventoryError("Each count must have a numeric expected value")

        reason = raw.get("reason") or None
        reason_note = (raw.get("reason_note") or "").strip() or None
        if reason is not None:
            if reason not in DISCREPANCY_REASONS:
                raise InventoryError(f"Invalid discrepancy reason: {reason}")
            if DISCREPANCY_REASONS[reason] and not reason_note:
                raise InventoryError(f"A note is required for reason '{reason}'")

        entries.append(CountEntry(ingredient_id, expected, actual, reason, reason_note))
    return entries


def submit_inventory_count(raw_counts, user: User) -> dict:
    """
    Apply a physical stock count.

    Every entry whose actual differs from expected sets the ingredient's
    quantity to the counted value and is written to history under a single
    change_id. Entries for unknown ingredients are skipped.

    Raises:
        InventoryError: On a malformed sheet
    """
    entries = parse_count_entries(raw_counts)
    discrepancies = [e for e in entries if e.actual != e.expected]

    def _op():
        change_id = new_change_id()
        ids = [e.ingredient_id for e in discrepancies]
        ingredients = {}
        if ids:
            rows = lock_for_update(db.session.query(Ingredient).filter(Ingredient.id.in_(ids))).all()
            ingredients = {i.id: i for i in rows}

        applied = 0
        for entry in discrepancies:
            ingredient = ingredients.get(entry.ingredient_id)
            if ingredient is None:
                continue
            old_quantity = Decimal(str(ingredient.quantity))
            ingredient.quantity = Decimal(str(entry.actual))
            record_change(
                ingredient, "quantity", old_quantity, ingredient.quantity,
                source=HistorySource.INVENTORY_COUNT,
                change_id=change_id,
                user=user,
                reason=entry.reason,
                reason_note=entry.reason_note,
            )
            applied += 1

        db.session.commit()
        return {
            "change_id": change_id,
            "total_counted": len(entries),
            "discrepancies": len(discrepancies),
            "applied": applied,
        }

    return run_with_retry(_op)
