"""
Ingredient stock and costing tests.

Uses the `menu` fixture: beans at 1 of 4 packages, milk at PAR,
bottled water at 10 of 24.
"""

from decimal import Decimal

import pytest

from kitchenpos.extensions import db
from kitchenpos.models import Ingredient, IngredientHistory, Product
from kitchenpos.services import costing_service, inventory_service
from kitchenpos.services.availability_service import AvailabilityStatus, calculate_availability, product_descriptor
from kitchenpos.services.inventory_service import (
    InventoryError,
    RestockPriority,
    StockStatus,
    calculate_stock_ratio,
    calculate_stock_status,
    restock_priority,
)


class TestStockStatus:
    @pytest.mark.parametrize(
        "quantity,par,expected",
        [
            (0, 10, StockStatus.OUT),
            (-1, 0, StockStatus.OUT),
            (3, 0, StockStatus.OK),
            (2, 10, StockStatus.CRITICAL),
            (2.5, 10, StockStatus.LOW),
            (4.9, 10, StockStatus.LOW),
            (5, 10, StockStatus.OK),
        ],
    )
    def test_status(self, quantity, par, expected):
        assert calculate_stock_status(quantity, par) is expected

    @pytest.mark.parametrize(
        "quantity,par,expected",
        [
            (0, 10, RestockPriority.CRITICAL),
            (2.5, 10, RestockPriority.CRITICAL),
            (5, 10, RestockPriority.HIGH),
            (9, 10, RestockPriority.MEDIUM),
            (10, 10, None),
        ],
    )
    def test_priority(self, quantity, par, expected):
        assert restock_priority(quantity, par) is expected

    def test_ratio(self):
        assert calculate_stock_ratio(3, 4) == 75
        assert calculate_stock_ratio(3, 0) is None


class TestLowStockList:
    def test_sorted_by_priority(self, menu):
        items = inventory_service.get_low_stock_ingredients()
        assert [(i["name"], i["priority"]) for i in items] == [
            ("Coffee Beans", "critical"),
            ("Bottled Water", "high"),
        ]
        assert items[0]["stock_ratio"] == 25
        assert items[1]["stock_status"] == "low"

    def test_inactive_ingredients_excluded(self, menu, db_session):
        menu["beans"].is_active = False
        db_session.commit()
        names = [i["name"] for i in inventory_service.get_low_stock_ingredients()]
        assert "Coffee Beans" not in names


class TestRestock:
    def test_adds_whole_packages(self, menu):
        ingredient = inventory_service.restock_ingredient(menu["beans"].id, 2, cost_per_package=700)
        assert ingredient.quantity == Decimal("3000")
        assert ingredient.cost_per_package == Decimal("700")
        assert ingredient.last_restock_at is not None

    @pytest.mark.parametrize("packages", [0, -2])
    def test_rejects_non_positive(self, menu, packages):
        with pytest.raises(InventoryError, match="Quantity must be a positive number"):
            inventory_service.restock_ingredient(menu["beans"].id, packages)

    def test_rejects_inactive(self, menu, db_session):
        menu["milk"].is_active = False
        db_session.commit()
        with pytest.raises(InventoryError, match="Ingredient is inactive"):
            inventory_service.restock_ingredient(menu["milk"].id, 1)

    def test_unknown_ingredient(self, db_session):
        with pytest.raises(InventoryError, match="Ingredient not found"):
            inventory_service.restock_ingredient(9999, 1)


class TestDeductForSale:
    def test_recipe_consumes_required_quantities(self, menu, db_session):
        inventory_service.deduct_for_sale(menu["latte"], 3)
        db_session.commit()
        assert db.session.get(Ingredient, menu["beans"].id).quantity == Decimal("946")
        assert db.session.get(Ingredient, menu["milk"].id).quantity == Decimal("3400")

    def test_linked_consumes_one_package_per_unit(self, menu, db_session):
        inventory_service.deduct_for_sale(menu["water_product"], 4)
        db_session.commit()
        assert db.session.get(Ingredient, menu["water"].id).quantity == Decimal("6")


class TestIngredientHistory:
    def _rows(self, ingredient_id, **filters):
        return db.session.query(IngredientHistory).filter_by(ingredient_id=ingredient_id, **filters).all()

    def test_restock_records_quantity_and_cost(self, menu, manager_user):
        inventory_service.restock_ingredient(menu["beans"].id, 2, cost_per_package=700, user=manager_user)

        quantity = self._rows(menu["beans"].id, field="quantity")[0]
        assert (quantity.old_value, quantity.new_value) == ("1000", "3000")
        assert quantity.source == "restock"
        assert quantity.user_name == "Manager"

        cost = self._rows(menu["beans"].id, field="cost_per_package")[0]
        assert (cost.old_value, cost.new_value) == ("650", "700")
        assert cost.change_id == quantity.change_id

    def test_unchanged_cost_not_recorded(self, menu):
        inventory_service.restock_ingredient(menu["beans"].id, 1, cost_per_package=650)
        assert self._rows(menu["beans"].id, field="cost_per_package") == []

    def test_sale_deduction_recorded(self, menu, db_session):
        inventory_service.deduct_for_sale(menu["latte"], 3, change_id="T-ORDER-1")
        db_session.commit()

        rows = db.session.query(IngredientHistory).filter_by(change_id="T-ORDER-1").all()
        assert {r.ingredient_name: r.new_value for r in rows} == {"Coffee Beans": "946", "Milk": "3400"}
        assert {r.source for r in rows} == {"sale"}

    def test_paginated_newest_first(self, menu):
        for _ in range(3):
            inventory_service.restock_ingredient(menu["water"].id, 1)

        first = inventory_service.get_ingredient_history(menu["water"].id, page=1, limit=2)
        assert first["total"] == 3
        assert first["total_pages"] == 2
        assert [h["new_value"] for h in first["history"]] == ["13", "12"]

        second = inventory_service.get_ingredient_history(menu["water"].id, page=2, limit=2)
        assert [h["new_value"] for h in second["history"]] == ["11"]

    def test_unknown_ingredient(self, db_session):
        with pytest.raises(InventoryError, match="Ingredient not found"):
            inventory_service.get_ingredient_history(9999)


class TestInventoryCount:
    def test_discrepancies_set_actual_quantity(self, menu, manager_user):
        result = inventory_service.submit_inventory_count(
            [
                {"ingredient_id": menu["beans"].id, "expected": 1000, "actual": 940, "reason": "waste"},
                {"ingredient_id": menu["milk"].id, "expected": 4000, "actual": 4000},
                {"ingredient_id": 9999, "expected": 5, "actual": 0},
            ],
            user=manager_user,
        )

        assert result["total_counted"] == 3
        assert result["discrepancies"] == 2
        assert result["applied"] == 1
        assert db.session.get(Ingredient, menu["beans"].id).quantity == Decimal("940")
        assert db.session.get(Ingredient, menu["milk"].id).quantity == Decimal("4000")

        row = db.session.query(IngredientHistory).filter_by(change_id=result["change_id"]).one()
        assert row.source == "inventory_count"
        assert (row.old_value, row.new_value) == ("1000", "940")
        assert row.reason == "waste"

    def test_count_drives_availability(self, menu, manager_user):
        inventory_service.submit_inventory_count(
            [{"ingredient_id": menu["milk"].id, "expected": 4000, "actual": 0}],
            user=manager_user,
        )
        latte = db.session.get(Product, menu["latte"].id)
        assert calculate_availability(product_descriptor(latte)).status is AvailabilityStatus.OUT

    @pytest.mark.parametrize(
        "counts,message",
        [
            ([], "counts must be a non-empty array"),
            (None, "counts must be a non-empty array"),
            ([{"ingredient_id": 1, "expected": 5, "actual": -1}], "non-negative actual value"),
            ([{"ingredient_id": "1", "expected": 5, "actual": 1}], "valid ingredient_id"),
            ([{"ingredient_id": 1, "expected": 5, "actual": 1, "reason": "lost"}], "Invalid discrepancy reason: lost"),
            ([{"ingredient_id": 1, "expected": 5, "actual": 1, "reason": "theft"}], "A note is required for reason 'theft'"),
        ],
    )
    def test_malformed_sheet(self, menu, manager_user, counts, message):
        with pytest.raises(InventoryError, match=message):
            inventory_service.submit_inventory_count(counts, user=manager_user)


class TestCosting:
    def test_recipe_cost_and_margin(self, menu):
        costing = costing_service.calculate_product_costing(menu["latte"])
        assert costing == {
            "price": 120.0,
            "cost": 31.7,
            "margin": 88.3,
            "margin_percent": 73.6,
        }

    def test_linked_cost(self, menu):
        costing = costing_service.calculate_product_costing(menu["water_product"])
        assert costing["cost"] == 12.0
        assert costing["margin_percent"] == 52.0

    def test_unknown_cost(self, menu, db_session):
        service = Product(name="Corkage", price=Decimal("50"), category=menu["category"])
        db_session.add(service)
        db_session.commit()
        assert costing_service.calculate_product_costing(service)["cost"] is None
