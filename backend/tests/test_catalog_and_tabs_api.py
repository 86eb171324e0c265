"""
Catalog, ingredient, customer tab, and settings API tests.
"""

from decimal import Decimal

import pytest

from kitchenpos.extensions import db
from kitchenpos.models import Customer, TabSettlement

from conftest import auth_headers


# =============================================================================
# AUTHENTICATION (401 / 403)
# =============================================================================


class TestAuthentication:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/categories"),
            ("GET", "/api/products"),
            ("GET", "/api/ingredients/low-stock"),
            ("POST", "/api/transactions/"),
            ("POST", "/api/transactions/1/void"),
            ("GET", "/api/customers/1/tab"),
            ("PUT", "/api/settings"),
        ],
    )
    def test_missing_user_header(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401
        assert response.json["error"] == "Authentication required"

    def test_unknown_user(self, client, db_session):
        response = client.get("/api/categories", headers={"X-User-Id": "4242"})
        assert response.status_code == 401

    def test_inactive_user(self, client, cashier_user, db_session):
        cashier_user.is_active = False
        db_session.commit()
        response = client.get("/api/categories", headers=auth_headers(cashier_user))
        assert response.status_code == 401

    def test_health_is_public(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalog:
    def test_category_stock_health(self, client, cashier_user, menu):
        response = client.get("/api/categories", headers=auth_headers(cashier_user))
        assert response.status_code == 200
        drinks = response.json[0]
        assert drinks["product_count"] == 2
        # Latte: milk binds at 20 of 20 servings; water: 10 of 24
        assert drinks["stock_health"] == {"available": 1, "low": 1, "critical": 0, "out": 0}

    def test_product_detail(self, client, cashier_user, menu):
        response = client.get(f"/api/products/{menu['latte'].id}", headers=auth_headers(cashier_user))
        data = response.json
        assert data["availability"]["quantity_available"] == 20
        assert data["availability"]["limiting_ingredient"]["name"] == "Milk"
        assert data["costing"]["cost"] == 31.7
        assert len(data["recipe_items"]) == 2

    def test_product_not_found(self, client, cashier_user, db_session):
        response = client.get("/api/products/9999", headers=auth_headers(cashier_user))
        assert response.status_code == 404

    def test_products_needing_attention(self, client, cashier_user, menu, db_session):
        menu["water"].quantity = Decimal("2")
        db_session.commit()
        response = client.get("/api/products/attention", headers=auth_headers(cashier_user))
        assert response.json["count"] == 1
        assert response.json["items"][0]["availability"]["status"] == "critical"


# =============================================================================
# INGREDIENTS
# =============================================================================


class TestIngredients:
    def test_low_stock(self, client, cashier_user, menu):
        response = client.get("/api/ingredients/low-stock", headers=auth_headers(cashier_user))
        assert response.status_code == 200
        assert [i["priority"] for i in response.json["items"]] == ["critical", "high"]

    def test_restock_requires_manage_inventory(self, client, cashier_user, menu):
        response = client.post(
            f"/api/ingredients/{menu['beans'].id}/restock",
            json={"packages": 1},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 403

    def test_restock(self, client, manager_user, menu):
        response = client.post(
            f"/api/ingredients/{menu['beans'].id}/restock",
            json={"packages": 3},
            headers=auth_headers(manager_user),
        )
        assert response.status_code == 200
        assert response.json["ingredient"]["quantity"] == 4000.0

    def test_restock_rejects_zero(self, client, manager_user, menu):
        response = client.post(
            f"/api/ingredients/{menu['beans'].id}/restock",
            json={"packages": 0},
            headers=auth_headers(manager_user),
        )
        assert response.status_code == 400
        assert response.json["error"] == "Quantity must be a positive number"

    def test_restock_unknown(self, client, manager_user, db_session):
        response = client.post("/api/ingredients/9999/restock", json={"packages": 1}, headers=auth_headers(manager_user))
        assert response.status_code == 404

    def test_count_corrects_stock(self, client, manager_user, menu):
        response = client.post(
            "/api/ingredients/count",
            json={"counts": [
                {"ingredient_id": menu["water"].id, "expected": 10, "actual": 7, "reason": "breakage"},
                {"ingredient_id": menu["milk"].id, "expected": 4000, "actual": 4000},
            ]},
            headers=auth_headers(manager_user),
        )
        assert response.status_code == 200
        assert response.json["total_counted"] == 2
        assert response.json["discrepancies"] == 1

        history = client.get(f"/api/ingredients/{menu['water'].id}/history", headers=auth_headers(manager_user))
        entry = history.json["history"][0]
        assert entry["source"] == "inventory_count"
        assert (entry["old_value"], entry["new_value"]) == ("10", "7")
        assert entry["change_id"] == response.json["change_id"]

    def test_count_requires_manage_inventory(self, client, cashier_user, menu):
        response = client.post(
            "/api/ingredients/count",
            json={"counts": [{"ingredient_id": menu["water"].id, "expected": 10, "actual": 7}]},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 403

    def test_count_rejects_empty_sheet(self, client, manager_user, menu):
        response = client.post("/api/ingredients/count", json={"counts": []}, headers=auth_headers(manager_user))
        assert response.status_code == 400
        assert response.json["error"] == "counts must be a non-empty array"

    def test_sale_shows_in_history(self, client, cashier_user, menu):
        sale = client.post(
            "/api/transactions/",
            json={
                "items": [{"product_id": menu["water_product"].id, "quantity": 2}],
                "payment_type": "Cash",
                "amount_tendered": 50,
            },
            headers=auth_headers(cashier_user),
        )
        order_number = sale.json["transaction"]["order_number"]

        history = client.get(f"/api/ingredients/{menu['water'].id}/history", headers=auth_headers(cashier_user))
        assert history.status_code == 200
        assert history.json["total"] == 1
        entry = history.json["history"][0]
        assert entry["source"] == "sale"
        assert entry["change_id"] == order_number
        assert entry["new_value"] == "8"

    def test_history_unknown_ingredient(self, client, cashier_user, db_session):
        response = client.get("/api/ingredients/9999/history", headers=auth_headers(cashier_user))
        assert response.status_code == 404


# =============================================================================
# TABS
# =============================================================================


class TestTabs:
    @pytest.fixture
    def owing_customer(self, tab_customer, db_session):
        tab_customer.tab_balance = Decimal("450.75")
        db_session.commit()
        return tab_customer

    def test_tab_summary(self, client, cashier_user, owing_customer):
        response = client.get(f"/api/customers/{owing_customer.id}/tab", headers=auth_headers(cashier_user))
        assert response.status_code == 200
        customer = response.json["customer"]
        assert customer["tab_balance"] == 450.75
        assert customer["available_credit"] == 549.25
        assert customer["warning_level"] == "ok"
        assert response.json["settlements"] == []

    def test_cash_settlement(self, client, cashier_user, owing_customer):
        response = client.post(
            f"/api/customers/{owing_customer.id}/tab/settle",
            json={"amount": 450.75, "payment_method": "Cash"},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 201
        assert response.json["settlement"]["previous_balance"] == 450.75
        assert response.json["settlement"]["new_balance"] == 0
        assert db.session.get(Customer, owing_customer.id).tab_balance == Decimal("0")

        history = client.get(f"/api/customers/{owing_customer.id}/tab", headers=auth_headers(cashier_user))
        assert len(history.json["settlements"]) == 1

    def test_overpayment_rejected(self, client, cashier_user, owing_customer):
        response = client.post(
            f"/api/customers/{owing_customer.id}/tab/settle",
            json={"amount": 500, "payment_method": "Cash"},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 400
        assert response.json["error"] == "Settlement amount exceeds balance. Current balance: 450.75"
        assert db.session.query(TabSettlement).count() == 0

    def test_gcash_needs_reference(self, client, cashier_user, owing_customer):
        response = client.post(
            f"/api/customers/{owing_customer.id}/tab/settle",
            json={"amount": 100, "payment_method": "GCash"},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 400
        assert response.json["error"] == "GCash reference number is required"

    def test_tab_method_rejected(self, client, cashier_user, owing_customer):
        response = client.post(
            f"/api/customers/{owing_customer.id}/tab/settle",
            json={"amount": 100, "payment_method": "Tab"},
            headers=auth_headers(cashier_user),
        )
        assert response.json["error"] == "Payment method must be 'Cash' or 'GCash'"

    def test_charge_preview(self, client, cashier_user, owing_customer):
        response = client.post(
            f"/api/customers/{owing_customer.id}/tab/check",
            json={"amount": 600},
            headers=auth_headers(cashier_user),
        )
        assert response.status_code == 200
        assert response.json == {
            "valid": False,
            "error": "This payment would exceed the credit limit by 50.75",
            "would_exceed_by": 50.75,
        }

    def test_suspend_blocks_charges(self, client, manager_user, owing_customer):
        response = client.patch(
            f"/api/customers/{owing_customer.id}/tab-status",
            json={"tab_status": "suspended"},
            headers=auth_headers(manager_user),
        )
        assert response.status_code == 200

        preview = client.post(
            f"/api/customers/{owing_customer.id}/tab/check",
            json={"amount": 1},
            headers=auth_headers(manager_user),
        )
        assert preview.json["error"] == "Tab is suspended. Cannot charge to this account."

    def test_unknown_customer(self, client, cashier_user, db_session):
        response = client.get("/api/customers/9999/tab", headers=auth_headers(cashier_user))
        assert response.status_code == 404


# =============================================================================
# SETTINGS
# =============================================================================


class TestSettingsApi:
    def test_cashier_can_read(self, client, cashier_user):
        response = client.get("/api/settings", headers=auth_headers(cashier_user))
        assert response.status_code == 200
        assert response.json["store_name"] == "Kitchen POS"

    def test_manager_cannot_update(self, client, manager_user):
        response = client.put("/api/settings", json={"store_name": "X"}, headers=auth_headers(manager_user))
        assert response.status_code == 403

    def test_admin_update(self, client, admin_user):
        response = client.put("/api/settings", json={"store_name": "Corner Cafe"}, headers=auth_headers(admin_user))
        assert response.status_code == 200
        assert response.json["store_name"] == "Corner Cafe"

    def test_invalid_update(self, client, admin_user):
        response = client.put("/api/settings", json={"tax_percentage": -1}, headers=auth_headers(admin_user))
        assert response.status_code == 400
