# Overview: Permission codes and the default grants for each staff role.
# Each permission is defined as: (code, name, description)

from __future__ import annotations

INVENTORY_PERMISSIONS = [
    ("VIEW_INVENTORY", "View Inventory", "View ingredient stock, availability and costing"),
    ("MANAGE_INVENTORY", "Manage Inventory", "Restock ingredients and submit stock counts"),
]

SALES_PERMISSIONS = [
    ("CREATE_TRANSACTION", "Create Transaction", "Ring up sales"),
    ("VOID_TRANSACTION", "Void Transaction", "Void a completed transaction inside the void window"),
]

TAB_PERMISSIONS = [
    ("CHARGE_TAB", "Charge Tab", "Put a sale on a customer's tab"),
    ("SETTLE_TAB", "Settle Tab", "Record payments against a customer's tab"),
    ("OVERRIDE_CREDIT_LIMIT", "Override Credit Limit", "Charge a tab beyond its credit limit"),
]

SYSTEM_PERMISSIONS = [
    ("MANAGE_SETTINGS", "Manage Settings", "Edit store settings"),
]

PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + TAB_PERMISSIONS
    + SYSTEM_PERMISSIONS
)

ALL_PERMISSION_CODES = frozenset(code for code, _, _ in PERMISSION_DEFINITIONS)

DEFAULT_ROLE_PERMISSIONS = {
    "admin": ALL_PERMISSION_CODES,
    "manager": frozenset({
        "VIEW_INVENTORY",
        "MANAGE_INVENTORY",
        "CREATE_TRANSACTION",
        "VOID_TRANSACTION",
        "CHARGE_TAB",
        "SETTLE_TAB",
        "OVERRIDE_CREDIT_LIMIT",
    }),
    "cashier": frozenset({
        "VIEW_INVENTORY",
        "CREATE_TRANSACTION",
        "CHARGE_TAB",
        "SETTLE_TAB",
    }),
}

VALID_ROLES = tuple(DEFAULT_ROLE_PERMISSIONS)


def permissions_for_role(role: str | None) -> frozenset[str]:
    """Permission codes granted to a role; unknown roles get nothing."""
    return DEFAULT_ROLE_PERMISSIONS.get(role or "", frozenset())
