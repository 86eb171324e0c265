# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kitchenpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent) and the default admin/manager/cashier users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Load a small demo menu: categories, ingredients, recipes, and a tab customer.
#
# Store settings:
# - python -m flask settings show
#   Print the settings currently loaded from the settings file.
#
# Stock inspection:
# - python -m flask stock report
#   Product availability and ingredients below PAR.

import click
from decimal import Decimal
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Category, Ingredient, Product, RecipeItem, Customer
from .services import availability_service, inventory_service, settings_service


DEFAULT_USERS = [
    ("admin", "Store Admin", "admin"),
    ("manager", "Shift Manager", "manager"),
    ("cashier", "Front Counter", "cashier"),
]


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


def _ensure_default_users() -> None:
    for username, fullname, role in DEFAULT_USERS:
        user = db.session.query(User).filter_by(username=username).first()
        if user:
            click.echo(f"PASS User exists: {username} (role: {user.role})")
            continue
        db.session.add(User(username=username, fullname=fullname, role=role))
        db.session.commit()
        click.echo(f"PASS Created user: {username} (role: {role})")


@system_group.command('init-db')
@with_appcontext
def init_db():
    """
    Create all tables and the default staff accounts.

    Idempotent: existing tables and users are left alone.
    """
    click.echo("START Initializing Kitchen POS database...")
    db.create_all()
    click.echo("PASS Tables created")
    _ensure_default_users()
    click.echo("PASS Initialization complete")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init-db' to create users.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Load a small demo menu.

    Ingredient quantities are in base units (g, ml, pcs); PAR levels are
    in packages. Skips seeding when any product already exists.
    """
    if db.session.query(Product).first():
        click.echo("SKIP Products already exist; demo data not loaded")
        return

    drinks = Category(name="Drinks", display_order=1)
    meals = Category(name="Meals", display_order=2)
    db.session.add_all([drinks, meals])

    # name, category, quantity, package_size, par_level, unit, cost_per_package
    ingredient_rows = [
        ("Coffee Beans", "Dry Goods", 2000, 1000, 4, "g", 650),
        ("Milk", "Dairy", 3000, 1000, 6, "ml", 95),
        ("Rice", "Dry Goods", 10000, 5000, 2, "g", 280),
        ("Chicken", "Meat", 1500, 1000, 5, "g", 220),
        ("Bottled Water", "Beverages", 24, 1, 24, "pcs", 12),
    ]
    ingredients = {}
    for name, category, quantity, package_size, par, unit, cost in ingredient_rows:
        ingredient = Ingredient(
            name=name,
            category=category,
            quantity=Decimal(quantity),
            package_size=Decimal(package_size),
            par_level=par,
            unit=unit,
            cost_per_package=Decimal(cost),
        )
        ingredients[name] = ingredient
        db.session.add(ingredient)

    latte = Product(name="Latte", price=Decimal("120.00"), category=drinks)
    latte.recipe_items.append(RecipeItem(ingredient=ingredients["Coffee Beans"], quantity=Decimal("18")))
    latte.recipe_items.append(RecipeItem(ingredient=ingredients["Milk"], quantity=Decimal("200")))

    chicken_rice = Product(name="Chicken Rice", price=Decimal("180.00"), category=meals)
    chicken_rice.recipe_items.append(RecipeItem(ingredient=ingredients["Rice"], quantity=Decimal("150")))
    chicken_rice.recipe_items.append(RecipeItem(ingredient=ingredients["Chicken"], quantity=Decimal("120")))

    water = Product(
        name="Bottled Water",
        price=Decimal("25.00"),
        category=drinks,
        linked_ingredient=ingredients["Bottled Water"],
    )
    db.session.add_all([latte, chicken_rice, water])

    db.session.add(Customer(
        name="Office Account",
        email="office@example.com",
        credit_limit=Decimal("5000.00"),
    ))

    db.session.commit()
    click.echo("PASS Demo data loaded: 2 categories, 5 ingredients, 3 products, 1 tab customer")


# =============================================================================
# SETTINGS
# =============================================================================

@click.group('settings')
def settings_group():
    """Store settings inspection."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    """Print the loaded store settings."""
    click.echo(f"Settings file: {settings_service.resolve_settings_path(current_app)}")
    for key, value in settings_service.get_settings().to_dict().items():
        click.echo(f"  {key:<16} {value!r}")


# =============================================================================
# STOCK
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('report')
@click.option('--all', 'show_all', is_flag=True, help='Include products that are fully available')
@with_appcontext
def stock_report(show_all):
    """Product availability and ingredients below PAR."""
    products = db.session.query(Product).filter(Product.is_active.is_(True)).order_by(Product.name).all()

    click.echo("Products:")
    shown = 0
    for product in products:
        availability = availability_service.calculate_availability(
            availability_service.product_descriptor(product)
        )
        if availability.status is availability_service.AvailabilityStatus.AVAILABLE and not show_all:
            continue
        shown += 1
        servings = "unlimited" if availability.quantity_available is None else availability.quantity_available
        limiting = availability.limiting_ingredient.name if availability.limiting_ingredient else "-"
        click.echo(f"  {product.name:<24} {availability.status.value:<10} servings={servings} limiting={limiting}")
        for warning in availability.warnings:
            click.echo(f"    WARN {warning}")
    if not shown:
        click.echo("  PASS All products available")

    low = inventory_service.get_low_stock_ingredients()
    click.echo(f"Ingredients below PAR: {len(low)}")
    for item in low:
        click.echo(
            f"  [{item['priority'].upper():<8}] {item['name']:<24} "
            f"{item['packages_on_hand']}/{item['par_level']} packages"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(stock_group)
