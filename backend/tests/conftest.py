"""
Pytest fixtures for Kitchen POS backend tests.

Provides test database setup, staff users per role, a small menu, and the test client.
"""

import os
from datetime import timedelta
from decimal import Decimal

import pytest
from kitchenpos import create_app
from kitchenpos.extensions import db
from kitchenpos.models import User, Category, Ingredient, Product, RecipeItem, Customer, Transaction
from kitchenpos.services import settings_service
from kitchenpos.time_utils import utcnow


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    settings_path = tmp_path_factory.mktemp("settings") / "settings.json"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SETTINGS_PATH': str(settings_path),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database (and default store settings) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        path = settings_service.resolve_settings_path(app)
        if os.path.exists(path):
            os.remove(path)
        settings_service.load_settings(app)

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# STAFF
# =============================================================================

def _make_user(db_session, username: str, role: str) -> User:
    user = User(username=username, fullname=username.title(), role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", "admin")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return _make_user(db_session, "manager", "manager")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return _make_user(db_session, "cashier", "cashier")


def auth_headers(user: User) -> dict:
    """Helper to create the gateway identity header for a user."""
    return {'X-User-Id': str(user.id)}


# =============================================================================
# MENU
# =============================================================================

@pytest.fixture(scope='function')
def menu(db_session):
    """
    Two products sharing no ingredients:

    - Latte (recipe): 18 g beans + 200 ml milk; beans 1000 g pack, milk 1000 ml pack
    - Bottled Water (linked): 1 pcs per package
    """
    drinks = Category(name="Drinks", display_order=1)
    beans = Ingredient(name="Coffee Beans", quantity=Decimal("1000"), package_size=Decimal("1000"),
                       par_level=4, unit="g", cost_per_package=Decimal("650"))
    milk = Ingredient(name="Milk", quantity=Decimal("4000"), package_size=Decimal("1000"),
                      par_level=4, unit="ml", cost_per_package=Decimal("100"))
    water = Ingredient(name="Bottled Water", quantity=Decimal("10"), package_size=Decimal("1"),
                       par_level=24, unit="pcs", cost_per_package=Decimal("12"))
    db_session.add_all([drinks, beans, milk, water])

    latte = Product(name="Latte", price=Decimal("120.00"), category=drinks)
    latte.recipe_items.append(RecipeItem(ingredient=beans, quantity=Decimal("18")))
    latte.recipe_items.append(RecipeItem(ingredient=milk, quantity=Decimal("200")))
    bottled = Product(name="Bottled Water", price=Decimal("25.00"), category=drinks, linked_ingredient=water)
    db_session.add_all([latte, bottled])
    db_session.commit()

    return {
        "category": drinks,
        "latte": latte,
        "water_product": bottled,
        "beans": beans,
        "milk": milk,
        "water": water,
    }


@pytest.fixture(scope='function')
def tab_customer(db_session):
    customer = Customer(name="Office Account", email="office@example.com",
                        tab_balance=Decimal("0"), credit_limit=Decimal("1000.00"))
    db_session.add(customer)
    db_session.commit()
    return customer


def make_transaction(db_session, *, age: timedelta = timedelta(0), total: str = "100.00", **kwargs) -> Transaction:
    """Insert a completed cash transaction created `age` ago."""
    transaction = Transaction(
        order_number=kwargs.pop("order_number", f"T-TEST-{utcnow():%H%M%S%f}"),
        subtotal=Decimal(total),
        discount=Decimal("0"),
        tax_amount=Decimal("0"),
        total=Decimal(total),
        paid_amount=Decimal(total),
        change_amount=Decimal("0"),
        payment_type="Cash",
        created_at=utcnow() - age,
        **kwargs,
    )
    db_session.add(transaction)
    db_session.commit()
    return transaction
