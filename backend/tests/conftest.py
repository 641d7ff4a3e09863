"""
Pytest fixtures for the retail POS backend tests.

Provides the application on in-memory SQLite, a per-test clean database and
small factories for the rows most tests need.
"""

from decimal import Decimal

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Customer, Inventory, Product, User
from retailpos.services.auth_service import hash_password


TEST_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before the test, keep the schema."""
    with app.app_context():
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def make_user(db_session):
    def _make(username="cashier", role="cashier", **kwargs):
        user = User(
            username=username,
            email=kwargs.pop("email", f"{username}@store.test"),
            password_hash=hash_password(kwargs.pop("password", TEST_PASSWORD)),
            role=role,
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(name="Rice", price="5.99", **kwargs):
        product = Product(name=name, price=Decimal(price), **kwargs)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def make_inventory(db_session):
    def _make(product, quantity=10, min_stock_level=2, **kwargs):
        inventory = Inventory(
            product_id=product.id,
            quantity=quantity,
            min_stock_level=min_stock_level,
            **kwargs,
        )
        db_session.add(inventory)
        db_session.commit()
        return inventory
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin", full_name="System Administrator")


@pytest.fixture
def cashier(make_user):
    return make_user("cashier", role="cashier")


@pytest.fixture
def customer(db_session):
    customer = Customer(name="Layla Hassan", email="layla@example.com", phone="+971500000000")
    db_session.add(customer)
    db_session.commit()
    return customer
