"""
Pytest fixtures for farmops backend tests.

Provides test database setup, two isolated tenants (farms) with users,
flocks, products and a marketplace customer, and a test client.
"""

import pytest
from datetime import date

from farmops import create_app
from farmops.extensions import db
from farmops.models import Farm, User, Flock, Product, Customer


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _add(session, obj):
    session.add(obj)
    session.commit()
    return obj


@pytest.fixture(scope='function')
def farm_a(db_session):
    """Create Farm A (first tenant)."""
    return _add(db_session, Farm(name="Farm A - Sunrise Layers", location="Nakuru"))


@pytest.fixture(scope='function')
def farm_b(db_session):
    """Create Farm B (second tenant)."""
    return _add(db_session, Farm(name="Farm B - Hilltop Broilers", location="Eldoret"))


@pytest.fixture(scope='function')
def owner_a(db_session, farm_a):
    return _add(db_session, User(email="owner@farm-a.test", role="farm_owner", farm_id=farm_a.id))


@pytest.fixture(scope='function')
def manager_a(db_session, farm_a):
    return _add(db_session, User(email="manager@farm-a.test", role="manager", farm_id=farm_a.id))


@pytest.fixture(scope='function')
def staff_a(db_session, farm_a):
    return _add(db_session, User(email="staff@farm-a.test", role="staff", farm_id=farm_a.id))


@pytest.fixture(scope='function')
def manager_b(db_session, farm_b):
    return _add(db_session, User(email="manager@farm-b.test", role="manager", farm_id=farm_b.id))


@pytest.fixture(scope='function')
def staff_b(db_session, farm_b):
    return _add(db_session, User(email="staff@farm-b.test", role="staff", farm_id=farm_b.id))


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Global admin: never bound to a farm."""
    return _add(db_session, User(email="admin@platform.test", role="admin"))


@pytest.fixture(scope='function')
def customer_user(db_session):
    """Unbound user who has not registered a farm yet."""
    return _add(db_session, User(email="newcomer@example.test", role="customer"))


@pytest.fixture(scope='function')
def customer(db_session):
    """Marketplace customer placing orders."""
    return _add(db_session, Customer(name="Mama Mboga Grocers", phone="+254700000001"))


@pytest.fixture(scope='function')
def flock_a(db_session, farm_a):
    return _add(db_session, Flock(
        farm_id=farm_a.id,
        name="House 1",
        breed="Isa Brown",
        initial_count=120,
        current_count=100,
        hatch_date=date(2026, 3, 1),
        status="laying",
    ))


@pytest.fixture(scope='function')
def flock_b(db_session, farm_b):
    return _add(db_session, Flock(
        farm_id=farm_b.id,
        name="Broiler Shed",
        initial_count=500,
        current_count=500,
        hatch_date=date(2026, 8, 1),
    ))


@pytest.fixture(scope='function')
def product_a(db_session, farm_a):
    """Eggs in Farm A: price 10.00, stock 5."""
    return _add(db_session, Product(
        farm_id=farm_a.id,
        name="Grade A Eggs",
        category="eggs",
        unit="crates",
        current_price=10.00,
        stock_quantity=5,
    ))


@pytest.fixture(scope='function')
def feed_a(db_session, farm_a):
    """Second product in Farm A: price 2.50, stock 40."""
    return _add(db_session, Product(
        farm_id=farm_a.id,
        name="Layer Mash",
        category="feed",
        unit="kg",
        current_price=2.50,
        stock_quantity=40,
    ))


@pytest.fixture(scope='function')
def product_b(db_session, farm_b):
    """Product in Farm B."""
    return _add(db_session, Product(
        farm_id=farm_b.id,
        name="Broiler Chicken",
        category="chickens",
        unit="pieces",
        current_price=7.00,
        stock_quantity=50,
    ))
