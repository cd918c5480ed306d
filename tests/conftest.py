"""
Pytest fixtures for bakery API tests.

Provides the in-memory database, one staff account per role, bearer-token
headers for each of them, and a small catalog (warehouses, product,
customer, stocked inventory) most modules build on.
"""

import pytest

from bakery import create_app
from bakery.config import TestConfig
from bakery.extensions import db
from bakery.models import Customer, Product, User, Warehouse
from bakery.services import inventory_service
from bakery.services.auth_service import hash_password


DEFAULT_PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig, BCRYPT_ROUNDS=4)

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


# =============================================================================
# STAFF ACCOUNTS
# =============================================================================


def make_user(session, role: str, email: str, password: str = DEFAULT_PASSWORD, **fields) -> User:
    """Insert a staff user directly, bypassing the API."""
    user = User(
        email=email,
        first_name=fields.pop("first_name", role.title()),
        last_name=fields.pop("last_name", "Tester"),
        role=role,
        password_hash=hash_password(password),
        **fields,
    )
    session.add(user)
    session.commit()
    return user


def get_auth_token(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(db_session, "ADMIN", "admin@test.local")


@pytest.fixture(scope='function')
def manager_user(db_session):
    return make_user(db_session, "STORE_MANAGER", "manager@test.local")


@pytest.fixture(scope='function')
def production_user(db_session):
    return make_user(db_session, "PRODUCTION_TEAM", "production@test.local")


@pytest.fixture(scope='function')
def delivery_user(db_session):
    return make_user(db_session, "DELIVERY_TEAM", "delivery@test.local")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return make_user(db_session, "CASHIER", "cashier@test.local")


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.email))


@pytest.fixture(scope='function')
def production_headers(client, production_user):
    return auth_headers(get_auth_token(client, production_user.email))


@pytest.fixture(scope='function')
def delivery_headers(client, delivery_user):
    return auth_headers(get_auth_token(client, delivery_user.email))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, cashier_user.email))


# =============================================================================
# CATALOG
# =============================================================================


@pytest.fixture(scope='function')
def warehouse(db_session):
    """Main production warehouse."""
    wh = Warehouse(name="Main Bakery", city="Springfield", capacity=5000)
    db_session.add(wh)
    db_session.commit()
    return wh


@pytest.fixture(scope='function')
def second_warehouse(db_session):
    """Storefront warehouse used as a transfer destination."""
    wh = Warehouse(name="Downtown Store", city="Springfield", capacity=800)
    db_session.add(wh)
    db_session.commit()
    return wh


@pytest.fixture(scope='function')
def product(db_session):
    """Sourdough loaf at $5.00, untaxed."""
    p = Product(
        sku="BRD-001",
        name="Sourdough Loaf",
        category="BREAD",
        unit_type="PIECE",
        base_price_cents=500,
        cost_price_cents=200,
        min_stock_level=5,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def taxed_product(db_session):
    """Chocolate cake at $20.00 with 10% tax."""
    p = Product(
        sku="CAK-001",
        name="Chocolate Cake",
        category="CAKE",
        unit_type="PIECE",
        base_price_cents=2000,
        tax_rate_bps=1000,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(
        email="jane.doe@example.com",
        first_name="Jane",
        last_name="Doe",
        phone="5551234567",
        address="12 Baker Street",
        city="Springfield",
        zip_code="12345",
    )
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def stock(db_session, product, warehouse):
    """50 loaves in the main warehouse, recorded with a STOCK_IN movement."""
    return inventory_service.create_inventory(
        {"product_id": product.id, "warehouse_id": warehouse.id, "quantity": 50}
    )
