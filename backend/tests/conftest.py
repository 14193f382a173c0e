"""
Pytest fixtures for spa POS backend tests.

Provides test database setup, users for both roles, a small catalog, and
the test client.
"""

import pytest
from spa_pos import create_app
from spa_pos.config import Config
from spa_pos.extensions import db
from spa_pos.models import Product, Service
from spa_pos.models.auth import ROLE_ADMIN, ROLE_STAFF
from spa_pos.services.auth_service import create_user


PASSWORD = "Password123!"


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_ROUNDS = 4
    DISPLAY_TIMEZONE = "America/New_York"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user(
        username="admin",
        email="admin@spa.local",
        password=PASSWORD,
        role=ROLE_ADMIN,
        name="Spa Admin",
    )


@pytest.fixture(scope='function')
def staff_user(db_session):
    return create_user(
        username="staff",
        email="staff@spa.local",
        password=PASSWORD,
        role=ROLE_STAFF,
        name="Front Desk",
    )


@pytest.fixture(scope='function')
def serum(db_session):
    """Sellable product: $48.00, cost $18.00, 10 on hand."""
    product = Product(
        name="Hydrating Serum",
        category="Serums",
        cost_price_cents=1800,
        sell_price_cents=4800,
        stock_quantity=10,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def cleanser(db_session):
    """Sellable product: $24.00, cost $9.00, 3 on hand."""
    product = Product(
        name="Gentle Foam Cleanser",
        category="Cleansers",
        cost_price_cents=900,
        sell_price_cents=2400,
        stock_quantity=3,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def back_bar(db_session):
    """Internal-use supply, never sold."""
    product = Product(
        name="Professional Enzyme Peel",
        category="Back Bar",
        cost_price_cents=3500,
        sell_price_cents=0,
        stock_quantity=4,
        for_sale=False,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def facial(db_session):
    service = Service(name="Signature Facial", price_cents=9000, active=True)
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture(scope='function')
def massage(db_session):
    service = Service(name="Swedish Massage", price_cents=3000, active=True)
    db_session.add(service)
    db_session.commit()
    return service


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin"))


@pytest.fixture(scope='function')
def staff_headers(client, staff_user):
    return auth_headers(get_auth_token(client, "staff"))


@pytest.fixture(scope='function')
def login(client):
    """Log in through the API; returns the bearer token or None."""
    def _login(username: str, password: str = PASSWORD):
        return get_auth_token(client, username, password)
    return _login
