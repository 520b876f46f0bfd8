"""
Pytest fixtures for storefront backend tests.

Provides an in-memory application, per-test table wipe, account factories
and Bearer-token helpers.
"""

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import User
from storefront.models.auth import ROLE_ADMIN, ROLE_USER
from storefront.services import session_service
from storefront.services.auth_service import hash_password


TEST_PASSWORD = "Password123!"


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
    """Fresh tables for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.expunge_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    """Factory: make_user("alice", max_orders_per_day=1, discount_points=20, ...)."""
    def _make(username: str, role: str = ROLE_USER, **fields) -> User:
        user = User(
            username=username,
            email=f"{username}@shop.test",
            password_hash=password_hash,
            role=role,
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def shopper(make_user):
    """Regular account with default quotas."""
    return make_user("shopper")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", role=ROLE_ADMIN)


def _bearer(user: User) -> dict:
    _, token = session_service.create_session(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(db_session):
    """Factory: auth_headers(user) issues a session and returns the Authorization header."""
    return _bearer


@pytest.fixture(scope='function')
def shopper_headers(shopper):
    return _bearer(shopper)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return _bearer(admin)


def _order_payload(username: str, total=49, product_count: int = 1, **extra) -> dict:
    payload = {
        "username": username,
        "totalAmount": total,
        "products": [
            {"id": f"p{i}", "name": f"Product {i}", "price": 1, "quantity": 1}
            for i in range(product_count)
        ],
        "address": "1 Test Street",
        "payment": "credit",
    }
    payload.update(extra)
    return payload


@pytest.fixture(scope="session")
def order_payload():
    """Factory: minimal valid POST /api/orders body."""
    return _order_payload
