"""
Pytest fixtures for CounterPOS backend tests.

Provides test database setup, account/product fixtures, and test client.
"""

import os

import pytest
from counterpos import create_app
from counterpos.extensions import db
from counterpos.models import User, Product
from counterpos.services.auth_service import hash_password
from counterpos.time_utils import utcnow

DEFAULT_PASSWORD = "secret1"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_folder = tmp_path_factory.mktemp("product-image")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret-key',
        'JWT_SECRET': 'test-jwt-secret',
        # bcrypt minimum cost keeps the suite fast
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(upload_folder),
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


@pytest.fixture(scope='function')
def upload_folder(app):
    """Empty upload folder for each test."""
    folder = app.config['UPLOAD_FOLDER']
    for name in os.listdir(folder):
        os.remove(os.path.join(folder, name))
    return folder


def make_user(db_session, username: str, role: str = "cashier", password: str = DEFAULT_PASSWORD,
              is_active: bool = True) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
        created_at=utcnow(),
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_product(db_session, name: str, barcode: str, price_cents: int = 1000, stock: int = 10,
                 is_active: bool = True, **extra) -> Product:
    now = utcnow()
    product = Product(
        name=name,
        barcode=barcode,
        price_cents=price_cents,
        stock=stock,
        is_active=is_active,
        created_at=now,
        updated_at=now,
        **extra,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def admin_user(db_session):
    """Create the store admin."""
    return make_user(db_session, "admin", role="admin")


@pytest.fixture(scope='function')
def cashier_user(db_session):
    """Create a cashier."""
    return make_user(db_session, "cashier", role="cashier")


@pytest.fixture(scope='function')
def admin_token(client, admin_user):
    return get_auth_token(client, "admin", DEFAULT_PASSWORD)


@pytest.fixture(scope='function')
def cashier_token(client, cashier_user):
    return get_auth_token(client, "cashier", DEFAULT_PASSWORD)


@pytest.fixture(scope='function')
def product_soap(db_session):
    return make_product(db_session, "Soap", "4800000000011", price_cents=2500, stock=10)


@pytest.fixture(scope='function')
def product_rice(db_session):
    return make_product(db_session, "Rice 1kg", "4800000000028", price_cents=6000, stock=3)


def get_auth_token(client, username: str, password: str) -> str:
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
def admin_headers(admin_token):
    return auth_headers(admin_token)


@pytest.fixture(scope='function')
def cashier_headers(cashier_token):
    return auth_headers(cashier_token)


@pytest.fixture(scope='function')
def user_factory(db_session):
    """make_user bound to the test session."""
    def _make(username, role="cashier", password=DEFAULT_PASSWORD, is_active=True):
        return make_user(db_session, username, role=role, password=password, is_active=is_active)
    return _make


@pytest.fixture(scope='function')
def product_factory(db_session):
    """make_product bound to the test session."""
    def _make(name, barcode, **kwargs):
        return make_product(db_session, name, barcode, **kwargs)
    return _make


@pytest.fixture(scope='function')
def login(client):
    """Log in through the API and return the token (None on failure)."""
    def _login(username, password=DEFAULT_PASSWORD):
        return get_auth_token(client, username, password)
    return _login
