from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.crud import products as products_crud
from storefront.crud import users as users_crud
from storefront.main import create_app
from storefront.schemas import Identity


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'storefront-test.db'}",
        secret_key="test-secret-key",
        access_token_expire_minutes=5,
        password_schemes=["argon2"],
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.state.database.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def database(app):
    return app.state.database


@pytest.fixture
def db(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def hasher(app):
    return app.state.password_hasher


@pytest.fixture
def tokens(app):
    return app.state.token_service


@pytest.fixture
def user(db, hasher):
    return users_crud.create_user(db, hasher, "Ada", "Lovelace", "ada@example.com", "correct-horse")


@pytest.fixture
def other_user(db, hasher):
    return users_crud.create_user(db, hasher, "Alan", "Turing", "alan@example.com", "enigma-machine")


@pytest.fixture
def headers_for(tokens):
    def _headers(user):
        token = tokens.issue(Identity(id=user.id, email=user.email))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def auth_headers(headers_for, user):
    return headers_for(user)


@pytest.fixture
def make_product(db):
    def _make(name="Widget", price="10.00", stock=10, category="gadgets", description="A product"):
        return products_crud.create_product(db, name, description, Decimal(price), stock, category)

    return _make
