# tests/conftest.py
import uuid

import pytest
from fastapi.testclient import TestClient

from auth_service.app import create_app
from auth_service.config import Settings

TEST_PASSWORD = "password123"


@pytest.fixture
def settings_factory(tmp_path):
    """Settings on a throwaway SQLite file with the cheapest bcrypt cost."""
    def _make(**overrides):
        values = {
            "database_url": f"sqlite:///{tmp_path / 'auth.db'}",
            "jwt_secret_key": "test-secret-key",
            "bcrypt_rounds": 4,
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def settings(settings_factory):
    return settings_factory()


@pytest.fixture
def app(settings):
    app = create_app(settings)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def service(app):
    return app.state.auth_service


@pytest.fixture
def test_user(client):
    """
    1. Registra un usuario único.
    2. Inicia sesión para obtener un token.
    3. Devuelve username, email, password y token.
    """
    suffix = uuid.uuid4().hex[:8]
    user = {
        "username": f"testuser_{suffix}",
        "email": f"testuser_{suffix}@example.com",
        "password": TEST_PASSWORD,
    }
    r_register = client.post("/register", json=user)
    assert r_register.status_code == 200, r_register.text

    r_login = client.post("/login", json={"email": user["email"], "password": user["password"]})
    assert r_login.status_code == 200, r_login.text

    return {**user, "token": r_login.json()["token"]}


@pytest.fixture
def auth_headers(test_user):
    return {"Authorization": f"Bearer {test_user['token']}"}
