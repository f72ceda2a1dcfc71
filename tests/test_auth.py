# tests/test_auth.py
"""HTTP contract in the default (frontend compatible) status mode."""

import uuid
from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from auth_service.app import create_app


def test_signup_and_signin_scenario(client):
    r = client.post("/register", json={"username": "alice", "email": "alice@x.com", "password": "pw123"})
    assert r.status_code == 200
    assert r.json() == {"message": "User registered successfully"}

    r = client.post("/login", json={"email": "alice@x.com", "password": "pw123"})
    assert r.status_code == 200
    token = r.json()["token"]
    assert token.count(".") == 2

    r = client.post("/login", json={"email": "alice@x.com", "password": "wrong"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid credentials"}


def test_register_does_not_return_token(client):
    r = client.post("/register", json={"username": "bob", "email": "bob@x.com", "password": "pw"})
    assert "token" not in r.json()


def test_register_duplicate_email(client, test_user):
    """No se puede registrar un usuario con un email existente, aunque cambie el username."""
    payload = {"username": "someone_else", "email": test_user["email"], "password": "newpassword"}
    r = client.post("/register", json=payload)

    assert r.status_code == 500
    assert r.json() == {"error": "Email already registered"}


def test_register_duplicate_username(client, test_user):
    payload = {"username": test_user["username"], "email": "other@example.com", "password": "pw"}
    r = client.post("/register", json=payload)

    assert r.status_code == 500
    assert r.json() == {"error": "Username already taken"}


def test_register_missing_fields(client):
    r = client.post("/register", json={"username": "carol", "email": "carol@x.com"})
    assert r.status_code == 500
    assert r.json() == {"error": "Username, email and password are required"}

    r = client.post("/register", json={"username": "   ", "email": "carol@x.com", "password": "pw"})
    assert r.status_code == 500


def test_register_rejects_malformed_body(client):
    r = client.post("/register", content="not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 500
    assert r.json() == {"error": "Invalid request body"}

    r = client.post("/register", json={"username": 123, "email": "x@x.com", "password": "pw"})
    assert r.status_code == 500
    assert r.json() == {"error": "Invalid request body"}


def test_login_unknown_email(client):
    r = client.post("/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert r.status_code == 400
    assert r.json() == {"error": "User not found"}


def test_login_missing_password(client, test_user):
    r = client.post("/login", json={"email": test_user["email"]})
    assert r.status_code == 400
    assert r.json() == {"error": "Email and password are required"}


def test_dashboard_returns_profile(client, test_user, auth_headers):
    r = client.get("/dashboard", headers=auth_headers)
    assert r.status_code == 200

    body = r.json()
    assert body["message"] == "Welcome to Dashboard"
    assert body["user"]["username"] == test_user["username"]
    assert body["user"]["email"] == test_user["email"]
    assert isinstance(body["user"]["id"], int)
    assert "password" not in body["user"]
    assert "password_hash" not in body["user"]


def test_dashboard_without_token(client):
    r = client.get("/dashboard")
    assert r.status_code == 403
    assert r.json() == {"error": "Missing or malformed Authorization header"}

    r = client.get("/dashboard", headers={"Authorization": "Token abc"})
    assert r.status_code == 403


def test_dashboard_with_tampered_token(client, test_user):
    header, payload, signature = test_user["token"].split(".")
    first = "A" if signature[0] != "A" else "B"
    tampered = ".".join([header, payload, first + signature[1:]])

    r = client.get("/dashboard", headers={"Authorization": f"Bearer {tampered}"})
    assert r.status_code == 403
    assert r.json() == {"error": "Invalid token"}


def test_dashboard_with_expired_token(client, service, test_user):
    user_id = client.get("/verify", params={"token": test_user["token"]}).json()["id"]
    expired = service.codec.issue(user_id, now=datetime.now(timezone.utc) - timedelta(minutes=61))

    r = client.get("/dashboard", headers={"Authorization": f"Bearer {expired}"})
    assert r.status_code == 403
    assert r.json() == {"error": "Token has expired"}


def test_verify_endpoint(client, auth_headers, test_user):
    r = client.get("/verify", params={"token": test_user["token"]})
    assert r.status_code == 200
    user_id = r.json()["id"]

    profile = client.get("/dashboard", headers=auth_headers).json()["user"]
    assert profile["id"] == user_id

    r = client.get("/verify", params={"token": "garbage"})
    assert r.status_code == 403

    r = client.get("/verify")
    assert r.status_code == 403
    assert r.json() == {"error": "Missing token"}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "auth_service"}


def test_metrics_exposes_counters(client, test_user):
    client.post("/login", json={"email": test_user["email"], "password": "wrong"})

    r = client.get("/metrics")
    assert r.status_code == 200
    assert "auth_requests_total" in r.text
    assert 'auth_operations_total{operation="login",outcome="AuthenticationError"}' in r.text


def test_cors_preflight_for_frontend(client):
    r = client.options(
        "/login",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_lowercase_bearer_scheme(client, auth_headers):
    token = auth_headers["Authorization"].split(" ", 1)[1]

    r = client.get("/dashboard", headers={"Authorization": f"bearer {token}"})
    assert r.status_code == 200

    r = client.get("/dashboard", headers={"Authorization": "Bearer "})
    assert r.status_code == 403


def test_metrics_collapse_unknown_paths(client):
    unknown = f"/no-such-page-{uuid.uuid4().hex}"
    assert client.get(unknown).status_code == 404
    client.get("/health")

    text = client.get("/metrics").text
    assert unknown not in text
    assert 'endpoint="other"' in text
    assert 'endpoint="/health"' in text


def test_service_recovers_when_database_starts_late(settings_factory, tmp_path):
    db_dir = tmp_path / "mysql-not-up-yet"
    app = create_app(settings_factory(database_url=f"sqlite:///{db_dir / 'auth.db'}", db_timeout_seconds=1))
    payload = {"username": "late", "email": "late@x.com", "password": "pw123"}

    with TestClient(app) as client:
        r = client.post("/register", json=payload)
        assert r.status_code == 500
        assert r.json() == {"error": "User store is unavailable"}

        db_dir.mkdir()

        r = client.post("/register", json=payload)
        assert r.status_code == 200
        r = client.post("/login", json={"email": "late@x.com", "password": "pw123"})
        assert r.status_code == 200
    app.state.engine.dispose()
