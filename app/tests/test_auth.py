import pytest
import httpx
import jwt
from urllib.parse import urlparse, parse_qs
from fastapi.testclient import TestClient

from app.main import app
from app.api.middleware.auth_token import generate_token, decode_token
from app.tests.fakes import user_row

client = TestClient(app)

def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "OK"}

def test_me_requires_session():
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}

def test_me_bearer(fake_conn, auth_headers):
    fake_conn.queue("fetchrow", user_row())

    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "user": {
            "id": 1,
            "email": "test@pytest.com",
            "name": "Test User",
            "picture": None,
        }
    }

    (_, args), = fake_conn.calls_for("fetchrow", "from users")
    assert args == (1,)
    assert fake_conn.close_count == 1

def test_me_cookie(fake_conn, auth_token):
    fake_conn.queue("fetchrow", user_row())

    cookie_client = TestClient(app)
    cookie_client.cookies.set("session", auth_token)

    response = cookie_client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "test@pytest.com"

def test_me_user_missing(fake_conn, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}

def test_invalid_session_tokens():
    bad_key = jwt.encode({"email": "test@pytest.com", "user_id": "1"}, "wrong-key", algorithm="HS256")
    expired = generate_token("test@pytest.com", 1, minutes=-5)

    for token in [bad_key, expired, "not-a-jwt"]:
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"].startswith("Invalid session")

def test_rejected_cookie_falls_back_to_bearer(fake_conn, auth_headers):
    fake_conn.queue("fetchrow", user_row())

    stale_client = TestClient(app)
    stale_client.cookies.set("session", generate_token("test@pytest.com", 1, minutes=-5))

    response = stale_client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"]["id"] == 1

    response = stale_client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"].startswith("Invalid session")

def test_login_redirect():
    response = client.get("/api/auth/login", params={"return_to": "/plans"}, follow_redirects=False)
    assert response.status_code == 302

    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == "https://fittrack.auth.example.com"
    assert location.path == "/authorize"

    params = parse_qs(location.query)
    assert params["response_type"] == ["code"]
    assert params["client_id"] == ["pytest-client"]
    assert params["redirect_uri"] == ["http://testserver/api/auth/callback"]
    assert params["scope"] == ["openid profile email"]
    assert params["state"] == ["/plans"]

def test_login_rejects_external_return():
    response = client.get("/api/auth/login", params={"return_to": "//evil.example.com"}, follow_redirects=False)
    params = parse_qs(urlparse(response.headers["location"]).query)
    assert params["state"] == ["/"]

def test_callback_sets_session(fake_conn, monkeypatch):
    async def fake_exchange_code(code):
        assert code == "abc"
        return {
            "sub": "auth0|abc123",
            "email": "test@pytest.com",
            "name": "Test User",
        }

    monkeypatch.setattr("app.api.routes.auth.exchange_code", fake_exchange_code)
    fake_conn.queue("fetchrow", user_row(user_id=7))

    callback_client = TestClient(app)
    response = callback_client.get(
        "/api/auth/callback",
        params={"code": "abc", "state": "/dashboard"},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"] == "/dashboard"

    token = response.cookies["session"]
    decoded = decode_token(token)
    assert decoded["user_id"] == "7"
    assert decoded["email"] == "test@pytest.com"

    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie

def test_callback_exchange_failure(fake_conn, monkeypatch):
    async def failing_exchange_code(code):
        raise httpx.ConnectError("provider unreachable")

    monkeypatch.setattr("app.api.routes.auth.exchange_code", failing_exchange_code)

    response = client.get("/api/auth/callback", params={"code": "abc"}, follow_redirects=False)
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication failed"}
    assert fake_conn.calls == []

def test_callback_invalid_claims(fake_conn, monkeypatch):
    async def fake_exchange_code(code):
        return {"email": "test@pytest.com"}

    monkeypatch.setattr("app.api.routes.auth.exchange_code", fake_exchange_code)

    response = client.get("/api/auth/callback", params={"code": "abc"}, follow_redirects=False)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid auth provider user data"}

def test_logout(auth_token):
    logout_client = TestClient(app)
    logout_client.cookies.set("session", auth_token)

    response = logout_client.get("/api/auth/logout", follow_redirects=False)
    assert response.status_code == 302

    location = urlparse(response.headers["location"])
    assert location.path == "/v2/logout"
    assert parse_qs(location.query)["returnTo"] == ["http://testserver"]

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("session=")
    assert "max-age=0" in set_cookie.lower()
