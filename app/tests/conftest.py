import os

os.environ.setdefault("SECRET_KEY", "pytest-secret-key")
os.environ.setdefault("AUTH_ISSUER_BASE_URL", "https://fittrack.auth.example.com")
os.environ.setdefault("AUTH_CLIENT_ID", "pytest-client")
os.environ.setdefault("AUTH_BASE_URL", "http://testserver")

import pytest

from app.api.middleware.auth_token import generate_token
from app.tests.fakes import FakeConnection

CONNECTION_MODULES = [
    "app.api.middleware.ai_usage",
    "app.api.routes.auth",
    "app.api.routes.workout_types",
    "app.api.routes.workout.history",
    "app.api.routes.workout.save",
    "app.api.routes.workout.delete",
    "app.api.routes.plan.generate",
    "app.api.routes.plan.list_all",
    "app.api.routes.plan.detail",
    "app.api.routes.plan.usage",
    "app.api.routes.dashboard.trend",
    "app.api.routes.dashboard.stats",
]

@pytest.fixture
def fake_conn(monkeypatch):
    conn = FakeConnection()

    async def fake_setup_connection():
        return conn

    for module in CONNECTION_MODULES:
        monkeypatch.setattr(f"{module}.setup_connection", fake_setup_connection)
    return conn

@pytest.fixture
def auth_token():
    return generate_token("test@pytest.com", 1, name="Test User", minutes=30)

@pytest.fixture
def auth_headers(auth_token):
    return {
        "Authorization": f"Bearer {auth_token}"
    }

@pytest.fixture
def no_backoff(monkeypatch):
    delays = []

    async def record_delay(seconds):
        delays.append(seconds)

    monkeypatch.setattr("app.api.middleware.openai_client.wait_before_retry", record_delay)
    return delays
