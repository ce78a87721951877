import pytest
from fastapi.testclient import TestClient

from flow.core.config import settings
from flow.main import app
from flow.storage import MemoryStorage, get_storage


def _signup(client: TestClient, email: str, password: str = "correct-horse") -> dict:
    response = client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "firstName": "Ada", "lastName": "Lovelace"},
    )
    assert response.status_code == 200, response.text
    return response.json()["user"]


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client(storage, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "demo_login_enabled", True)
    app.dependency_overrides[get_storage] = lambda: storage
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client):
    """Client logged in as a freshly signed-up user."""
    _signup(client, "ada@example.com")
    return client


@pytest.fixture
def make_client(client):
    """Factory for additional logged-in clients sharing the same storage."""

    def _make(email: str) -> TestClient:
        other = TestClient(app)
        _signup(other, email)
        return other

    return _make
