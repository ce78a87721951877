from datetime import timedelta

from flow.core.config import settings
from flow.storage import utcnow


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "flow-api"}


def test_signup_logs_user_in(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "grace@example.com", "password": "hopper-1906", "firstName": "Grace"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "grace@example.com"
    assert body["user"]["firstName"] == "Grace"
    assert "passwordHash" not in body["user"]
    assert settings.session_cookie_name in response.cookies

    me = client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


def test_signup_rejects_duplicate_email(auth_client):
    response = auth_client.post(
        "/api/auth/signup", json={"email": "ada@example.com", "password": "another-pass"}
    )

    assert response.status_code == 400


def test_login_with_password(auth_client):
    auth_client.post("/api/auth/logout")
    assert auth_client.get("/api/auth/user").status_code == 401

    bad = auth_client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope"})
    assert bad.status_code == 401

    good = auth_client.post(
        "/api/auth/login", json={"email": "ada@example.com", "password": "correct-horse"}
    )
    assert good.status_code == 200
    assert auth_client.get("/api/auth/user").json()["email"] == "ada@example.com"


def test_login_unknown_email(client):
    response = client.post("/api/auth/signin", json={"email": "who@example.com", "password": "x"})

    assert response.status_code == 401


def test_demo_login_with_username(client):
    response = client.post("/api/auth/login", json={"username": "test", "password": "testing"})

    assert response.status_code == 200
    assert response.json()["user"]["id"] == settings.demo_user_id
    assert client.get("/api/auth/user").json()["firstName"] == "Test"


def test_demo_login_disabled(client, monkeypatch):
    monkeypatch.setattr(settings, "demo_login_enabled", False)

    response = client.post("/api/auth/login", json={"username": "test", "password": "testing"})

    assert response.status_code == 401
    assert client.get("/api/test-login", follow_redirects=False).status_code == 404


def test_test_login_redirects_with_cookie(client):
    response = client.get("/api/test-login", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == "/"
    assert settings.session_cookie_name in response.cookies


def test_test_login_when_demo_email_is_taken(client, storage):
    signup = client.post("/api/auth/signup", json={"email": settings.demo_user_email, "password": "mine-not-yours"})
    owner_id = signup.json()["user"]["id"]
    client.cookies.clear()

    response = client.get("/api/test-login", follow_redirects=False)

    assert response.status_code == 302
    assert client.get("/api/auth/user").json()["id"] == settings.demo_user_id
    assert storage.get_user(settings.demo_user_id).email is None
    assert storage.get_user_by_email(settings.demo_user_email).id == owner_id


def test_protected_routes_require_session(client):
    for path in ("/api/sessions", "/api/journal", "/api/habits", "/api/voice-notes", "/api/preferences"):
        assert client.get(path).status_code == 401, path


def test_garbage_cookie_is_unauthorized(client):
    client.cookies.set(settings.session_cookie_name, "not-a-token")

    assert client.get("/api/auth/user").status_code == 401


def test_logout_deletes_server_session(auth_client, storage):
    assert len(storage.sessions) == 1

    response = auth_client.post("/api/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert storage.sessions == {}


def test_expired_server_session_is_rejected_and_removed(auth_client, storage):
    sid = next(iter(storage.sessions))
    storage.sessions[sid] = storage.sessions[sid].model_copy(
        update={"expire": utcnow() - timedelta(minutes=1)}
    )

    assert auth_client.get("/api/auth/user").status_code == 401
    assert sid not in storage.sessions
