def test_defaults_created_on_first_read(auth_client):
    response = auth_client.get("/api/preferences")

    assert response.status_code == 200
    body = response.json()
    assert body["sessionDuration"] == 90
    assert body["breakDuration"] == 15
    assert body["notificationsEnabled"] is True
    assert body["theme"] == "dark"
    assert body["timezone"] == "UTC"


def test_partial_update_keeps_other_fields(auth_client):
    first = auth_client.get("/api/preferences").json()

    response = auth_client.patch("/api/preferences", json={"sessionDuration": 50, "theme": "light"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == first["id"]
    assert body["sessionDuration"] == 50
    assert body["theme"] == "light"
    assert body["breakDuration"] == 15
    assert auth_client.get("/api/preferences").json()["sessionDuration"] == 50


def test_update_validates_values(auth_client):
    assert auth_client.patch("/api/preferences", json={"sessionDuration": 0}).status_code == 422
    assert auth_client.patch("/api/preferences", json={"theme": "neon"}).status_code == 422


def test_update_rejects_null(auth_client):
    assert auth_client.patch("/api/preferences", json={"theme": None}).status_code == 422
    assert auth_client.patch("/api/preferences", json={"sessionDuration": None}).status_code == 422

    assert auth_client.get("/api/preferences").json()["theme"] == "dark"
