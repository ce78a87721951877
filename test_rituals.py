def _create_ritual(client, name: str = "Box breathing", **extra) -> dict:
    response = client.post("/api/reset-rituals", json={"name": name, "category": "breathing", **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_create_and_list_rituals(auth_client):
    ritual = _create_ritual(auth_client, duration=5)

    assert ritual["icon"] == "fas fa-spa"
    assert ritual["isDefault"] is False
    assert [r["id"] for r in auth_client.get("/api/reset-rituals").json()] == [ritual["id"]]


def test_complete_ritual_and_history(auth_client):
    ritual = _create_ritual(auth_client)

    bare = auth_client.post(f"/api/reset-rituals/{ritual['id']}/complete")
    assert bare.status_code == 200
    detailed = auth_client.post(
        f"/api/reset-rituals/{ritual['id']}/complete",
        json={"trigger": "deadline", "cause": "stress", "notes": "helped"},
    )
    assert detailed.status_code == 200
    assert detailed.json()["ritualId"] == ritual["id"]

    history = auth_client.get("/api/reset-rituals/history").json()
    assert [h["id"] for h in history] == [detailed.json()["id"], bare.json()["id"]]
    assert history[0]["trigger"] == "deadline"
    assert history[0]["ritual"]["name"] == "Box breathing"


def test_complete_unknown_ritual(auth_client):
    assert auth_client.post("/api/reset-rituals/404/complete").status_code == 404


def test_delete_ritual_removes_history(auth_client):
    ritual = _create_ritual(auth_client)
    auth_client.post(f"/api/reset-rituals/{ritual['id']}/complete")

    assert auth_client.delete(f"/api/reset-rituals/{ritual['id']}").status_code == 200

    assert auth_client.get("/api/reset-rituals").json() == []
    assert auth_client.get("/api/reset-rituals/history").json() == []
    assert auth_client.delete(f"/api/reset-rituals/{ritual['id']}").status_code == 404


def test_rituals_are_scoped_to_user(auth_client, make_client):
    ritual = _create_ritual(auth_client)
    other = make_client("bob@example.com")

    assert other.get("/api/reset-rituals").json() == []
    assert other.post(f"/api/reset-rituals/{ritual['id']}/complete").status_code == 404
    assert other.delete(f"/api/reset-rituals/{ritual['id']}").status_code == 404
