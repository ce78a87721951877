def _create_entry(client, content: str, **extra) -> dict:
    response = client.post("/api/journal", json={"content": content, **extra})
    assert response.status_code == 200, response.text
    return response.json()


def test_create_and_list_entries_newest_first(auth_client):
    first = _create_entry(auth_client, "Slept well", title="Morning", mood="good", tags=["sleep"])
    second = _create_entry(auth_client, "Long meeting day", mood="bad")

    assert first["title"] == "Morning"
    assert first["tags"] == ["sleep"]
    assert "createdAt" in first and "userId" in first

    entries = auth_client.get("/api/journal").json()
    assert [e["id"] for e in entries] == [second["id"], first["id"]]


def test_create_rejects_empty_content_and_unknown_mood(auth_client):
    assert auth_client.post("/api/journal", json={"content": ""}).status_code == 422
    assert auth_client.post("/api/journal", json={"content": "x", "mood": "ecstatic"}).status_code == 422


def test_update_entry(auth_client):
    entry = _create_entry(auth_client, "Draft")

    response = auth_client.patch(f"/api/journal/{entry['id']}", json={"content": "Final", "mood": "great"})

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "Final"
    assert body["mood"] == "great"
    assert body["updatedAt"] >= entry["updatedAt"]


def test_update_cannot_null_content(auth_client):
    entry = _create_entry(auth_client, "Keep me", title="Morning")

    assert auth_client.patch(f"/api/journal/{entry['id']}", json={"content": None}).status_code == 422
    assert auth_client.patch(f"/api/journal/{entry['id']}", json={"tags": None}).status_code == 422

    cleared = auth_client.patch(f"/api/journal/{entry['id']}", json={"title": None})
    assert cleared.status_code == 200
    assert cleared.json()["title"] is None
    assert cleared.json()["content"] == "Keep me"


def test_delete_entry(auth_client):
    entry = _create_entry(auth_client, "Temporary")

    response = auth_client.delete(f"/api/journal/{entry['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert auth_client.get("/api/journal").json() == []
    assert auth_client.delete(f"/api/journal/{entry['id']}").status_code == 404


def test_other_users_entries_are_invisible(auth_client, make_client):
    entry = _create_entry(auth_client, "Private thoughts")
    other = make_client("bob@example.com")

    assert other.get("/api/journal").json() == []
    assert other.patch(f"/api/journal/{entry['id']}", json={"content": "hacked"}).status_code == 404
    assert other.delete(f"/api/journal/{entry['id']}").status_code == 404

    entries = auth_client.get("/api/journal").json()
    assert [e["content"] for e in entries] == ["Private thoughts"]


def test_trends(auth_client):
    _create_entry(auth_client, "One", mood="great")
    _create_entry(auth_client, "Two", mood="bad")
    _create_entry(auth_client, "Three")

    response = auth_client.get("/api/journal/trends", params={"days": 7})

    assert response.status_code == 200
    body = response.json()
    assert len(body["moodTrend"]) == 7
    today = body["moodTrend"][-1]
    assert today["entryCount"] == 3
    assert today["mood"] == 3.5
    assert body["averageMood"] == 3.5
    assert body["totalEntries"] == 3
    assert {m["mood"]: m["count"] for m in body["moodDistribution"]} == {"great": 1, "bad": 1}


def test_trends_rejects_out_of_range_days(auth_client):
    assert auth_client.get("/api/journal/trends", params={"days": 0}).status_code == 422
