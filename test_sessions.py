from flow.storage import utcnow


def test_start_and_complete_session(auth_client):
    started = auth_client.post(
        "/api/sessions",
        json={"startTime": "2026-03-02T09:00:00Z", "plannedDuration": 90, "type": "deep_work"},
    )
    assert started.status_code == 200
    session = started.json()
    assert session["completed"] is False
    assert session["startTime"].startswith("2026-03-02T09:00:00")
    assert session["workflow"] == "standard"

    finished = auth_client.patch(
        f"/api/sessions/{session['id']}",
        json={"endTime": "2026-03-02T10:30:00Z", "actualDuration": 90, "completed": True, "productivity": 8},
    )
    assert finished.status_code == 200
    body = finished.json()
    assert body["completed"] is True
    assert body["actualDuration"] == 90
    assert body["plannedDuration"] == 90


def test_timezone_offsets_are_stored_as_utc(auth_client):
    response = auth_client.post("/api/sessions", json={"startTime": "2026-03-02T11:00:00+02:00"})

    assert response.json()["startTime"].startswith("2026-03-02T09:00:00")


def test_invalid_session_type(auth_client):
    response = auth_client.post(
        "/api/sessions", json={"startTime": utcnow().isoformat(), "type": "napping"}
    )

    assert response.status_code == 422


def test_update_missing_session(auth_client):
    assert auth_client.patch("/api/sessions/999", json={"completed": True}).status_code == 404


def test_sessions_are_scoped_to_user(auth_client, make_client):
    auth_client.post("/api/sessions", json={"startTime": utcnow().isoformat()})
    session_id = auth_client.get("/api/sessions").json()[0]["id"]

    other = make_client("bob@example.com")
    assert other.get("/api/sessions").json() == []
    assert other.patch(f"/api/sessions/{session_id}", json={"completed": True}).status_code == 404


def test_update_rejects_null_completed(auth_client):
    auth_client.post("/api/sessions", json={"startTime": utcnow().isoformat()})
    session_id = auth_client.get("/api/sessions").json()[0]["id"]

    assert auth_client.patch(f"/api/sessions/{session_id}", json={"completed": None}).status_code == 422

    cleared = auth_client.patch(f"/api/sessions/{session_id}", json={"notes": None})
    assert cleared.status_code == 200
    assert cleared.json()["completed"] is False
