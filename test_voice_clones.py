import asyncio

import pytest

from flow.core.config import settings
from flow.routers import voice_clones
from flow.services import ElevenLabsError, ElevenLabsService


class FakeElevenLabs:
    created: list = []
    deleted: list = []

    def __init__(self, configured: bool = True):
        self.is_configured = configured

    async def clone_voice(self, name, files, description=None):
        FakeElevenLabs.created.append((name, files, description))
        return {"voice_id": f"voice-{len(FakeElevenLabs.created)}"}

    async def delete_voice(self, voice_id):
        FakeElevenLabs.deleted.append(voice_id)


@pytest.fixture
def fake_elevenlabs(monkeypatch):
    FakeElevenLabs.created = []
    FakeElevenLabs.deleted = []
    monkeypatch.setattr(voice_clones, "ElevenLabsService", FakeElevenLabs)
    return FakeElevenLabs


def _create_clone(client, name: str) -> dict:
    response = client.post(
        "/api/voice-clones",
        data={"name": name, "description": "my voice"},
        files=[
            ("samples", ("one.wav", b"sample-1", "audio/wav")),
            ("samples", ("two.wav", b"sample-2", "audio/wav")),
        ],
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_create_clone_becomes_only_active(auth_client, fake_elevenlabs):
    first = _create_clone(auth_client, "Morning voice")
    second = _create_clone(auth_client, "Evening voice")

    assert first["voiceId"] == "voice-1"
    assert second["isActive"] is True
    assert second["sampleCount"] == 2
    name, files, description = fake_elevenlabs.created[0]
    assert name == "Morning voice"
    assert files == [(b"sample-1", "audio/wav"), (b"sample-2", "audio/wav")]
    assert description == "my voice"

    clones = {c["id"]: c for c in auth_client.get("/api/voice-clones").json()}
    assert clones[first["id"]]["isActive"] is False
    assert clones[second["id"]]["isActive"] is True


def test_activate_switches_active_clone(auth_client, fake_elevenlabs):
    first = _create_clone(auth_client, "A")
    _create_clone(auth_client, "B")

    response = auth_client.patch(f"/api/voice-clones/{first['id']}/activate")

    assert response.status_code == 200
    active = [c for c in auth_client.get("/api/voice-clones").json() if c["isActive"]]
    assert [c["id"] for c in active] == [first["id"]]
    assert auth_client.patch("/api/voice-clones/999/activate").status_code == 404


def test_create_rejects_non_audio_samples(auth_client, fake_elevenlabs):
    response = auth_client.post(
        "/api/voice-clones",
        data={"name": "Bad"},
        files=[("samples", ("notes.txt", b"text", "text/plain"))],
    )

    assert response.status_code == 400
    assert fake_elevenlabs.created == []


def test_failed_save_deletes_remote_voice(auth_client, storage, fake_elevenlabs, monkeypatch):
    def fail(user_id, **fields):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(storage, "create_voice_clone", fail)

    response = auth_client.post(
        "/api/voice-clones",
        data={"name": "Me"},
        files=[("samples", ("one.wav", b"sample", "audio/wav"))],
    )

    assert response.status_code == 500
    assert fake_elevenlabs.deleted == ["voice-1"]


def test_delete_clone(auth_client, fake_elevenlabs):
    clone = _create_clone(auth_client, "Temp")

    response = auth_client.delete(f"/api/voice-clones/{clone['id']}")

    assert response.status_code == 200
    assert fake_elevenlabs.deleted == ["voice-1"]
    assert auth_client.get("/api/voice-clones").json() == []
    assert auth_client.delete(f"/api/voice-clones/{clone['id']}").status_code == 404


def test_create_clone_without_elevenlabs_key(auth_client, monkeypatch):
    monkeypatch.setattr(settings, "elevenlabs_api_key", None)

    response = auth_client.post(
        "/api/voice-clones",
        data={"name": "Me"},
        files=[("samples", ("one.wav", b"sample", "audio/wav"))],
    )

    assert response.status_code == 503
    assert auth_client.get("/api/voice-clones").json() == []


def test_unconfigured_service_raises(monkeypatch):
    monkeypatch.setattr(settings, "elevenlabs_api_key", None)
    service = ElevenLabsService()

    with pytest.raises(ElevenLabsError) as excinfo:
        asyncio.run(service.generate_speech("hello", "voice-1"))

    assert excinfo.value.status_code == 503
