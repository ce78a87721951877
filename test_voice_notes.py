import base64
from pathlib import Path

import pytest

from flow.core.config import settings
from flow.routers import voice_notes
from flow.services import ElevenLabsError
from flow.services.insight_service import FALLBACK_FUTURE_ME_ADVICE


@pytest.fixture(autouse=True)
def no_openai(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)


def _upload(client, content: bytes = b"RIFF fake audio", content_type: str = "audio/webm", **form) -> dict:
    response = client.post(
        "/api/voice-notes",
        files={"audio": ("memo.webm", content, content_type)},
        data=form,
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_upload_stores_file_and_note(auth_client):
    note = _upload(auth_client, title="Idea", duration="42", noteType="thought", tags='["work", "ideas"]')

    assert note["title"] == "Idea"
    assert note["duration"] == 42
    assert note["noteType"] == "thought"
    assert note["tags"] == ["work", "ideas"]
    assert note["isConverted"] is False
    assert note["fileName"].startswith("voice-note-")
    assert note["fileName"].endswith(".webm")
    assert (Path(settings.upload_dir) / note["fileName"]).read_bytes() == b"RIFF fake audio"

    audio = auth_client.get(f"/api/voice-notes/{note['id']}/audio")
    assert audio.status_code == 200
    assert audio.content == b"RIFF fake audio"


def test_upload_defaults(auth_client):
    note = _upload(auth_client, tags="a, b,")

    assert note["title"].startswith("Voice Note ")
    assert note["noteType"] == "memo"
    assert note["tags"] == ["a", "b"]


def test_upload_requires_audio(auth_client):
    missing = auth_client.post("/api/voice-notes", data={"title": "nothing"})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "No audio file provided"

    wrong_type = auth_client.post(
        "/api/voice-notes", files={"audio": ("notes.txt", b"hello", "text/plain")}
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"] == "Only audio files are allowed"


def test_upload_size_limit(auth_client, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 4)

    response = auth_client.post(
        "/api/voice-notes", files={"audio": ("memo.webm", b"too large", "audio/webm")}
    )

    assert response.status_code == 413


def test_upload_title_length_limit(auth_client):
    response = auth_client.post(
        "/api/voice-notes",
        files={"audio": ("memo.webm", b"RIFF fake audio", "audio/webm")},
        data={"title": "x" * 250},
    )

    assert response.status_code == 422
    assert auth_client.get("/api/voice-notes").json() == []


def test_failed_upload_leaves_no_file(auth_client, storage, monkeypatch):
    def fail(user_id, data):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(storage, "create_voice_note", fail)

    response = auth_client.post(
        "/api/voice-notes", files={"audio": ("memo.webm", b"RIFF fake audio", "audio/webm")}
    )

    assert response.status_code == 500
    assert list(Path(settings.upload_dir).iterdir()) == []


def test_voice_alias_prefix(auth_client):
    note = _upload(auth_client)

    listed = auth_client.get("/api/voice").json()

    assert [n["id"] for n in listed] == [note["id"]]


def test_update_and_delete(auth_client):
    note = _upload(auth_client)

    updated = auth_client.patch(f"/api/voice-notes/{note['id']}", json={"transcription": "hello"})
    assert updated.status_code == 200
    assert updated.json()["transcription"] == "hello"

    assert auth_client.patch(f"/api/voice-notes/{note['id']}", json={"title": "x" * 250}).status_code == 422
    assert auth_client.patch(f"/api/voice-notes/{note['id']}", json={"noteType": None}).status_code == 422

    assert auth_client.delete(f"/api/voice-notes/{note['id']}").json() == {"success": True}
    assert not (Path(settings.upload_dir) / note["fileName"]).exists()
    assert auth_client.get(f"/api/voice-notes/{note['id']}/audio").status_code == 404


def test_convert_to_journal_once(auth_client):
    note = _upload(auth_client, title="Walk thoughts", mood="good", transcription="Felt calm today")

    response = auth_client.post(f"/api/voice-notes/{note['id']}/convert-to-journal")

    assert response.status_code == 200
    body = response.json()
    assert body["journalEntry"]["content"] == "Felt calm today"
    assert body["journalEntry"]["mood"] == "good"
    assert body["voiceNote"]["isConverted"] is True
    assert body["voiceNote"]["journalEntryId"] == body["journalEntry"]["id"]
    assert len(auth_client.get("/api/journal").json()) == 1

    again = auth_client.post(f"/api/voice-notes/{note['id']}/convert-to-journal")
    assert again.status_code == 400
    assert len(auth_client.get("/api/journal").json()) == 1


def test_convert_uses_title_and_drops_unknown_mood(auth_client):
    note = _upload(auth_client, title="Quick memo", mood="sleepy")

    body = auth_client.post(f"/api/voice-notes/{note['id']}/convert-to-journal").json()

    assert body["journalEntry"]["content"] == "Quick memo"
    assert body["journalEntry"]["mood"] is None


def test_deleting_journal_entry_unlinks_voice_note(auth_client):
    note = _upload(auth_client, transcription="text")
    entry_id = auth_client.post(f"/api/voice-notes/{note['id']}/convert-to-journal").json()["journalEntry"]["id"]

    auth_client.delete(f"/api/journal/{entry_id}")

    refreshed = auth_client.get("/api/voice-notes").json()[0]
    assert refreshed["journalEntryId"] is None
    assert refreshed["isConverted"] is True


def test_other_users_notes_are_not_found(auth_client, make_client):
    note = _upload(auth_client)
    other = make_client("bob@example.com")

    assert other.get(f"/api/voice-notes/{note['id']}/audio").status_code == 404
    assert other.post(f"/api/voice-notes/{note['id']}/convert-to-journal").status_code == 404
    assert other.delete(f"/api/voice-notes/{note['id']}").status_code == 404
    assert (Path(settings.upload_dir) / note["fileName"]).exists()


def test_transcribe(auth_client, monkeypatch):
    class FakeInsightService:
        async def transcribe_audio(self, path):
            assert path.read_bytes() == b"RIFF fake audio"
            return "transcribed words"

    monkeypatch.setattr(voice_notes, "InsightService", FakeInsightService)
    note = _upload(auth_client)

    response = auth_client.post(f"/api/voice-notes/{note['id']}/transcribe")

    assert response.status_code == 200
    assert response.json()["transcription"] == "transcribed words"


def test_transcribe_without_openai(auth_client):
    note = _upload(auth_client)

    assert auth_client.post(f"/api/voice-notes/{note['id']}/transcribe").status_code == 503


def test_ai_insights_empty_with_few_notes(auth_client):
    _upload(auth_client, transcription="only one")

    response = auth_client.get("/api/voice-notes/ai-insights")

    assert response.status_code == 200
    assert response.json() == []


def test_future_me_advice_requires_active_clone(auth_client):
    response = auth_client.post("/api/voice-notes/future-me-advice")

    assert response.status_code == 400


def test_future_me_advice_speaks_fallback_text(auth_client, storage, monkeypatch):
    spoken = {}

    class FakeElevenLabs:
        async def generate_speech(self, text, voice_id):
            spoken.update(text=text, voice_id=voice_id)
            return b"mp3-bytes"

    monkeypatch.setattr(voice_notes, "ElevenLabsService", FakeElevenLabs)
    user_id = auth_client.get("/api/auth/user").json()["id"]
    storage.create_voice_clone(user_id, voice_id="voice-abc", voice_name="Me", sample_count=1, is_active=True)

    response = auth_client.post("/api/voice/future-me-advice")

    assert response.status_code == 200
    body = response.json()
    assert body["text"] == FALLBACK_FUTURE_ME_ADVICE
    assert body["voiceId"] == "voice-abc"
    assert base64.b64decode(body["audioBase64"]) == b"mp3-bytes"
    assert body["audioUrl"].startswith("data:audio/mpeg;base64,")
    assert spoken == {"text": FALLBACK_FUTURE_ME_ADVICE, "voice_id": "voice-abc"}


def test_future_me_advice_speech_failure(auth_client, storage, monkeypatch):
    class FailingElevenLabs:
        async def generate_speech(self, text, voice_id):
            raise ElevenLabsError(500, "upstream broke")

    monkeypatch.setattr(voice_notes, "ElevenLabsService", FailingElevenLabs)
    user_id = auth_client.get("/api/auth/user").json()["id"]
    storage.create_voice_clone(user_id, voice_id="voice-abc", voice_name="Me", sample_count=1, is_active=True)

    assert auth_client.post("/api/voice-notes/future-me-advice").status_code == 502
