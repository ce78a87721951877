"""
Voice note endpoints.

Mounted under both ``/voice-notes`` and ``/voice``. Audio files are stored
in ``settings.upload_dir``; only their file names are kept in storage.
"""

import base64
import json
import logging
import time
from pathlib import Path
from typing import get_args

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from flow.core.auth import CurrentUserId
from flow.core.config import settings
from flow.models.schemas import (
    AIInsight,
    FutureMeAdvice,
    JournalEntryCreate,
    MoodType,
    NoteType,
    VoiceNote,
    VoiceNoteCreate,
    VoiceNoteUpdate,
)
from flow.services import ElevenLabsError, ElevenLabsService, InsightError, InsightService
from flow.storage import StorageDep, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["voice-notes"])


def _upload_dir() -> Path:
    path = Path(settings.upload_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _parse_tags(raw: str | None) -> list[str]:
    """Tags arrive as a JSON array or a comma-separated string."""
    if not raw:
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            return [str(tag) for tag in json.loads(raw)]
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid tags")
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def _audio_path(note: VoiceNote) -> Path:
    return Path(settings.upload_dir) / note.file_name


@router.post("", response_model=VoiceNote)
async def upload_voice_note(
    user_id: CurrentUserId,
    storage: StorageDep,
    audio: UploadFile | None = File(None),
    title: str | None = Form(None, max_length=200),
    duration: int = Form(0),
    note_type: NoteType = Form("memo", alias="noteType"),
    mood: str | None = Form(None),
    tags: str | None = Form(None),
    transcription: str | None = Form(None),
) -> VoiceNote:
    """Upload a recording (multipart field ``audio``) and create its note."""
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio file provided")
    if not (audio.content_type or "").startswith("audio/"):
        raise HTTPException(status_code=400, detail="Only audio files are allowed")

    content = await audio.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Audio file is too large")

    try:
        extension = Path(audio.filename or "").suffix
        file_name = f"voice-note-{int(time.time() * 1000)}{extension}"
        note = VoiceNoteCreate(
            title=title or f"Voice Note {utcnow().date().isoformat()}",
            file_name=file_name,
            duration=duration,
            transcription=transcription or None,
            note_type=note_type,
            mood=mood or None,
            tags=_parse_tags(tags),
        )

        path = _upload_dir() / file_name
        path.write_bytes(content)
        try:
            return storage.create_voice_note(user_id, note)
        except Exception:
            path.unlink(missing_ok=True)
            raise

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Voice note upload failed")
        raise HTTPException(status_code=500, detail=f"Failed to create voice note: {str(e)}")


@router.get("", response_model=list[VoiceNote])
async def list_voice_notes(user_id: CurrentUserId, storage: StorageDep) -> list[VoiceNote]:
    """All voice notes of the user, newest first."""
    try:
        return storage.get_user_voice_notes(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch voice notes: {str(e)}")


@router.get("/ai-insights", response_model=list[AIInsight])
async def voice_note_insights(user_id: CurrentUserId, storage: StorageDep) -> list[AIInsight]:
    """Insights over the user's transcribed voice notes; empty until there are enough."""
    try:
        notes = storage.get_user_voice_notes(user_id)
        return await InsightService().analyze_voice_notes(notes)

    except InsightError as e:
        if e.status_code == 400:
            return []
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to analyze voice notes: {str(e)}")


@router.post("/future-me-advice", response_model=FutureMeAdvice)
async def future_me_advice(user_id: CurrentUserId, storage: StorageDep) -> FutureMeAdvice:
    """Advice from the user's future self, spoken in their active cloned voice."""
    clone = storage.get_active_voice_clone(user_id)
    if clone is None:
        raise HTTPException(
            status_code=400, detail="No active voice clone. Create a voice clone first."
        )

    try:
        notes = storage.get_user_voice_notes(user_id)
        text = await InsightService().generate_future_me_advice(notes)
        audio = await ElevenLabsService().generate_speech(text, clone.voice_id)

        encoded = base64.b64encode(audio).decode("ascii")
        return FutureMeAdvice(
            text=text,
            audio_base64=encoded,
            audio_url=f"data:audio/mpeg;base64,{encoded}",
            voice_id=clone.voice_id,
        )

    except ElevenLabsError as e:
        status_code = 503 if e.status_code == 503 else 502
        raise HTTPException(status_code=status_code, detail=f"Failed to generate speech: {e.body}")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to generate advice: {str(e)}")


@router.get("/{note_id}/audio")
async def get_audio(note_id: int, user_id: CurrentUserId, storage: StorageDep) -> FileResponse:
    """Stream the audio file of a voice note."""
    note = storage.get_voice_note(note_id, user_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Voice note not found")

    path = _audio_path(note)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Audio file not found")
    return FileResponse(path)


@router.patch("/{note_id}", response_model=VoiceNote)
async def update_voice_note(
    note_id: int,
    request: VoiceNoteUpdate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> VoiceNote:
    """Edit title, transcription, type, mood or tags of a voice note."""
    try:
        note = storage.update_voice_note(note_id, user_id, request.model_dump(exclude_unset=True))
        if note is None:
            raise HTTPException(status_code=404, detail="Voice note not found")
        return note

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update voice note: {str(e)}")


@router.delete("/{note_id}")
async def delete_voice_note(note_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Delete a voice note and its audio file."""
    try:
        note = storage.get_voice_note(note_id, user_id)
        if note is None or not storage.delete_voice_note(note_id, user_id):
            raise HTTPException(status_code=404, detail="Voice note not found")

        _audio_path(note).unlink(missing_ok=True)
        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete voice note: {str(e)}")


@router.post("/{note_id}/transcribe", response_model=VoiceNote)
async def transcribe_voice_note(
    note_id: int, user_id: CurrentUserId, storage: StorageDep
) -> VoiceNote:
    """Transcribe the recording and store the text on the note."""
    note = storage.get_voice_note(note_id, user_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Voice note not found")

    path = _audio_path(note)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Audio file not found")

    try:
        text = await InsightService().transcribe_audio(path)
        return storage.update_voice_note(note_id, user_id, {"transcription": text})

    except InsightError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to transcribe voice note: {str(e)}")


@router.post("/{note_id}/convert-to-journal")
async def convert_to_journal(note_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """
    Turn a voice note into a journal entry.

    The entry's content is the transcription, or the title when the note
    was never transcribed. A note can only be converted once.
    """
    note = storage.get_voice_note(note_id, user_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Voice note not found")
    if note.is_converted:
        raise HTTPException(status_code=400, detail="Voice note has already been converted")

    content = note.transcription or note.title
    if not content:
        raise HTTPException(status_code=400, detail="Voice note has no content to convert")

    try:
        entry = storage.create_journal_entry(
            user_id,
            JournalEntryCreate(
                title=note.title,
                content=content,
                mood=note.mood if note.mood in get_args(MoodType) else None,
                tags=note.tags,
            ),
        )
        updated = storage.update_voice_note(
            note_id, user_id, {"is_converted": True, "journal_entry_id": entry.id}
        )
        logger.info("Converted voice note %s into journal entry %s", note_id, entry.id)

        return {"journalEntry": entry, "voiceNote": updated}

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to convert voice note: {str(e)}")
