"""
Voice clone endpoints (ElevenLabs instant voice cloning).
"""

import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from flow.core.auth import CurrentUserId
from flow.models.schemas import VoiceClone
from flow.services import ElevenLabsError, ElevenLabsService
from flow.storage import StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/voice-clones", tags=["voice-clones"])


def _elevenlabs_http_error(e: ElevenLabsError, action: str) -> HTTPException:
    status_code = 503 if e.status_code == 503 else 502
    return HTTPException(status_code=status_code, detail=f"Failed to {action}: {e.body}")


async def _discard_remote_voice(service: ElevenLabsService, voice_id: str) -> None:
    """Remove a cloned voice that could not be saved locally."""
    try:
        await service.delete_voice(voice_id)
    except ElevenLabsError as e:
        logger.warning("Could not delete orphaned ElevenLabs voice %s: %s", voice_id, e)


@router.get("", response_model=list[VoiceClone])
async def list_voice_clones(user_id: CurrentUserId, storage: StorageDep) -> list[VoiceClone]:
    """Voice clones owned by the user."""
    try:
        return storage.get_user_voice_clones(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch voice clones: {str(e)}")


@router.post("", response_model=VoiceClone)
async def create_voice_clone(
    user_id: CurrentUserId,
    storage: StorageDep,
    name: str = Form(..., min_length=1),
    description: str | None = Form(None),
    samples: list[UploadFile] = File(...),
) -> VoiceClone:
    """
    Clone the user's voice from audio samples.

    The new clone becomes the user's only active clone.
    """
    if not samples:
        raise HTTPException(status_code=400, detail="At least one audio sample is required")
    for sample in samples:
        if not (sample.content_type or "").startswith("audio/"):
            raise HTTPException(status_code=400, detail="Only audio files are allowed")

    try:
        files = [(await sample.read(), sample.content_type) for sample in samples]
        service = ElevenLabsService()
        voice = await service.clone_voice(name, files, description=description)

        try:
            clone = storage.create_voice_clone(
                user_id,
                voice_id=voice["voice_id"],
                voice_name=name,
                sample_count=len(files),
            )
        except Exception:
            await _discard_remote_voice(service, voice["voice_id"])
            raise

        logger.info("Created voice clone %s for %s", clone.voice_id, user_id)
        return storage.activate_voice_clone(clone.id, user_id)

    except ElevenLabsError as e:
        raise _elevenlabs_http_error(e, "clone voice")
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create voice clone: {str(e)}")


@router.patch("/{clone_id}/activate", response_model=VoiceClone)
async def activate_voice_clone(
    clone_id: int, user_id: CurrentUserId, storage: StorageDep
) -> VoiceClone:
    """Use this clone for future-me advice."""
    try:
        clone = storage.activate_voice_clone(clone_id, user_id)
        if clone is None:
            raise HTTPException(status_code=404, detail="Voice clone not found")
        return clone

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to activate voice clone: {str(e)}")


@router.delete("/{clone_id}")
async def delete_voice_clone(clone_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Delete a clone locally and at ElevenLabs."""
    clone = storage.get_voice_clone(clone_id, user_id)
    if clone is None:
        raise HTTPException(status_code=404, detail="Voice clone not found")

    try:
        service = ElevenLabsService()
        if service.is_configured:
            await service.delete_voice(clone.voice_id)
    except ElevenLabsError as e:
        if e.status_code != 404:
            raise _elevenlabs_http_error(e, "delete voice")
        logger.warning("Voice %s already gone at ElevenLabs", clone.voice_id)

    storage.delete_voice_clone(clone_id, user_id)
    return {"success": True}
