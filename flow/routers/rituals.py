"""
Reset ritual endpoints.
"""

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import (
    ResetCompletion,
    ResetCompletionCreate,
    ResetHistoryItem,
    ResetRitual,
    ResetRitualCreate,
)
from flow.storage import StorageDep, utcnow

router = APIRouter(prefix="/reset-rituals", tags=["reset-rituals"])


@router.post("", response_model=ResetRitual)
async def create_ritual(
    request: ResetRitualCreate, user_id: CurrentUserId, storage: StorageDep
) -> ResetRitual:
    """Add a reset ritual."""
    try:
        return storage.create_reset_ritual(user_id, request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create reset ritual: {str(e)}")


@router.get("", response_model=list[ResetRitual])
async def list_rituals(user_id: CurrentUserId, storage: StorageDep) -> list[ResetRitual]:
    """The user's reset rituals."""
    try:
        return storage.get_user_reset_rituals(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch reset rituals: {str(e)}")


@router.get("/history", response_model=list[ResetHistoryItem])
async def ritual_history(user_id: CurrentUserId, storage: StorageDep) -> list[ResetHistoryItem]:
    """Completed rituals, newest first, each with its ritual."""
    try:
        return storage.get_reset_history(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch ritual history: {str(e)}")


@router.delete("/{ritual_id}")
async def delete_ritual(ritual_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Delete a ritual and its completion history."""
    if not storage.delete_reset_ritual(ritual_id, user_id):
        raise HTTPException(status_code=404, detail="Reset ritual not found")
    return {"success": True}


@router.post("/{ritual_id}/complete", response_model=ResetCompletion)
async def complete_ritual(
    ritual_id: int,
    user_id: CurrentUserId,
    storage: StorageDep,
    request: ResetCompletionCreate | None = None,
) -> ResetCompletion:
    """Record that the user just completed a ritual."""
    try:
        if storage.get_reset_ritual(ritual_id, user_id) is None:
            raise HTTPException(status_code=404, detail="Reset ritual not found")

        return storage.complete_reset_ritual(
            ritual_id, user_id, request or ResetCompletionCreate(), utcnow()
        )

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to complete reset ritual: {str(e)}")
