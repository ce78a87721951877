"""
User preference endpoints.
"""

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import UserPreferences, UserPreferencesUpdate
from flow.storage import StorageDep

router = APIRouter(prefix="/preferences", tags=["preferences"])


@router.get("", response_model=UserPreferences)
async def get_preferences(user_id: CurrentUserId, storage: StorageDep) -> UserPreferences:
    """Timer and notification preferences, defaults on first access."""
    try:
        return storage.get_user_preferences(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch preferences: {str(e)}")


@router.patch("", response_model=UserPreferences)
async def update_preferences(
    request: UserPreferencesUpdate, user_id: CurrentUserId, storage: StorageDep
) -> UserPreferences:
    """Change some preferences; omitted fields keep their value."""
    try:
        return storage.update_user_preferences(user_id, request.model_dump(exclude_unset=True))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update preferences: {str(e)}")
