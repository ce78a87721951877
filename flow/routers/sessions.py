"""
Focus session endpoints.
"""

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import FocusSession, FocusSessionCreate, FocusSessionUpdate
from flow.storage import StorageDep

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=FocusSession)
async def create_session(
    request: FocusSessionCreate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> FocusSession:
    """Start (or log) a focus session."""
    try:
        return storage.create_focus_session(user_id, request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create session: {str(e)}")


@router.patch("/{session_id}", response_model=FocusSession)
async def update_session(
    session_id: int,
    request: FocusSessionUpdate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> FocusSession:
    """Update a focus session, typically on pause or completion."""
    try:
        session = storage.update_focus_session(
            session_id, user_id, request.model_dump(exclude_unset=True)
        )
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update session: {str(e)}")


@router.get("", response_model=list[FocusSession])
async def list_sessions(user_id: CurrentUserId, storage: StorageDep) -> list[FocusSession]:
    """All focus sessions of the user, newest first."""
    try:
        return storage.get_user_sessions(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch sessions: {str(e)}")
