"""
Journal endpoints.
"""

from fastapi import APIRouter, HTTPException, Query

from flow.core.auth import CurrentUserId
from flow.models.schemas import JournalEntry, JournalEntryCreate, JournalEntryUpdate, JournalTrends
from flow.services.analytics import get_journal_trends
from flow.storage import StorageDep, utcnow

router = APIRouter(prefix="/journal", tags=["journal"])


@router.post("", response_model=JournalEntry)
async def create_entry(
    request: JournalEntryCreate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> JournalEntry:
    """Write a journal entry."""
    try:
        return storage.create_journal_entry(user_id, request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create journal entry: {str(e)}")


@router.get("", response_model=list[JournalEntry])
async def list_entries(user_id: CurrentUserId, storage: StorageDep) -> list[JournalEntry]:
    """All journal entries of the user, newest first."""
    try:
        return storage.get_user_journal_entries(user_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch journal entries: {str(e)}")


@router.get("/trends", response_model=JournalTrends)
async def journal_trends(
    user_id: CurrentUserId,
    storage: StorageDep,
    days: int = Query(default=30, ge=1, le=365),
) -> JournalTrends:
    """Daily mood trend and mood distribution over the last ``days`` days."""
    try:
        entries = storage.get_user_journal_entries(user_id)
        return get_journal_trends(entries, utcnow().date(), days=days)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to compute journal trends: {str(e)}")


@router.patch("/{entry_id}", response_model=JournalEntry)
async def update_entry(
    entry_id: int,
    request: JournalEntryUpdate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> JournalEntry:
    """Edit a journal entry."""
    try:
        entry = storage.update_journal_entry(
            entry_id, user_id, request.model_dump(exclude_unset=True)
        )
        if entry is None:
            raise HTTPException(status_code=404, detail="Journal entry not found")
        return entry

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update journal entry: {str(e)}")


@router.delete("/{entry_id}")
async def delete_entry(entry_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Delete a journal entry."""
    try:
        if not storage.delete_journal_entry(entry_id, user_id):
            raise HTTPException(status_code=404, detail="Journal entry not found")
        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete journal entry: {str(e)}")
