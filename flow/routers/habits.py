"""
Habit endpoints: habits, daily check-ins, struggles and breaks.
"""

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import (
    Habit,
    HabitBreak,
    HabitBreakCreate,
    HabitCreate,
    HabitEntry,
    HabitEntryCreate,
    HabitEntryWithHabit,
    HabitStruggle,
    HabitStruggleCreate,
    HabitUpdate,
    HabitWithProgress,
)
from flow.services.habit_progress import calculate_habit_progress
from flow.storage import Storage, StorageDep, utcnow

router = APIRouter(prefix="/habits", tags=["habits"])


def _require_habit(storage: Storage, habit_id: int, user_id: str) -> Habit:
    habit = storage.get_habit(habit_id, user_id)
    if habit is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit


def _record_entry(storage: Storage, habit_id: int, user_id: str, data: HabitEntryCreate) -> HabitEntry:
    entry = storage.record_habit_entry(habit_id, user_id, data, utcnow().date())
    if entry is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return entry


@router.post("", response_model=Habit)
async def create_habit(request: HabitCreate, user_id: CurrentUserId, storage: StorageDep) -> Habit:
    """Start tracking a habit."""
    try:
        return storage.create_habit(user_id, request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create habit: {str(e)}")


@router.get("", response_model=list[HabitWithProgress])
async def list_habits(user_id: CurrentUserId, storage: StorageDep) -> list[HabitWithProgress]:
    """
    Active habits with their progress.

    ``progress`` reads like ``"3/30 days"``; ``completedToday`` is true when
    today's check-in exists and is completed. ``currentStreak`` is counted
    from the entries at read time, so a missed day shows up without a new
    check-in.
    """
    try:
        today = utcnow().date()
        done_today = {
            entry.habit_id
            for entry in storage.get_habit_entries_for_day(user_id, today)
            if entry.completed
        }

        results = []
        for habit in storage.get_user_habits(user_id):
            progress = calculate_habit_progress(habit, today)
            streak = storage.habit_streak(habit.id, user_id, today)
            results.append(
                HabitWithProgress(
                    **habit.model_dump(exclude={"current_streak"}),
                    current_streak=streak,
                    progress=progress.progress_text,
                    is_completed=progress.is_completed,
                    completed_today=habit.id in done_today,
                )
            )
        return results

    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch habits: {str(e)}")


@router.get("/today", response_model=list[HabitEntry])
async def todays_entries(user_id: CurrentUserId, storage: StorageDep) -> list[HabitEntry]:
    """Check-ins recorded for today (UTC)."""
    try:
        return storage.get_habit_entries_for_day(user_id, utcnow().date())
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch today's entries: {str(e)}")


@router.post("/entries", response_model=HabitEntry)
async def create_entry_for_habit(
    request: HabitEntryWithHabit,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> HabitEntry:
    """Check in a habit named in the request body."""
    try:
        return _record_entry(storage, request.habit_id, user_id, request)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create habit entry: {str(e)}")


@router.delete("/struggles/{struggle_id}")
async def delete_struggle(struggle_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Remove a logged struggle."""
    if not storage.delete_habit_struggle(struggle_id, user_id):
        raise HTTPException(status_code=404, detail="Struggle not found")
    return {"success": True}


@router.patch("/{habit_id}", response_model=Habit)
async def update_habit(
    habit_id: int,
    request: HabitUpdate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> Habit:
    """Edit a habit."""
    try:
        habit = storage.update_habit(habit_id, user_id, request.model_dump(exclude_unset=True))
        if habit is None:
            raise HTTPException(status_code=404, detail="Habit not found")
        return habit

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update habit: {str(e)}")


@router.delete("/{habit_id}")
async def delete_habit(habit_id: int, user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Delete a habit with all of its entries, struggles and breaks."""
    try:
        if not storage.delete_habit(habit_id, user_id):
            raise HTTPException(status_code=404, detail="Habit not found")
        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete habit: {str(e)}")


@router.post("/{habit_id}/entries", response_model=HabitEntry)
async def create_entry(
    habit_id: int,
    request: HabitEntryCreate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> HabitEntry:
    """Check in a habit; one entry per day, a second post overwrites it."""
    try:
        return _record_entry(storage, habit_id, user_id, request)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create habit entry: {str(e)}")


@router.get("/{habit_id}/entries", response_model=list[HabitEntry])
async def list_entries(habit_id: int, user_id: CurrentUserId, storage: StorageDep) -> list[HabitEntry]:
    """Check-ins of one habit, newest first."""
    _require_habit(storage, habit_id, user_id)
    return storage.get_habit_entries(habit_id, user_id)


@router.post("/{habit_id}/struggles", response_model=HabitStruggle)
async def create_struggle(
    habit_id: int,
    request: HabitStruggleCreate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> HabitStruggle:
    """Log a hard moment for a habit."""
    _require_habit(storage, habit_id, user_id)
    try:
        return storage.create_habit_struggle(habit_id, user_id, request)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to log struggle: {str(e)}")


@router.get("/{habit_id}/struggles", response_model=list[HabitStruggle])
async def list_struggles(
    habit_id: int, user_id: CurrentUserId, storage: StorageDep
) -> list[HabitStruggle]:
    """Struggles logged for a habit, newest first."""
    _require_habit(storage, habit_id, user_id)
    return storage.get_habit_struggles(habit_id, user_id)


@router.post("/{habit_id}/breaks", response_model=HabitBreak)
async def break_habit(
    habit_id: int,
    request: HabitBreakCreate,
    user_id: CurrentUserId,
    storage: StorageDep,
) -> HabitBreak:
    """Record a broken streak and reset the habit's current streak."""
    try:
        habit_break = storage.break_habit(habit_id, user_id, request.reason)
        if habit_break is None:
            raise HTTPException(status_code=404, detail="Habit not found")
        return habit_break

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to record break: {str(e)}")


@router.get("/{habit_id}/breaks", response_model=list[HabitBreak])
async def list_breaks(habit_id: int, user_id: CurrentUserId, storage: StorageDep) -> list[HabitBreak]:
    """Breaks recorded for a habit, newest first."""
    _require_habit(storage, habit_id, user_id)
    return storage.get_habit_breaks(habit_id, user_id)
