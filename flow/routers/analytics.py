"""
Analytics endpoints.
"""

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import DashboardAnalytics, HabitAnalytics
from flow.services.analytics import get_dashboard_analytics, get_habit_analytics
from flow.storage import StorageDep, utcnow

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard", response_model=DashboardAnalytics)
async def dashboard(user_id: CurrentUserId, storage: StorageDep) -> DashboardAnalytics:
    """
    Get today's dashboard summary.

    Returns:
    - Today's sessions, focus time, journal entries and completed habits
    - Focus streak in days
    - Three most recent journal entries
    - Focus hours for each of the last seven days
    """
    try:
        return get_dashboard_analytics(storage, user_id, utcnow())
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch dashboard analytics: {str(e)}")


@router.get("/habits", response_model=HabitAnalytics)
async def habits(user_id: CurrentUserId, storage: StorageDep) -> HabitAnalytics:
    """Per-habit success rates over the last 30 days."""
    try:
        return get_habit_analytics(storage, user_id, utcnow())
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch habit analytics: {str(e)}")
