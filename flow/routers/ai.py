"""
FlowAI endpoints: journal insights and daily reflections.
"""

import logging

from fastapi import APIRouter, HTTPException

from flow.core.auth import CurrentUserId
from flow.models.schemas import JournalInsights
from flow.services import InsightError, InsightService
from flow.storage import StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.get("/insights")
async def get_insights(user_id: CurrentUserId, storage: StorageDep) -> dict:
    """The most recently generated insights, or an empty list."""
    try:
        latest = storage.get_latest_journal_insights(user_id)
        if latest is None:
            return {"insights": [], "entryCount": 0, "generatedAt": None}
        return {
            "insights": latest.insights,
            "entryCount": latest.entry_count,
            "generatedAt": latest.created_at,
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch insights: {str(e)}")


@router.post("/generate-insights", response_model=JournalInsights)
async def generate_insights(user_id: CurrentUserId, storage: StorageDep) -> JournalInsights:
    """
    Analyze the user's journal and store the resulting insights.

    Needs at least three journal entries.
    """
    try:
        entries = storage.get_user_journal_entries(user_id)
        insights = await InsightService().analyze_journal_entries(entries)
        return storage.save_journal_insights(user_id, insights, len(entries))

    except InsightError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        logger.exception("Insight generation failed for %s", user_id)
        raise HTTPException(status_code=500, detail=f"Failed to generate insights: {str(e)}")


@router.get("/daily-reflection")
async def daily_reflection(user_id: CurrentUserId, storage: StorageDep) -> dict[str, str]:
    """A short reflection over the user's recent journal entries."""
    try:
        entries = storage.get_user_journal_entries(user_id)
        reflection = await InsightService().generate_daily_reflection(entries)
        return {"reflection": reflection}

    except InsightError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to generate reflection: {str(e)}")
