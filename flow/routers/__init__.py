"""API routers."""

from .ai import router as ai_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .billing import router as billing_router
from .habits import router as habits_router
from .health import router as health_router
from .journal import router as journal_router
from .preferences import router as preferences_router
from .rituals import router as rituals_router
from .sessions import router as sessions_router
from .voice_clones import router as voice_clones_router
from .voice_notes import router as voice_notes_router

__all__ = [
    "ai_router",
    "analytics_router",
    "auth_router",
    "billing_router",
    "habits_router",
    "health_router",
    "journal_router",
    "preferences_router",
    "rituals_router",
    "sessions_router",
    "voice_clones_router",
    "voice_notes_router",
]
