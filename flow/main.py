"""
Flow Backend API

Productivity companion: focus sessions, journaling, voice notes, habits,
reset rituals and FlowAI insights.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flow.core.config import settings
from flow.routers import (
    ai_router,
    analytics_router,
    auth_router,
    billing_router,
    habits_router,
    health_router,
    journal_router,
    preferences_router,
    rituals_router,
    sessions_router,
    voice_clones_router,
    voice_notes_router,
)
from flow.storage import get_storage, utcnow

# Set up logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    # Startup
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("API prefix: %s", settings.api_prefix)
    logger.info("Storage backend: %s", settings.storage_backend)

    storage = app.dependency_overrides.get(get_storage, get_storage)()
    purged = storage.purge_expired_sessions(utcnow())
    if purged:
        logger.info("Purged %d expired sessions", purged)

    yield

    # Shutdown
    logger.info("Shutting down %s", settings.app_name)


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Focus sessions, journaling, voice notes, habits and AI insights",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(health_router)
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(sessions_router, prefix=settings.api_prefix)
app.include_router(journal_router, prefix=settings.api_prefix)
app.include_router(ai_router, prefix=settings.api_prefix)
app.include_router(voice_notes_router, prefix=f"{settings.api_prefix}/voice-notes")
app.include_router(voice_notes_router, prefix=f"{settings.api_prefix}/voice")
app.include_router(voice_clones_router, prefix=settings.api_prefix)
app.include_router(habits_router, prefix=settings.api_prefix)
app.include_router(rituals_router, prefix=settings.api_prefix)
app.include_router(preferences_router, prefix=settings.api_prefix)
app.include_router(analytics_router, prefix=settings.api_prefix)
app.include_router(billing_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
