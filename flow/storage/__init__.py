"""Persistence layer."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from flow.core.config import Settings, settings

from .base import Storage, day_bounds, utcnow
from .database import DatabaseStorage
from .memory import MemoryStorage

logger = logging.getLogger(__name__)


def build_storage(config: Settings) -> Storage:
    """Create the storage backend selected by ``config.storage_backend``."""
    if config.storage_backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    logger.info("Using database storage")
    return DatabaseStorage(config.database_url)


@lru_cache
def get_storage() -> Storage:
    """FastAPI dependency returning the process-wide storage instance."""
    return build_storage(settings)


# Type alias for cleaner endpoint signatures
StorageDep = Annotated[Storage, Depends(get_storage)]


__all__ = [
    "Storage",
    "MemoryStorage",
    "DatabaseStorage",
    "build_storage",
    "get_storage",
    "StorageDep",
    "day_bounds",
    "utcnow",
]
