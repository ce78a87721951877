"""Service layer for external integrations."""

from .elevenlabs_service import ElevenLabsError, ElevenLabsService
from .insight_service import InsightError, InsightService
from .stripe_service import StripeService

__all__ = [
    "ElevenLabsError",
    "ElevenLabsService",
    "InsightError",
    "InsightService",
    "StripeService",
]
