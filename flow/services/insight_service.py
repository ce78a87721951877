"""
OpenAI service for journal insights, reflections and transcription.
"""

import json
import logging
from pathlib import Path

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from flow.core.config import settings
from flow.models.schemas import AIInsight, JournalEntry, VoiceNote

logger = logging.getLogger(__name__)

MIN_ENTRIES_FOR_INSIGHTS = 3
REFLECTION_WINDOW = 7

NO_ENTRIES_REFLECTION = (
    "Start writing journal entries to receive personalized daily reflections from FlowAI."
)
DEFAULT_REFLECTION = (
    "Take a moment today to reflect on your journey and appreciate your progress."
)
FALLBACK_FUTURE_ME_ADVICE = (
    "Based on your recent voice entries, I notice you've been focusing a lot on "
    "productivity. As your future self, I'd suggest taking some time for reflection "
    "and ensuring you're not burning out. Remember to celebrate small wins and "
    "maintain work-life balance."
)

INSIGHT_SYSTEM_PROMPT = (
    "You are FlowAI, a productivity and wellness coach. "
    "Provide insights as valid JSON only, no additional text."
)


class InsightError(Exception):
    """Raised when insights cannot be produced."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class InsightService:
    """Service for language-model features backed by OpenAI."""

    def __init__(self) -> None:
        """Initialize OpenAI client when an API key is configured."""
        self.client = (
            AsyncOpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else None
        )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise InsightError("AI insights are not configured", status_code=503)
        return self.client

    async def analyze_journal_entries(self, entries: list[JournalEntry]) -> list[AIInsight]:
        """
        Produce 3-5 categorized insights from a user's journal.

        Raises:
            InsightError: 400 with fewer than three entries, 503 when OpenAI
                is not configured, 500 when the model call fails.
        """
        if len(entries) < MIN_ENTRIES_FOR_INSIGHTS:
            raise InsightError(
                "Need at least 3 journal entries for meaningful analysis", status_code=400
            )

        journal_data = [
            {
                "date": entry.created_at.isoformat(),
                "title": entry.title or "Untitled",
                "content": entry.content,
                "mood": entry.mood or "neutral",
                "tags": entry.tags,
            }
            for entry in entries
        ]
        return await self._generate_insights(self._build_journal_prompt(journal_data))

    async def analyze_voice_notes(self, notes: list[VoiceNote]) -> list[AIInsight]:
        """Insights over the transcribed voice notes of a user."""
        transcribed = [note for note in notes if note.transcription]
        if len(transcribed) < MIN_ENTRIES_FOR_INSIGHTS:
            raise InsightError(
                "Need at least 3 transcribed voice notes for meaningful analysis",
                status_code=400,
            )

        note_data = [
            {
                "date": note.created_at.isoformat(),
                "title": note.title or "Untitled",
                "transcription": note.transcription,
                "type": note.note_type,
                "mood": note.mood or "neutral",
            }
            for note in transcribed
        ]
        return await self._generate_insights(self._build_journal_prompt(note_data, source="voice notes"))

    async def generate_daily_reflection(self, entries: list[JournalEntry]) -> str:
        """Short encouraging reflection over the most recent entries."""
        recent = sorted(entries, key=lambda e: e.created_at)[-REFLECTION_WINDOW:]
        if not recent:
            return NO_ENTRIES_REFLECTION

        client = self._require_client()
        data = [
            {
                "date": e.created_at.isoformat(),
                "content": e.content,
                "mood": e.mood,
                "tags": e.tags,
            }
            for e in recent
        ]
        prompt = f"""Based on these recent journal entries, provide a brief, encouraging daily reflection (max 200 words):

{json.dumps(data, indent=2)}

Provide a supportive, insightful reflection that:
1. Acknowledges their recent experiences
2. Highlights positive patterns or growth
3. Offers gentle encouragement for challenges
4. Suggests a small, actionable step for today

Write in a warm, supportive tone as their personal wellness coach."""

        try:
            response = await client.chat.completions.create(
                model=settings.openai_model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are FlowAI, a supportive wellness coach providing daily reflections.",
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=0.8,
                max_tokens=300,
            )
        except OpenAIError as e:
            logger.error("Daily reflection failed: %s", e)
            raise InsightError("Failed to generate daily reflection") from e

        return response.choices[0].message.content or DEFAULT_REFLECTION

    async def generate_future_me_advice(self, notes: list[VoiceNote]) -> str:
        """
        Advice from the user's future self, grounded in their voice notes.

        Falls back to a fixed message when OpenAI is unavailable or there is
        nothing transcribed to work from.
        """
        transcripts = [n.transcription for n in notes if n.transcription][:10]
        if self.client is None or not transcripts:
            return FALLBACK_FUTURE_ME_ADVICE

        prompt = (
            "You are the user's future self, one year from now. Using these recent voice notes, "
            "give warm, specific advice in under 80 words, spoken in the first person:\n\n"
            + "\n".join(f"- {t}" for t in transcripts)
        )
        try:
            response = await self.client.chat.completions.create(
                model=settings.openai_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.8,
                max_tokens=200,
            )
        except OpenAIError as e:
            logger.warning("Future-me advice generation failed, using fallback: %s", e)
            return FALLBACK_FUTURE_ME_ADVICE

        return (response.choices[0].message.content or "").strip() or FALLBACK_FUTURE_ME_ADVICE

    async def transcribe_audio(self, path: Path) -> str:
        """Transcribe an audio file with Whisper."""
        client = self._require_client()
        try:
            with open(path, "rb") as audio:
                result = await client.audio.transcriptions.create(
                    model=settings.openai_transcription_model,
                    file=audio,
                )
        except OpenAIError as e:
            logger.error("Transcription failed for %s: %s", path.name, e)
            raise InsightError("Failed to transcribe audio") from e
        return result.text.strip()

    async def _generate_insights(self, prompt: str) -> list[AIInsight]:
        client = self._require_client()
        try:
            response = await client.chat.completions.create(
                model=settings.openai_model,
                messages=[
                    {"role": "system", "content": INSIGHT_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.7,
                max_tokens=2000,
            )
            result = json.loads(response.choices[0].message.content or "{}")
            return [AIInsight.model_validate(item) for item in result.get("insights", [])]
        except (OpenAIError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Insight generation failed: %s", e)
            raise InsightError(f"Failed to analyze entries: {str(e)}") from e

    def _build_journal_prompt(self, data: list[dict], source: str = "journal entries") -> str:
        """Build the insight prompt for a list of entries."""
        return f"""You are FlowAI, an expert productivity and wellness coach analyzing {source} to provide personalized insights.

Analyze the following {source} and provide 3-5 actionable insights in JSON format:

{json.dumps(data, indent=2)}

Please provide insights in these categories:
- mood: Emotional patterns and mental wellness
- productivity: Work habits and efficiency patterns
- growth: Personal development opportunities
- patterns: Behavioral trends and recurring themes

For each insight, provide:
- category: One of the four categories above
- title: A clear, engaging title (max 50 characters)
- insight: A detailed observation about their patterns (max 150 characters)
- recommendation: Specific, actionable advice (max 150 characters)
- confidence: A decimal between 0.7 and 1.0 representing confidence in the insight

Respond with JSON in this exact format:
{{
  "insights": [
    {{
      "category": "mood",
      "title": "Example Title",
      "insight": "Your observation here",
      "recommendation": "Specific action they can take",
      "confidence": 0.85
    }}
  ]
}}"""
