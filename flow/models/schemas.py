"""
Pydantic schemas for request/response validation.

Every model serializes with camelCase keys (``userId``, ``startTime``), which
is what the web client reads, and accepts either camelCase or snake_case on
input.
"""

from datetime import date, datetime, timezone
from typing import Annotated, Any, ClassVar, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Normalize aware datetimes to naive UTC, the form stored everywhere."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


NaiveUTCDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


def parse_day(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` as well as a full ISO timestamp for day fields."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


class CamelModel(BaseModel):
    """Base model for API payloads and storage records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PartialUpdate(CamelModel):
    """
    Base for PATCH bodies.

    Omitted fields are left alone. An explicit ``null`` clears a field, which
    is only allowed for the fields not listed in ``required_fields``.
    """

    required_fields: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def reject_null_required(self):
        cleared = sorted(
            name for name in self.required_fields
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


MoodType = Literal["great", "excellent", "good", "neutral", "bad", "terrible"]
SessionType = Literal["deep_work", "study", "reading", "writing", "creative"]
WorkflowType = Literal["standard", "pomodoro", "ultradian", "flowtime"]
DurationType = Literal["days", "weeks", "months"]
NoteType = Literal["memo", "journal_draft", "thought", "future_advice"]
InsightCategory = Literal["mood", "productivity", "growth", "patterns"]


# ============================================================================
# Users & Sessions
# ============================================================================


class User(CamelModel):
    """An application user."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    role: str = "user"
    password_hash: str | None = Field(default=None, exclude=True)

    # Stripe billing fields
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    subscription_status: str = "free"
    subscription_plan: str = "free"
    subscription_period_end: datetime | None = None

    created_at: datetime
    updated_at: datetime


class UserUpsert(CamelModel):
    """User fields written by signup and the demo login."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None
    role: str = "user"
    password_hash: str | None = None


class StoredSession(BaseModel):
    """Server-side session record referenced by the session cookie."""

    sid: str
    sess: dict[str, Any]
    expire: datetime


class SignupRequest(CamelModel):
    """Request to create an account."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class LoginRequest(CamelModel):
    """Email/password login. ``username`` is accepted for the demo account."""

    email: str | None = None
    username: str | None = None
    password: str


# ============================================================================
# Focus Sessions
# ============================================================================


class FocusSessionCreate(CamelModel):
    """Start (or log) a focus session."""

    start_time: NaiveUTCDatetime
    end_time: NaiveUTCDatetime | None = None
    planned_duration: int | None = Field(None, ge=0, description="Minutes")
    actual_duration: int | None = Field(None, ge=0, description="Minutes")
    type: SessionType = "deep_work"
    workflow: WorkflowType = "standard"
    completed: bool = False
    mood: str | None = None
    setbacks: str | None = None
    notes: str | None = None
    productivity: int | None = Field(None, ge=1, le=10)


class FocusSessionUpdate(PartialUpdate):
    """Partial update sent on pause/completion."""

    required_fields = frozenset({"type", "workflow", "completed"})

    end_time: NaiveUTCDatetime | None = None
    planned_duration: int | None = Field(None, ge=0)
    actual_duration: int | None = Field(None, ge=0)
    type: SessionType | None = None
    workflow: WorkflowType | None = None
    completed: bool | None = None
    mood: str | None = None
    setbacks: str | None = None
    notes: str | None = None
    productivity: int | None = Field(None, ge=1, le=10)


class FocusSession(CamelModel):
    """A timed work interval."""

    id: int
    user_id: str
    start_time: datetime
    end_time: datetime | None = None
    planned_duration: int | None = None
    actual_duration: int | None = None
    type: str = "deep_work"
    workflow: str = "standard"
    completed: bool = False
    mood: str | None = None
    setbacks: str | None = None
    notes: str | None = None
    productivity: int | None = None
    created_at: datetime


# ============================================================================
# Journal
# ============================================================================


class JournalEntryCreate(CamelModel):
    """New journal entry."""

    title: str | None = Field(None, max_length=200)
    content: str = Field(..., min_length=1)
    mood: MoodType | None = None
    tags: list[str] = Field(default_factory=list)


class JournalEntryUpdate(PartialUpdate):
    """Partial journal entry update."""

    required_fields = frozenset({"content", "tags"})

    title: str | None = Field(None, max_length=200)
    content: str | None = Field(None, min_length=1)
    mood: MoodType | None = None
    tags: list[str] | None = None


class JournalEntry(CamelModel):
    """A journal entry."""

    id: int
    user_id: str
    title: str | None = None
    content: str
    mood: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class AIInsight(CamelModel):
    """One insight produced by the language model."""

    category: InsightCategory
    title: str
    insight: str
    recommendation: str
    confidence: float = Field(..., ge=0, le=1)


class JournalInsights(CamelModel):
    """The latest batch of journal insights generated for a user."""

    id: int
    user_id: str
    insights: list[AIInsight]
    entry_count: int
    created_at: datetime


# ============================================================================
# Voice Notes & Voice Clones
# ============================================================================


class VoiceNoteCreate(CamelModel):
    """Voice note metadata; the audio itself arrives as a multipart upload."""

    title: str | None = Field(None, max_length=200)
    file_name: str
    duration: int = 0
    transcription: str | None = None
    note_type: NoteType = "memo"
    mood: str | None = None
    tags: list[str] = Field(default_factory=list)


class VoiceNoteUpdate(PartialUpdate):
    """Partial voice note update."""

    required_fields = frozenset({"note_type", "tags"})

    title: str | None = Field(None, max_length=200)
    transcription: str | None = None
    note_type: NoteType | None = None
    mood: str | None = None
    tags: list[str] | None = None


class VoiceNote(CamelModel):
    """A recorded voice note."""

    id: int
    user_id: str
    title: str | None = None
    file_name: str
    duration: int | None = None
    transcription: str | None = None
    note_type: str = "memo"
    mood: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_converted: bool = False
    journal_entry_id: int | None = None
    created_at: datetime
    updated_at: datetime


class VoiceClone(CamelModel):
    """An ElevenLabs synthetic voice profile owned by a user."""

    id: int
    user_id: str
    voice_id: str
    voice_name: str
    is_active: bool = False
    sample_count: int = 0
    created_at: datetime
    updated_at: datetime


class FutureMeAdvice(CamelModel):
    """Advice text plus the spoken version in the user's cloned voice."""

    text: str
    audio_base64: str
    audio_mime_type: str = "audio/mpeg"
    audio_url: str | None = None
    voice_id: str


# ============================================================================
# Habits
# ============================================================================


class HabitCreate(CamelModel):
    """New habit."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    icon: str = "fas fa-check"
    color: str = "#007AFF"
    frequency: Literal["daily", "weekly"] = "daily"
    target_count: int = Field(1, ge=1)
    duration_value: int = Field(30, ge=1)
    duration_type: DurationType = "days"
    goal_meaning: str | None = None
    goal_feeling: str | None = None
    is_active: bool = True


class HabitUpdate(PartialUpdate):
    """Partial habit update."""

    required_fields = frozenset(
        {"name", "icon", "color", "frequency", "target_count", "duration_value", "duration_type", "is_active"}
    )

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    frequency: Literal["daily", "weekly"] | None = None
    target_count: int | None = Field(None, ge=1)
    duration_value: int | None = Field(None, ge=1)
    duration_type: DurationType | None = None
    goal_meaning: str | None = None
    goal_feeling: str | None = None
    is_active: bool | None = None


class Habit(CamelModel):
    """A tracked habit."""

    id: int
    user_id: str
    name: str
    description: str | None = None
    icon: str = "fas fa-check"
    color: str = "#007AFF"
    frequency: str = "daily"
    target_count: int = 1
    duration_value: int = 30
    duration_type: str = "days"
    goal_meaning: str | None = None
    goal_feeling: str | None = None
    is_active: bool = True
    current_streak: int = 0
    best_streak: int = 0
    total_breaks: int = 0
    created_at: datetime


class HabitWithProgress(Habit):
    """Habit as listed to the client, with computed progress."""

    progress: str
    is_completed: bool
    completed_today: bool


class HabitEntryCreate(CamelModel):
    """Daily check-in for a habit. ``date`` defaults to today (UTC)."""

    entry_date: date | None = Field(None, alias="date")
    completed: bool = True
    count: int = Field(1, ge=0)
    notes: str | None = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def accept_timestamps(cls, v: Any) -> Any:
        """Clients may send a full timestamp; only the day matters."""
        return parse_day(v)


class HabitEntryWithHabit(HabitEntryCreate):
    """Habit entry posted to ``/habits/entries`` with the habit in the body."""

    habit_id: int


class HabitEntry(CamelModel):
    """A daily completion record for a habit."""

    id: int
    habit_id: int
    user_id: str
    entry_date: date = Field(alias="date")
    completed: bool = False
    count: int = 0
    notes: str | None = None
    created_at: datetime


class HabitStruggleCreate(CamelModel):
    """A logged hard moment / craving."""

    note: str = Field(..., min_length=1)
    intensity: int = Field(5, ge=1, le=10)
    triggers: str | None = None
    location: str | None = None
    mood: str | None = None


class HabitStruggle(CamelModel):
    """A logged hard moment / craving for a habit."""

    id: int
    habit_id: int
    user_id: str
    note: str
    intensity: int = 5
    triggers: str | None = None
    location: str | None = None
    mood: str | None = None
    created_at: datetime


class HabitBreakCreate(CamelModel):
    """Record that a habit streak was broken."""

    reason: str | None = None


class HabitBreak(CamelModel):
    """A recorded streak break."""

    id: int
    habit_id: int
    user_id: str
    reason: str | None = None
    previous_streak: int = 0
    created_at: datetime


# ============================================================================
# Reset Rituals
# ============================================================================


class ResetRitualCreate(CamelModel):
    """New reset ritual."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    icon: str = "fas fa-spa"
    duration: int | None = Field(None, ge=0, description="Minutes")
    category: Literal["movement", "breathing", "wellness"] = "wellness"
    is_default: bool = False


class ResetRitual(CamelModel):
    """A short self-care activity."""

    id: int
    user_id: str
    name: str
    description: str | None = None
    icon: str = "fas fa-spa"
    duration: int | None = None
    category: str = "wellness"
    is_default: bool = False
    created_at: datetime


class ResetCompletionCreate(CamelModel):
    """Optional context captured when a ritual is completed."""

    trigger: str | None = None
    cause: str | None = None
    notes: str | None = None


class ResetCompletion(CamelModel):
    """One completion of a reset ritual."""

    id: int
    ritual_id: int
    user_id: str
    trigger: str | None = None
    cause: str | None = None
    notes: str | None = None
    completed_at: datetime


class ResetHistoryItem(ResetCompletion):
    """Completion joined with the ritual it belongs to."""

    ritual: ResetRitual | None = None


# ============================================================================
# Preferences
# ============================================================================


class UserPreferencesUpdate(PartialUpdate):
    """Partial preferences update."""

    required_fields = frozenset(
        {"session_duration", "break_duration", "notifications_enabled", "email_notifications", "theme", "timezone"}
    )

    session_duration: int | None = Field(None, ge=1, le=480)
    break_duration: int | None = Field(None, ge=0, le=120)
    notifications_enabled: bool | None = None
    email_notifications: bool | None = None
    theme: Literal["dark", "light", "system"] | None = None
    timezone: str | None = None


class UserPreferences(CamelModel):
    """Per-user timer and notification preferences."""

    id: int
    user_id: str
    session_duration: int = 90
    break_duration: int = 15
    notifications_enabled: bool = True
    email_notifications: bool = True
    theme: str = "dark"
    timezone: str = "UTC"
    created_at: datetime
    updated_at: datetime


# ============================================================================
# Analytics
# ============================================================================


class TodayStats(CamelModel):
    sessions_today: int
    focus_time: str
    journal_entries: int
    habits_completed: int


class RecentJournalEntry(CamelModel):
    id: int
    content: str
    created_at: datetime


class DayProgress(CamelModel):
    day: str
    hours: float


class DashboardAnalytics(CamelModel):
    """Dashboard summary for the current day."""

    today_stats: TodayStats
    streak: int
    goals_completed: int
    total_goals: int
    recent_journal_entries: list[RecentJournalEntry]
    weekly_progress: list[DayProgress]


class HabitSuccess(CamelModel):
    id: int
    name: str
    success_rate: int
    total_entries: int
    completed_entries: int
    color: str


class HabitAnalytics(CamelModel):
    """Per-habit success rates over a trailing window."""

    habits: list[HabitSuccess]
    period: str


class MoodTrendPoint(CamelModel):
    date: str
    mood: float | None
    entry_count: int


class MoodCount(CamelModel):
    mood: str
    count: int


class JournalTrends(CamelModel):
    """Mood trend and distribution derived from journal entries."""

    mood_trend: list[MoodTrendPoint]
    mood_distribution: list[MoodCount]
    average_mood: float | None
    total_entries: int
