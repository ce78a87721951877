"""
Abstract storage interface.

Two implementations exist: ``MemoryStorage`` (dict-backed, for development
and demos) and ``DatabaseStorage`` (SQLAlchemy). Every record accessor is
scoped by the owning user's id; a lookup for another user's record behaves
exactly like a lookup for a missing one.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Any

from flow.models.schemas import (
    AIInsight,
    FocusSession,
    FocusSessionCreate,
    Habit,
    HabitBreak,
    HabitCreate,
    HabitEntry,
    HabitEntryCreate,
    HabitStruggle,
    HabitStruggleCreate,
    JournalEntry,
    JournalEntryCreate,
    JournalInsights,
    ResetCompletion,
    ResetCompletionCreate,
    ResetHistoryItem,
    ResetRitual,
    ResetRitualCreate,
    StoredSession,
    User,
    UserPreferences,
    UserUpsert,
    VoiceClone,
    VoiceNote,
    VoiceNoteCreate,
)
from flow.services.habit_progress import calculate_current_streak


def utcnow() -> datetime:
    """Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` datetime window covering one calendar day."""
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


class Storage(ABC):
    """Persistence operations used by the route handlers."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abstractmethod
    def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def get_user_by_stripe_customer_id(self, customer_id: str) -> User | None: ...

    @abstractmethod
    def upsert_user(self, data: UserUpsert) -> User:
        """Insert a user or refresh the profile fields of an existing one."""

    @abstractmethod
    def update_user(self, user_id: str, fields: dict[str, Any]) -> User | None: ...

    # ------------------------------------------------------------------
    # Server-side sessions
    # ------------------------------------------------------------------

    @abstractmethod
    def create_session(self, sid: str, sess: dict[str, Any], expire: datetime) -> StoredSession: ...

    @abstractmethod
    def get_session(self, sid: str) -> StoredSession | None: ...

    @abstractmethod
    def delete_session(self, sid: str) -> bool: ...

    @abstractmethod
    def purge_expired_sessions(self, now: datetime) -> int:
        """Delete sessions whose expiry is in the past; return how many."""

    # ------------------------------------------------------------------
    # Focus sessions
    # ------------------------------------------------------------------

    @abstractmethod
    def create_focus_session(self, user_id: str, data: FocusSessionCreate) -> FocusSession: ...

    @abstractmethod
    def update_focus_session(
        self, session_id: int, user_id: str, fields: dict[str, Any]
    ) -> FocusSession | None: ...

    @abstractmethod
    def get_user_sessions(self, user_id: str) -> list[FocusSession]:
        """All focus sessions for a user, newest first."""

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    @abstractmethod
    def create_journal_entry(self, user_id: str, data: JournalEntryCreate) -> JournalEntry: ...

    @abstractmethod
    def get_journal_entry(self, entry_id: int, user_id: str) -> JournalEntry | None: ...

    @abstractmethod
    def update_journal_entry(
        self, entry_id: int, user_id: str, fields: dict[str, Any]
    ) -> JournalEntry | None: ...

    @abstractmethod
    def delete_journal_entry(self, entry_id: int, user_id: str) -> bool: ...

    @abstractmethod
    def get_user_journal_entries(self, user_id: str) -> list[JournalEntry]:
        """All journal entries for a user, newest first."""

    @abstractmethod
    def save_journal_insights(
        self, user_id: str, insights: list[AIInsight], entry_count: int
    ) -> JournalInsights: ...

    @abstractmethod
    def get_latest_journal_insights(self, user_id: str) -> JournalInsights | None: ...

    # ------------------------------------------------------------------
    # Voice notes
    # ------------------------------------------------------------------

    @abstractmethod
    def create_voice_note(self, user_id: str, data: VoiceNoteCreate) -> VoiceNote: ...

    @abstractmethod
    def get_voice_note(self, note_id: int, user_id: str) -> VoiceNote | None: ...

    @abstractmethod
    def update_voice_note(
        self, note_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceNote | None: ...

    @abstractmethod
    def delete_voice_note(self, note_id: int, user_id: str) -> bool: ...

    @abstractmethod
    def get_user_voice_notes(self, user_id: str) -> list[VoiceNote]:
        """All voice notes for a user, newest first."""

    # ------------------------------------------------------------------
    # Voice clones
    # ------------------------------------------------------------------

    @abstractmethod
    def create_voice_clone(
        self,
        user_id: str,
        voice_id: str,
        voice_name: str,
        sample_count: int,
        is_active: bool = False,
    ) -> VoiceClone: ...

    @abstractmethod
    def get_voice_clone(self, clone_id: int, user_id: str) -> VoiceClone | None: ...

    @abstractmethod
    def get_user_voice_clones(self, user_id: str) -> list[VoiceClone]: ...

    @abstractmethod
    def update_voice_clone(
        self, clone_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceClone | None: ...

    @abstractmethod
    def delete_voice_clone(self, clone_id: int, user_id: str) -> bool: ...

    def get_active_voice_clone(self, user_id: str) -> VoiceClone | None:
        """The clone currently used for speech synthesis, if any."""
        for clone in self.get_user_voice_clones(user_id):
            if clone.is_active:
                return clone
        return None

    def activate_voice_clone(self, clone_id: int, user_id: str) -> VoiceClone | None:
        """Make one clone active and every other clone of the user inactive."""
        target = self.get_voice_clone(clone_id, user_id)
        if target is None:
            return None
        for clone in self.get_user_voice_clones(user_id):
            if clone.id != clone_id and clone.is_active:
                self.update_voice_clone(clone.id, user_id, {"is_active": False})
        return self.update_voice_clone(clone_id, user_id, {"is_active": True})

    # ------------------------------------------------------------------
    # Habits
    # ------------------------------------------------------------------

    @abstractmethod
    def create_habit(self, user_id: str, data: HabitCreate) -> Habit: ...

    @abstractmethod
    def get_habit(self, habit_id: int, user_id: str) -> Habit | None: ...

    @abstractmethod
    def update_habit(self, habit_id: int, user_id: str, fields: dict[str, Any]) -> Habit | None: ...

    @abstractmethod
    def delete_habit(self, habit_id: int, user_id: str) -> bool:
        """Delete a habit together with its entries, struggles and breaks."""

    @abstractmethod
    def get_user_habits(self, user_id: str, include_inactive: bool = False) -> list[Habit]:
        """Habits for a user, newest first."""

    @abstractmethod
    def upsert_habit_entry(
        self, habit_id: int, user_id: str, entry_date: date, data: HabitEntryCreate
    ) -> HabitEntry:
        """Create the entry for ``entry_date`` or overwrite the existing one."""

    @abstractmethod
    def get_habit_entries(
        self, habit_id: int, user_id: str, since: date | None = None
    ) -> list[HabitEntry]:
        """Entries for one habit, newest date first."""

    @abstractmethod
    def get_habit_entries_for_day(self, user_id: str, day: date) -> list[HabitEntry]: ...

    @abstractmethod
    def create_habit_struggle(
        self, habit_id: int, user_id: str, data: HabitStruggleCreate
    ) -> HabitStruggle: ...

    @abstractmethod
    def get_habit_struggles(self, habit_id: int, user_id: str) -> list[HabitStruggle]: ...

    @abstractmethod
    def delete_habit_struggle(self, struggle_id: int, user_id: str) -> bool: ...

    @abstractmethod
    def create_habit_break(
        self, habit_id: int, user_id: str, reason: str | None, previous_streak: int
    ) -> HabitBreak: ...

    @abstractmethod
    def get_habit_breaks(self, habit_id: int, user_id: str) -> list[HabitBreak]: ...

    def habit_streak(self, habit_id: int, user_id: str, today: date) -> int:
        """Current streak from the stored entries, counting only days after the last break."""
        breaks = self.get_habit_breaks(habit_id, user_id)
        since = breaks[0].created_at.date() if breaks else None
        return calculate_current_streak(self.get_habit_entries(habit_id, user_id), today, since)

    def record_habit_entry(
        self, habit_id: int, user_id: str, data: HabitEntryCreate, today: date
    ) -> HabitEntry | None:
        """
        Store a daily check-in and refresh the habit's streak counters.

        Returns None when the habit does not exist for this user.
        """
        habit = self.get_habit(habit_id, user_id)
        if habit is None:
            return None

        entry = self.upsert_habit_entry(habit_id, user_id, data.entry_date or today, data)

        current_streak = self.habit_streak(habit_id, user_id, today)
        self.update_habit(
            habit_id,
            user_id,
            {
                "current_streak": current_streak,
                "best_streak": max(habit.best_streak, current_streak),
            },
        )
        return entry

    def break_habit(self, habit_id: int, user_id: str, reason: str | None) -> HabitBreak | None:
        """
        Record a broken streak: remember it, reset the counter, count the break.

        Returns None when the habit does not exist for this user.
        """
        habit = self.get_habit(habit_id, user_id)
        if habit is None:
            return None

        previous_streak = self.habit_streak(habit_id, user_id, utcnow().date())
        habit_break = self.create_habit_break(habit_id, user_id, reason, previous_streak)
        self.update_habit(
            habit_id,
            user_id,
            {
                "current_streak": 0,
                "best_streak": max(habit.best_streak, previous_streak),
                "total_breaks": habit.total_breaks + 1,
            },
        )
        return habit_break

    # ------------------------------------------------------------------
    # Reset rituals
    # ------------------------------------------------------------------

    @abstractmethod
    def create_reset_ritual(self, user_id: str, data: ResetRitualCreate) -> ResetRitual: ...

    @abstractmethod
    def get_reset_ritual(self, ritual_id: int, user_id: str) -> ResetRitual | None: ...

    @abstractmethod
    def get_user_reset_rituals(self, user_id: str) -> list[ResetRitual]: ...

    @abstractmethod
    def delete_reset_ritual(self, ritual_id: int, user_id: str) -> bool:
        """Delete a ritual and its completions."""

    @abstractmethod
    def complete_reset_ritual(
        self,
        ritual_id: int,
        user_id: str,
        data: ResetCompletionCreate,
        completed_at: datetime,
    ) -> ResetCompletion: ...

    @abstractmethod
    def get_reset_history(self, user_id: str) -> list[ResetHistoryItem]:
        """Completions joined with their ritual, newest first."""

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    @abstractmethod
    def get_user_preferences(self, user_id: str) -> UserPreferences:
        """Preferences for a user, created with defaults on first access."""

    @abstractmethod
    def update_user_preferences(self, user_id: str, fields: dict[str, Any]) -> UserPreferences: ...

    # ------------------------------------------------------------------
    # Aggregates (dashboard)
    # ------------------------------------------------------------------

    @abstractmethod
    def count_focus_sessions(self, user_id: str, start: datetime, end: datetime) -> int:
        """Sessions started within ``[start, end)``."""

    @abstractmethod
    def sum_focus_minutes(self, user_id: str, start: datetime, end: datetime) -> int:
        """Actual minutes of completed sessions started within ``[start, end)``."""

    @abstractmethod
    def count_journal_entries(self, user_id: str, start: datetime, end: datetime) -> int: ...

    @abstractmethod
    def count_completed_habit_entries(self, user_id: str, day: date) -> int: ...

    @abstractmethod
    def completed_session_days(self, user_id: str) -> list[date]:
        """Distinct days with at least one completed session, newest first."""
