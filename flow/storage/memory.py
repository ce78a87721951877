"""
In-memory storage for development and demos.

All records live in plain dicts keyed by id and share a single id counter.
Nothing survives a restart.
"""

from datetime import date, datetime
from itertools import count
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
from flow.storage.base import Storage, utcnow


def _newest_first(records: list, key: str = "created_at") -> list:
    return sorted(records, key=lambda record: (getattr(record, key), record.id), reverse=True)


class MemoryStorage(Storage):
    """Dict-backed implementation of ``Storage``."""

    def __init__(self) -> None:
        self._ids = count(1)
        self.users: dict[str, User] = {}
        self.sessions: dict[str, StoredSession] = {}
        self.focus_sessions: dict[int, FocusSession] = {}
        self.journal_entries: dict[int, JournalEntry] = {}
        self.journal_insights: dict[int, JournalInsights] = {}
        self.voice_notes: dict[int, VoiceNote] = {}
        self.voice_clones: dict[int, VoiceClone] = {}
        self.habits: dict[int, Habit] = {}
        self.habit_entries: dict[int, HabitEntry] = {}
        self.habit_struggles: dict[int, HabitStruggle] = {}
        self.habit_breaks: dict[int, HabitBreak] = {}
        self.reset_rituals: dict[int, ResetRitual] = {}
        self.reset_completions: dict[int, ResetCompletion] = {}
        self.user_preferences: dict[str, UserPreferences] = {}

    def _next_id(self) -> int:
        return next(self._ids)

    @staticmethod
    def _owned(table: dict, record_id: int, user_id: str):
        record = table.get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def _update_owned(self, table: dict, record_id: int, user_id: str, fields: dict[str, Any]):
        record = self._owned(table, record_id, user_id)
        if record is None:
            return None
        updated = record.model_copy(update=fields)
        table[record_id] = updated
        return updated

    def _delete_owned(self, table: dict, record_id: int, user_id: str) -> bool:
        if self._owned(table, record_id, user_id) is None:
            return False
        del table[record_id]
        return True

    # Users

    def get_user(self, user_id: str) -> User | None:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        email = email.lower()
        for user in self.users.values():
            if user.email and user.email.lower() == email:
                return user
        return None

    def get_user_by_stripe_customer_id(self, customer_id: str) -> User | None:
        for user in self.users.values():
            if user.stripe_customer_id == customer_id:
                return user
        return None

    def upsert_user(self, data: UserUpsert) -> User:
        now = utcnow()
        existing = self.users.get(data.id)
        fields = data.model_dump(exclude_none=True)
        if existing is None:
            user = User(**fields, created_at=now, updated_at=now)
        else:
            user = existing.model_copy(update={**fields, "updated_at": now})
        self.users[data.id] = user
        return user

    def update_user(self, user_id: str, fields: dict[str, Any]) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update={**fields, "updated_at": utcnow()})
        self.users[user_id] = updated
        return updated

    # Sessions

    def create_session(self, sid: str, sess: dict[str, Any], expire: datetime) -> StoredSession:
        session = StoredSession(sid=sid, sess=sess, expire=expire)
        self.sessions[sid] = session
        return session

    def get_session(self, sid: str) -> StoredSession | None:
        return self.sessions.get(sid)

    def delete_session(self, sid: str) -> bool:
        return self.sessions.pop(sid, None) is not None

    def purge_expired_sessions(self, now: datetime) -> int:
        expired = [sid for sid, session in self.sessions.items() if session.expire <= now]
        for sid in expired:
            del self.sessions[sid]
        return len(expired)

    # Focus sessions

    def create_focus_session(self, user_id: str, data: FocusSessionCreate) -> FocusSession:
        session = FocusSession(
            id=self._next_id(),
            user_id=user_id,
            created_at=utcnow(),
            **data.model_dump(),
        )
        self.focus_sessions[session.id] = session
        return session

    def update_focus_session(
        self, session_id: int, user_id: str, fields: dict[str, Any]
    ) -> FocusSession | None:
        return self._update_owned(self.focus_sessions, session_id, user_id, fields)

    def get_user_sessions(self, user_id: str) -> list[FocusSession]:
        return _newest_first([s for s in self.focus_sessions.values() if s.user_id == user_id])

    # Journal

    def create_journal_entry(self, user_id: str, data: JournalEntryCreate) -> JournalEntry:
        now = utcnow()
        entry = JournalEntry(
            id=self._next_id(),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self.journal_entries[entry.id] = entry
        return entry

    def get_journal_entry(self, entry_id: int, user_id: str) -> JournalEntry | None:
        return self._owned(self.journal_entries, entry_id, user_id)

    def update_journal_entry(
        self, entry_id: int, user_id: str, fields: dict[str, Any]
    ) -> JournalEntry | None:
        return self._update_owned(
            self.journal_entries, entry_id, user_id, {**fields, "updated_at": utcnow()}
        )

    def delete_journal_entry(self, entry_id: int, user_id: str) -> bool:
        if not self._delete_owned(self.journal_entries, entry_id, user_id):
            return False
        for note_id, note in self.voice_notes.items():
            if note.journal_entry_id == entry_id:
                self.voice_notes[note_id] = note.model_copy(update={"journal_entry_id": None})
        return True

    def get_user_journal_entries(self, user_id: str) -> list[JournalEntry]:
        return _newest_first([e for e in self.journal_entries.values() if e.user_id == user_id])

    def save_journal_insights(
        self, user_id: str, insights: list[AIInsight], entry_count: int
    ) -> JournalInsights:
        record = JournalInsights(
            id=self._next_id(),
            user_id=user_id,
            insights=insights,
            entry_count=entry_count,
            created_at=utcnow(),
        )
        self.journal_insights[record.id] = record
        return record

    def get_latest_journal_insights(self, user_id: str) -> JournalInsights | None:
        records = [r for r in self.journal_insights.values() if r.user_id == user_id]
        if not records:
            return None
        return max(records, key=lambda r: r.id)

    # Voice notes

    def create_voice_note(self, user_id: str, data: VoiceNoteCreate) -> VoiceNote:
        now = utcnow()
        note = VoiceNote(
            id=self._next_id(),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self.voice_notes[note.id] = note
        return note

    def get_voice_note(self, note_id: int, user_id: str) -> VoiceNote | None:
        return self._owned(self.voice_notes, note_id, user_id)

    def update_voice_note(
        self, note_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceNote | None:
        return self._update_owned(
            self.voice_notes, note_id, user_id, {**fields, "updated_at": utcnow()}
        )

    def delete_voice_note(self, note_id: int, user_id: str) -> bool:
        return self._delete_owned(self.voice_notes, note_id, user_id)

    def get_user_voice_notes(self, user_id: str) -> list[VoiceNote]:
        return _newest_first([n for n in self.voice_notes.values() if n.user_id == user_id])

    # Voice clones

    def create_voice_clone(
        self,
        user_id: str,
        voice_id: str,
        voice_name: str,
        sample_count: int,
        is_active: bool = False,
    ) -> VoiceClone:
        now = utcnow()
        clone = VoiceClone(
            id=self._next_id(),
            user_id=user_id,
            voice_id=voice_id,
            voice_name=voice_name,
            sample_count=sample_count,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.voice_clones[clone.id] = clone
        return clone

    def get_voice_clone(self, clone_id: int, user_id: str) -> VoiceClone | None:
        return self._owned(self.voice_clones, clone_id, user_id)

    def get_user_voice_clones(self, user_id: str) -> list[VoiceClone]:
        return [c for c in self.voice_clones.values() if c.user_id == user_id]

    def update_voice_clone(
        self, clone_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceClone | None:
        return self._update_owned(
            self.voice_clones, clone_id, user_id, {**fields, "updated_at": utcnow()}
        )

    def delete_voice_clone(self, clone_id: int, user_id: str) -> bool:
        return self._delete_owned(self.voice_clones, clone_id, user_id)

    # Habits

    def create_habit(self, user_id: str, data: HabitCreate) -> Habit:
        habit = Habit(id=self._next_id(), user_id=user_id, created_at=utcnow(), **data.model_dump())
        self.habits[habit.id] = habit
        return habit

    def get_habit(self, habit_id: int, user_id: str) -> Habit | None:
        return self._owned(self.habits, habit_id, user_id)

    def update_habit(self, habit_id: int, user_id: str, fields: dict[str, Any]) -> Habit | None:
        return self._update_owned(self.habits, habit_id, user_id, fields)

    def delete_habit(self, habit_id: int, user_id: str) -> bool:
        if not self._delete_owned(self.habits, habit_id, user_id):
            return False
        for table in (self.habit_entries, self.habit_struggles, self.habit_breaks):
            for record_id in [rid for rid, r in table.items() if r.habit_id == habit_id]:
                del table[record_id]
        return True

    def get_user_habits(self, user_id: str, include_inactive: bool = False) -> list[Habit]:
        return _newest_first(
            [
                h
                for h in self.habits.values()
                if h.user_id == user_id and (include_inactive or h.is_active)
            ]
        )

    def upsert_habit_entry(
        self, habit_id: int, user_id: str, entry_date: date, data: HabitEntryCreate
    ) -> HabitEntry:
        fields = data.model_dump(include={"completed", "count", "notes"})
        for entry_id, entry in self.habit_entries.items():
            if entry.habit_id == habit_id and entry.user_id == user_id and entry.entry_date == entry_date:
                updated = entry.model_copy(update=fields)
                self.habit_entries[entry_id] = updated
                return updated

        entry = HabitEntry(
            id=self._next_id(),
            habit_id=habit_id,
            user_id=user_id,
            entry_date=entry_date,
            created_at=utcnow(),
            **fields,
        )
        self.habit_entries[entry.id] = entry
        return entry

    def get_habit_entries(
        self, habit_id: int, user_id: str, since: date | None = None
    ) -> list[HabitEntry]:
        entries = [
            e
            for e in self.habit_entries.values()
            if e.habit_id == habit_id
            and e.user_id == user_id
            and (since is None or e.entry_date >= since)
        ]
        return _newest_first(entries, key="entry_date")

    def get_habit_entries_for_day(self, user_id: str, day: date) -> list[HabitEntry]:
        return [e for e in self.habit_entries.values() if e.user_id == user_id and e.entry_date == day]

    def create_habit_struggle(
        self, habit_id: int, user_id: str, data: HabitStruggleCreate
    ) -> HabitStruggle:
        struggle = HabitStruggle(
            id=self._next_id(),
            habit_id=habit_id,
            user_id=user_id,
            created_at=utcnow(),
            **data.model_dump(),
        )
        self.habit_struggles[struggle.id] = struggle
        return struggle

    def get_habit_struggles(self, habit_id: int, user_id: str) -> list[HabitStruggle]:
        return _newest_first(
            [s for s in self.habit_struggles.values() if s.habit_id == habit_id and s.user_id == user_id]
        )

    def delete_habit_struggle(self, struggle_id: int, user_id: str) -> bool:
        return self._delete_owned(self.habit_struggles, struggle_id, user_id)

    def create_habit_break(
        self, habit_id: int, user_id: str, reason: str | None, previous_streak: int
    ) -> HabitBreak:
        habit_break = HabitBreak(
            id=self._next_id(),
            habit_id=habit_id,
            user_id=user_id,
            reason=reason,
            previous_streak=previous_streak,
            created_at=utcnow(),
        )
        self.habit_breaks[habit_break.id] = habit_break
        return habit_break

    def get_habit_breaks(self, habit_id: int, user_id: str) -> list[HabitBreak]:
        return _newest_first(
            [b for b in self.habit_breaks.values() if b.habit_id == habit_id and b.user_id == user_id]
        )

    # Reset rituals

    def create_reset_ritual(self, user_id: str, data: ResetRitualCreate) -> ResetRitual:
        ritual = ResetRitual(id=self._next_id(), user_id=user_id, created_at=utcnow(), **data.model_dump())
        self.reset_rituals[ritual.id] = ritual
        return ritual

    def get_reset_ritual(self, ritual_id: int, user_id: str) -> ResetRitual | None:
        return self._owned(self.reset_rituals, ritual_id, user_id)

    def get_user_reset_rituals(self, user_id: str) -> list[ResetRitual]:
        return _newest_first([r for r in self.reset_rituals.values() if r.user_id == user_id])

    def delete_reset_ritual(self, ritual_id: int, user_id: str) -> bool:
        if not self._delete_owned(self.reset_rituals, ritual_id, user_id):
            return False
        for completion_id in [
            cid for cid, c in self.reset_completions.items() if c.ritual_id == ritual_id
        ]:
            del self.reset_completions[completion_id]
        return True

    def complete_reset_ritual(
        self,
        ritual_id: int,
        user_id: str,
        data: ResetCompletionCreate,
        completed_at: datetime,
    ) -> ResetCompletion:
        completion = ResetCompletion(
            id=self._next_id(),
            ritual_id=ritual_id,
            user_id=user_id,
            completed_at=completed_at,
            **data.model_dump(),
        )
        self.reset_completions[completion.id] = completion
        return completion

    def get_reset_history(self, user_id: str) -> list[ResetHistoryItem]:
        completions = _newest_first(
            [c for c in self.reset_completions.values() if c.user_id == user_id],
            key="completed_at",
        )
        return [
            ResetHistoryItem(**c.model_dump(), ritual=self.reset_rituals.get(c.ritual_id))
            for c in completions
        ]

    # Preferences

    def get_user_preferences(self, user_id: str) -> UserPreferences:
        preferences = self.user_preferences.get(user_id)
        if preferences is None:
            now = utcnow()
            preferences = UserPreferences(
                id=self._next_id(), user_id=user_id, created_at=now, updated_at=now
            )
            self.user_preferences[user_id] = preferences
        return preferences

    def update_user_preferences(self, user_id: str, fields: dict[str, Any]) -> UserPreferences:
        preferences = self.get_user_preferences(user_id)
        updated = preferences.model_copy(update={**fields, "updated_at": utcnow()})
        self.user_preferences[user_id] = updated
        return updated

    # Aggregates

    def count_focus_sessions(self, user_id: str, start: datetime, end: datetime) -> int:
        return sum(
            1
            for s in self.focus_sessions.values()
            if s.user_id == user_id and start <= s.start_time < end
        )

    def sum_focus_minutes(self, user_id: str, start: datetime, end: datetime) -> int:
        return sum(
            s.actual_duration or 0
            for s in self.focus_sessions.values()
            if s.user_id == user_id and s.completed and start <= s.start_time < end
        )

    def count_journal_entries(self, user_id: str, start: datetime, end: datetime) -> int:
        return sum(
            1
            for e in self.journal_entries.values()
            if e.user_id == user_id and start <= e.created_at < end
        )

    def count_completed_habit_entries(self, user_id: str, day: date) -> int:
        return sum(1 for e in self.get_habit_entries_for_day(user_id, day) if e.completed)

    def completed_session_days(self, user_id: str) -> list[date]:
        days = {
            s.start_time.date()
            for s in self.focus_sessions.values()
            if s.user_id == user_id and s.completed
        }
        return sorted(days, reverse=True)
