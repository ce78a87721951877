"""
SQLAlchemy-backed storage.

Works against PostgreSQL in production and SQLite for local runs and tests.
Rows are converted to the pydantic record models before they leave a
database session, so callers never see ORM objects.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

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
from flow.storage.tables import (
    Base,
    FocusSessionRow,
    HabitBreakRow,
    HabitEntryRow,
    HabitRow,
    HabitStruggleRow,
    JournalEntryRow,
    JournalInsightsRow,
    ResetCompletionRow,
    ResetRitualRow,
    SessionRow,
    UserPreferencesRow,
    UserRow,
    VoiceCloneRow,
    VoiceNoteRow,
)

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str):
    """Engine for ``database_url``; SQLite URLs get thread-safe settings."""
    if database_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_size=10,
        max_overflow=20,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


class DatabaseStorage(Storage):
    """``Storage`` implementation on top of SQLAlchemy."""

    def __init__(self, database_url: str, create_tables: bool = True):
        self.engine = create_db_engine(database_url)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        if create_tables:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables ready")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _owned(db: Session, row_type, record_id: int, user_id: str):
        row = db.get(row_type, record_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    def _update_owned(
        self, row_type, model, record_id: int, user_id: str, fields: dict[str, Any], touch: bool = False
    ):
        with self._session() as db:
            row = self._owned(db, row_type, record_id, user_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            if touch:
                row.updated_at = utcnow()
            db.flush()
            return model.model_validate(row)

    def _delete_owned(self, row_type, record_id: int, user_id: str) -> bool:
        with self._session() as db:
            row = self._owned(db, row_type, record_id, user_id)
            if row is None:
                return False
            db.delete(row)
            return True

    def _insert(self, row, model):
        with self._session() as db:
            db.add(row)
            db.flush()
            return model.model_validate(row)

    def _list(self, model, statement) -> list:
        with self._session() as db:
            return [model.model_validate(row) for row in db.scalars(statement)]

    # Users

    def get_user(self, user_id: str) -> User | None:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            return User.model_validate(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        with self._session() as db:
            row = db.scalars(
                select(UserRow).where(func.lower(UserRow.email) == email.lower())
            ).first()
            return User.model_validate(row) if row else None

    def get_user_by_stripe_customer_id(self, customer_id: str) -> User | None:
        with self._session() as db:
            row = db.scalars(
                select(UserRow).where(UserRow.stripe_customer_id == customer_id)
            ).first()
            return User.model_validate(row) if row else None

    def upsert_user(self, data: UserUpsert) -> User:
        now = utcnow()
        with self._session() as db:
            row = db.get(UserRow, data.id)
            fields = data.model_dump(exclude_none=True)
            if row is None:
                row = UserRow(**fields, created_at=now, updated_at=now)
                db.add(row)
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
                row.updated_at = now
            db.flush()
            return User.model_validate(row)

    def update_user(self, user_id: str, fields: dict[str, Any]) -> User | None:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            if row is None:
                return None
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            db.flush()
            return User.model_validate(row)

    # Sessions

    def create_session(self, sid: str, sess: dict[str, Any], expire: datetime) -> StoredSession:
        with self._session() as db:
            row = SessionRow(sid=sid, sess=sess, expire=expire)
            db.merge(row)
            return StoredSession(sid=sid, sess=sess, expire=expire)

    def get_session(self, sid: str) -> StoredSession | None:
        with self._session() as db:
            row = db.get(SessionRow, sid)
            if row is None:
                return None
            return StoredSession(sid=row.sid, sess=row.sess, expire=row.expire)

    def delete_session(self, sid: str) -> bool:
        with self._session() as db:
            row = db.get(SessionRow, sid)
            if row is None:
                return False
            db.delete(row)
            return True

    def purge_expired_sessions(self, now: datetime) -> int:
        with self._session() as db:
            rows = db.scalars(select(SessionRow).where(SessionRow.expire <= now)).all()
            for row in rows:
                db.delete(row)
            return len(rows)

    # Focus sessions

    def create_focus_session(self, user_id: str, data: FocusSessionCreate) -> FocusSession:
        row = FocusSessionRow(user_id=user_id, created_at=utcnow(), **data.model_dump())
        return self._insert(row, FocusSession)

    def update_focus_session(
        self, session_id: int, user_id: str, fields: dict[str, Any]
    ) -> FocusSession | None:
        return self._update_owned(FocusSessionRow, FocusSession, session_id, user_id, fields)

    def get_user_sessions(self, user_id: str) -> list[FocusSession]:
        return self._list(
            FocusSession,
            select(FocusSessionRow)
            .where(FocusSessionRow.user_id == user_id)
            .order_by(FocusSessionRow.created_at.desc(), FocusSessionRow.id.desc()),
        )

    # Journal

    def create_journal_entry(self, user_id: str, data: JournalEntryCreate) -> JournalEntry:
        now = utcnow()
        row = JournalEntryRow(user_id=user_id, created_at=now, updated_at=now, **data.model_dump())
        return self._insert(row, JournalEntry)

    def get_journal_entry(self, entry_id: int, user_id: str) -> JournalEntry | None:
        with self._session() as db:
            row = self._owned(db, JournalEntryRow, entry_id, user_id)
            return JournalEntry.model_validate(row) if row else None

    def update_journal_entry(
        self, entry_id: int, user_id: str, fields: dict[str, Any]
    ) -> JournalEntry | None:
        return self._update_owned(JournalEntryRow, JournalEntry, entry_id, user_id, fields, touch=True)

    def delete_journal_entry(self, entry_id: int, user_id: str) -> bool:
        with self._session() as db:
            row = self._owned(db, JournalEntryRow, entry_id, user_id)
            if row is None:
                return False
            # Voice notes converted into this entry keep existing, unlinked
            for note in db.scalars(
                select(VoiceNoteRow).where(VoiceNoteRow.journal_entry_id == entry_id)
            ):
                note.journal_entry_id = None
            db.delete(row)
            return True

    def get_user_journal_entries(self, user_id: str) -> list[JournalEntry]:
        return self._list(
            JournalEntry,
            select(JournalEntryRow)
            .where(JournalEntryRow.user_id == user_id)
            .order_by(JournalEntryRow.created_at.desc(), JournalEntryRow.id.desc()),
        )

    def save_journal_insights(
        self, user_id: str, insights: list[AIInsight], entry_count: int
    ) -> JournalInsights:
        row = JournalInsightsRow(
            user_id=user_id,
            insights=[insight.model_dump() for insight in insights],
            entry_count=entry_count,
            created_at=utcnow(),
        )
        return self._insert(row, JournalInsights)

    def get_latest_journal_insights(self, user_id: str) -> JournalInsights | None:
        with self._session() as db:
            row = db.scalars(
                select(JournalInsightsRow)
                .where(JournalInsightsRow.user_id == user_id)
                .order_by(JournalInsightsRow.id.desc())
            ).first()
            return JournalInsights.model_validate(row) if row else None

    # Voice notes

    def create_voice_note(self, user_id: str, data: VoiceNoteCreate) -> VoiceNote:
        now = utcnow()
        row = VoiceNoteRow(user_id=user_id, created_at=now, updated_at=now, **data.model_dump())
        return self._insert(row, VoiceNote)

    def get_voice_note(self, note_id: int, user_id: str) -> VoiceNote | None:
        with self._session() as db:
            row = self._owned(db, VoiceNoteRow, note_id, user_id)
            return VoiceNote.model_validate(row) if row else None

    def update_voice_note(
        self, note_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceNote | None:
        return self._update_owned(VoiceNoteRow, VoiceNote, note_id, user_id, fields, touch=True)

    def delete_voice_note(self, note_id: int, user_id: str) -> bool:
        return self._delete_owned(VoiceNoteRow, note_id, user_id)

    def get_user_voice_notes(self, user_id: str) -> list[VoiceNote]:
        return self._list(
            VoiceNote,
            select(VoiceNoteRow)
            .where(VoiceNoteRow.user_id == user_id)
            .order_by(VoiceNoteRow.created_at.desc(), VoiceNoteRow.id.desc()),
        )

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
        row = VoiceCloneRow(
            user_id=user_id,
            voice_id=voice_id,
            voice_name=voice_name,
            sample_count=sample_count,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return self._insert(row, VoiceClone)

    def get_voice_clone(self, clone_id: int, user_id: str) -> VoiceClone | None:
        with self._session() as db:
            row = self._owned(db, VoiceCloneRow, clone_id, user_id)
            return VoiceClone.model_validate(row) if row else None

    def get_user_voice_clones(self, user_id: str) -> list[VoiceClone]:
        return self._list(
            VoiceClone,
            select(VoiceCloneRow).where(VoiceCloneRow.user_id == user_id).order_by(VoiceCloneRow.id),
        )

    def update_voice_clone(
        self, clone_id: int, user_id: str, fields: dict[str, Any]
    ) -> VoiceClone | None:
        return self._update_owned(VoiceCloneRow, VoiceClone, clone_id, user_id, fields, touch=True)

    def delete_voice_clone(self, clone_id: int, user_id: str) -> bool:
        return self._delete_owned(VoiceCloneRow, clone_id, user_id)

    # Habits

    def create_habit(self, user_id: str, data: HabitCreate) -> Habit:
        row = HabitRow(user_id=user_id, created_at=utcnow(), **data.model_dump())
        return self._insert(row, Habit)

    def get_habit(self, habit_id: int, user_id: str) -> Habit | None:
        with self._session() as db:
            row = self._owned(db, HabitRow, habit_id, user_id)
            return Habit.model_validate(row) if row else None

    def update_habit(self, habit_id: int, user_id: str, fields: dict[str, Any]) -> Habit | None:
        return self._update_owned(HabitRow, Habit, habit_id, user_id, fields)

    def delete_habit(self, habit_id: int, user_id: str) -> bool:
        return self._delete_owned(HabitRow, habit_id, user_id)

    def get_user_habits(self, user_id: str, include_inactive: bool = False) -> list[Habit]:
        statement = select(HabitRow).where(HabitRow.user_id == user_id)
        if not include_inactive:
            statement = statement.where(HabitRow.is_active.is_(True))
        return self._list(
            Habit, statement.order_by(HabitRow.created_at.desc(), HabitRow.id.desc())
        )

    def upsert_habit_entry(
        self, habit_id: int, user_id: str, entry_date: date, data: HabitEntryCreate
    ) -> HabitEntry:
        fields = data.model_dump(include={"completed", "count", "notes"})
        with self._session() as db:
            row = db.scalars(
                select(HabitEntryRow).where(
                    HabitEntryRow.habit_id == habit_id,
                    HabitEntryRow.user_id == user_id,
                    HabitEntryRow.entry_date == entry_date,
                )
            ).first()
            if row is None:
                row = HabitEntryRow(
                    habit_id=habit_id,
                    user_id=user_id,
                    entry_date=entry_date,
                    created_at=utcnow(),
                    **fields,
                )
                db.add(row)
            else:
                for key, value in fields.items():
                    setattr(row, key, value)
            db.flush()
            return HabitEntry.model_validate(row)

    def get_habit_entries(
        self, habit_id: int, user_id: str, since: date | None = None
    ) -> list[HabitEntry]:
        statement = select(HabitEntryRow).where(
            HabitEntryRow.habit_id == habit_id, HabitEntryRow.user_id == user_id
        )
        if since is not None:
            statement = statement.where(HabitEntryRow.entry_date >= since)
        return self._list(HabitEntry, statement.order_by(HabitEntryRow.entry_date.desc()))

    def get_habit_entries_for_day(self, user_id: str, day: date) -> list[HabitEntry]:
        return self._list(
            HabitEntry,
            select(HabitEntryRow).where(
                HabitEntryRow.user_id == user_id, HabitEntryRow.entry_date == day
            ),
        )

    def create_habit_struggle(
        self, habit_id: int, user_id: str, data: HabitStruggleCreate
    ) -> HabitStruggle:
        row = HabitStruggleRow(
            habit_id=habit_id, user_id=user_id, created_at=utcnow(), **data.model_dump()
        )
        return self._insert(row, HabitStruggle)

    def get_habit_struggles(self, habit_id: int, user_id: str) -> list[HabitStruggle]:
        return self._list(
            HabitStruggle,
            select(HabitStruggleRow)
            .where(HabitStruggleRow.habit_id == habit_id, HabitStruggleRow.user_id == user_id)
            .order_by(HabitStruggleRow.created_at.desc(), HabitStruggleRow.id.desc()),
        )

    def delete_habit_struggle(self, struggle_id: int, user_id: str) -> bool:
        return self._delete_owned(HabitStruggleRow, struggle_id, user_id)

    def create_habit_break(
        self, habit_id: int, user_id: str, reason: str | None, previous_streak: int
    ) -> HabitBreak:
        row = HabitBreakRow(
            habit_id=habit_id,
            user_id=user_id,
            reason=reason,
            previous_streak=previous_streak,
            created_at=utcnow(),
        )
        return self._insert(row, HabitBreak)

    def get_habit_breaks(self, habit_id: int, user_id: str) -> list[HabitBreak]:
        return self._list(
            HabitBreak,
            select(HabitBreakRow)
            .where(HabitBreakRow.habit_id == habit_id, HabitBreakRow.user_id == user_id)
            .order_by(HabitBreakRow.created_at.desc(), HabitBreakRow.id.desc()),
        )

    # Reset rituals

    def create_reset_ritual(self, user_id: str, data: ResetRitualCreate) -> ResetRitual:
        row = ResetRitualRow(user_id=user_id, created_at=utcnow(), **data.model_dump())
        return self._insert(row, ResetRitual)

    def get_reset_ritual(self, ritual_id: int, user_id: str) -> ResetRitual | None:
        with self._session() as db:
            row = self._owned(db, ResetRitualRow, ritual_id, user_id)
            return ResetRitual.model_validate(row) if row else None

    def get_user_reset_rituals(self, user_id: str) -> list[ResetRitual]:
        return self._list(
            ResetRitual,
            select(ResetRitualRow)
            .where(ResetRitualRow.user_id == user_id)
            .order_by(ResetRitualRow.created_at.desc(), ResetRitualRow.id.desc()),
        )

    def delete_reset_ritual(self, ritual_id: int, user_id: str) -> bool:
        return self._delete_owned(ResetRitualRow, ritual_id, user_id)

    def complete_reset_ritual(
        self,
        ritual_id: int,
        user_id: str,
        data: ResetCompletionCreate,
        completed_at: datetime,
    ) -> ResetCompletion:
        row = ResetCompletionRow(
            ritual_id=ritual_id, user_id=user_id, completed_at=completed_at, **data.model_dump()
        )
        return self._insert(row, ResetCompletion)

    def get_reset_history(self, user_id: str) -> list[ResetHistoryItem]:
        return self._list(
            ResetHistoryItem,
            select(ResetCompletionRow)
            .where(ResetCompletionRow.user_id == user_id)
            .order_by(ResetCompletionRow.completed_at.desc(), ResetCompletionRow.id.desc()),
        )

    # Preferences

    def _preferences_row(self, db: Session, user_id: str) -> UserPreferencesRow:
        row = db.scalars(
            select(UserPreferencesRow).where(UserPreferencesRow.user_id == user_id)
        ).first()
        if row is None:
            now = utcnow()
            row = UserPreferencesRow(user_id=user_id, created_at=now, updated_at=now)
            db.add(row)
            db.flush()
        return row

    def get_user_preferences(self, user_id: str) -> UserPreferences:
        with self._session() as db:
            return UserPreferences.model_validate(self._preferences_row(db, user_id))

    def update_user_preferences(self, user_id: str, fields: dict[str, Any]) -> UserPreferences:
        with self._session() as db:
            row = self._preferences_row(db, user_id)
            for key, value in fields.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            db.flush()
            return UserPreferences.model_validate(row)

    # Aggregates

    def count_focus_sessions(self, user_id: str, start: datetime, end: datetime) -> int:
        with self._session() as db:
            return db.scalar(
                select(func.count(FocusSessionRow.id)).where(
                    FocusSessionRow.user_id == user_id,
                    FocusSessionRow.start_time >= start,
                    FocusSessionRow.start_time < end,
                )
            ) or 0

    def sum_focus_minutes(self, user_id: str, start: datetime, end: datetime) -> int:
        with self._session() as db:
            return db.scalar(
                select(func.coalesce(func.sum(FocusSessionRow.actual_duration), 0)).where(
                    FocusSessionRow.user_id == user_id,
                    FocusSessionRow.completed.is_(True),
                    FocusSessionRow.start_time >= start,
                    FocusSessionRow.start_time < end,
                )
            ) or 0

    def count_journal_entries(self, user_id: str, start: datetime, end: datetime) -> int:
        with self._session() as db:
            return db.scalar(
                select(func.count(JournalEntryRow.id)).where(
                    JournalEntryRow.user_id == user_id,
                    JournalEntryRow.created_at >= start,
                    JournalEntryRow.created_at < end,
                )
            ) or 0

    def count_completed_habit_entries(self, user_id: str, day: date) -> int:
        with self._session() as db:
            return db.scalar(
                select(func.count(HabitEntryRow.id)).where(
                    HabitEntryRow.user_id == user_id,
                    HabitEntryRow.entry_date == day,
                    HabitEntryRow.completed.is_(True),
                )
            ) or 0

    def completed_session_days(self, user_id: str) -> list[date]:
        with self._session() as db:
            start_times = db.scalars(
                select(FocusSessionRow.start_time).where(
                    FocusSessionRow.user_id == user_id,
                    FocusSessionRow.completed.is_(True),
                )
            ).all()
        return sorted({start_time.date() for start_time in start_times}, reverse=True)
