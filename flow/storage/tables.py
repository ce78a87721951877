"""
SQLAlchemy table definitions for ``DatabaseStorage``.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from flow.storage.base import utcnow

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    role = Column(String, default="user", nullable=False)
    password_hash = Column(String, nullable=True)

    # Stripe billing
    stripe_customer_id = Column(String, index=True, nullable=True)
    stripe_subscription_id = Column(String, nullable=True)
    subscription_status = Column(String, default="free", nullable=False)
    subscription_plan = Column(String, default="free", nullable=False)
    subscription_period_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    sid = Column(String, primary_key=True)
    sess = Column(JSON, nullable=False)
    expire = Column(DateTime, index=True, nullable=False)


class FocusSessionRow(Base):
    __tablename__ = "focus_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    planned_duration = Column(Integer, nullable=True)  # minutes
    actual_duration = Column(Integer, nullable=True)  # minutes
    type = Column(String, default="deep_work", nullable=False)
    workflow = Column(String, default="standard", nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    mood = Column(String, nullable=True)
    setbacks = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    productivity = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class JournalEntryRow(Base):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=False)
    mood = Column(String, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class JournalInsightsRow(Base):
    __tablename__ = "journal_insights"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    insights = Column(JSON, nullable=False)
    entry_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class VoiceNoteRow(Base):
    __tablename__ = "voice_notes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String, nullable=True)
    file_name = Column(String, nullable=False)
    duration = Column(Integer, nullable=True)  # seconds
    transcription = Column(Text, nullable=True)
    note_type = Column(String, default="memo", nullable=False)
    mood = Column(String, nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    is_converted = Column(Boolean, default=False, nullable=False)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class VoiceCloneRow(Base):
    __tablename__ = "voice_clones"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    voice_id = Column(String, nullable=False)  # ElevenLabs voice id
    voice_name = Column(String, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    sample_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class HabitRow(Base):
    __tablename__ = "habits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, default="fas fa-check", nullable=False)
    color = Column(String, default="#007AFF", nullable=False)
    frequency = Column(String, default="daily", nullable=False)
    target_count = Column(Integer, default=1, nullable=False)
    duration_value = Column(Integer, default=30, nullable=False)
    duration_type = Column(String, default="days", nullable=False)
    goal_meaning = Column(Text, nullable=True)
    goal_feeling = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    best_streak = Column(Integer, default=0, nullable=False)
    total_breaks = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    entries = relationship("HabitEntryRow", cascade="all, delete-orphan")
    struggles = relationship("HabitStruggleRow", cascade="all, delete-orphan")
    breaks = relationship("HabitBreakRow", cascade="all, delete-orphan")


class HabitEntryRow(Base):
    __tablename__ = "habit_entries"
    __table_args__ = (UniqueConstraint("habit_id", "date", name="uq_habit_entries_habit_date"),)

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    entry_date = Column("date", Date, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    count = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class HabitStruggleRow(Base):
    __tablename__ = "habit_struggles"

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    note = Column(Text, nullable=False)
    intensity = Column(Integer, default=5, nullable=False)
    triggers = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    mood = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class HabitBreakRow(Base):
    __tablename__ = "habit_breaks"

    id = Column(Integer, primary_key=True, index=True)
    habit_id = Column(Integer, ForeignKey("habits.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    reason = Column(Text, nullable=True)
    previous_streak = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ResetRitualRow(Base):
    __tablename__ = "reset_rituals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, default="fas fa-spa", nullable=False)
    duration = Column(Integer, nullable=True)  # minutes
    category = Column(String, default="wellness", nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    completions = relationship(
        "ResetCompletionRow",
        back_populates="ritual",
        cascade="all, delete-orphan",
    )


class ResetCompletionRow(Base):
    __tablename__ = "reset_completions"

    id = Column(Integer, primary_key=True, index=True)
    ritual_id = Column(Integer, ForeignKey("reset_rituals.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    trigger = Column(Text, nullable=True)
    cause = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, default=utcnow, nullable=False)

    ritual = relationship("ResetRitualRow", back_populates="completions")


class UserPreferencesRow(Base):
    __tablename__ = "user_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    session_duration = Column(Integer, default=90, nullable=False)  # minutes
    break_duration = Column(Integer, default=15, nullable=False)  # minutes
    notifications_enabled = Column(Boolean, default=True, nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    theme = Column(String, default="dark", nullable=False)
    timezone = Column(String, default="UTC", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)
