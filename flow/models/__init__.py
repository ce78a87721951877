"""Data models and schemas."""

from .schemas import (
    User,
    FocusSession,
    JournalEntry,
    VoiceNote,
    VoiceClone,
    Habit,
    HabitEntry,
    HabitStruggle,
    HabitBreak,
    ResetRitual,
    ResetCompletion,
    UserPreferences,
)

__all__ = [
    "User",
    "FocusSession",
    "JournalEntry",
    "VoiceNote",
    "VoiceClone",
    "Habit",
    "HabitEntry",
    "HabitStruggle",
    "HabitBreak",
    "ResetRitual",
    "ResetCompletion",
    "UserPreferences",
]
