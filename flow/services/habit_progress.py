"""
Habit streak and duration-progress calculations.
"""

from datetime import date, timedelta
from typing import Iterable

from pydantic import BaseModel

from flow.models.schemas import Habit, HabitEntry


class HabitProgress(BaseModel):
    """How far a habit is into its committed duration."""

    current_period: int
    total_periods: int
    progress_text: str
    is_completed: bool


def calculate_current_streak(entries: Iterable[HabitEntry], today: date, since: date | None = None) -> int:
    """
    Count consecutive completed days ending today.

    When today has no entry yet the streak is counted from yesterday, so an
    unfinished day does not reset it. A day logged as not completed, or a
    missing day, ends the streak. Entries on or before ``since`` (the day of
    the last recorded break) are not counted.
    """
    completed_by_day: dict[date, bool] = {}
    for entry in entries:
        if since is not None and entry.entry_date <= since:
            continue
        completed_by_day[entry.entry_date] = completed_by_day.get(entry.entry_date, False) or entry.completed

    day = today if today in completed_by_day else today - timedelta(days=1)

    streak = 0
    while completed_by_day.get(day):
        streak += 1
        day -= timedelta(days=1)
    return streak


def calculate_habit_progress(habit: Habit, today: date) -> HabitProgress:
    """Period reached since the habit was created, capped at its duration."""
    created = habit.created_at.date()
    days_since_creation = max((today - created).days, 0)
    total_periods = habit.duration_value

    if habit.duration_type == "weeks":
        current_period = min(days_since_creation // 7 + 1, total_periods)
        unit = "weeks"
    elif habit.duration_type == "months":
        months_diff = (today.year - created.year) * 12 + (today.month - created.month)
        current_period = min(max(months_diff, 0) + 1, total_periods)
        unit = "months"
    else:
        current_period = min(days_since_creation + 1, total_periods)
        unit = "days"

    return HabitProgress(
        current_period=current_period,
        total_periods=total_periods,
        progress_text=f"{current_period}/{total_periods} {unit}",
        is_completed=current_period >= total_periods,
    )
