"""
Dashboard, habit and journal analytics.

All calculations use UTC calendar days.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta

from flow.models.schemas import (
    DashboardAnalytics,
    DayProgress,
    HabitAnalytics,
    HabitSuccess,
    JournalEntry,
    JournalTrends,
    MoodCount,
    MoodTrendPoint,
    RecentJournalEntry,
    TodayStats,
)
from flow.storage.base import Storage, day_bounds

DAILY_GOALS = 5
RECENT_ENTRY_LIMIT = 3
PREVIEW_LENGTH = 150
HABIT_ANALYTICS_DAYS = 30

MOOD_SCORES = {
    "terrible": 1,
    "bad": 2,
    "neutral": 3,
    "good": 4,
    "great": 5,
    "excellent": 5,
}
NEUTRAL_MOOD_SCORE = 3


def format_focus_time(minutes: int) -> str:
    """Render minutes as ``"1h 5m"``, or ``"45m"`` under an hour."""
    hours, remainder = divmod(max(minutes, 0), 60)
    if hours > 0:
        return f"{hours}h {remainder}m"
    return f"{remainder}m"


def _preview(content: str) -> str:
    if len(content) > PREVIEW_LENGTH:
        return content[:PREVIEW_LENGTH] + "..."
    return content


def calculate_activity_streak(active_days: list[date], today: date) -> int:
    """Consecutive active days ending today, or ending yesterday."""
    days = set(active_days)
    day = today if today in days else today - timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def get_dashboard_analytics(storage: Storage, user_id: str, now: datetime) -> DashboardAnalytics:
    """Summary of today's activity plus the trailing week of focus hours."""
    today = now.date()
    start, end = day_bounds(today)

    habits_completed = storage.count_completed_habit_entries(user_id, today)
    today_stats = TodayStats(
        sessions_today=storage.count_focus_sessions(user_id, start, end),
        focus_time=format_focus_time(storage.sum_focus_minutes(user_id, start, end)),
        journal_entries=storage.count_journal_entries(user_id, start, end),
        habits_completed=habits_completed,
    )

    recent = storage.get_user_journal_entries(user_id)[:RECENT_ENTRY_LIMIT]

    weekly_progress = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        day_start, day_end = day_bounds(day)
        minutes = storage.sum_focus_minutes(user_id, day_start, day_end)
        weekly_progress.append(DayProgress(day=day.strftime("%a"), hours=round(minutes / 60, 1)))

    return DashboardAnalytics(
        today_stats=today_stats,
        streak=calculate_activity_streak(storage.completed_session_days(user_id), today),
        goals_completed=min(habits_completed, DAILY_GOALS),
        total_goals=DAILY_GOALS,
        recent_journal_entries=[
            RecentJournalEntry(id=e.id, content=_preview(e.content), created_at=e.created_at)
            for e in recent
        ],
        weekly_progress=weekly_progress,
    )


def get_habit_analytics(storage: Storage, user_id: str, now: datetime) -> HabitAnalytics:
    """Completion rate of every habit over the last 30 days."""
    since = now.date() - timedelta(days=HABIT_ANALYTICS_DAYS)

    results = []
    for habit in storage.get_user_habits(user_id, include_inactive=True):
        entries = storage.get_habit_entries(habit.id, user_id, since=since)
        completed = sum(1 for entry in entries if entry.completed)
        success_rate = round(completed / len(entries) * 100) if entries else 0
        results.append(
            HabitSuccess(
                id=habit.id,
                name=habit.name,
                success_rate=success_rate,
                total_entries=len(entries),
                completed_entries=completed,
                color=habit.color,
            )
        )

    return HabitAnalytics(habits=results, period=f"{HABIT_ANALYTICS_DAYS} days")


def get_journal_trends(entries: list[JournalEntry], today: date, days: int = 30) -> JournalTrends:
    """
    Mood over the trailing ``days`` days.

    Each day's point is the average mood score of that day's entries, or
    None for days without entries. Entries with no mood are left out of
    the averages and the distribution but still counted per day.
    """
    window_start = today - timedelta(days=days - 1)
    scores_by_day: dict[date, list[int]] = defaultdict(list)
    counts_by_day: Counter = Counter()
    distribution: Counter = Counter()

    for entry in entries:
        day = entry.created_at.date()
        if not window_start <= day <= today:
            continue
        counts_by_day[day] += 1
        if entry.mood:
            scores_by_day[day].append(MOOD_SCORES.get(entry.mood, NEUTRAL_MOOD_SCORE))
            distribution[entry.mood] += 1

    trend = []
    for offset in range(days):
        day = window_start + timedelta(days=offset)
        scores = scores_by_day.get(day)
        trend.append(
            MoodTrendPoint(
                date=day.isoformat(),
                mood=round(sum(scores) / len(scores), 2) if scores else None,
                entry_count=counts_by_day[day],
            )
        )

    all_scores = [score for scores in scores_by_day.values() for score in scores]
    return JournalTrends(
        mood_trend=trend,
        mood_distribution=[
            MoodCount(mood=mood, count=count) for mood, count in distribution.most_common()
        ],
        average_mood=round(sum(all_scores) / len(all_scores), 2) if all_scores else None,
        total_entries=sum(counts_by_day.values()),
    )
