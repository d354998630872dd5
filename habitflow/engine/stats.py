"""Streaks, completion rates and period rollups."""

import calendar
import logging
from typing import Iterable, Optional, Sequence

from habitflow.dates import iter_days, month_bounds, shift_day, week_bounds
from habitflow.engine.models import (
    Achievement,
    AchievementDefinition,
    Category,
    CategoryCount,
    DailySummary,
    DayStats,
    Habit,
    MonthlyCalendarStats,
    PeriodTotals,
    Snapshot,
)
from habitflow.engine.resolver import is_completed_on
from habitflow.engine.scheduler import is_active_on

logger = logging.getLogger(__name__)

STREAK_LOOKBACK_DAYS = 365

# Calendar heat-map buckets
LOW_THRESHOLD = 0.33
MEDIUM_THRESHOLD = 0.66


def completion_level(rate: float) -> str:
    """
    Bucket a completion rate for calendar coloring.

    Args:
        rate: Completion rate between 0 and 1

    Returns:
        "none", "low", "medium" or "high"
    """
    if rate <= 0:
        return "none"
    elif rate <= LOW_THRESHOLD:
        return "low"
    elif rate <= MEDIUM_THRESHOLD:
        return "medium"
    else:
        return "high"


class StatsEngine:
    """Computes all completion statistics from one snapshot."""

    def __init__(self, snapshot: Snapshot, lookback_days: int = STREAK_LOOKBACK_DAYS):
        """
        Initialize with a snapshot.

        Args:
            snapshot: Habits, ledger and today, read atomically
            lookback_days: Upper bound for streak walks
        """
        self.snapshot = snapshot
        self.today = snapshot.today
        self.lookback_days = lookback_days

    def is_completed(self, habit: Habit, day: str) -> bool:
        return is_completed_on(habit, day, self.snapshot.ledger)

    def habits_active_on(self, day: str) -> list[Habit]:
        """Habits whose frequency rule includes the day."""
        return [h for h in self.snapshot.habits if is_active_on(h.frequency, day)]

    def day_stats(self, day: str) -> DayStats:
        """Completed and possible counts for a single day."""
        active = self.habits_active_on(day)
        completed = sum(1 for h in active if self.is_completed(h, day))
        rate = completed / len(active) if active else 0.0
        return DayStats(
            date=day,
            completed=completed,
            possible=len(active),
            rate=rate,
            level=completion_level(rate),
        )

    def completion_rate(self, day: str) -> float:
        """
        Share of the day's active habits that were completed.

        Returns:
            Rate between 0 and 1, or 0 when no habit is active
        """
        return self.day_stats(day).rate

    def current_streak(self) -> int:
        """
        Count consecutive days, ending today, with at least one completion.

        Today is part of the walk, so an incomplete today gives 0 even if
        yesterday continued a streak.
        """
        streak = 0
        day = self.today

        for _ in range(self.lookback_days):
            active = self.habits_active_on(day)
            if not any(self.is_completed(h, day) for h in active):
                break
            streak += 1
            day = shift_day(day, -1)

        return streak

    def habit_streak(self, habit: Habit) -> int:
        """
        Count consecutive days, ending today, on which one habit was completed.

        Only the habit's own completion state counts; its frequency is ignored,
        so an unmarked day ends the streak whether or not it was scheduled.
        """
        streak = 0
        day = self.today

        for _ in range(self.lookback_days):
            if not self.is_completed(habit, day):
                break
            streak += 1
            day = shift_day(day, -1)

        return streak

    def best_habit_streak(self) -> int:
        """Longest current streak across all habits."""
        return max((self.habit_streak(h) for h in self.snapshot.habits), default=0)

    def perfect_days_count(self, window_days: int) -> int:
        """
        Count days in the trailing window where every active habit was done.

        Days with no active habit are skipped rather than counted.

        Args:
            window_days: Window length, ending today

        Returns:
            Number of perfect days
        """
        if window_days <= 0:
            return 0

        perfect = 0
        for day in iter_days(shift_day(self.today, -(window_days - 1)), self.today):
            stats = self.day_stats(day)
            if stats.possible and stats.completed == stats.possible:
                perfect += 1

        return perfect

    def period_completions(self, start: str, end: str) -> PeriodTotals:
        """
        Sum completions and possible completions over an inclusive range.

        Args:
            start: First day key
            end: Last day key

        Returns:
            PeriodTotals, zero for an empty or reversed range
        """
        completions = 0
        possible = 0

        for day in iter_days(start, end):
            stats = self.day_stats(day)
            completions += stats.completed
            possible += stats.possible

        return PeriodTotals(total_completions=completions, total_possible=possible)

    def week_period(self) -> tuple[str, str]:
        """Current Sunday-Saturday week, clipped to today."""
        start, _ = week_bounds(self.today)
        return start, self.today

    def month_period(self) -> tuple[str, str]:
        """Current month, clipped to today."""
        start, _ = month_bounds(int(self.today[:4]), int(self.today[5:7]))
        return start, self.today

    def monthly_calendar_stats(self, year: int, month: int) -> MonthlyCalendarStats:
        """
        Per-day completion rates for a month.

        Future days are left out. The average covers only days that had at
        least one active habit.

        Args:
            year: Calendar year
            month: Month number (1-12)

        Returns:
            MonthlyCalendarStats for the month
        """
        first, last = month_bounds(year, month)
        last = min(last, self.today)

        days = [self.day_stats(day) for day in iter_days(first, last)]
        scored = [d.rate for d in days if d.possible]
        average = sum(scored) / len(scored) if scored else 0.0

        logger.debug(f"Calendar {year}-{month:02d}: {len(days)} days, average {average:.2f}")
        return MonthlyCalendarStats(year=year, month=month, days=days, average_rate=average)

    def calendar_grid(self, year: int, month: int) -> list[list[Optional[int]]]:
        """
        Lay a month out in Sunday-first weeks.

        Returns:
            List of weeks, each seven day numbers with None for padding
        """
        grid = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month)
        return [[day or None for day in week] for week in grid]

    def category_variety(self) -> int:
        """Number of distinct categories in use."""
        return len({h.category_id for h in self.snapshot.habits if h.category_id})

    def category_breakdown(self, categories: Sequence[Category] = ()) -> list[CategoryCount]:
        """
        Count habits per category.

        Args:
            categories: Known categories, used for names and colors

        Returns:
            One entry per category in use, largest first; uncategorised habits
            are grouped under a None id
        """
        lookup = {c.id: c for c in categories}
        counts: dict[Optional[str], int] = {}
        for habit in self.snapshot.habits:
            counts[habit.category_id or None] = counts.get(habit.category_id or None, 0) + 1

        breakdown = []
        for category_id, count in counts.items():
            category = lookup.get(category_id)
            if category:
                breakdown.append(CategoryCount(category_id, category.name, category.color, count))
            else:
                name = "Uncategorised" if category_id is None else category_id
                breakdown.append(CategoryCount(category_id, name, None, count))

        breakdown.sort(key=lambda c: (-c.count, c.name))
        return breakdown

    def recent_days(self, days: int = 7) -> list[DayStats]:
        """Per-day stats for the last N days, oldest first."""
        if days <= 0:
            return []
        return [self.day_stats(day) for day in iter_days(shift_day(self.today, -(days - 1)), self.today)]

    def daily_summary(self) -> DailySummary:
        """Headline numbers: today, this week, this month and the streak."""
        today = self.day_stats(self.today)
        return DailySummary(
            total_habits=len(self.snapshot.habits),
            active_today=today.possible,
            completed_today=today.completed,
            week=self.period_completions(*self.week_period()),
            month=self.period_completions(*self.month_period()),
            current_streak=self.current_streak(),
        )

    def achievement_progress(
        self, definitions: Iterable[AchievementDefinition]
    ) -> list[Achievement]:
        """
        Evaluate achievement definitions against the current aggregates.

        Args:
            definitions: Achievement definitions

        Returns:
            Achievements with capped progress and completion flag
        """
        achievements = []
        for definition in definitions:
            value = definition.metric(self)
            achievements.append(
                Achievement(
                    id=definition.id,
                    title=definition.title,
                    description=definition.description,
                    threshold=definition.threshold,
                    progress=min(value, definition.threshold),
                    is_completed=value >= definition.threshold,
                )
            )
        return achievements
