"""Data models for habits, completions and derived statistics."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from habitflow.ledger.models import LedgerEntry


class Frequency(str, Enum):
    """Frequency rules the scheduler knows about."""

    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"


@dataclass(frozen=True)
class CompletionRecord:
    """A completion recorded by the server."""
    id: str
    habit_id: str
    date: str  # YYYY-MM-DD
    completed: bool
    note: Optional[str] = None
    achieved_value: Optional[float] = None


@dataclass(frozen=True)
class Habit:
    """A habit to track."""
    id: str
    name: str
    frequency: str
    color: str
    created_at: str  # YYYY-MM-DD
    description: Optional[str] = None
    category_id: Optional[str] = None
    records: tuple[CompletionRecord, ...] = ()


@dataclass(frozen=True)
class Category:
    """Category lookup entry."""
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class Snapshot:
    """
    A consistent view of habits and the local ledger at one instant.

    Every aggregate reads exactly one snapshot, so habits and ledger entries
    can never come from different moments.
    """
    habits: tuple[Habit, ...]
    ledger: Mapping[str, LedgerEntry]
    today: str  # YYYY-MM-DD

    @classmethod
    def build(cls, habits, ledger: Mapping[str, LedgerEntry], today: str) -> "Snapshot":
        """Freeze copies of the given habits and ledger."""
        return cls(
            habits=tuple(habits),
            ledger=MappingProxyType(dict(ledger)),
            today=today,
        )

    def habit(self, habit_id: str) -> Optional[Habit]:
        """Find a habit by id."""
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None


@dataclass(frozen=True)
class PeriodTotals:
    """Completions versus possible completions over a date range."""
    total_completions: int = 0
    total_possible: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_possible == 0:
            return 0.0
        return self.total_completions / self.total_possible


@dataclass(frozen=True)
class DayStats:
    """Completion numbers for one calendar day."""
    date: str
    completed: int
    possible: int
    rate: float
    level: str  # "none", "low", "medium", "high"


@dataclass(frozen=True)
class MonthlyCalendarStats:
    """Per-day rates for a month, up to today."""
    year: int
    month: int
    days: list[DayStats] = field(default_factory=list)
    average_rate: float = 0.0


@dataclass(frozen=True)
class DailySummary:
    """Headline numbers for the home screen."""
    total_habits: int
    active_today: int
    completed_today: int
    week: PeriodTotals
    month: PeriodTotals
    current_streak: int


@dataclass(frozen=True)
class CategoryCount:
    """Number of habits in one category."""
    category_id: Optional[str]
    name: str
    color: Optional[str]
    count: int


@dataclass(frozen=True)
class AchievementDefinition:
    """
    An achievement threshold over one of the engine's aggregates.

    ``metric`` receives the stats engine and returns the current value.
    """
    id: str
    title: str
    description: str
    threshold: float
    metric: Callable = field(compare=False)


@dataclass(frozen=True)
class Achievement:
    """Achievement progress, computed on demand."""
    id: str
    title: str
    description: str
    threshold: float
    progress: float
    is_completed: bool


@dataclass(frozen=True)
class StatsReport:
    """Answer to a get_stats query over one day or a range."""
    start: str
    end: str
    days: list[DayStats]
    totals: PeriodTotals
    current_streak: int
