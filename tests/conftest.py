"""Shared fixtures: a fixed today, habit builders and a fake habit server."""

import asyncio
from typing import Optional

import pytest

from habitflow.dates import shift_day
from habitflow.engine.models import Category, CompletionRecord, Habit, Snapshot
from habitflow.ledger.models import LedgerEntry
from habitflow.ledger.service import LedgerService
from habitflow.ledger.store import LedgerStore
from habitflow.tracker import HabitTracker

TODAY = "2026-10-14"  # a Wednesday
SATURDAY = "2026-10-17"


def make_habit(
    habit_id: str = "h1",
    name: str = "Drink Water",
    frequency: str = "daily",
    records=(),
    category_id: Optional[str] = None,
) -> Habit:
    return Habit(
        id=habit_id,
        name=name,
        frequency=frequency,
        color="#2563EB",
        created_at="2026-01-01",
        category_id=category_id,
        records=tuple(records),
    )


def record(habit_id: str, day: str, completed: bool = True) -> CompletionRecord:
    return CompletionRecord(id=f"r-{habit_id}-{day}", habit_id=habit_id, date=day, completed=completed)


def entry(habit_id: str, day: str, completed: bool = True) -> LedgerEntry:
    return LedgerEntry(habit_id=habit_id, date=day, completed=completed)


def make_snapshot(habits, entries=(), today: str = TODAY) -> Snapshot:
    return Snapshot.build(habits, {e.key: e for e in entries}, today)


def days_back(count: int, today: str = TODAY) -> list[str]:
    """Today and the count-1 days before it."""
    return [shift_day(today, -i) for i in range(count)]


class FakeRepository:
    """In-memory stand-in for the habit server."""

    def __init__(self, habits=(), categories=()):
        self.habits = list(habits)
        self.categories = list(categories)
        self.calls: list[tuple[str, str, str]] = []
        self.fail_with: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.delay: float = 0
        self.connected = False
        self.token = "secret"
        self.listing = 0
        self.peak_listing = 0

    def set_token(self, api_token):
        self.token = api_token

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def list_habits(self):
        self.listing += 1
        self.peak_listing = max(self.peak_listing, self.listing)
        try:
            await asyncio.sleep(0)
            if self.list_error:
                raise self.list_error
            return list(self.habits)
        finally:
            self.listing -= 1

    async def list_categories(self):
        return list(self.categories)

    async def mark_done(self, habit_id, day, note=None, value=None):
        await self._call("done", habit_id, day)

    async def mark_not_done(self, habit_id, day, note=None, value=None):
        await self._call("not_done", habit_id, day)

    async def _call(self, kind, habit_id, day):
        self.calls.append((kind, habit_id, day))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def ledger_path(tmp_path):
    return str(tmp_path / "ledger.db")


@pytest.fixture
def repository():
    return FakeRepository(
        habits=[make_habit("h1", "Drink Water", category_id="c1")],
        categories=[Category(id="c1", name="Health", color="#16A34A")],
    )


@pytest.fixture
def tracker(repository, ledger_path):
    """Initialized tracker on a fixed today, backed by the fake server."""
    tracker = HabitTracker(
        repository,
        LedgerService(LedgerStore(ledger_path)),
        clock=lambda: TODAY,
        sync_timeout=1,
    )
    asyncio.run(tracker.init())
    return tracker
