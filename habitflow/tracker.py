"""Habit tracker: ledger, server and statistics behind one interface."""

import asyncio
import logging
import threading
from typing import Callable, Optional

from habitflow.config import Settings
from habitflow.dates import iter_days, today_key
from habitflow.engine.models import Category, Habit, Snapshot, StatsReport
from habitflow.engine.stats import STREAK_LOOKBACK_DAYS, StatsEngine
from habitflow.ledger.service import LedgerService
from habitflow.ledger.store import LedgerStore
from habitflow.remote.client import HabitAPIClient
from habitflow.remote.errors import RemoteError
from habitflow.remote.repository import HabitRepository
from habitflow.toggle import ToggleCoordinator, ToggleResult

logger = logging.getLogger(__name__)


class HabitTracker:
    """
    Process-wide entry point for UI code.

    Holds the latest habit list from the server and the local ledger, hands
    out consistent snapshots for statistics, and routes toggles through the
    coordinator.
    """

    def __init__(
        self,
        repository: HabitRepository,
        ledger: LedgerService,
        clock: Callable[[], str] = today_key,
        lookback_days: int = STREAK_LOOKBACK_DAYS,
        sync_timeout: float = 30,
        refresh_after_sync: bool = True,
    ):
        """
        Initialize tracker.

        Args:
            repository: Habit server
            ledger: Local ledger service
            clock: Returns today's day key
            lookback_days: Upper bound for streak walks
            sync_timeout: Sync timeout in seconds
            refresh_after_sync: Reload habits after each successful sync
        """
        self.repository = repository
        self.ledger = ledger
        self.clock = clock
        self.lookback_days = lookback_days
        self.categories: list[Category] = []
        self._habits: dict[str, Habit] = {}
        self._lock = threading.RLock()
        self._refresh_lock = asyncio.Lock()
        self.coordinator = ToggleCoordinator(
            self, repository, timeout=sync_timeout, refresh_after_sync=refresh_after_sync
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "HabitTracker":
        """Build a tracker backed by the HTTP client and the SQLite ledger."""
        client = HabitAPIClient(
            settings.api_url, settings.api_token, timeout=settings.sync_timeout_seconds
        )
        ledger = LedgerService(LedgerStore(settings.ledger_path))
        return cls(
            client,
            ledger,
            lookback_days=settings.streak_lookback_days,
            sync_timeout=settings.sync_timeout_seconds,
            refresh_after_sync=settings.refresh_after_sync,
        )

    def today(self) -> str:
        return self.clock()

    async def init(self) -> bool:
        """
        Load the ledger, then fetch habits from the server.

        The ledger (and its rollover) is ready before this returns, so toggles
        are safe afterwards. A server failure is not fatal: the tracker runs
        on whatever it has.

        Returns:
            True if the initial refresh reached the server
        """
        self.ledger.init(self.today())
        await self.repository.connect()

        try:
            await self.refresh()
        except RemoteError as e:
            logger.warning(f"Initial refresh failed, continuing offline: {e}")
            return False
        return True

    async def dispose(self):
        """Flush the ledger and close the server connection."""
        self.ledger.dispose()
        await self.repository.disconnect()

    async def refresh(self) -> list[Habit]:
        """
        Reload habits (and categories) from the server.

        Refreshes run one at a time, so a slow older response can never
        overwrite a newer one. Habits that disappeared are treated as
        deleted: their pending syncs are discarded.

        Raises:
            RemoteError: If habits cannot be fetched
        """
        async with self._refresh_lock:
            habits = await self.repository.list_habits()

            try:
                categories = await self.repository.list_categories()
            except RemoteError as e:
                logger.warning(f"Could not load categories: {e}")
                categories = None

            with self._lock:
                removed = set(self._habits) - {h.id for h in habits}
                self._habits = {h.id: h for h in habits}
                if categories is not None:
                    self.categories = categories

        for habit_id in removed:
            self.coordinator.forget(habit_id)

        logger.info(f"Refreshed {len(habits)} habits")
        return habits

    def set_habits(self, habits: list[Habit]):
        """Replace the habit list without contacting the server."""
        with self._lock:
            self._habits = {h.id: h for h in habits}

    def remove_habit(self, habit_id: str):
        """Drop a deleted habit, its ledger entries and any pending sync response."""
        with self._lock:
            self._habits.pop(habit_id, None)
        self.coordinator.forget(habit_id)
        self.ledger.forget_habit(habit_id)

    @property
    def habits(self) -> list[Habit]:
        with self._lock:
            return list(self._habits.values())

    def snapshot(self) -> Snapshot:
        """Read habits and ledger together, never one without the other."""
        with self._lock:
            return Snapshot.build(self._habits.values(), self.ledger.snapshot(), self.today())

    def stats(self) -> StatsEngine:
        """Stats engine over a fresh snapshot."""
        return StatsEngine(self.snapshot(), lookback_days=self.lookback_days)

    def get_stats(self, start: Optional[str] = None, end: Optional[str] = None) -> StatsReport:
        """
        Query statistics for one day or an inclusive range.

        Args:
            start: First day key, defaults to today
            end: Last day key, defaults to start

        Returns:
            StatsReport with per-day numbers, totals and the current streak
        """
        engine = self.stats()
        start = start or engine.today
        end = end or start

        days = [engine.day_stats(day) for day in iter_days(start, end)]
        return StatsReport(
            start=start,
            end=end,
            days=days,
            totals=engine.period_completions(start, end),
            current_streak=engine.current_streak(),
        )

    async def toggle(
        self,
        habit_id: str,
        day: Optional[str] = None,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ) -> ToggleResult:
        """Flip a habit's completion for a day (today by default)."""
        return await self.coordinator.toggle(habit_id, day, note=note, value=value)

    def resume_sync(self, api_token: Optional[str] = None):
        """
        Re-enable syncing after the user has logged in again.

        Args:
            api_token: Fresh token from the login flow, if it changed
        """
        if api_token:
            self.repository.set_token(api_token)
        self.coordinator.resume_sync()
