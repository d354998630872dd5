"""Optimistic completion toggling."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from habitflow.dates import try_day_key
from habitflow.engine.resolver import is_completed_on
from habitflow.remote.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from habitflow.remote.repository import HabitRepository

if TYPE_CHECKING:
    from habitflow.tracker import HabitTracker

logger = logging.getLogger(__name__)


class ToggleStatus(str, Enum):
    """Outcome of a toggle request."""

    SYNCED = "synced"
    SYNC_FAILED = "sync_failed"
    SYNC_PAUSED = "sync_paused"
    DISCARDED = "discarded"
    BUSY = "busy"
    NOT_READY = "not_ready"
    UNKNOWN_HABIT = "unknown_habit"
    INVALID_DATE = "invalid_date"


APPLIED_STATUSES = {
    ToggleStatus.SYNCED,
    ToggleStatus.SYNC_FAILED,
    ToggleStatus.SYNC_PAUSED,
    ToggleStatus.DISCARDED,
}


@dataclass(frozen=True)
class ToggleResult:
    """What happened to a toggle request."""
    habit_id: str
    day: Optional[str]
    status: ToggleStatus
    completed: Optional[bool] = None  # new local state when applied
    error: Optional[RemoteError] = None

    @property
    def applied(self) -> bool:
        """True if the local ledger was updated."""
        return self.status in APPLIED_STATUSES


class ToggleCoordinator:
    """
    Flips a habit's completion state for a day.

    The ledger is written first so the UI sees the new state immediately,
    then the server is told. A failed sync is reported but never rolled
    back. Only one toggle per habit may be in flight at a time.
    """

    def __init__(
        self,
        tracker: "HabitTracker",
        repository: HabitRepository,
        timeout: float = 30,
        refresh_after_sync: bool = True,
    ):
        """
        Initialize coordinator.

        Args:
            tracker: Source of snapshots and the ledger
            repository: Habit server
            timeout: Sync timeout in seconds
            refresh_after_sync: Reload habits after a successful sync
        """
        self.tracker = tracker
        self.repository = repository
        self.timeout = timeout
        self.refresh_after_sync = refresh_after_sync
        self.sync_paused = False
        self._in_flight: set[str] = set()
        self._epochs: dict[str, int] = {}

    def is_busy(self, habit_id: str) -> bool:
        return habit_id in self._in_flight

    def forget(self, habit_id: str):
        """Discard any in-flight sync response for a habit (e.g. it was deleted)."""
        self._epochs[habit_id] = self._epochs.get(habit_id, 0) + 1
        logger.debug(f"Habit {habit_id} now at epoch {self._epochs[habit_id]}")

    def resume_sync(self):
        """Re-enable server sync after re-authentication."""
        if self.sync_paused:
            logger.info("Sync resumed")
        self.sync_paused = False

    async def toggle(
        self,
        habit_id: str,
        day: Optional[str] = None,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ) -> ToggleResult:
        """
        Toggle a habit's completion for a day.

        Args:
            habit_id: Habit ID
            day: Day key, defaults to today
            note: Optional note sent to the server
            value: Optional achieved value sent to the server

        Returns:
            ToggleResult describing the local change and the sync outcome
        """
        day = try_day_key(day) if day is not None else self.tracker.today()
        if day is None:
            return ToggleResult(
                habit_id, None, ToggleStatus.INVALID_DATE, error=ValidationError("Invalid date")
            )

        if habit_id in self._in_flight:
            logger.info(f"Toggle for {habit_id} rejected: sync already in flight")
            return ToggleResult(habit_id, day, ToggleStatus.BUSY)

        if not self.tracker.ledger.initialized:
            return ToggleResult(habit_id, day, ToggleStatus.NOT_READY)

        self._in_flight.add(habit_id)
        try:
            return await self._toggle(habit_id, day, note, value)
        finally:
            self._in_flight.discard(habit_id)

    async def _toggle(
        self, habit_id: str, day: str, note: Optional[str], value: Optional[float]
    ) -> ToggleResult:
        snapshot = self.tracker.snapshot()
        habit = snapshot.habit(habit_id)
        if habit is None:
            return ToggleResult(
                habit_id, day, ToggleStatus.UNKNOWN_HABIT, error=NotFoundError(f"Unknown habit {habit_id}")
            )

        epoch = self._epochs.get(habit_id, 0)
        new_state = not is_completed_on(habit, day, snapshot.ledger)

        # Optimistic write: visible before the server answers
        self.tracker.ledger.set_entry(habit_id, day, new_state)
        logger.info(f"{habit.name} on {day} -> {'done' if new_state else 'not done'} (local)")

        if self.sync_paused:
            return ToggleResult(
                habit_id, day, ToggleStatus.SYNC_PAUSED, new_state,
                error=AuthError("Sync paused until re-authentication"),
            )

        error = await self._sync(habit_id, day, new_state, note, value)

        if self._epochs.get(habit_id, 0) != epoch:
            logger.info(f"Discarding stale sync response for {habit_id}")
            return ToggleResult(habit_id, day, ToggleStatus.DISCARDED, new_state, error)

        if error is not None:
            if isinstance(error, AuthError):
                self.sync_paused = True
                logger.warning("Habit server rejected credentials, pausing sync")
            logger.warning(f"Sync failed for {habit.name} on {day}, keeping local state: {error}")
            return ToggleResult(habit_id, day, ToggleStatus.SYNC_FAILED, new_state, error)

        if self.refresh_after_sync:
            try:
                await self.tracker.refresh()
            except RemoteError as e:
                logger.warning(f"Refresh after sync failed: {e}")

        return ToggleResult(habit_id, day, ToggleStatus.SYNCED, new_state)

    async def _sync(
        self,
        habit_id: str,
        day: str,
        completed: bool,
        note: Optional[str],
        value: Optional[float],
    ) -> Optional[RemoteError]:
        """Push the new state to the server, returning the error if it failed."""
        call = self.repository.mark_done if completed else self.repository.mark_not_done
        try:
            await asyncio.wait_for(call(habit_id, day, note=note, value=value), self.timeout)
        except asyncio.TimeoutError:
            return NetworkError(f"Sync timed out after {self.timeout}s")
        except RemoteError as e:
            return e
        return None
