"""Process-wide ledger service."""

import logging
import threading
from typing import Optional

from habitflow.ledger.models import LedgerEntry, ledger_key
from habitflow.ledger.store import LedgerStore, StorageUnavailable

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Owns the in-memory ledger for the lifetime of the process.

    ``init()`` loads from storage and runs the rollover once; writes are not
    accepted before that. Persistence failures never lose the in-memory
    state, they only cost durability.
    """

    def __init__(self, store: LedgerStore):
        """Initialize with the backing store."""
        self.store = store
        self._entries: dict[str, LedgerEntry] = {}
        self._lock = threading.RLock()
        self._initialized = False
        self.last_rollover: Optional[str] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self, today: str):
        """
        Load the ledger and apply the day-rollover rule.

        Safe to call more than once; later calls are no-ops.

        Args:
            today: Today's day key
        """
        with self._lock:
            if self._initialized:
                return

            try:
                self._entries, self.last_rollover = self.store.load(today)
            except StorageUnavailable as e:
                logger.warning(f"Ledger storage unavailable, starting empty: {e}")
                self._entries = {}
                self.last_rollover = None

            self._initialized = True
            logger.info(f"✓ Ledger ready with {len(self._entries)} entries")

    def dispose(self):
        """Flush the ledger one last time and release in-memory state."""
        with self._lock:
            if not self._initialized:
                return
            self._persist()
            self._entries = {}
            self._initialized = False
            logger.info("Ledger disposed")

    def get(self, habit_id: str, day: str) -> Optional[LedgerEntry]:
        with self._lock:
            return self._entries.get(ledger_key(habit_id, day))

    def set_entry(self, habit_id: str, day: str, completed: bool) -> LedgerEntry:
        """
        Record a completion state and persist immediately.

        Args:
            habit_id: Habit ID
            day: Day key
            completed: New completion state

        Returns:
            The stored entry

        Raises:
            RuntimeError: If called before init()
        """
        with self._lock:
            if not self._initialized:
                raise RuntimeError("Ledger not initialized")

            entry = LedgerEntry(habit_id=habit_id, date=day, completed=completed)
            self._entries[entry.key] = entry
            self._persist()

        logger.debug(f"Ledger set {entry.key} -> {completed}")
        return entry

    def forget_habit(self, habit_id: str) -> int:
        """Drop every entry belonging to a deleted habit."""
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.habit_id == habit_id]
            for key in stale:
                del self._entries[key]
            if stale and self._initialized:
                self._persist()

        if stale:
            logger.info(f"Dropped {len(stale)} ledger entries for deleted habit {habit_id}")
        return len(stale)

    def snapshot(self) -> dict[str, LedgerEntry]:
        """Copy of the current entries."""
        with self._lock:
            return dict(self._entries)

    def _persist(self):
        try:
            self.store.save(self._entries, last_rollover=self.last_rollover)
        except StorageUnavailable as e:
            logger.error(f"Could not persist ledger, keeping in-memory state: {e}")
