"""SQLite key-value store for the local completion ledger."""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Mapping, Optional

from habitflow.dates import try_day_key
from habitflow.ledger.models import LedgerEntry, split_ledger_key

logger = logging.getLogger(__name__)

LEDGER_KEY = "@habitflow:ledger"
ROLLOVER_KEY = "@habitflow:last_rollover"


class StorageUnavailable(Exception):
    """Local persistence could not be read or written."""


class InvariantViolation(Exception):
    """A ledger record disagrees with the key it is stored under."""


def apply_rollover(
    entries: Mapping[str, LedgerEntry], last_rollover: Optional[str], today: str
) -> tuple[dict[str, LedgerEntry], bool]:
    """
    Apply the day-rollover rule.

    When the last rollover happened on a different day, entries dated today
    are left over from a stale session and are dropped so today starts
    unmarked. Entries for other days are kept for streak history.

    Args:
        entries: Current ledger entries by key
        last_rollover: Persisted rollover marker, or None if never run
        today: Today's day key

    Returns:
        Tuple of (entries, changed) where changed means the filtered set and
        a new marker must be persisted
    """
    if last_rollover == today:
        return dict(entries), False

    kept = {key: entry for key, entry in entries.items() if entry.date != today}
    dropped = len(entries) - len(kept)
    if dropped:
        logger.info(f"Rollover to {today}: dropped {dropped} stale entries for today")
    return kept, True


def decode_entries(blob: Mapping[str, dict]) -> dict[str, LedgerEntry]:
    """
    Decode the persisted ledger blob.

    Records whose stored date disagrees with their key are dropped; the key
    is the source of truth.
    """
    entries = {}
    for key, raw in blob.items():
        try:
            entries[key] = _decode_entry(key, raw)
        except InvariantViolation as e:
            logger.warning(f"Dropping ledger record {key}: {e}")
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f"Dropping malformed ledger record {key}: {e}")
    return entries


def _decode_entry(key: str, raw: dict) -> LedgerEntry:
    if not isinstance(raw, dict):
        raise TypeError(f"expected an object, got {type(raw).__name__}")

    habit_id, key_day = split_ledger_key(key)
    if try_day_key(key_day) != key_day:
        raise ValueError(f"invalid day in key: {key_day}")

    stored_day = raw.get("date")
    if stored_day != key_day:
        raise InvariantViolation(f"stored date {stored_day!r} != key date {key_day}")

    return LedgerEntry(habit_id=habit_id, date=key_day, completed=bool(raw["completed"]))


def encode_entries(entries: Mapping[str, LedgerEntry]) -> str:
    """Encode entries to the persisted JSON blob."""
    return json.dumps({key: entry.to_dict() for key, entry in entries.items()}, sort_keys=True)


class LedgerStore:
    """Durable key-value persistence for ledger entries and the rollover marker."""

    def __init__(self, db_path: str = "data/ledger.db"):
        """Initialize store."""
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
        )
        return conn

    def _read(self) -> tuple[Optional[str], Optional[str]]:
        try:
            with self._connect() as conn:
                rows = dict(
                    conn.execute(
                        "SELECT key, value FROM kv WHERE key IN (?, ?)",
                        (LEDGER_KEY, ROLLOVER_KEY),
                    ).fetchall()
                )
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(f"Cannot read {self.db_path}: {e}") from e
        return rows.get(LEDGER_KEY), rows.get(ROLLOVER_KEY)

    def _write(self, values: dict[str, str]):
        try:
            with self._connect() as conn:
                conn.executemany(
                    "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                    list(values.items()),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailable(f"Cannot write {self.db_path}: {e}") from e

    def load(self, today: str) -> tuple[dict[str, LedgerEntry], str]:
        """
        Load ledger entries, applying the day-rollover rule.

        If the rolled-over entries cannot be written back, they are still
        returned with today as the marker; the next successful save persists
        both.

        Args:
            today: Today's day key (device-local)

        Returns:
            Tuple of (entries by key, last rollover date)

        Raises:
            StorageUnavailable: If storage cannot be read, or the blob is
                corrupt
        """
        blob, last_rollover = self._read()

        if blob:
            try:
                raw_entries = json.loads(blob)
            except json.JSONDecodeError as e:
                raise StorageUnavailable(f"Corrupt ledger blob: {e}") from e
            if not isinstance(raw_entries, dict):
                raise StorageUnavailable("Corrupt ledger blob: not a mapping")
            entries = decode_entries(raw_entries)
        else:
            entries = {}

        entries, changed = apply_rollover(entries, last_rollover, today)
        if changed:
            try:
                self.save(entries, last_rollover=today)
            except StorageUnavailable as e:
                logger.error(f"Could not persist rollover, keeping in-memory state: {e}")
            last_rollover = today

        logger.info(f"Loaded {len(entries)} ledger entries from {self.db_path}")
        return entries, last_rollover

    def save(self, entries: Mapping[str, LedgerEntry], last_rollover: Optional[str] = None):
        """
        Persist all ledger entries.

        Args:
            entries: Entries by key
            last_rollover: Rollover marker to write alongside, if given

        Raises:
            StorageUnavailable: If storage cannot be written
        """
        values = {LEDGER_KEY: encode_entries(entries)}
        if last_rollover:
            values[ROLLOVER_KEY] = last_rollover
        self._write(values)
        logger.debug(f"Saved {len(entries)} ledger entries")

    def read_marker(self) -> Optional[str]:
        """Read the rollover marker without touching the entries."""
        return self._read()[1]
