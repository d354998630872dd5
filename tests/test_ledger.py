"""Tests for the local ledger store and service."""

import json
import sqlite3

import pytest

from conftest import TODAY, days_back, entry
from habitflow.dates import shift_day
from habitflow.ledger.models import ledger_key, split_ledger_key
from habitflow.ledger.service import LedgerService
from habitflow.ledger.store import (
    LEDGER_KEY,
    ROLLOVER_KEY,
    LedgerStore,
    StorageUnavailable,
    apply_rollover,
)

YESTERDAY = shift_day(TODAY, -1)


def write_raw(path, blob, marker=None):
    """Seed the kv table directly, the way a previous session left it."""
    with sqlite3.connect(path) as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        conn.execute("INSERT OR REPLACE INTO kv VALUES (?, ?)", (LEDGER_KEY, json.dumps(blob)))
        if marker:
            conn.execute("INSERT OR REPLACE INTO kv VALUES (?, ?)", (ROLLOVER_KEY, marker))
        conn.commit()


def test_split_key_with_dashed_habit_id():
    key = ledger_key("3f2a-11ee-b962", TODAY)
    assert split_ledger_key(key) == ("3f2a-11ee-b962", TODAY)


def test_split_key_rejects_garbage():
    with pytest.raises(ValueError):
        split_ledger_key("nodate")


def test_rollover_drops_stale_today_and_keeps_history():
    entries = {e.key: e for e in [entry("h1", TODAY), entry("h1", YESTERDAY)]}

    kept, changed = apply_rollover(entries, YESTERDAY, TODAY)

    assert changed
    assert list(kept) == [ledger_key("h1", YESTERDAY)]


def test_rollover_is_noop_when_already_run_today():
    entries = {e.key: e for e in [entry("h1", TODAY)]}

    kept, changed = apply_rollover(entries, TODAY, TODAY)

    assert not changed
    assert kept == entries


def test_load_applies_rollover_and_persists_marker(ledger_path):
    write_raw(
        ledger_path,
        {
            ledger_key("h1", TODAY): {"completed": True, "date": TODAY},
            ledger_key("h1", YESTERDAY): {"completed": True, "date": YESTERDAY},
        },
        marker=YESTERDAY,
    )
    store = LedgerStore(ledger_path)

    entries, marker = store.load(TODAY)

    assert marker == TODAY
    assert ledger_key("h1", TODAY) not in entries
    assert entries[ledger_key("h1", YESTERDAY)].completed is True
    assert store.read_marker() == TODAY


def test_load_twice_same_day_is_idempotent(ledger_path):
    write_raw(
        ledger_path,
        {
            ledger_key("h1", TODAY): {"completed": True, "date": TODAY},
            ledger_key("h2", YESTERDAY): {"completed": False, "date": YESTERDAY},
        },
        marker=YESTERDAY,
    )
    store = LedgerStore(ledger_path)

    first = store.load(TODAY)
    second = store.load(TODAY)

    assert first == second


def test_entry_marked_today_survives_reload_same_day(ledger_path):
    store = LedgerStore(ledger_path)
    entries, _ = store.load(TODAY)
    entries[ledger_key("h1", TODAY)] = entry("h1", TODAY)
    store.save(entries)

    reloaded, _ = store.load(TODAY)

    assert reloaded[ledger_key("h1", TODAY)].completed is True


def test_load_first_run_has_no_marker(ledger_path):
    entries, marker = LedgerStore(ledger_path).load(TODAY)
    assert entries == {}
    assert marker == TODAY


def test_load_drops_record_whose_date_disagrees_with_key(ledger_path):
    write_raw(
        ledger_path,
        {
            ledger_key("h1", YESTERDAY): {"completed": True, "date": "2020-01-01"},
            ledger_key("h2", YESTERDAY): {"completed": True, "date": YESTERDAY},
        },
        marker=TODAY,
    )

    entries, _ = LedgerStore(ledger_path).load(TODAY)

    assert list(entries) == [ledger_key("h2", YESTERDAY)]


@pytest.mark.parametrize("bad_record", [True, ["2026-10-13"], "done", None])
def test_load_drops_record_that_is_not_an_object(ledger_path, bad_record):
    write_raw(
        ledger_path,
        {
            ledger_key("h1", YESTERDAY): bad_record,
            ledger_key("h2", YESTERDAY): {"completed": True, "date": YESTERDAY},
        },
        marker=TODAY,
    )
    service = LedgerService(LedgerStore(ledger_path))

    service.init(TODAY)

    assert list(service.snapshot()) == [ledger_key("h2", YESTERDAY)]


def test_corrupt_blob_is_storage_unavailable(ledger_path):
    with sqlite3.connect(ledger_path) as conn:
        conn.execute("CREATE TABLE kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        conn.execute("INSERT INTO kv VALUES (?, ?)", (LEDGER_KEY, "{not json"))
        conn.commit()

    with pytest.raises(StorageUnavailable):
        LedgerStore(ledger_path).load(TODAY)


def test_unreadable_location_is_storage_unavailable(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    with pytest.raises(StorageUnavailable):
        LedgerStore(str(blocker / "ledger.db")).load(TODAY)


def test_saved_blob_matches_persisted_format(ledger_path):
    store = LedgerStore(ledger_path)
    store.save({ledger_key("h1", YESTERDAY): entry("h1", YESTERDAY, completed=False)})

    with sqlite3.connect(ledger_path) as conn:
        (blob,) = conn.execute("SELECT value FROM kv WHERE key = ?", (LEDGER_KEY,)).fetchone()

    assert json.loads(blob) == {
        ledger_key("h1", YESTERDAY): {"completed": False, "date": YESTERDAY}
    }


class BrokenStore:
    """Store whose device storage is gone."""

    def load(self, today):
        raise StorageUnavailable("disk gone")

    def save(self, entries, last_rollover=None):
        raise StorageUnavailable("disk gone")


def test_service_starts_empty_when_storage_unavailable():
    service = LedgerService(BrokenStore())
    service.init(TODAY)

    assert service.initialized
    assert service.snapshot() == {}


def test_service_keeps_memory_state_when_save_fails():
    service = LedgerService(BrokenStore())
    service.init(TODAY)

    service.set_entry("h1", TODAY, True)

    assert service.get("h1", TODAY).completed is True


class FlakyStore(LedgerStore):
    """Store whose first few writes fail."""

    def __init__(self, db_path, failures=1):
        super().__init__(db_path)
        self.failures = failures

    def _write(self, values):
        if self.failures:
            self.failures -= 1
            raise StorageUnavailable("disk full")
        super()._write(values)


def test_failed_rollover_write_keeps_history(ledger_path):
    history = days_back(5, YESTERDAY)
    write_raw(
        ledger_path,
        {ledger_key("h1", day): {"completed": True, "date": day} for day in history},
        marker=YESTERDAY,
    )
    service = LedgerService(FlakyStore(ledger_path))

    service.init(TODAY)

    assert len(service.snapshot()) == 5
    assert service.last_rollover == TODAY

    service.set_entry("h1", TODAY, True)

    store = LedgerStore(ledger_path)
    assert store.read_marker() == TODAY
    reloaded, _ = store.load(TODAY)
    assert len(reloaded) == 6
    assert reloaded[ledger_key("h1", TODAY)].completed is True


def test_service_rejects_writes_before_init(ledger_path):
    service = LedgerService(LedgerStore(ledger_path))
    with pytest.raises(RuntimeError):
        service.set_entry("h1", TODAY, True)


def test_service_persists_across_sessions(ledger_path):
    service = LedgerService(LedgerStore(ledger_path))
    service.init(TODAY)
    service.set_entry("h1", YESTERDAY, True)
    service.dispose()

    reopened = LedgerService(LedgerStore(ledger_path))
    reopened.init(TODAY)

    assert reopened.get("h1", YESTERDAY).completed is True


def test_service_forget_habit(ledger_path):
    service = LedgerService(LedgerStore(ledger_path))
    service.init(TODAY)
    service.set_entry("h1", TODAY, True)
    service.set_entry("h1", YESTERDAY, True)
    service.set_entry("h2", TODAY, True)

    assert service.forget_habit("h1") == 2
    assert set(service.snapshot()) == {ledger_key("h2", TODAY)}
