"""Effective completion state: local ledger first, then server history."""

from typing import Mapping

from habitflow.engine.models import Habit
from habitflow.ledger.models import LedgerEntry, ledger_key

SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"
SOURCE_NONE = "none"


def completion_source(habit: Habit, day: str, ledger: Mapping[str, LedgerEntry]) -> str:
    """
    Report which store decides a habit's state on a day.

    Returns:
        "local", "remote" or "none"
    """
    entry = ledger.get(ledger_key(habit.id, day))
    if entry is not None and entry.date == day:
        return SOURCE_LOCAL

    for record in habit.records:
        if record.date == day:
            return SOURCE_REMOTE

    return SOURCE_NONE


def is_completed_on(habit: Habit, day: str, ledger: Mapping[str, LedgerEntry]) -> bool:
    """
    Resolve whether a habit was completed on a day.

    A local ledger entry wins over the server record for the same day.
    Missing data means not completed; this never raises.

    Args:
        habit: Habit with its remote records
        day: Day key
        ledger: Local ledger entries by key

    Returns:
        Effective completion state
    """
    entry = ledger.get(ledger_key(habit.id, day))
    if entry is not None and entry.date == day:
        return entry.completed

    for record in habit.records:
        if record.date == day:
            return record.completed

    return False
