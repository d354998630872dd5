"""Local ledger entries and their storage keys."""

from dataclasses import dataclass

from habitflow.dates import DAY_FORMAT_LENGTH


@dataclass(frozen=True)
class LedgerEntry:
    """A locally recorded completion state for one habit on one day."""
    habit_id: str
    date: str  # YYYY-MM-DD
    completed: bool

    @property
    def key(self) -> str:
        return ledger_key(self.habit_id, self.date)

    def to_dict(self) -> dict:
        """Serialize to the persisted blob format (habit id lives in the key)."""
        return {"completed": self.completed, "date": self.date}


def ledger_key(habit_id: str, day: str) -> str:
    """Build the ``{habit_id}-{YYYY-MM-DD}`` ledger key."""
    return f"{habit_id}-{day}"


def split_ledger_key(key: str) -> tuple[str, str]:
    """
    Split a ledger key into (habit_id, day).

    Habit ids may contain dashes (GUIDs), so the day is always the last
    ten characters.

    Raises:
        ValueError: If the key is too short to hold an id and a day
    """
    if len(key) < DAY_FORMAT_LENGTH + 2 or key[-DAY_FORMAT_LENGTH - 1] != "-":
        raise ValueError(f"Malformed ledger key: {key!r}")
    return key[: -DAY_FORMAT_LENGTH - 1], key[-DAY_FORMAT_LENGTH:]
