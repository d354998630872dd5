"""Contract the engine needs from the habit server."""

from typing import Optional, Protocol

from habitflow.engine.models import Category, Habit


class HabitRepository(Protocol):
    """
    Remote source of habit definitions and their completion history.

    Implementations raise the errors in ``habitflow.remote.errors``.
    """

    async def connect(self) -> None:
        """Open any underlying connection."""
        ...

    async def disconnect(self) -> None:
        """Release any underlying connection."""
        ...

    async def list_habits(self) -> list[Habit]:
        """Fetch all habits with their records."""
        ...

    async def list_categories(self) -> list[Category]:
        """Fetch the category lookup table."""
        ...

    def set_token(self, api_token: str) -> None:
        """Use a fresh credential for later calls."""
        ...

    async def mark_done(
        self,
        habit_id: str,
        day: str,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ) -> None:
        """Record a habit as done on a day."""
        ...

    async def mark_not_done(
        self,
        habit_id: str,
        day: str,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ) -> None:
        """Record a habit as not done on a day."""
        ...
