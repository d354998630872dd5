"""HTTP client for the habit server."""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from habitflow.dates import try_day_key
from habitflow.engine.models import Category, Habit
from habitflow.remote.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    RemoteError,
    ValidationError,
)
from habitflow.remote.mapping import parse_categories, parse_habits
from habitflow.remote.models import MarkHabitRequest

logger = logging.getLogger(__name__)

STATUS_ERRORS = {
    400: ValidationError,
    401: AuthError,
    404: NotFoundError,
}


def wire_datetime(day: str) -> str:
    """
    Convert a day key to the full date-time the server expects.

    Raises:
        ValidationError: If the day is not a valid calendar day
    """
    key = try_day_key(day)
    if key is None:
        raise ValidationError(f"Invalid date: {day!r}")
    return f"{key}T00:00:00.000Z"


class HabitAPIClient:
    """REST client for the habit server API."""

    def __init__(self, api_url: str, api_token: str = "", timeout: float = 30):
        """
        Initialize client.

        Args:
            api_url: Base URL of the habit server (e.g., http://192.168.0.17:5071)
            api_token: Bearer token from the login flow
            timeout: Per-request timeout in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self):
        """Open the HTTP session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )
            logger.info(f"Opened session to {self.api_url}")

    async def disconnect(self):
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("Closed habit server session")

    async def __aenter__(self) -> "HabitAPIClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info):
        await self.disconnect()

    def set_token(self, api_token: str):
        """Swap in a fresh token after re-authentication."""
        self.api_token = api_token
        logger.info("Habit server token updated")

    async def request(self, method: str, path: str, body: Optional[dict] = None) -> Any:
        """
        Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Path relative to the API URL (e.g., "/habits")
            body: Optional JSON body

        Returns:
            Decoded JSON, or None for an empty response

        Raises:
            AuthError: 401
            NotFoundError: 404
            ValidationError: 400
            NetworkError: No response (connection failure or timeout)
            RemoteError: Any other non-2xx status
        """
        if self.session is None:
            raise RuntimeError("Not connected to habit server")

        headers = {}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"

        url = f"{self.api_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            async with self.session.request(method, url, json=body, headers=headers) as response:
                text = await response.text()
                if response.status >= 400:
                    raise self._error_for(response.status, text)
        except asyncio.TimeoutError as e:
            raise NetworkError(f"{method} {path} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON: {e}", response.status) from e

    def _error_for(self, status: int, text: str) -> RemoteError:
        """Map an error response to the remote error taxonomy."""
        message = text
        try:
            data = json.loads(text)
            if isinstance(data, dict) and data.get("message"):
                message = data["message"]
        except json.JSONDecodeError:
            pass

        error_class = STATUS_ERRORS.get(status, RemoteError)
        logger.error(f"Habit server returned {status}: {message}")
        return error_class(message or f"HTTP {status}", status)

    async def list_habits(self) -> list[Habit]:
        """
        Get all habits with their completion records.

        Returns:
            List of Habit objects
        """
        payload = await self.request("GET", "/habits")
        return parse_habits(payload or [])

    async def list_categories(self) -> list[Category]:
        """
        Get all categories.

        Returns:
            List of Category objects
        """
        payload = await self.request("GET", "/categories")
        return parse_categories(payload or [])

    async def mark_done(
        self,
        habit_id: str,
        day: str,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ):
        """
        Record a habit as done.

        Args:
            habit_id: Habit ID
            day: Day key (YYYY-MM-DD)
            note: Optional note, defaults to "done"
            value: Achieved value, defaults to 1
        """
        payload = MarkHabitRequest(
            date=wire_datetime(day),
            note=note or "done",
            achieved_value=1 if value is None else value,
        )
        await self.request(
            "POST", f"/habits/{habit_id}/records/done", payload.model_dump(by_alias=True)
        )
        logger.info(f"Marked habit {habit_id} done on {day}")

    async def mark_not_done(
        self,
        habit_id: str,
        day: str,
        note: Optional[str] = None,
        value: Optional[float] = None,
    ):
        """
        Record a habit as not done.

        Args:
            habit_id: Habit ID
            day: Day key (YYYY-MM-DD)
            note: Optional note, defaults to "undone"
            value: Achieved value, defaults to 0
        """
        payload = MarkHabitRequest(
            date=wire_datetime(day),
            note=note or "undone",
            achieved_value=0 if value is None else value,
        )
        await self.request(
            "POST", f"/habits/{habit_id}/records/not-done", payload.model_dump(by_alias=True)
        )
        logger.info(f"Marked habit {habit_id} not done on {day}")


async def demo_list_habits():
    """Demo: fetch habits and print today's state."""
    from dotenv import load_dotenv

    from habitflow.config import Settings

    load_dotenv()
    settings = Settings()

    if not settings.api_token:
        print("Error: HABITFLOW_API_TOKEN must be set in .env file")
        return

    async with HabitAPIClient(settings.api_url, settings.api_token) as client:
        habits = await client.list_habits()
        print(f"\nFound {len(habits)} habits")
        for habit in habits:
            print(f"  - {habit.name} ({habit.frequency}): {len(habit.records)} records")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(demo_list_habits())
