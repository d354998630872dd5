"""Local query API response models."""

from typing import Optional

from pydantic import BaseModel


class ToggleResponse(BaseModel):
    """Response for POST /habits/{habit_id}/toggle."""

    habit_id: str
    date: Optional[str] = None
    status: str
    completed: Optional[bool] = None
    applied: bool
    error: Optional[str] = None


class AchievementResponse(BaseModel):
    """One achievement with its progress."""

    id: str
    title: str
    description: str
    threshold: float
    progress: float
    is_completed: bool


class StatusResponse(BaseModel):
    """Response for /status."""

    status: str = "running"
    version: str
    today: str
    habits: int
    ledger_ready: bool
    sync_paused: bool


class ResumeSyncRequest(BaseModel):
    """Request to re-enable sync after logging in again."""

    api_token: Optional[str] = None
