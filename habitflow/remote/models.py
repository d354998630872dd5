"""Habit API wire models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for camelCase payloads from the habit server."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CategoryDto(WireModel):
    """Category as returned by GET /categories."""

    id: str
    name: str
    description: Optional[str] = None
    color: str = "#9CA3AF"


class HabitRecordDto(WireModel):
    """Completion record nested in a habit."""

    id: str
    habit_id: str = Field(alias="habitId")
    date: str  # ISO date-time as sent by the server
    completed: bool
    note: Optional[str] = None
    achieved_value: Optional[float] = Field(default=None, alias="achievedValue")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class HabitDto(WireModel):
    """Habit as returned by GET /habits."""

    id: str
    name: str
    description: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    frequency: str = "daily"
    target: Optional[str] = None
    color: str = "#2563EB"
    created_at: str = Field(alias="createdAt")
    records: Optional[list[dict]] = None


class MarkHabitRequest(WireModel):
    """Body for POST /habits/{id}/records/done and /not-done."""

    date: str  # full ISO date-time
    note: str
    achieved_value: float = Field(alias="achievedValue")
