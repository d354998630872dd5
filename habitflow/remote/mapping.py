"""Convert habit server payloads into domain models."""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from habitflow.dates import try_day_key
from habitflow.engine.models import Category, CompletionRecord, Habit
from habitflow.remote.models import CategoryDto, HabitDto, HabitRecordDto

logger = logging.getLogger(__name__)


def parse_habits(payload: list[dict]) -> list[Habit]:
    """
    Parse the GET /habits payload.

    Habits that fail validation are skipped with a warning so one bad row
    does not hide the rest.

    Args:
        payload: Decoded JSON list from the server

    Returns:
        List of Habit objects
    """
    habits = []
    for raw in payload or []:
        habit = parse_habit(raw)
        if habit:
            habits.append(habit)

    logger.info(f"Parsed {len(habits)} habits from server payload")
    return habits


def parse_habit(raw: dict) -> Optional[Habit]:
    """
    Parse a single habit with its records.

    Args:
        raw: Habit dictionary from the server

    Returns:
        Habit if valid, None if invalid
    """
    try:
        dto = HabitDto.model_validate(raw)
    except PydanticValidationError as e:
        logger.warning(f"Skipping invalid habit: {e}")
        return None

    created_at = try_day_key(dto.created_at)
    if created_at is None:
        logger.warning(f"Habit {dto.name} has invalid createdAt {dto.created_at!r}, skipping")
        return None

    records = []
    for raw_record in dto.records or []:
        record = _parse_record(dto.id, raw_record)
        if record:
            records.append(record)

    return Habit(
        id=dto.id,
        name=dto.name,
        frequency=dto.frequency,
        color=dto.color,
        created_at=created_at,
        description=dto.description,
        category_id=dto.category_id or None,
        records=tuple(records),
    )


def _parse_record(habit_id: str, raw: dict) -> Optional[CompletionRecord]:
    """
    Parse a completion record, normalizing its date to a calendar day.

    Args:
        habit_id: Owning habit, used when the record omits it
        raw: Record dictionary from the server

    Returns:
        CompletionRecord if valid, None if invalid
    """
    if isinstance(raw, dict) and "habitId" not in raw and "habit_id" not in raw:
        raw = {**raw, "habitId": habit_id}

    try:
        dto = HabitRecordDto.model_validate(raw)
    except PydanticValidationError as e:
        logger.warning(f"Skipping invalid record for habit {habit_id}: {e}")
        return None

    day = try_day_key(dto.date)
    if day is None:
        logger.warning(f"Record {dto.id} has invalid date {dto.date!r}, skipping")
        return None

    return CompletionRecord(
        id=dto.id,
        habit_id=dto.habit_id,
        date=day,
        completed=dto.completed,
        note=dto.note,
        achieved_value=dto.achieved_value,
    )


def parse_categories(payload: list[dict]) -> list[Category]:
    """Parse the GET /categories payload, skipping invalid rows."""
    categories = []
    for raw in payload or []:
        try:
            dto = CategoryDto.model_validate(raw)
        except PydanticValidationError as e:
            logger.warning(f"Skipping invalid category: {e}")
            continue
        categories.append(Category(id=dto.id, name=dto.name, color=dto.color))
    return categories
