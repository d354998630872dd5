"""Which habits are expected on which days."""

from habitflow.dates import day_of_week
from habitflow.engine.models import Frequency

# Sunday=0, Saturday=6
WEEKEND_DAYS = {0, 6}


def is_active_on(frequency: str, day: str) -> bool:
    """
    Check whether a frequency rule expects the habit on a day.

    ``weekly`` is not narrowed to one day of the week, and unknown rules are
    treated as always active.

    Args:
        frequency: Raw frequency string from the habit
        day: Day key

    Returns:
        True if the habit is active on that day
    """
    rule = (frequency or "").strip().lower()

    if rule == Frequency.WEEKDAYS.value:
        return day_of_week(day) not in WEEKEND_DAYS
    if rule == Frequency.WEEKENDS.value:
        return day_of_week(day) in WEEKEND_DAYS

    # daily, weekly and anything unrecognized
    return True
