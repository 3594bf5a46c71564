"""
DateTime utilities for the seating engine.

All instants handled by the engine are naive wall-clock datetimes in the
restaurant timezone. Pre-bookings store a date plus an "HH:MM" slot string,
walk-ins store an absolute datetime.
"""
from datetime import datetime, timedelta, date, time
from typing import Optional, Tuple
import re
import pytz

from core.config import settings


# Timezone configuration
TIMEZONE = pytz.timezone(settings.restaurant_timezone)

TIME_SLOT_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$')


def get_current_datetime() -> datetime:
    """Get current wall-clock datetime in the restaurant timezone (naive)."""
    return datetime.now(TIMEZONE).replace(tzinfo=None)


def to_local(value: datetime) -> datetime:
    """
    Normalize a datetime to naive restaurant-local time.

    Aware datetimes are converted to the restaurant timezone first;
    naive ones are assumed to already be local.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(TIMEZONE).replace(tzinfo=None)


def parse_time_slot(slot: str) -> Optional[time]:
    """
    Parse a time slot string into a time object.

    Supports "19:00", "7:30" and "19:00:00".

    Args:
        slot: Time slot text

    Returns:
        time object or None if parsing fails
    """
    if not slot:
        return None

    match = TIME_SLOT_PATTERN.match(slot.strip())
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    return time(hour, minute)


def format_time_slot(value: datetime) -> str:
    """Format a datetime as an "HH:MM" slot string."""
    return value.strftime('%H:%M')


def combine_date_slot(booking_date: date, slot: str) -> datetime:
    """
    Build the local datetime of a date + time slot pair.

    Raises:
        ValueError: If the slot is not a valid HH:MM string
    """
    slot_time = parse_time_slot(slot)
    if slot_time is None:
        raise ValueError(f"Invalid time slot: {slot!r}")
    return datetime.combine(booking_date, slot_time)


def split_date_slot(value: datetime) -> Tuple[date, str]:
    """Split a datetime into its (date, "HH:MM") pair."""
    return value.date(), format_time_slot(value)


def minutes_until(target: datetime, now: datetime) -> int:
    """Whole minutes from now until target, rounded down (negative if past)."""
    return int((target - now).total_seconds() // 60)


def day_bounds(value: datetime) -> Tuple[datetime, datetime]:
    """Return [start of day, start of next day) for the given datetime."""
    start = datetime.combine(value.date(), time.min)
    return start, start + timedelta(days=1)
