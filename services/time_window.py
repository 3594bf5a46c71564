"""
Time window utilities for bookings.

A booking's start is expressed one of two ways: an absolute instant
(walk-ins) or a date + "HH:MM" slot (pre-bookings). `schedule_of` turns a
booking into one of the two tagged variants and `window_of` is the single
normalizing accessor every other module uses.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from core.utils_datetime import combine_date_slot, day_bounds
from domain.enums import BookingType


# Activity window around a non-walk-in booking start
ACTIVE_BEFORE = timedelta(minutes=30)
ACTIVE_AFTER = timedelta(minutes=60)

DEFAULT_DURATION_MINUTES = 60


@dataclass(frozen=True)
class AbsoluteStart:
    """Start given as an absolute instant."""
    at: datetime

    def start(self) -> datetime:
        return self.at


@dataclass(frozen=True)
class ScheduledSlot:
    """Start given as a calendar date and an HH:MM slot."""
    booking_date: date
    time_slot: str

    def start(self) -> datetime:
        return combine_date_slot(self.booking_date, self.time_slot)


Schedule = Union[AbsoluteStart, ScheduledSlot]


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime

    @classmethod
    def starting_at(cls, start: datetime, duration_minutes: int) -> "TimeWindow":
        return cls(start, start + timedelta(minutes=max(duration_minutes, 0)))

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, instant: datetime) -> bool:
        """Closed containment check, start <= instant <= end."""
        return self.start <= instant <= self.end

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def schedule_of(booking) -> Schedule:
    """
    Classify how a booking (ORM record or pydantic model) expresses its start.

    Raises:
        ValueError: If the booking carries neither representation
    """
    if booking.booking_date is not None and booking.booking_time_slot:
        return ScheduledSlot(booking.booking_date, booking.booking_time_slot)
    if booking.booking_time is not None:
        return AbsoluteStart(booking.booking_time)
    raise ValueError(f"Booking {getattr(booking, 'id', '?')} has no start time")


def window_of(booking) -> TimeWindow:
    """Compute the [start, end) window of a booking."""
    duration = booking.duration_minutes
    if duration is None:
        duration = DEFAULT_DURATION_MINUTES
    return TimeWindow.starting_at(schedule_of(booking).start(), duration)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Strict interval overlap; windows that only touch do not overlap."""
    return a_start < b_end and b_start < a_end


def is_active_now(booking, now: datetime) -> bool:
    """
    Check whether a booking is the one currently being served.

    Walk-ins are seated on creation and always count as active. Other
    bookings are active from 30 minutes before their start until 60
    minutes after it.
    """
    if booking.booking_type == BookingType.WALK_IN:
        return True

    start = schedule_of(booking).start()
    return start - ACTIVE_BEFORE <= now <= start + ACTIVE_AFTER


def intersects_day(booking, now: datetime) -> bool:
    """
    Check whether a booking belongs to today's floor plan.

    True for bookings whose window touches today, and for walk-ins created
    today.
    """
    day_start, day_end = day_bounds(now)

    created_at: Optional[datetime] = getattr(booking, "created_at", None)
    if booking.booking_type == BookingType.WALK_IN and created_at is not None:
        if day_start <= created_at < day_end:
            return True

    window = window_of(booking)
    return overlaps(window.start, window.end, day_start, day_end)


def suggest_after(window: TimeWindow, buffer_minutes: int = 5) -> datetime:
    """Next start time after a window, leaving a turnover buffer."""
    return window.end + timedelta(minutes=buffer_minutes)
