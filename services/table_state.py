"""
Table state derivation.

Computes what a table's status should be right now from the non-terminal
bookings assigned to it. Pure functions; persistence and locking live in the
reconciliation loop and the booking services.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from core.utils_datetime import minutes_until
from domain.enums import NON_TERMINAL_BOOKING_STATUSES, TableStatus
from services.time_window import TimeWindow, is_active_now, schedule_of, window_of


logger = logging.getLogger(__name__)

# A booking keeps its table held this long past its scheduled end
POST_BUFFER = timedelta(minutes=30)

# A table is held for an upcoming booking starting within this horizon
PRE_HOLD = timedelta(minutes=45)


@dataclass(frozen=True)
class TableState:
    """Derived occupancy of one table at one instant."""
    target_status: TableStatus
    has_active_booking: bool
    nearest_upcoming_start: Optional[datetime]
    # Minutes until the nearest upcoming booking starts
    available_in_minutes: Optional[int]
    # Minutes until the active bookings end
    frees_in_minutes: Optional[int]


def hold_window(booking) -> TimeWindow:
    """Window during which a booking holds its table: [start, end + post-buffer]."""
    window = window_of(booking)
    return TimeWindow(window.start, window.end + POST_BUFFER)


def _usable(bookings: Iterable) -> List:
    usable = []
    for booking in bookings:
        if booking.status not in NON_TERMINAL_BOOKING_STATUSES:
            continue
        try:
            schedule_of(booking)
        except ValueError as e:
            logger.warning(f"Ignoring booking with unusable time: {e}")
            continue
        usable.append(booking)
    return usable


def derive_table_state(bookings: Iterable, now: datetime) -> TableState:
    """
    Derive the status a table should have from its bookings.

    The table is BOOKED if any booking's hold window contains now, or if the
    nearest future booking starts within the pre-hold horizon; otherwise it
    is AVAILABLE.

    Args:
        bookings: Bookings assigned to the table (terminal ones are ignored)
        now: Current local time

    Returns:
        TableState describing the target status
    """
    has_active = False
    nearest_upcoming: Optional[datetime] = None
    latest_active_end: Optional[datetime] = None

    for booking in _usable(bookings):
        window = hold_window(booking)
        if window.contains(now):
            has_active = True
            if latest_active_end is None or window.end > latest_active_end:
                latest_active_end = window.end
        elif window.start > now:
            if nearest_upcoming is None or window.start < nearest_upcoming:
                nearest_upcoming = window.start

    booked = has_active or (
        nearest_upcoming is not None and nearest_upcoming <= now + PRE_HOLD
    )

    return TableState(
        target_status=TableStatus.BOOKED if booked else TableStatus.AVAILABLE,
        has_active_booking=has_active,
        nearest_upcoming_start=nearest_upcoming,
        available_in_minutes=(
            minutes_until(nearest_upcoming, now) if nearest_upcoming is not None else None
        ),
        frees_in_minutes=(
            max(minutes_until(latest_active_end, now), 0) if latest_active_end is not None else None
        ),
    )


def order_by_start(bookings: Iterable) -> List:
    """Usable bookings sorted by start, earliest first."""
    return sorted(_usable(bookings), key=lambda b: schedule_of(b).start())


def find_current_booking(bookings: Iterable, now: datetime):
    """
    The booking a table is currently serving or about to serve.

    Earliest booking that is active now or starts within the pre-hold horizon.
    """
    for booking in order_by_start(bookings):
        if is_active_now(booking, now) or schedule_of(booking).start() <= now + PRE_HOLD:
            return booking
    return None


def find_active_booking(bookings: Iterable, now: datetime):
    """Earliest booking that is active under the activity window."""
    for booking in order_by_start(bookings):
        if is_active_now(booking, now):
            return booking
    return None
