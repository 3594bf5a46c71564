"""
Conflict detection for bookings sharing a table.

Only existence of a conflict matters to callers, so the detector returns the
first overlapping booking in storage order.
"""
import logging
from datetime import datetime
from typing import Optional

from core.utils_datetime import format_time_slot
from db.models_sqlalchemy import Booking
from db.storage import Storage
from domain.enums import NON_TERMINAL_BOOKING_STATUSES
from domain.models import ConflictCheckResult, ConflictDetail
from services.time_window import TimeWindow, suggest_after, window_of


logger = logging.getLogger(__name__)

# Turnover gap between a conflicting booking's end and the suggested slot
RESCHEDULE_BUFFER_MINUTES = 5


def conflict_detail(booking: Booking) -> ConflictDetail:
    """Describe an existing booking that blocks a candidate window."""
    window = window_of(booking)
    return ConflictDetail(
        booking_id=booking.id,
        customer_name=booking.customer_name,
        booking_time=booking.booking_time,
        booking_date=booking.booking_date,
        booking_time_slot=booking.booking_time_slot,
        duration_minutes=window.duration_minutes,
        end_time=window.end,
    )


def suggested_start(booking: Booking) -> datetime:
    """First start time after the conflicting booking, buffer included."""
    return suggest_after(window_of(booking), RESCHEDULE_BUFFER_MINUTES)


def conflict_result(booking: Optional[Booking]) -> ConflictCheckResult:
    """Build the check result for a (possibly absent) conflicting booking."""
    if booking is None:
        return ConflictCheckResult(has_conflict=False)

    suggestion = suggested_start(booking)
    return ConflictCheckResult(
        has_conflict=True,
        conflict=conflict_detail(booking),
        suggested_time=suggestion,
        suggested_time_slot=format_time_slot(suggestion),
    )


class ConflictDetector:
    """Finds bookings whose window overlaps a candidate window on the same table."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def detect_conflict(
        self,
        table_id: str,
        candidate: TimeWindow,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """
        Find the first non-terminal booking on the table overlapping the candidate.

        Args:
            table_id: Table to check
            candidate: Requested [start, end) window
            exclude_booking_id: Booking to ignore (the one being moved)

        Returns:
            The conflicting booking, or None
        """
        bookings = await self.storage.find(
            Booking,
            Booking.table_id == table_id,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
        )

        for booking in bookings:
            if exclude_booking_id is not None and booking.id == exclude_booking_id:
                continue
            try:
                window = window_of(booking)
            except ValueError as e:
                logger.warning(f"Skipping booking with unusable time: {e}")
                continue
            if window.overlaps(candidate):
                return booking

        return None

    async def check(
        self,
        table_id: str,
        candidate: TimeWindow,
        exclude_booking_id: Optional[str] = None,
    ) -> ConflictCheckResult:
        """Run detection and package the outcome with a suggested reschedule."""
        booking = await self.detect_conflict(table_id, candidate, exclude_booking_id)
        return conflict_result(booking)
