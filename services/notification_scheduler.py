"""
Notification scheduler.

Two independent periodic checks:

* Upcoming-booking reminders at 30/20/10/5 minutes before a booking start.
  Each (booking, threshold) pair fires at most once; the marker persisted in
  Booking.notifications_sent is the source of truth, loop timing is only
  best effort.
* Long-wait escalations when a waiting party crosses 10, 20 or 30 minutes.
  These have no persisted marker and rely on the loop running at least once
  per minute; a delayed or skipped run can miss a milestone.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from core.utils_datetime import get_current_datetime
from db.models_sqlalchemy import Booking, Table, WaitingListEntry
from db.storage import Storage
from domain.enums import (
    ACTIVE_WAITING_STATUSES,
    ConfirmationStatus,
    EventName,
    NON_TERMINAL_BOOKING_STATUSES,
)
from domain.models import LongWaitingNotification, UpcomingBookingNotification
from services.events import EventPublisher
from services.locks import KeyedLocks
from services.time_window import schedule_of


logger = logging.getLogger(__name__)

REMINDER_THRESHOLDS_MINUTES: Sequence[int] = (30, 20, 10, 5)

# Half-width of the window around now + threshold in which a start qualifies
REMINDER_TOLERANCE = timedelta(minutes=1)

ESCALATION_MILESTONES_MINUTES: Sequence[int] = (10, 20, 30)

REMINDABLE_CONFIRMATIONS = (ConfirmationStatus.PENDING, ConfirmationStatus.CONFIRMED)


def reminder_marker(threshold_minutes: int) -> str:
    """Marker stored in notifications_sent for a threshold."""
    return f"{threshold_minutes}min"


def is_remindable(booking: Booking) -> bool:
    return (
        booking.status in NON_TERMINAL_BOOKING_STATUSES
        and booking.confirmation_status in REMINDABLE_CONFIRMATIONS
    )


def due_threshold(start: datetime, now: datetime) -> Optional[int]:
    """Threshold whose window [now + t - 1min, now + t + 1min] contains start, if any."""
    for minutes in REMINDER_THRESHOLDS_MINUTES:
        target = now + timedelta(minutes=minutes)
        if target - REMINDER_TOLERANCE <= start <= target + REMINDER_TOLERANCE:
            return minutes
    return None


def waiting_milestone(waiting_minutes: int) -> Optional[int]:
    """Milestone m when elapsed whole minutes fall in [m, m + 1)."""
    for milestone in ESCALATION_MILESTONES_MINUTES:
        if milestone <= waiting_minutes < milestone + 1:
            return milestone
    return None


class NotificationScheduler:
    """Fires booking reminders and long-wait escalations."""

    def __init__(
        self,
        storage: Storage,
        events: EventPublisher,
        booking_locks: KeyedLocks,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        self.storage = storage
        self.events = events
        self.booking_locks = booking_locks
        self.clock = clock

    async def _claim_marker(self, booking_id: str, marker: str) -> Optional[Booking]:
        """
        Atomically test-and-append a reminder marker.

        Returns:
            The fresh booking if the marker was newly recorded, None if it was
            already present or the booking is no longer eligible
        """
        async with self.booking_locks.hold(booking_id):
            booking = await self.storage.get(Booking, booking_id)
            if booking is None or not is_remindable(booking):
                return None

            sent: List[str] = list(booking.notifications_sent or [])
            if marker in sent:
                return None

            sent.append(marker)
            await self.storage.update(Booking, Booking.id == booking_id, notifications_sent=sent)
            booking.notifications_sent = sent
            return booking

    async def check_upcoming_bookings(self) -> int:
        """
        Send reminders for bookings starting around 30/20/10/5 minutes from now.

        Returns:
            Number of reminders sent
        """
        now = self.clock()
        bookings = await self.storage.find(
            Booking,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
            Booking.confirmation_status.in_(REMINDABLE_CONFIRMATIONS),
        )

        sent = 0
        for booking in bookings:
            try:
                start = schedule_of(booking).start()
                minutes = due_threshold(start, now)
                if minutes is None:
                    continue

                claimed = await self._claim_marker(booking.id, reminder_marker(minutes))
                if claimed is None:
                    continue

                table = await self.storage.get(Table, claimed.table_id)
                table_number = table.table_number if table is not None else None
                notification = UpcomingBookingNotification(
                    id=f"notif-{claimed.id}-{minutes}",
                    booking_id=claimed.id,
                    table_id=claimed.table_id,
                    table_number=table_number,
                    customer_name=claimed.customer_name,
                    mobile=claimed.mobile,
                    people_count=claimed.people_count,
                    booking_time=start,
                    minutes_before=minutes,
                    confirmation_status=claimed.confirmation_status,
                    message=(
                        f"Table {table_number} booked for {claimed.customer_name} "
                        f"in {minutes} minutes"
                    ),
                    timestamp=now,
                )
                await self.events.publish(EventName.UPCOMING_BOOKING_NOTIFICATION, notification)
                sent += 1
                logger.info(
                    f"Reminder sent: table {table_number} - {minutes} min before",
                    extra={"booking_id": claimed.id, "table_id": claimed.table_id},
                )
            except Exception:
                logger.exception(
                    f"Reminder check failed for booking {booking.id}; skipping",
                    extra={"booking_id": booking.id},
                )

        return sent

    async def check_long_waiting_customers(self) -> int:
        """
        Escalate parties that have just crossed a 10/20/30 minute wait.

        Returns:
            Number of escalations sent
        """
        now = self.clock()
        entries = await self.storage.find(
            WaitingListEntry,
            WaitingListEntry.status.in_(ACTIVE_WAITING_STATUSES),
        )

        sent = 0
        for entry in entries:
            try:
                waiting_minutes = int((now - entry.created_at).total_seconds() // 60)
                if waiting_milestone(waiting_minutes) is None:
                    continue

                notification = LongWaitingNotification(
                    id=f"waiting-{entry.id}-{waiting_minutes}",
                    waiting_list_id=entry.id,
                    customer_name=entry.customer_name,
                    mobile=entry.mobile,
                    people_count=entry.people_count,
                    preferred_table_size=entry.preferred_table_size,
                    waiting_minutes=waiting_minutes,
                    message=f"{entry.customer_name} has been waiting for {waiting_minutes} minutes",
                    created_at=now,
                )
                await self.events.publish(EventName.LONG_WAITING_CUSTOMER, notification)
                sent += 1
                logger.info(
                    f"Long waiting notification: {entry.customer_name} - {waiting_minutes} minutes",
                    extra={"waiting_list_id": entry.id},
                )
            except Exception:
                logger.exception(
                    f"Escalation check failed for waiting entry {entry.id}; skipping",
                    extra={"waiting_list_id": entry.id},
                )

        return sent
