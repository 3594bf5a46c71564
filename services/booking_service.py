"""
Booking Service for managing table bookings.

Handles booking creation with conflict detection, override onto the waiting
list, cancellation, completion, table reassignment, confirmation and client
delays. Every read-modify-write of a table's status runs under that table's
lock.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from core.utils_datetime import get_current_datetime, split_date_slot
from db.models_sqlalchemy import Booking, Table, WaitingListEntry
from db.storage import Storage
from domain.enums import (
    BOOKING_TRANSITIONS,
    CONFIRMATION_TRANSITIONS,
    BookingStatus,
    BookingType,
    ConfirmationStatus,
    EventName,
    NON_TERMINAL_BOOKING_STATUSES,
    TableStatus,
    WaitingStatus,
    can_transition,
)
from domain.models import BookingCreate, BookingRecord, TableStatusChanged
from services.conflict_detector import ConflictDetector, conflict_detail, suggested_start
from services.errors import (
    BookingConflictError,
    InvalidTargetError,
    InvalidTransitionError,
    NotFoundError,
)
from services.events import EventPublisher
from services.locks import KeyedLocks
from services.table_state import PRE_HOLD, derive_table_state
from services.time_window import is_active_now, schedule_of, window_of


logger = logging.getLogger(__name__)

PRE_BOOKING_PRIORITY = 10

# Horizon for the pending-confirmation list
PENDING_HORIZON = timedelta(hours=2)

BOOKING_FIELDS = (
    "table_id",
    "customer_name",
    "mobile",
    "email",
    "people_count",
    "booking_type",
    "booking_time",
    "booking_date",
    "booking_time_slot",
    "duration_minutes",
)


def default_priority(booking_type: BookingType) -> int:
    """Pre-bookings outrank walk-ins."""
    return PRE_BOOKING_PRIORITY if booking_type == BookingType.PRE_BOOKING else 0


def holds_table_now(booking, now: datetime) -> bool:
    """Whether a new booking should claim its table immediately."""
    if is_active_now(booking, now):
        return True
    start = schedule_of(booking).start()
    return now <= start <= now + PRE_HOLD


def reschedule_fields(fields: Dict[str, Any], start: datetime) -> Dict[str, Any]:
    """Move a booking's start, keeping whichever representation it uses."""
    moved = dict(fields)
    if moved.get("booking_date") is not None and moved.get("booking_time_slot"):
        moved["booking_date"], moved["booking_time_slot"] = split_date_slot(start)
    if moved.get("booking_time") is not None:
        moved["booking_time"] = start
    return moved


def ensure_booking_transition(booking: Booking, target: BookingStatus) -> None:
    if not can_transition(BOOKING_TRANSITIONS, booking.status, target):
        raise InvalidTransitionError("Booking", booking.status, target, booking.id)


def ensure_confirmation_transition(booking: Booking, target: ConfirmationStatus) -> None:
    if not can_transition(CONFIRMATION_TRANSITIONS, booking.confirmation_status, target):
        raise InvalidTransitionError("Booking confirmation", booking.confirmation_status, target, booking.id)


class BookingService:
    """Service for managing bookings on tables."""

    def __init__(
        self,
        storage: Storage,
        events: EventPublisher,
        table_locks: KeyedLocks,
        conflicts: Optional[ConflictDetector] = None,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        """
        Initialize BookingService.

        Args:
            storage: Storage collaborator
            events: Event publisher for staff displays
            table_locks: Per-table locks shared with the reconciliation loop
            conflicts: Conflict detector (built from storage if omitted)
            clock: Returns the current local time
        """
        self.storage = storage
        self.events = events
        self.table_locks = table_locks
        self.conflicts = conflicts or ConflictDetector(storage)
        self.clock = clock

    async def _get_table(self, table_id: str) -> Table:
        table = await self.storage.get(Table, table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    async def get_booking(self, booking_id: str) -> Booking:
        """Get a booking by ID or raise NotFoundError."""
        booking = await self.storage.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    @asynccontextmanager
    async def _locked_booking(self, booking_id: str, *other_tables: str) -> AsyncIterator[Booking]:
        """
        Hold the lock of the booking's current table and yield the fresh booking.

        The table is read before locking, so a concurrent reassignment can move
        the booking while we wait; in that case retry on the new table.
        """
        booking = await self.get_booking(booking_id)
        while True:
            async with self.table_locks.hold(booking.table_id, *other_tables):
                fresh = await self.get_booking(booking_id)
                if fresh.table_id == booking.table_id:
                    yield fresh
                    return
            logger.info(
                f"Booking {booking_id} moved to table {fresh.table_id} while waiting; retrying",
                extra={"booking_id": booking_id, "table_id": fresh.table_id},
            )
            booking = fresh

    async def _set_table_status(self, table: Table, status: TableStatus, **fields: Any) -> bool:
        """Write a table status change. Returns False when nothing changed."""
        if table.status == status and not fields:
            return False
        if status != TableStatus.OCCUPIED:
            fields.setdefault("occupied_since", None)
        await self.storage.update(Table, Table.id == table.id, status=status, **fields)
        logger.info(f"Table {table.table_number}: {table.status.value} -> {status.value}")
        return table.status != status

    async def _rederive_table(self, table_id: str, now: datetime, release_occupied: bool = False) -> Optional[TableStatus]:
        """
        Re-derive a table's status from its remaining bookings.

        Must be called with the table lock held. An OCCUPIED table is left
        alone unless release_occupied is set (the party has left).

        Returns:
            The new status if it changed, else None
        """
        table = await self.storage.get(Table, table_id)
        if table is None:
            return None
        if table.status == TableStatus.OCCUPIED and not release_occupied:
            return None

        remaining = await self.storage.find(
            Booking,
            Booking.table_id == table_id,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
        )
        state = derive_table_state(remaining, now)

        if state.target_status == table.status:
            return None

        fields: Dict[str, Any] = {}
        if state.target_status == TableStatus.AVAILABLE:
            fields["available_in_minutes"] = state.available_in_minutes
        await self._set_table_status(table, state.target_status, **fields)
        return state.target_status

    async def _publish_table_changes(self, changes: List[TableStatusChanged]) -> None:
        for change in changes:
            await self.events.publish(EventName.TABLE_STATUS_UPDATED, change)

    async def _insert_booking(self, fields: Dict[str, Any], now: datetime) -> Booking:
        booking_type = fields.get("booking_type") or BookingType.WALK_IN
        priority = fields.pop("priority", None)
        if priority is None:
            priority = default_priority(booking_type)
        return await self.storage.create(
            Booking,
            **fields,
            status=BookingStatus.BOOKED,
            confirmation_status=ConfirmationStatus.PENDING,
            priority=priority,
            notifications_sent=[],
            created_at=now,
            updated_at=now,
        )

    async def _claim_table(self, table: Table, booking: Booking, now: datetime) -> Optional[TableStatusChanged]:
        """Mark an AVAILABLE table BOOKED when the new booking needs it now."""
        if table.status != TableStatus.AVAILABLE or not holds_table_now(booking, now):
            return None
        await self._set_table_status(table, TableStatus.BOOKED)
        return TableStatusChanged(table_id=table.id, status=TableStatus.BOOKED)

    async def create_booking(self, data: BookingCreate, confirm_auto_schedule: bool = False) -> Booking:
        """
        Create a booking after checking the table for conflicts.

        Args:
            data: Booking details
            confirm_auto_schedule: Accept the suggested slot instead of failing
                when the requested window is taken

        Returns:
            The created booking

        Raises:
            NotFoundError: Table does not exist
            BookingConflictError: Window overlaps an existing booking and
                auto-scheduling was not confirmed
        """
        now = self.clock()
        fields = data.model_dump(include=set(BOOKING_FIELDS) | {"priority"})

        async with self.table_locks.hold(data.table_id):
            table = await self._get_table(data.table_id)

            conflict = await self.conflicts.detect_conflict(table.id, window_of(data))
            if conflict is not None:
                suggestion = suggested_start(conflict)
                if not confirm_auto_schedule:
                    logger.info(
                        f"Booking for {data.customer_name} on table {table.table_number} "
                        f"conflicts with {conflict.id}"
                    )
                    raise BookingConflictError(conflict_detail(conflict), suggestion)
                logger.info(f"Auto-scheduling booking for {data.customer_name} to {suggestion:%H:%M}")
                fields = reschedule_fields(fields, suggestion)

            booking = await self._insert_booking(fields, now)
            change = await self._claim_table(table, booking, now)

        logger.info(f"Created booking {booking.id} for {booking.customer_name} on table {table.table_number}")

        await self.events.publish(EventName.BOOKING_CREATED, BookingRecord.model_validate(booking))
        await self._publish_table_changes([change] if change else [])
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def override_booking(self, data: BookingCreate, conflicting_booking_id: str) -> Booking:
        """
        Create a booking by demoting the conflicting one to the waiting list.

        The conflicting booking is cancelled and its customer re-queued with
        the same priority; the new booking is created without a conflict check.
        """
        now = self.clock()
        fields = data.model_dump(include=set(BOOKING_FIELDS) | {"priority"})

        async with self._locked_booking(conflicting_booking_id, data.table_id) as conflicting:
            table = await self._get_table(data.table_id)
            ensure_booking_transition(conflicting, BookingStatus.CANCELLED)

            conflicting_table = await self.storage.get(Table, conflicting.table_id)
            preferred_size = conflicting_table.size if conflicting_table is not None else table.size
            booking_date, time_slot = conflicting.booking_date, conflicting.booking_time_slot
            if conflicting.booking_type == BookingType.PRE_BOOKING and not time_slot:
                booking_date, time_slot = split_date_slot(schedule_of(conflicting).start())

            waiting_entry = await self.storage.create(
                WaitingListEntry,
                customer_name=conflicting.customer_name,
                mobile=conflicting.mobile,
                email=conflicting.email,
                people_count=conflicting.people_count or preferred_size.seats,
                preferred_table_size=preferred_size,
                booking_type=conflicting.booking_type,
                booking_date=booking_date,
                booking_time_slot=time_slot,
                priority=conflicting.priority,
                status=WaitingStatus.WAITING,
                created_at=now,
                updated_at=now,
            )
            await self.storage.update(
                Booking,
                Booking.id == conflicting.id,
                status=BookingStatus.CANCELLED,
            )

            changes: List[TableStatusChanged] = []
            if conflicting.table_id != table.id:
                status = await self._rederive_table(conflicting.table_id, now)
                if status is not None:
                    changes.append(TableStatusChanged(table_id=conflicting.table_id, status=status))

            booking = await self._insert_booking(fields, now)
            table = await self._get_table(table.id)
            change = await self._claim_table(table, booking, now)
            if change is not None:
                changes.append(change)

        logger.info(
            f"Booking {conflicting.id} overridden by {booking.id}; "
            f"{conflicting.customer_name} moved to waiting list as {waiting_entry.id}"
        )

        await self.events.publish(
            EventName.BOOKING_OVERRIDDEN,
            {
                "booking": BookingRecord.model_validate(booking).model_dump(mode="json"),
                "cancelled_booking_id": conflicting.id,
                "waiting_list_id": waiting_entry.id,
            },
        )
        await self.events.publish(EventName.BOOKING_CREATED, BookingRecord.model_validate(booking))
        await self._publish_table_changes(changes)
        await self.events.publish(EventName.WAITING_LIST_UPDATED)
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def cancel_booking(self, booking_id: str) -> Booking:
        """Cancel a booking and re-derive its table unless it is OCCUPIED."""
        now = self.clock()

        async with self._locked_booking(booking_id) as booking:
            ensure_booking_transition(booking, BookingStatus.CANCELLED)
            await self.storage.update(Booking, Booking.id == booking_id, status=BookingStatus.CANCELLED)
            status = await self._rederive_table(booking.table_id, now)

        booking.status = BookingStatus.CANCELLED
        logger.info(f"Cancelled booking {booking_id}")

        await self.events.publish(EventName.BOOKING_UPDATED, BookingRecord.model_validate(booking))
        if status is not None:
            await self.events.publish(
                EventName.TABLE_STATUS_UPDATED,
                TableStatusChanged(table_id=booking.table_id, status=status),
            )
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def complete_booking(self, booking_id: str) -> Booking:
        """Complete a booking (party left) and release its table."""
        now = self.clock()

        async with self._locked_booking(booking_id) as booking:
            ensure_booking_transition(booking, BookingStatus.COMPLETED)
            await self.storage.update(Booking, Booking.id == booking_id, status=BookingStatus.COMPLETED)
            status = await self._rederive_table(booking.table_id, now, release_occupied=True)

        booking.status = BookingStatus.COMPLETED
        logger.info(f"Completed booking {booking_id}")

        await self.events.publish(EventName.BOOKING_UPDATED, BookingRecord.model_validate(booking))
        if status is not None:
            await self.events.publish(
                EventName.TABLE_STATUS_UPDATED,
                TableStatusChanged(table_id=booking.table_id, status=status),
            )
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def reassign_table(self, booking_id: str, new_table_id: str) -> Booking:
        """
        Move a booking to another table.

        The target table must be AVAILABLE. The old table becomes AVAILABLE
        and the new one BOOKED.

        Raises:
            NotFoundError: Booking or new table does not exist
            InvalidTargetError: New table is not AVAILABLE
        """
        async with self._locked_booking(booking_id, new_table_id) as booking:
            old_table_id = booking.table_id
            if booking.status not in NON_TERMINAL_BOOKING_STATUSES:
                raise InvalidTransitionError("Booking", booking.status, "reassigned", booking_id)

            new_table = await self._get_table(new_table_id)
            if new_table.id == booking.table_id:
                raise InvalidTargetError(f"Booking {booking_id} is already on table {new_table.table_number}")
            if new_table.status != TableStatus.AVAILABLE:
                raise InvalidTargetError(
                    f"Table {new_table.table_number} is not available ({new_table.status.value})"
                )

            await self.storage.update(Booking, Booking.id == booking_id, table_id=new_table_id)

            old_table = await self.storage.get(Table, old_table_id)
            if old_table is not None:
                await self._set_table_status(old_table, TableStatus.AVAILABLE, available_in_minutes=None)
            await self._set_table_status(new_table, TableStatus.BOOKED)

        booking.table_id = new_table_id
        logger.info(f"Reassigned booking {booking_id} from table {old_table_id} to {new_table_id}")

        await self.events.publish(
            EventName.TABLE_STATUS_UPDATED,
            TableStatusChanged(table_id=old_table_id, status=TableStatus.AVAILABLE),
        )
        await self.events.publish(
            EventName.TABLE_STATUS_UPDATED,
            TableStatusChanged(table_id=new_table_id, status=TableStatus.BOOKED),
        )
        await self.events.publish(EventName.BOOKING_UPDATED, BookingRecord.model_validate(booking))
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def confirm_booking(self, booking_id: str) -> Booking:
        """Record the customer's confirmation and hold the table if it is free."""
        now = self.clock()

        async with self._locked_booking(booking_id) as booking:
            ensure_confirmation_transition(booking, ConfirmationStatus.CONFIRMED)
            if booking.status != BookingStatus.CONFIRMED:
                ensure_booking_transition(booking, BookingStatus.CONFIRMED)

            await self.storage.update(
                Booking,
                Booking.id == booking_id,
                status=BookingStatus.CONFIRMED,
                confirmation_status=ConfirmationStatus.CONFIRMED,
                confirmed_at=now,
            )

            table = await self._get_table(booking.table_id)
            table_changed = False
            if table.status == TableStatus.AVAILABLE:
                table_changed = await self._set_table_status(table, TableStatus.BOOKED)

        booking.status = BookingStatus.CONFIRMED
        booking.confirmation_status = ConfirmationStatus.CONFIRMED
        booking.confirmed_at = now
        logger.info(f"Booking confirmed: {booking.customer_name} at table {table.table_number}")

        record = BookingRecord.model_validate(booking)
        await self.events.publish(EventName.BOOKING_CONFIRMED, record)
        await self.events.publish(EventName.BOOKING_UPDATED, record)
        if table_changed:
            await self.events.publish(
                EventName.TABLE_STATUS_UPDATED,
                TableStatusChanged(table_id=table.id, status=TableStatus.BOOKED),
            )
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def mark_client_delayed(self, booking_id: str, delay_minutes: int = 0) -> Booking:
        """Record a client delay and shift the booking start by it."""
        async with self._locked_booking(booking_id) as booking:
            if booking.status not in NON_TERMINAL_BOOKING_STATUSES:
                raise InvalidTransitionError("Booking", booking.status, "delayed", booking_id)
            ensure_confirmation_transition(booking, ConfirmationStatus.CLIENT_DELAYED)

            fields: Dict[str, Any] = {
                "confirmation_status": ConfirmationStatus.CLIENT_DELAYED,
                "delay_minutes": delay_minutes,
            }
            if delay_minutes > 0:
                new_start = schedule_of(booking).start() + timedelta(minutes=delay_minutes)
                fields.update(reschedule_fields(
                    {
                        "booking_time": booking.booking_time,
                        "booking_date": booking.booking_date,
                        "booking_time_slot": booking.booking_time_slot,
                    },
                    new_start,
                ))

            await self.storage.update(Booking, Booking.id == booking_id, **fields)

        for key, value in fields.items():
            setattr(booking, key, value)
        logger.info(f"Client delayed: {booking.customer_name} - {delay_minutes} minutes")

        record = BookingRecord.model_validate(booking)
        await self.events.publish(EventName.BOOKING_DELAYED, record)
        await self.events.publish(EventName.BOOKING_UPDATED, record)
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking

    async def list_bookings(self) -> List[Booking]:
        """List all bookings in storage order."""
        return await self.storage.find(Booking)

    async def get_pending_notifications(self) -> List[Booking]:
        """
        Bookings still awaiting confirmation that start within the next 2 hours.

        Returns:
            Non-terminal PENDING bookings ordered by start, earliest first
        """
        now = self.clock()
        horizon = now + PENDING_HORIZON
        bookings = await self.storage.find(
            Booking,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
            Booking.confirmation_status == ConfirmationStatus.PENDING,
        )

        pending = []
        for booking in bookings:
            try:
                start = schedule_of(booking).start()
            except ValueError as e:
                logger.warning(f"Skipping booking with unusable time: {e}")
                continue
            if now <= start <= horizon:
                pending.append((start, booking))

        pending.sort(key=lambda item: item[0])
        return [booking for _, booking in pending]
