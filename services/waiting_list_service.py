"""
Waiting list service.

Queues parties that could not be seated and admits them onto tables. Admission
is two-phase: callers run check_assign_conflict first and then either accept
the suggested reschedule or assign anyway; assign itself does not re-check.
"""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from core.utils_datetime import combine_date_slot, get_current_datetime, split_date_slot
from db.models_sqlalchemy import Booking, Table, WaitingListEntry
from db.storage import Storage
from domain.enums import (
    ACTIVE_WAITING_STATUSES,
    WAITING_TRANSITIONS,
    BookingStatus,
    ConfirmationStatus,
    EventName,
    TableStatus,
    WaitingStatus,
    can_transition,
)
from domain.models import (
    AssignRequest,
    BookingRecord,
    ConflictCheckResult,
    TableStatusChanged,
    WaitingListCreate,
)
from services.booking_service import default_priority
from services.conflict_detector import ConflictDetector
from services.errors import InvalidTransitionError, NotFoundError
from services.events import EventPublisher
from services.locks import KeyedLocks
from services.time_window import TimeWindow


logger = logging.getLogger(__name__)


class WaitingListService:
    """Service for the overflow waiting list."""

    def __init__(
        self,
        storage: Storage,
        events: EventPublisher,
        table_locks: KeyedLocks,
        conflicts: Optional[ConflictDetector] = None,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        self.storage = storage
        self.events = events
        self.table_locks = table_locks
        self.conflicts = conflicts or ConflictDetector(storage)
        self.clock = clock

    async def get_entry(self, waiting_id: str) -> WaitingListEntry:
        """Get a waiting entry by ID or raise NotFoundError."""
        entry = await self.storage.get(WaitingListEntry, waiting_id)
        if entry is None:
            raise NotFoundError("Waiting list entry", waiting_id)
        return entry

    async def _get_table(self, table_id: str) -> Table:
        table = await self.storage.get(Table, table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    async def _transition(self, entry: WaitingListEntry, target: WaitingStatus, **fields) -> WaitingListEntry:
        if not can_transition(WAITING_TRANSITIONS, entry.status, target):
            raise InvalidTransitionError("Waiting list entry", entry.status, target, entry.id)
        await self.storage.update(
            WaitingListEntry,
            WaitingListEntry.id == entry.id,
            status=target,
            **fields,
        )
        entry.status = target
        for key, value in fields.items():
            setattr(entry, key, value)
        return entry

    async def estimate_wait(self, preferred_size) -> Optional[int]:
        """Smallest known free-up estimate among tables of the preferred size."""
        tables = await self.storage.find(
            Table,
            Table.size == preferred_size,
            Table.available_in_minutes.is_not(None),
        )
        estimates = [t.available_in_minutes for t in tables]
        return min(estimates) if estimates else None

    async def add_entry(self, data: WaitingListCreate) -> WaitingListEntry:
        """
        Add a party to the waiting list.

        Pre-bookings are queued ahead of walk-ins.
        """
        now = self.clock()
        estimated_wait = data.estimated_wait_minutes
        if estimated_wait is None:
            estimated_wait = await self.estimate_wait(data.preferred_table_size)

        entry = await self.storage.create(
            WaitingListEntry,
            **data.model_dump(exclude={"estimated_wait_minutes"}),
            priority=default_priority(data.booking_type),
            status=WaitingStatus.WAITING,
            estimated_wait_minutes=estimated_wait,
            created_at=now,
            updated_at=now,
        )
        logger.info(f"Added {entry.customer_name} ({entry.people_count} people) to waiting list")

        await self.events.publish(EventName.WAITING_LIST_UPDATED)
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return entry

    async def list_entries(self, booking_date: Optional[date] = None) -> List[WaitingListEntry]:
        """Active entries, highest priority first, then first come first served."""
        criteria = [WaitingListEntry.status.in_(ACTIVE_WAITING_STATUSES)]
        if booking_date is not None:
            criteria.append(WaitingListEntry.booking_date == booking_date)
        return await self.storage.find(
            WaitingListEntry,
            *criteria,
            order_by=(
                WaitingListEntry.priority.desc(),
                WaitingListEntry.created_at.asc(),
                WaitingListEntry.id,
            ),
        )

    def _requested_start(self, entry: WaitingListEntry, now: datetime) -> datetime:
        if entry.booking_date is not None and entry.booking_time_slot:
            return combine_date_slot(entry.booking_date, entry.booking_time_slot)
        return now

    async def check_assign_conflict(
        self,
        waiting_id: str,
        table_id: str,
        duration_minutes: int = 60,
    ) -> ConflictCheckResult:
        """
        Pre-flight check before admitting a waiting party onto a table.

        The candidate window starts at the entry's own date/slot, or now for
        walk-ins.
        """
        now = self.clock()
        entry = await self.get_entry(waiting_id)
        await self._get_table(table_id)

        candidate = TimeWindow.starting_at(self._requested_start(entry, now), duration_minutes)
        result = await self.conflicts.check(table_id, candidate)
        if result.has_conflict:
            logger.info(
                f"Admission of {entry.customer_name} conflicts with booking "
                f"{result.conflict.booking_id}; suggesting {result.suggested_time_slot}"
            )
        return result

    async def assign(self, waiting_id: str, request: AssignRequest) -> Tuple[Booking, WaitingListEntry]:
        """
        Admit a waiting party onto a table.

        Creates a BOOKED booking inheriting the entry's customer, party size,
        priority and type, marks the table BOOKED if it is AVAILABLE and the
        entry ASSIGNED.

        Returns:
            (created booking, updated waiting entry)
        """
        now = self.clock()

        async with self.table_locks.hold(request.table_id):
            entry = await self.get_entry(waiting_id)
            if not can_transition(WAITING_TRANSITIONS, entry.status, WaitingStatus.ASSIGNED):
                raise InvalidTransitionError("Waiting list entry", entry.status, WaitingStatus.ASSIGNED, entry.id)
            table = await self._get_table(request.table_id)

            booking_date, time_slot = entry.booking_date, entry.booking_time_slot
            if request.auto_schedule and request.suggested_time is not None:
                booking_time = request.suggested_time
                booking_date, time_slot = split_date_slot(booking_time)
            elif booking_date is not None and time_slot:
                booking_time = combine_date_slot(booking_date, time_slot)
            else:
                booking_time = now

            booking = await self.storage.create(
                Booking,
                table_id=table.id,
                customer_name=entry.customer_name,
                mobile=entry.mobile,
                email=entry.email,
                people_count=entry.people_count,
                booking_type=entry.booking_type,
                booking_time=booking_time,
                booking_date=booking_date,
                booking_time_slot=time_slot,
                duration_minutes=request.duration_minutes,
                status=BookingStatus.BOOKED,
                confirmation_status=ConfirmationStatus.PENDING,
                priority=entry.priority,
                notifications_sent=[],
                created_at=now,
                updated_at=now,
            )

            # An OCCUPIED table keeps its status; the booking is queued behind the party
            table_changed = table.status == TableStatus.AVAILABLE
            if table_changed:
                await self.storage.update(Table, Table.id == table.id, status=TableStatus.BOOKED)

            entry = await self._transition(entry, WaitingStatus.ASSIGNED)

        logger.info(f"Assigned {entry.customer_name} from waiting list to table {table.table_number}")

        if table_changed:
            await self.events.publish(
                EventName.TABLE_STATUS_UPDATED,
                TableStatusChanged(table_id=table.id, status=TableStatus.BOOKED),
            )
        await self.events.publish(EventName.WAITING_LIST_UPDATED)
        await self.events.publish(EventName.BOOKING_CREATED, BookingRecord.model_validate(booking))
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return booking, entry

    async def cancel_entry(self, waiting_id: str) -> WaitingListEntry:
        """Party abandoned the queue."""
        entry = await self.get_entry(waiting_id)
        entry = await self._transition(entry, WaitingStatus.CANCELLED)
        logger.info(f"Cancelled waiting list entry {waiting_id}")

        await self.events.publish(EventName.WAITING_LIST_UPDATED)
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return entry

    async def notify_customer(self, waiting_id: str) -> WaitingListEntry:
        """Staff alerted the party that a table is coming up."""
        entry = await self.get_entry(waiting_id)
        entry = await self._transition(entry, WaitingStatus.NOTIFIED, notified_at=self.clock())
        logger.info(f"Notified {entry.customer_name} from waiting list")

        await self.events.publish(EventName.WAITING_LIST_UPDATED)
        return entry
