"""
Floor and table service.

Floor/table management, explicit staff status changes, table booking lookups
and dashboard aggregates.
"""
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from core.utils_datetime import combine_date_slot, day_bounds, get_current_datetime
from db.models_sqlalchemy import Booking, Floor, Table
from db.storage import Storage
from domain.enums import (
    TABLE_TRANSITIONS,
    BookingStatus,
    BookingType,
    EventName,
    NON_TERMINAL_BOOKING_STATUSES,
    TableSize,
    TableStatus,
    can_transition,
)
from domain.models import (
    BookingRecord,
    BookingSummary,
    DashboardStats,
    DashboardSummary,
    FloorCreate,
    FloorRecord,
    FloorStats,
    FloorWithTableStatuses,
    FloorWithTables,
    TableCreate,
    TableRecord,
    TableStatusChanged,
    TableWithDateTimeStatus,
)
from services.conflict_detector import ConflictDetector
from services.errors import InvalidTargetError, InvalidTransitionError, NotFoundError
from services.events import EventPublisher
from services.locks import KeyedLocks
from services.table_state import find_active_booking, find_current_booking, order_by_start
from services.time_window import TimeWindow


logger = logging.getLogger(__name__)


class FloorService:
    """Service for floors, tables and the staff dashboard."""

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

    # ------------------------------------------------------------------
    # Floors
    # ------------------------------------------------------------------

    async def create_floor(self, data: FloorCreate) -> Floor:
        now = self.clock()
        floor = await self.storage.create(Floor, **data.model_dump(), created_at=now, updated_at=now)
        logger.info(f"Created floor {floor.floor_number} ({floor.name})")

        await self.events.publish(EventName.FLOOR_CREATED, FloorRecord.model_validate(floor))
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return floor

    async def list_floors(self) -> List[Floor]:
        return await self.storage.find(Floor, order_by=(Floor.floor_number, Floor.id))

    async def list_floors_with_tables(self) -> List[FloorWithTables]:
        """Floors ordered by number, each with its tables ordered by number."""
        floors = await self.list_floors()
        tables = await self.storage.find(Table, order_by=(Table.table_number, Table.id))

        by_floor: Dict[Optional[str], List[TableRecord]] = {}
        for table in tables:
            by_floor.setdefault(table.floor_id, []).append(TableRecord.model_validate(table))

        return [
            FloorWithTables(
                **FloorRecord.model_validate(floor).model_dump(),
                tables=by_floor.get(floor.id, []),
            )
            for floor in floors
        ]

    async def delete_floor(self, floor_id: str) -> None:
        """
        Delete a floor.

        Raises:
            NotFoundError: Floor does not exist
            InvalidTargetError: Floor still has tables
        """
        if await self.storage.get(Floor, floor_id) is None:
            raise NotFoundError("Floor", floor_id)
        if await self.storage.count(Table, Table.floor_id == floor_id):
            raise InvalidTargetError(f"Floor {floor_id} still has tables")

        await self.storage.delete(Floor, floor_id)
        logger.info(f"Deleted floor {floor_id}")

        await self.events.publish(EventName.FLOOR_DELETED, {"floor_id": floor_id})
        await self.events.publish(EventName.DASHBOARD_UPDATED)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def get_table(self, table_id: str) -> Table:
        """Get a table by ID or raise NotFoundError."""
        table = await self.storage.get(Table, table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    async def create_table(self, data: TableCreate) -> Table:
        """Create a table; seats default to the size class (2/4/6)."""
        if data.floor_id is not None and await self.storage.get(Floor, data.floor_id) is None:
            raise NotFoundError("Floor", data.floor_id)

        now = self.clock()
        table = await self.storage.create(
            Table,
            floor_id=data.floor_id,
            table_number=data.table_number,
            size=data.size,
            seats=data.seats or data.size.seats,
            status=TableStatus.AVAILABLE,
            created_at=now,
            updated_at=now,
        )
        logger.info(f"Created table {table.table_number} ({table.size.value}, {table.seats} seats)")

        await self.events.publish(EventName.TABLE_CREATED, TableRecord.model_validate(table))
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return table

    async def list_tables(self, floor_id: Optional[str] = None) -> List[Table]:
        criteria = [] if floor_id is None else [Table.floor_id == floor_id]
        return await self.storage.find(Table, *criteria, order_by=(Table.table_number, Table.id))

    async def delete_table(self, table_id: str) -> None:
        """
        Delete a table that no open booking references.

        Raises:
            NotFoundError: Table does not exist
            InvalidTargetError: Table still has non-terminal bookings
        """
        async with self.table_locks.hold(table_id):
            await self.get_table(table_id)
            open_bookings = await self.storage.count(
                Booking,
                Booking.table_id == table_id,
                Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
            )
            if open_bookings:
                raise InvalidTargetError(f"Table {table_id} still has {open_bookings} open bookings")
            await self.storage.delete(Table, table_id)

        logger.info(f"Deleted table {table_id}")
        await self.events.publish(EventName.TABLE_DELETED, {"table_id": table_id})
        await self.events.publish(EventName.DASHBOARD_UPDATED)

    async def _open_bookings(self, table_id: str) -> List[Booking]:
        return await self.storage.find(
            Booking,
            Booking.table_id == table_id,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
        )

    async def update_table_status(self, table_id: str, status: TableStatus) -> Table:
        """
        Apply an explicit staff status change.

        OCCUPIED starts the occupancy timer. AVAILABLE completes the booking
        currently being served (future bookings stay queued) and clears the
        staff availability estimate.

        Raises:
            NotFoundError: Table does not exist
            InvalidTransitionError: Change not allowed from the current status
        """
        now = self.clock()
        completed: Optional[Booking] = None

        async with self.table_locks.hold(table_id):
            table = await self.get_table(table_id)
            if table.status == status:
                return table
            if not can_transition(TABLE_TRANSITIONS, table.status, status):
                raise InvalidTransitionError("Table", table.status, status, table_id)

            fields = {"status": status}
            if status == TableStatus.OCCUPIED:
                fields["occupied_since"] = now
            else:
                fields["occupied_since"] = None
            if status == TableStatus.AVAILABLE:
                fields["available_in_minutes"] = None
                completed = find_active_booking(await self._open_bookings(table_id), now)
                if completed is not None:
                    await self.storage.update(
                        Booking,
                        Booking.id == completed.id,
                        status=BookingStatus.COMPLETED,
                    )
                    completed.status = BookingStatus.COMPLETED

            await self.storage.update(Table, Table.id == table_id, **fields)
            previous = table.status
            for key, value in fields.items():
                setattr(table, key, value)

        logger.info(f"Table {table.table_number} set {previous.value} -> {status.value} by staff")

        if completed is not None:
            await self.events.publish(EventName.BOOKING_UPDATED, BookingRecord.model_validate(completed))
        await self.events.publish(
            EventName.TABLE_STATUS_UPDATED,
            TableStatusChanged(table_id=table_id, status=status),
        )
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return table

    async def update_table_availability(self, table_id: str, available_in_minutes: Optional[int]) -> Table:
        """Record the staff estimate of when a table frees up."""
        async with self.table_locks.hold(table_id):
            table = await self.get_table(table_id)
            await self.storage.update(Table, Table.id == table_id, available_in_minutes=available_in_minutes)
            table.available_in_minutes = available_in_minutes

        await self.events.publish(
            EventName.TABLE_AVAILABILITY_UPDATED,
            {"table_id": table_id, "available_in_minutes": available_in_minutes},
        )
        await self.events.publish(EventName.DASHBOARD_UPDATED)
        return table

    async def get_current_booking(self, table_id: str) -> Optional[Booking]:
        """Booking the table is serving now or about to serve, if any."""
        await self.get_table(table_id)
        return find_current_booking(await self._open_bookings(table_id), self.clock())

    async def get_today_bookings(self, table_id: str) -> List[Booking]:
        """Open walk-ins created today and pre-bookings dated today, earliest first."""
        await self.get_table(table_id)
        now = self.clock()
        day_start, day_end = day_bounds(now)

        todays = []
        for booking in await self._open_bookings(table_id):
            if booking.booking_type == BookingType.WALK_IN:
                if day_start <= booking.created_at < day_end:
                    todays.append(booking)
            elif booking.booking_date == now.date():
                todays.append(booking)
        return order_by_start(todays)

    async def get_statuses_for_datetime(
        self,
        booking_date: date,
        time_slot: str,
        duration_minutes: int = 60,
    ) -> List[FloorWithTableStatuses]:
        """
        Every floor's tables with a virtual status for a requested window.

        A table is BOOKED for the window when an open booking overlaps it.
        """
        candidate = TimeWindow.starting_at(combine_date_slot(booking_date, time_slot), duration_minutes)

        result = []
        for floor in await self.list_floors_with_tables():
            tables = []
            for table in floor.tables:
                conflict = await self.conflicts.detect_conflict(table.id, candidate)
                tables.append(TableWithDateTimeStatus(
                    **table.model_dump(),
                    status_for_datetime=TableStatus.BOOKED if conflict else TableStatus.AVAILABLE,
                    booking_for_datetime=BookingSummary.model_validate(conflict) if conflict else None,
                ))
            result.append(FloorWithTableStatuses(
                **floor.model_dump(exclude={"tables"}),
                tables=tables,
            ))
        return result

    async def get_dashboard_stats(self) -> DashboardStats:
        """Headline counts for the staff dashboard."""
        day_start, day_end = day_bounds(self.clock())
        today_bookings = await self.storage.find(
            Booking,
            Booking.created_at >= day_start,
            Booking.created_at < day_end,
        )
        tables = await self.storage.find(Table)
        floors = await self.list_floors()

        status_counts = {status: 0 for status in TableStatus}
        size_counts = {size: 0 for size in TableSize}
        per_floor: Dict[Optional[str], int] = {}
        for table in tables:
            status_counts[table.status] += 1
            size_counts[table.size] += 1
            per_floor[table.floor_id] = per_floor.get(table.floor_id, 0) + 1

        return DashboardStats(
            summary=DashboardSummary(
                total_floors=len(floors),
                total_tables=len(tables),
                available_tables=status_counts[TableStatus.AVAILABLE],
                booked_tables=status_counts[TableStatus.BOOKED],
                occupied_tables=status_counts[TableStatus.OCCUPIED],
                today_booking_count=len(today_bookings),
                total_guests_today=sum(b.people_count or 0 for b in today_bookings),
            ),
            floor_stats=[
                FloorStats(floor_id=f.id, floor_name=f.name, total_tables=per_floor.get(f.id, 0))
                for f in floors
            ],
            size_stats=size_counts,
        )
