"""
Table status reconciliation loop.

Periodically re-derives every table's status from today's bookings and
applies the minimal set of corrections. A table staff marked OCCUPIED is a
manual hold and is never changed here.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from core.utils_datetime import get_current_datetime
from db.models_sqlalchemy import Booking, Table
from db.storage import Storage
from domain.enums import EventName, NON_TERMINAL_BOOKING_STATUSES, TableStatus
from domain.models import TableStatusChanged
from services.events import EventPublisher
from services.locks import KeyedLocks
from services.table_state import derive_table_state
from services.time_window import intersects_day


logger = logging.getLogger(__name__)


def in_scope(booking, now: datetime) -> bool:
    """Today's bookings and same-day walk-ins; unusable records are skipped."""
    try:
        return intersects_day(booking, now)
    except ValueError as e:
        logger.warning(
            f"Skipping booking {booking.id} during reconciliation: {e}", extra={"booking_id": booking.id}
        )
        return False


class ReconciliationLoop:
    """Keeps Table.status consistent with the bookings assigned to each table."""

    def __init__(
        self,
        storage: Storage,
        events: EventPublisher,
        table_locks: KeyedLocks,
        clock: Callable[[], datetime] = get_current_datetime,
    ):
        self.storage = storage
        self.events = events
        self.table_locks = table_locks
        self.clock = clock

    async def _tables_in_scope(self, now: datetime) -> List[str]:
        bookings = await self.storage.find(
            Booking,
            Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
        )

        table_ids: Dict[str, None] = {}
        for booking in bookings:
            if in_scope(booking, now):
                table_ids[booking.table_id] = None
        return list(table_ids)

    async def reconcile_table(self, table_id: str, now: datetime) -> Tuple[bool, TableStatus]:
        """
        Re-derive and, if needed, correct a single table.

        Returns:
            (changed, resulting status)
        """
        async with self.table_locks.hold(table_id):
            table = await self.storage.get(Table, table_id)
            if table is None:
                logger.warning(f"Bookings reference missing table {table_id}", extra={"table_id": table_id})
                return False, TableStatus.AVAILABLE

            bookings = await self.storage.find(
                Booking,
                Booking.table_id == table_id,
                Booking.status.in_(NON_TERMINAL_BOOKING_STATUSES),
            )
            todays = [b for b in bookings if in_scope(b, now)]
            state = derive_table_state(todays, now)

            if table.status == TableStatus.OCCUPIED or state.target_status == table.status:
                return False, table.status

            fields = {"status": state.target_status}
            if state.target_status == TableStatus.AVAILABLE:
                fields["occupied_since"] = None
                fields["available_in_minutes"] = state.available_in_minutes

            await self.storage.update(Table, Table.id == table_id, **fields)
            logger.info(
                f"Table {table.table_number} reconciled {table.status.value} -> "
                f"{state.target_status.value}",
                extra={"table_id": table_id},
            )
            return True, state.target_status

    async def run_once(self) -> int:
        """
        Run one reconciliation pass.

        Returns:
            Number of tables whose status changed
        """
        now = self.clock()
        table_ids = await self._tables_in_scope(now)

        changed: List[TableStatusChanged] = []
        for table_id in table_ids:
            try:
                was_changed, status = await self.reconcile_table(table_id, now)
            except Exception:
                logger.exception(
                    f"Reconciliation failed for table {table_id}; skipping", extra={"table_id": table_id}
                )
                continue
            if was_changed:
                changed.append(TableStatusChanged(table_id=table_id, status=status))

        for change in changed:
            await self.events.publish(EventName.TABLE_STATUS_UPDATED, change)
        await self.events.publish(EventName.DASHBOARD_UPDATED)

        logger.info(f"Reconciliation checked {len(table_ids)} tables, updated {len(changed)}")
        return len(changed)
