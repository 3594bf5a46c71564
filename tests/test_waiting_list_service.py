"""Tests for the waiting list and table admission."""
import pytest
from datetime import datetime, timedelta

from db.models_sqlalchemy import Booking, Table, WaitingListEntry
from domain.enums import (
    BookingStatus,
    BookingType,
    EventName,
    TableSize,
    TableStatus,
    WaitingStatus,
)
from domain.models import AssignRequest, WaitingListCreate
from services.errors import InvalidTransitionError, NotFoundError


def waiting_request(**overrides):
    data = {
        "customer_name": "Dana",
        "mobile": "+421900777888",
        "people_count": 3,
        "preferred_table_size": TableSize.MEDIUM,
    }
    data.update(overrides)
    return WaitingListCreate(**data)


@pytest.mark.integration
class TestAddEntry:
    """Test queueing parties."""

    async def test_walk_in_entry(self, services, publisher, base_time):
        entry = await services.waiting_list.add_entry(waiting_request())

        assert entry.status == WaitingStatus.WAITING
        assert entry.priority == 0
        assert entry.created_at == base_time
        assert publisher.names() == [EventName.WAITING_LIST_UPDATED, EventName.DASHBOARD_UPDATED]

    async def test_pre_booking_entry_outranks_walk_ins(self, services, base_time):
        entry = await services.waiting_list.add_entry(waiting_request(
            booking_type=BookingType.PRE_BOOKING,
            booking_date=base_time.date(),
            booking_time_slot="19:00",
        ))

        assert entry.priority == 10

    async def test_wait_estimated_from_tables_of_preferred_size(self, services, make_table):
        await make_table(size=TableSize.MEDIUM, available_in_minutes=40)
        await make_table(size=TableSize.MEDIUM, available_in_minutes=25)
        await make_table(size=TableSize.LARGE, available_in_minutes=5)

        entry = await services.waiting_list.add_entry(waiting_request())

        assert entry.estimated_wait_minutes == 25

    async def test_explicit_estimate_kept(self, services, make_table):
        await make_table(size=TableSize.MEDIUM, available_in_minutes=25)

        entry = await services.waiting_list.add_entry(waiting_request(estimated_wait_minutes=50))

        assert entry.estimated_wait_minutes == 50


@pytest.mark.integration
class TestListEntries:
    """Test waiting list ordering and filtering."""

    async def test_priority_then_arrival_order(self, services, make_waiting_entry, base_time):
        late_walk_in = await make_waiting_entry(customer_name="Late", created_at=base_time - timedelta(minutes=10))
        pre_booked = await make_waiting_entry(customer_name="Pre", booking_type=BookingType.PRE_BOOKING)
        early_walk_in = await make_waiting_entry(customer_name="Early", created_at=base_time - timedelta(minutes=20))

        entries = await services.waiting_list.list_entries()

        assert [e.id for e in entries] == [pre_booked.id, early_walk_in.id, late_walk_in.id]

    async def test_closed_entries_hidden(self, services, make_waiting_entry):
        waiting = await make_waiting_entry()
        notified = await make_waiting_entry(status=WaitingStatus.NOTIFIED)
        await make_waiting_entry(status=WaitingStatus.ASSIGNED)
        await make_waiting_entry(status=WaitingStatus.CANCELLED)

        entries = await services.waiting_list.list_entries()

        assert {e.id for e in entries} == {waiting.id, notified.id}

    async def test_filter_by_date(self, services, make_waiting_entry, base_time):
        today = await make_waiting_entry(booking_date=base_time.date(), booking_time_slot="19:00")
        await make_waiting_entry(booking_date=base_time.date() + timedelta(days=1), booking_time_slot="19:00")

        entries = await services.waiting_list.list_entries(base_time.date())

        assert [e.id for e in entries] == [today.id]


@pytest.mark.integration
class TestCheckAssignConflict:
    """Test the admission pre-flight check."""

    async def test_entry_slot_conflicts(self, services, make_table, make_booking, make_waiting_entry, base_time):
        table = await make_table()
        existing = await make_booking(table, base_time.replace(hour=10))
        entry = await make_waiting_entry(
            booking_type=BookingType.PRE_BOOKING,
            booking_date=base_time.date(),
            booking_time_slot="10:30",
        )

        result = await services.waiting_list.check_assign_conflict(entry.id, table.id)

        assert result.has_conflict is True
        assert result.conflict.booking_id == existing.id
        assert result.suggested_time_slot == "11:05"

    async def test_walk_in_checked_from_now(self, services, make_table, make_booking, make_waiting_entry, base_time):
        table = await make_table()
        await make_booking(table, base_time + timedelta(minutes=30))
        entry = await make_waiting_entry()

        result = await services.waiting_list.check_assign_conflict(entry.id, table.id, duration_minutes=90)

        assert result.has_conflict is True
        assert result.suggested_time == base_time + timedelta(minutes=95)

    async def test_no_conflict(self, services, make_table, make_waiting_entry):
        table = await make_table()
        entry = await make_waiting_entry()

        result = await services.waiting_list.check_assign_conflict(entry.id, table.id)

        assert result.has_conflict is False
        assert result.suggested_time is None

    async def test_unknown_entry(self, services, make_table):
        table = await make_table()

        with pytest.raises(NotFoundError):
            await services.waiting_list.check_assign_conflict("missing", table.id)


@pytest.mark.integration
class TestAssign:
    """Test admitting waiting parties onto tables."""

    async def test_assign_walk_in_to_available_table(
        self, services, storage, publisher, make_table, make_waiting_entry, base_time
    ):
        table = await make_table()
        entry = await make_waiting_entry(customer_name="Eve", people_count=3)

        booking, updated = await services.waiting_list.assign(
            entry.id, AssignRequest(table_id=table.id, duration_minutes=90)
        )

        assert booking.customer_name == "Eve"
        assert booking.people_count == 3
        assert booking.booking_time == base_time
        assert booking.duration_minutes == 90
        assert booking.status == BookingStatus.BOOKED
        assert booking.priority == entry.priority
        assert updated.status == WaitingStatus.ASSIGNED
        assert (await storage.get(WaitingListEntry, entry.id)).status == WaitingStatus.ASSIGNED
        assert (await storage.get(Table, table.id)).status == TableStatus.BOOKED
        assert publisher.names() == [
            EventName.TABLE_STATUS_UPDATED,
            EventName.WAITING_LIST_UPDATED,
            EventName.BOOKING_CREATED,
            EventName.DASHBOARD_UPDATED,
        ]

    async def test_occupied_table_keeps_status(self, services, storage, publisher, make_table, make_waiting_entry, base_time):
        table = await make_table(status=TableStatus.OCCUPIED, occupied_since=base_time)
        entry = await make_waiting_entry()

        await services.waiting_list.assign(entry.id, AssignRequest(table_id=table.id))

        refreshed = await storage.get(Table, table.id)
        assert refreshed.status == TableStatus.OCCUPIED
        assert refreshed.occupied_since == base_time
        assert EventName.TABLE_STATUS_UPDATED not in publisher.names()

    async def test_pre_booking_keeps_its_slot(self, services, make_table, make_waiting_entry, base_time):
        table = await make_table()
        entry = await make_waiting_entry(
            booking_type=BookingType.PRE_BOOKING,
            booking_date=base_time.date(),
            booking_time_slot="19:30",
        )

        booking, _ = await services.waiting_list.assign(entry.id, AssignRequest(table_id=table.id))

        assert booking.booking_type == BookingType.PRE_BOOKING
        assert booking.booking_date == base_time.date()
        assert booking.booking_time_slot == "19:30"
        assert booking.priority == 10

    async def test_auto_schedule_uses_suggested_time(self, services, storage, make_table, make_waiting_entry, base_time):
        table = await make_table()
        entry = await make_waiting_entry(
            booking_type=BookingType.PRE_BOOKING,
            booking_date=base_time.date(),
            booking_time_slot="10:30",
        )

        booking, _ = await services.waiting_list.assign(entry.id, AssignRequest(
            table_id=table.id,
            auto_schedule=True,
            suggested_time=datetime(2026, 3, 15, 11, 5),
        ))

        stored = await storage.get(Booking, booking.id)
        assert stored.booking_time_slot == "11:05"
        assert stored.booking_time == datetime(2026, 3, 15, 11, 5)

    async def test_assigned_entry_cannot_be_assigned_again(self, services, storage, make_table, make_waiting_entry):
        table = await make_table()
        entry = await make_waiting_entry(status=WaitingStatus.ASSIGNED)

        with pytest.raises(InvalidTransitionError):
            await services.waiting_list.assign(entry.id, AssignRequest(table_id=table.id))

        assert await storage.count(Booking) == 0

    async def test_unknown_table(self, services, make_waiting_entry):
        entry = await make_waiting_entry()

        with pytest.raises(NotFoundError):
            await services.waiting_list.assign(entry.id, AssignRequest(table_id="missing"))


@pytest.mark.integration
class TestCancelAndNotify:
    """Test staff actions on entries."""

    async def test_cancel_entry(self, services, publisher, make_waiting_entry):
        entry = await make_waiting_entry()

        cancelled = await services.waiting_list.cancel_entry(entry.id)

        assert cancelled.status == WaitingStatus.CANCELLED
        assert publisher.names() == [EventName.WAITING_LIST_UPDATED, EventName.DASHBOARD_UPDATED]

    async def test_cancelled_entry_cannot_be_cancelled_again(self, services, make_waiting_entry):
        entry = await make_waiting_entry(status=WaitingStatus.CANCELLED)

        with pytest.raises(InvalidTransitionError):
            await services.waiting_list.cancel_entry(entry.id)

    async def test_notify_records_time(self, services, storage, clock, make_waiting_entry, base_time):
        entry = await make_waiting_entry()
        clock.advance(minutes=7)

        notified = await services.waiting_list.notify_customer(entry.id)

        assert notified.status == WaitingStatus.NOTIFIED
        assert (await storage.get(WaitingListEntry, entry.id)).notified_at == base_time + timedelta(minutes=7)

    async def test_notified_entry_can_be_notified_again(self, services, make_waiting_entry):
        entry = await make_waiting_entry(status=WaitingStatus.NOTIFIED)

        notified = await services.waiting_list.notify_customer(entry.id)

        assert notified.status == WaitingStatus.NOTIFIED
