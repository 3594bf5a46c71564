"""Tests for conflict detection between bookings on one table."""
import pytest
from datetime import timedelta

from domain.enums import BookingStatus
from services.conflict_detector import ConflictDetector, conflict_result
from services.time_window import TimeWindow


@pytest.mark.integration
class TestDetectConflict:
    """Test scanning a table's open bookings."""

    async def test_no_bookings(self, storage, make_table, base_time):
        table = await make_table()

        result = await ConflictDetector(storage).detect_conflict(table.id, TimeWindow.starting_at(base_time, 60))

        assert result is None

    async def test_overlap_detected(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        existing = await make_booking(table, base_time.replace(hour=10))

        result = await ConflictDetector(storage).detect_conflict(
            table.id,
            TimeWindow.starting_at(base_time.replace(hour=10, minute=30), 60),
        )

        assert result is not None
        assert result.id == existing.id

    async def test_touching_windows_allowed(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        await make_booking(table, base_time.replace(hour=10))

        result = await ConflictDetector(storage).detect_conflict(
            table.id,
            TimeWindow.starting_at(base_time.replace(hour=11), 60),
        )

        assert result is None

    async def test_terminal_bookings_never_conflict(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        await make_booking(table, base_time, status=BookingStatus.CANCELLED)
        await make_booking(table, base_time, status=BookingStatus.COMPLETED)

        result = await ConflictDetector(storage).detect_conflict(table.id, TimeWindow.starting_at(base_time, 60))

        assert result is None

    async def test_other_tables_ignored(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        other = await make_table()
        await make_booking(other, base_time)

        result = await ConflictDetector(storage).detect_conflict(table.id, TimeWindow.starting_at(base_time, 60))

        assert result is None

    async def test_excluded_booking_skipped(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        existing = await make_booking(table, base_time)

        result = await ConflictDetector(storage).detect_conflict(
            table.id,
            TimeWindow.starting_at(base_time, 60),
            exclude_booking_id=existing.id,
        )

        assert result is None

    async def test_check_suggests_end_plus_buffer(self, storage, make_table, make_booking, base_time):
        table = await make_table()
        await make_booking(table, base_time.replace(hour=10), customer_name="Alice")

        result = await ConflictDetector(storage).check(
            table.id,
            TimeWindow.starting_at(base_time.replace(hour=10, minute=30), 60),
        )

        assert result.has_conflict is True
        assert result.conflict.customer_name == "Alice"
        assert result.conflict.end_time == base_time.replace(hour=11)
        assert result.suggested_time == base_time.replace(hour=11, minute=5)
        assert result.suggested_time_slot == "11:05"


@pytest.mark.unit
def test_conflict_result_without_booking():
    result = conflict_result(None)

    assert result.has_conflict is False
    assert result.conflict is None
    assert result.suggested_time is None
