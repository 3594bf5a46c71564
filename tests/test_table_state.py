"""Unit tests for table state derivation."""
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace

from domain.enums import BookingStatus, BookingType, TableStatus
from services.table_state import derive_table_state, find_active_booking, find_current_booking


def booking(start, booking_id="b1", duration=60, status=BookingStatus.BOOKED, booking_type=BookingType.PRE_BOOKING):
    return SimpleNamespace(
        id=booking_id,
        booking_type=booking_type,
        booking_time=start,
        booking_date=None,
        booking_time_slot=None,
        duration_minutes=duration,
        status=status,
    )


@pytest.mark.unit
class TestDeriveTableState:
    """Test the BOOKED / AVAILABLE decision."""

    def test_no_bookings_is_available(self, base_time):
        state = derive_table_state([], base_time)

        assert state.target_status == TableStatus.AVAILABLE
        assert state.has_active_booking is False
        assert state.available_in_minutes is None

    def test_booking_in_progress_is_booked(self, base_time):
        state = derive_table_state([booking(base_time - timedelta(minutes=20))], base_time)

        assert state.target_status == TableStatus.BOOKED
        assert state.has_active_booking is True
        assert state.frees_in_minutes == 70

    def test_post_buffer_keeps_table_held(self, base_time):
        # Ended 25 minutes ago, still inside the 30 minute post-buffer
        state = derive_table_state([booking(base_time - timedelta(minutes=85))], base_time)

        assert state.target_status == TableStatus.BOOKED

    def test_after_post_buffer_is_available(self, base_time):
        state = derive_table_state([booking(base_time - timedelta(minutes=91))], base_time)

        assert state.target_status == TableStatus.AVAILABLE

    def test_upcoming_within_pre_hold_is_booked(self, base_time):
        state = derive_table_state([booking(base_time + timedelta(minutes=45))], base_time)

        assert state.target_status == TableStatus.BOOKED
        assert state.has_active_booking is False
        assert state.available_in_minutes == 45

    def test_upcoming_beyond_pre_hold_is_available(self, base_time):
        state = derive_table_state([booking(base_time + timedelta(minutes=46))], base_time)

        assert state.target_status == TableStatus.AVAILABLE
        assert state.nearest_upcoming_start == base_time + timedelta(minutes=46)
        assert state.available_in_minutes == 46

    def test_nearest_upcoming_wins(self, base_time):
        bookings = [
            booking(base_time + timedelta(hours=3), "late"),
            booking(base_time + timedelta(hours=1), "early"),
        ]

        state = derive_table_state(bookings, base_time)

        assert state.nearest_upcoming_start == base_time + timedelta(hours=1)

    def test_terminal_bookings_ignored(self, base_time):
        bookings = [
            booking(base_time, "cancelled", status=BookingStatus.CANCELLED),
            booking(base_time, "completed", status=BookingStatus.COMPLETED),
        ]

        assert derive_table_state(bookings, base_time).target_status == TableStatus.AVAILABLE

    def test_unusable_booking_skipped(self, base_time):
        broken = booking(None, "broken")

        state = derive_table_state([broken, booking(base_time, "ok")], base_time)

        assert state.target_status == TableStatus.BOOKED


@pytest.mark.unit
class TestBookingLookups:
    """Test current/active booking lookups for a table."""

    def test_current_booking_includes_pre_hold(self, base_time):
        upcoming = booking(base_time + timedelta(minutes=40), "soon")

        assert find_current_booking([upcoming], base_time) is upcoming

    def test_current_booking_none_when_far_away(self, base_time):
        assert find_current_booking([booking(base_time + timedelta(hours=2))], base_time) is None

    def test_current_booking_earliest_first(self, base_time):
        first = booking(base_time - timedelta(minutes=10), "first")
        second = booking(base_time + timedelta(minutes=30), "second")

        assert find_current_booking([second, first], base_time) is first

    def test_active_booking_uses_activity_window(self, base_time):
        upcoming = booking(base_time + timedelta(minutes=40), "soon")
        seated = booking(base_time - timedelta(minutes=50), "seated")

        assert find_active_booking([upcoming], base_time) is None
        assert find_active_booking([upcoming, seated], base_time) is seated

    def test_walk_in_is_active(self, base_time):
        walk_in = booking(base_time - timedelta(hours=5), "walk", booking_type=BookingType.WALK_IN)

        assert find_active_booking([walk_in], base_time) is walk_in
