"""Unit tests for booking time windows."""
import pytest
from datetime import date, datetime, timedelta
from types import SimpleNamespace

from domain.enums import BookingType
from services.time_window import (
    AbsoluteStart,
    ScheduledSlot,
    TimeWindow,
    intersects_day,
    is_active_now,
    overlaps,
    schedule_of,
    suggest_after,
    window_of,
)


def booking(**fields):
    values = {
        "id": "b1",
        "booking_type": BookingType.PRE_BOOKING,
        "booking_time": None,
        "booking_date": None,
        "booking_time_slot": None,
        "duration_minutes": 60,
        "created_at": None,
    }
    values.update(fields)
    return SimpleNamespace(**values)


@pytest.mark.unit
class TestWindowOf:
    """Test normalizing both time representations."""

    def test_date_and_slot(self):
        b = booking(booking_date=date(2026, 3, 15), booking_time_slot="19:30", duration_minutes=90)

        window = window_of(b)

        assert window.start == datetime(2026, 3, 15, 19, 30)
        assert window.end == datetime(2026, 3, 15, 21, 0)

    def test_absolute_time(self):
        b = booking(booking_type=BookingType.WALK_IN, booking_time=datetime(2026, 3, 15, 12, 5))

        assert schedule_of(b) == AbsoluteStart(datetime(2026, 3, 15, 12, 5))
        assert window_of(b).end == datetime(2026, 3, 15, 13, 5)

    def test_date_slot_wins_over_absolute_time(self):
        b = booking(
            booking_time=datetime(2026, 3, 15, 8, 0),
            booking_date=date(2026, 3, 15),
            booking_time_slot="18:00",
        )

        assert schedule_of(b) == ScheduledSlot(date(2026, 3, 15), "18:00")
        assert window_of(b).start == datetime(2026, 3, 15, 18, 0)

    def test_negative_duration_clamped(self):
        b = booking(booking_time=datetime(2026, 3, 15, 12, 0), duration_minutes=-15)

        window = window_of(b)

        assert window.start == window.end

    def test_missing_duration_defaults_to_an_hour(self):
        b = booking(booking_time=datetime(2026, 3, 15, 12, 0), duration_minutes=None)

        assert window_of(b).duration_minutes == 60

    def test_end_after_start_for_positive_durations(self):
        for minutes in (1, 30, 60, 240):
            window = window_of(booking(booking_time=datetime(2026, 3, 15, 23, 30), duration_minutes=minutes))
            assert window.end > window.start

    def test_no_time_raises(self):
        with pytest.raises(ValueError, match="has no start time"):
            window_of(booking())

    def test_invalid_slot_raises(self):
        with pytest.raises(ValueError, match="Invalid time slot"):
            window_of(booking(booking_date=date(2026, 3, 15), booking_time_slot="25:99"))


@pytest.mark.unit
class TestOverlaps:
    """Test strict interval overlap."""

    def test_partial_overlap(self, base_time):
        a = TimeWindow.starting_at(base_time, 60)
        b = TimeWindow.starting_at(base_time + timedelta(minutes=30), 60)

        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_touching_windows_do_not_overlap(self, base_time):
        a = TimeWindow.starting_at(base_time, 60)
        b = TimeWindow.starting_at(base_time + timedelta(minutes=60), 60)

        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_containment_overlaps(self, base_time):
        outer = TimeWindow.starting_at(base_time, 180)
        inner = TimeWindow.starting_at(base_time + timedelta(minutes=60), 15)

        assert overlaps(outer.start, outer.end, inner.start, inner.end)
        assert overlaps(inner.start, inner.end, outer.start, outer.end)

    def test_disjoint(self, base_time):
        assert not overlaps(
            base_time, base_time + timedelta(hours=1),
            base_time + timedelta(hours=2), base_time + timedelta(hours=3),
        )


@pytest.mark.unit
class TestIsActiveNow:
    """Test the activity window [start - 30, start + 60]."""

    def test_walk_in_always_active(self, base_time):
        b = booking(booking_type=BookingType.WALK_IN, booking_time=base_time + timedelta(days=3))

        assert is_active_now(b, base_time)

    @pytest.mark.parametrize("offset,expected", [
        (-31, False),
        (-30, True),
        (0, True),
        (10, True),
        (60, True),
        (61, False),
    ])
    def test_pre_booking_window(self, base_time, offset, expected):
        """offset is now minus start, in minutes."""
        start = base_time - timedelta(minutes=offset)
        b = booking(booking_date=start.date(), booking_time_slot=start.strftime("%H:%M"))

        assert is_active_now(b, base_time) is expected

    def test_booking_ten_minutes_ahead_is_active(self, base_time):
        b = booking(booking_time=base_time + timedelta(minutes=10))

        assert is_active_now(b, base_time)


@pytest.mark.unit
class TestIntersectsDay:
    """Test selection of today's bookings."""

    def test_today_booking(self, base_time):
        b = booking(booking_date=base_time.date(), booking_time_slot="20:00")

        assert intersects_day(b, base_time)

    def test_tomorrow_booking(self, base_time):
        b = booking(booking_date=base_time.date() + timedelta(days=1), booking_time_slot="20:00")

        assert not intersects_day(b, base_time)

    def test_late_booking_from_yesterday_spilling_over_midnight(self, base_time):
        b = booking(
            booking_date=base_time.date() - timedelta(days=1),
            booking_time_slot="23:30",
            duration_minutes=90,
        )

        assert intersects_day(b, base_time)

    def test_walk_in_created_today(self, base_time):
        b = booking(
            booking_type=BookingType.WALK_IN,
            booking_time=base_time - timedelta(days=2),
            created_at=base_time.replace(hour=9),
        )

        assert intersects_day(b, base_time)


@pytest.mark.unit
def test_suggest_after_adds_buffer(base_time):
    window = TimeWindow.starting_at(base_time, 60)

    assert suggest_after(window) == base_time + timedelta(minutes=65)
    assert suggest_after(window, 0) == window.end
