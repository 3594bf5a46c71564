"""Domain enums and state transition tables for the seating engine."""

from enum import Enum
from typing import Dict, FrozenSet, Tuple


class TableSize(str, Enum):
    """Table size class."""

    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"

    @property
    def seats(self) -> int:
        """Fixed seat count for the size class."""
        return TABLE_SEATS[self]


TABLE_SEATS: Dict[TableSize, int] = {
    TableSize.SMALL: 2,
    TableSize.MEDIUM: 4,
    TableSize.LARGE: 6,
}


class TableStatus(str, Enum):
    """Table occupancy status."""

    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    OCCUPIED = "OCCUPIED"


class BookingType(str, Enum):
    """How the booking was made."""

    WALK_IN = "WALK_IN"
    PRE_BOOKING = "PRE_BOOKING"


class BookingStatus(str, Enum):
    """Booking lifecycle status."""

    BOOKED = "BOOKED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    WAITING = "WAITING"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_BOOKING_STATUSES


NON_TERMINAL_BOOKING_STATUSES: Tuple[BookingStatus, ...] = (
    BookingStatus.BOOKED,
    BookingStatus.CONFIRMED,
)
TERMINAL_BOOKING_STATUSES: Tuple[BookingStatus, ...] = (
    BookingStatus.CANCELLED,
    BookingStatus.COMPLETED,
)


class ConfirmationStatus(str, Enum):
    """Customer confirmation status for a booking."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CLIENT_DELAYED = "CLIENT_DELAYED"
    CANCELLED = "CANCELLED"


class WaitingStatus(str, Enum):
    """Waiting list entry status."""

    WAITING = "WAITING"
    NOTIFIED = "NOTIFIED"
    ASSIGNED = "ASSIGNED"
    CANCELLED = "CANCELLED"


ACTIVE_WAITING_STATUSES: Tuple[WaitingStatus, ...] = (
    WaitingStatus.WAITING,
    WaitingStatus.NOTIFIED,
)


class EventName(str, Enum):
    """Names of events broadcast to staff displays."""

    TABLE_STATUS_UPDATED = "tableStatusUpdated"
    TABLE_AVAILABILITY_UPDATED = "tableAvailabilityUpdated"
    TABLE_CREATED = "tableCreated"
    TABLE_DELETED = "tableDeleted"
    FLOOR_CREATED = "floorCreated"
    FLOOR_DELETED = "floorDeleted"
    DASHBOARD_UPDATED = "dashboardUpdated"
    BOOKING_CREATED = "bookingCreated"
    BOOKING_UPDATED = "bookingUpdated"
    BOOKING_CONFIRMED = "bookingConfirmed"
    BOOKING_DELAYED = "bookingDelayed"
    BOOKING_OVERRIDDEN = "bookingOverridden"
    WAITING_LIST_UPDATED = "waitingListUpdated"
    UPCOMING_BOOKING_NOTIFICATION = "upcomingBookingNotification"
    LONG_WAITING_CUSTOMER = "longWaitingCustomer"


# Allowed transitions. Anything not listed is rejected.

TABLE_TRANSITIONS: Dict[TableStatus, FrozenSet[TableStatus]] = {
    TableStatus.AVAILABLE: frozenset({TableStatus.BOOKED, TableStatus.OCCUPIED}),
    TableStatus.BOOKED: frozenset({TableStatus.AVAILABLE, TableStatus.OCCUPIED}),
    TableStatus.OCCUPIED: frozenset({TableStatus.AVAILABLE, TableStatus.BOOKED}),
}

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.WAITING: frozenset({BookingStatus.BOOKED, BookingStatus.CANCELLED}),
    BookingStatus.BOOKED: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.BOOKED, BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

CONFIRMATION_TRANSITIONS: Dict[ConfirmationStatus, FrozenSet[ConfirmationStatus]] = {
    ConfirmationStatus.PENDING: frozenset(
        {ConfirmationStatus.CONFIRMED, ConfirmationStatus.CLIENT_DELAYED, ConfirmationStatus.CANCELLED}
    ),
    ConfirmationStatus.CONFIRMED: frozenset(
        {ConfirmationStatus.CLIENT_DELAYED, ConfirmationStatus.CANCELLED}
    ),
    # A delayed client may report a further delay or confirm arrival
    ConfirmationStatus.CLIENT_DELAYED: frozenset(
        {ConfirmationStatus.CONFIRMED, ConfirmationStatus.CLIENT_DELAYED, ConfirmationStatus.CANCELLED}
    ),
    ConfirmationStatus.CANCELLED: frozenset(),
}

WAITING_TRANSITIONS: Dict[WaitingStatus, FrozenSet[WaitingStatus]] = {
    WaitingStatus.WAITING: frozenset(
        {WaitingStatus.NOTIFIED, WaitingStatus.ASSIGNED, WaitingStatus.CANCELLED}
    ),
    WaitingStatus.NOTIFIED: frozenset(
        {WaitingStatus.NOTIFIED, WaitingStatus.ASSIGNED, WaitingStatus.CANCELLED}
    ),
    WaitingStatus.ASSIGNED: frozenset(),
    WaitingStatus.CANCELLED: frozenset(),
}


def can_transition(table: Dict, current: Enum, target: Enum) -> bool:
    """Check whether current -> target is listed in the given transition table."""
    return target in table.get(current, frozenset())
