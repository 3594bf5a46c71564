"""Domain layer for the seating engine."""

from .enums import (
    TableSize,
    TableStatus,
    BookingType,
    BookingStatus,
    ConfirmationStatus,
    WaitingStatus,
    EventName,
    NON_TERMINAL_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    ACTIVE_WAITING_STATUSES,
)
from .models import (
    FloorCreate,
    FloorRecord,
    TableCreate,
    TableRecord,
    BookingCreate,
    BookingCreateRequest,
    BookingRecord,
    ConflictDetail,
    ConflictCheckResult,
    WaitingListCreate,
    WaitingListRecord,
    AdmissionResult,
)

__all__ = [
    # Enums
    "TableSize",
    "TableStatus",
    "BookingType",
    "BookingStatus",
    "ConfirmationStatus",
    "WaitingStatus",
    "EventName",
    "NON_TERMINAL_BOOKING_STATUSES",
    "TERMINAL_BOOKING_STATUSES",
    "ACTIVE_WAITING_STATUSES",
    # Models
    "FloorCreate",
    "FloorRecord",
    "TableCreate",
    "TableRecord",
    "BookingCreate",
    "BookingCreateRequest",
    "BookingRecord",
    "ConflictDetail",
    "ConflictCheckResult",
    "WaitingListCreate",
    "WaitingListRecord",
    "AdmissionResult",
]
