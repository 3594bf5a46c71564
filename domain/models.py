"""Domain models using Pydantic v2 for the seating engine."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from core.utils_datetime import parse_time_slot, to_local
from .enums import (
    TableSize,
    TableStatus,
    BookingType,
    BookingStatus,
    ConfirmationStatus,
    WaitingStatus,
)


PHONE_PATTERN = r"^\+?[0-9][0-9 \-]{5,19}$"


def _validate_slot(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    parsed = parse_time_slot(v)
    if parsed is None:
        raise ValueError("time slot must be HH:MM")
    return parsed.strftime("%H:%M")


def _normalize_datetime(v: Any) -> Any:
    if isinstance(v, datetime):
        return to_local(v)
    return v


# ---------------------------------------------------------------------------
# Floors and tables
# ---------------------------------------------------------------------------

class FloorCreate(BaseModel):
    """Model for creating a floor."""

    floor_number: int = Field(..., ge=0)
    name: Optional[str] = Field(None, max_length=100)

    model_config = ConfigDict(str_strip_whitespace=True)


class FloorRecord(BaseModel):
    """Floor record from database."""

    id: str
    floor_number: int
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TableCreate(BaseModel):
    """Model for creating a table. Seats default to the size class."""

    floor_id: Optional[str] = None
    table_number: str = Field(..., min_length=1, max_length=20)
    size: TableSize
    seats: Optional[int] = Field(None, ge=1, le=20)

    model_config = ConfigDict(str_strip_whitespace=True)


class TableRecord(BaseModel):
    """Table record from database."""

    id: str
    floor_id: Optional[str] = None
    table_number: str
    size: TableSize
    seats: int
    status: TableStatus
    occupied_since: Optional[datetime] = None
    available_in_minutes: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class TableStatusUpdate(BaseModel):
    """Staff request to change a table's status."""

    status: TableStatus


class TableAvailabilityUpdate(BaseModel):
    """Staff estimate of when a table frees up."""

    available_in_minutes: Optional[int] = Field(None, ge=0, le=1440)


class FloorWithTables(FloorRecord):
    """Floor with its tables."""

    tables: List[TableRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------

class BookingCreate(BaseModel):
    """
    Model for creating a booking.

    Either an absolute booking_time (walk-ins) or a booking_date +
    booking_time_slot pair (pre-bookings) must be given.
    """

    table_id: str
    customer_name: str = Field(..., min_length=1, max_length=100)
    mobile: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[str] = Field(None, max_length=255)
    people_count: Optional[int] = Field(None, ge=1, le=50)
    booking_type: BookingType = BookingType.WALK_IN
    booking_time: Optional[datetime] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    duration_minutes: int = Field(default=60, ge=1, le=720)
    priority: Optional[int] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("booking_time_slot")
    @classmethod
    def validate_slot(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the slot to HH:MM."""
        return _validate_slot(v)

    @field_validator("booking_time", mode="before")
    @classmethod
    def normalize_booking_time(cls, v: Any) -> Any:
        """Convert aware datetimes to restaurant-local time."""
        return _normalize_datetime(v)

    @model_validator(mode="after")
    def check_time_representation(self) -> "BookingCreate":
        """Require one complete time representation."""
        has_slot = self.booking_date is not None and self.booking_time_slot is not None
        if not has_slot and self.booking_time is None:
            raise ValueError("booking_time or booking_date + booking_time_slot is required")
        return self


class BookingCreateRequest(BookingCreate):
    """Create-booking request; confirm_auto_schedule accepts the suggested slot on conflict."""

    confirm_auto_schedule: bool = False


class BookingOverrideRequest(BaseModel):
    """Create a booking by demoting a conflicting one to the waiting list."""

    booking: BookingCreate
    conflicting_booking_id: str


class BookingRecord(BaseModel):
    """Booking record from database."""

    id: str
    table_id: str
    customer_name: str
    mobile: str
    email: Optional[str] = None
    people_count: Optional[int] = None
    booking_type: BookingType
    booking_time: Optional[datetime] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    duration_minutes: int
    status: BookingStatus
    confirmation_status: ConfirmationStatus
    confirmed_at: Optional[datetime] = None
    delay_minutes: int = 0
    priority: int = 0
    notifications_sent: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingSummary(BaseModel):
    """Short booking description shown on table views."""

    id: str
    customer_name: str
    people_count: Optional[int] = None
    duration_minutes: int

    model_config = ConfigDict(from_attributes=True)


class ReassignRequest(BaseModel):
    """Move a booking to another table."""

    new_table_id: str


class DelayRequest(BaseModel):
    """Client reported a delay."""

    delay_minutes: int = Field(default=0, ge=0, le=240)


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictDetail(BaseModel):
    """The existing booking a candidate window collides with."""

    booking_id: str
    customer_name: str
    booking_time: Optional[datetime] = None
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    duration_minutes: int
    end_time: datetime


class ConflictCheckRequest(BaseModel):
    """Pre-flight conflict check for a waiting list admission."""

    table_id: str
    duration_minutes: int = Field(default=60, ge=1, le=720)


class ConflictCheckResult(BaseModel):
    """Outcome of a conflict check with the suggested reschedule."""

    has_conflict: bool
    conflict: Optional[ConflictDetail] = None
    suggested_time: Optional[datetime] = None
    suggested_time_slot: Optional[str] = None


class ConflictResponse(ConflictCheckResult):
    """HTTP 409 payload for a rejected booking."""

    message: str


# ---------------------------------------------------------------------------
# Waiting list
# ---------------------------------------------------------------------------

class WaitingListCreate(BaseModel):
    """Model for adding a party to the waiting list."""

    customer_name: str = Field(..., min_length=1, max_length=100)
    mobile: str = Field(..., pattern=PHONE_PATTERN)
    email: Optional[str] = Field(None, max_length=255)
    people_count: int = Field(..., ge=1, le=50)
    preferred_table_size: TableSize
    booking_type: BookingType = BookingType.WALK_IN
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    estimated_wait_minutes: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("booking_time_slot")
    @classmethod
    def validate_slot(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the slot to HH:MM."""
        return _validate_slot(v)


class WaitingListRecord(BaseModel):
    """Waiting list entry from database."""

    id: str
    customer_name: str
    mobile: str
    email: Optional[str] = None
    people_count: int
    preferred_table_size: TableSize
    booking_type: BookingType
    booking_date: Optional[date] = None
    booking_time_slot: Optional[str] = None
    priority: int
    status: WaitingStatus
    estimated_wait_minutes: Optional[int] = None
    notified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AssignRequest(BaseModel):
    """Admit a waiting party onto a table."""

    table_id: str
    duration_minutes: int = Field(default=60, ge=1, le=720)
    auto_schedule: bool = False
    suggested_time: Optional[datetime] = None

    @field_validator("suggested_time", mode="before")
    @classmethod
    def normalize_suggested_time(cls, v: Any) -> Any:
        """Convert aware datetimes to restaurant-local time."""
        return _normalize_datetime(v)


class AdmissionResult(BaseModel):
    """Booking created for an admitted waiting entry."""

    booking: BookingRecord
    waiting_entry: WaitingListRecord


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------

class TableStatusChanged(BaseModel):
    """Payload of tableStatusUpdated."""

    table_id: str
    status: TableStatus


class UpcomingBookingNotification(BaseModel):
    """Reminder sent ahead of a booking start."""

    id: str
    booking_id: str
    table_id: str
    table_number: Optional[str] = None
    customer_name: str
    mobile: str
    people_count: Optional[int] = None
    booking_time: datetime
    minutes_before: int
    confirmation_status: ConfirmationStatus
    message: str
    timestamp: datetime


class LongWaitingNotification(BaseModel):
    """Escalation for a party waiting too long."""

    id: str
    type: str = "LONG_WAITING"
    waiting_list_id: str
    customer_name: str
    mobile: str
    people_count: int
    preferred_table_size: TableSize
    waiting_minutes: int
    message: str
    created_at: datetime


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

class TableWithDateTimeStatus(TableRecord):
    """Table with its virtual status for a requested date and slot."""

    status_for_datetime: TableStatus
    booking_for_datetime: Optional[BookingSummary] = None


class FloorWithTableStatuses(FloorRecord):
    """Floor with tables annotated for a requested date and slot."""

    tables: List[TableWithDateTimeStatus] = Field(default_factory=list)


class DashboardSummary(BaseModel):
    """Headline counts for the staff dashboard."""

    total_floors: int
    total_tables: int
    available_tables: int
    booked_tables: int
    occupied_tables: int
    today_booking_count: int
    total_guests_today: int


class FloorStats(BaseModel):
    """Per-floor table count."""

    floor_id: str
    floor_name: Optional[str] = None
    total_tables: int


class DashboardStats(BaseModel):
    """Staff dashboard payload."""

    summary: DashboardSummary
    floor_stats: List[FloorStats]
    size_stats: Dict[TableSize, int]


class SyncResult(BaseModel):
    """Result of a table status reconciliation pass."""

    updated: int
