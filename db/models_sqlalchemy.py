"""SQLAlchemy models for the seating engine database tables."""

from datetime import datetime, date
from typing import List, Optional

from sqlalchemy import String, Integer, DateTime, Date, JSON, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from domain.enums import (
    TableSize,
    TableStatus,
    BookingType,
    BookingStatus,
    ConfirmationStatus,
    WaitingStatus,
)


def _enum_column(enum_cls):
    """String-backed enum column, portable across SQLite and PostgreSQL."""
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class Floor(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Floor table model."""

    __tablename__ = "floors"

    floor_number: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Floor(id={self.id}, number={self.floor_number}, name='{self.name}')>"


class Table(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Seating table model."""

    __tablename__ = "tables"

    floor_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("floors.id"),
        nullable=True,
        index=True,
    )

    table_number: Mapped[str] = mapped_column(String(20), nullable=False)

    size: Mapped[TableSize] = mapped_column(_enum_column(TableSize), nullable=False)

    seats: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    status: Mapped[TableStatus] = mapped_column(
        _enum_column(TableStatus),
        nullable=False,
        default=TableStatus.AVAILABLE,
        index=True,
    )

    # Set only while the table is OCCUPIED
    occupied_since: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    available_in_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Table(id={self.id}, number='{self.table_number}', "
            f"size={self.size}, status={self.status})>"
        )


class Booking(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Booking table model."""

    __tablename__ = "bookings"

    table_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tables.id"),
        nullable=False,
        index=True,
    )

    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)

    mobile: Mapped[str] = mapped_column(String(20), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    people_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    booking_type: Mapped[BookingType] = mapped_column(
        _enum_column(BookingType),
        nullable=False,
        default=BookingType.WALK_IN,
    )

    # Absolute start (walk-ins); pre-bookings use booking_date + booking_time_slot
    booking_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    booking_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)

    booking_time_slot: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)

    status: Mapped[BookingStatus] = mapped_column(
        _enum_column(BookingStatus),
        nullable=False,
        default=BookingStatus.BOOKED,
        index=True,
    )

    confirmation_status: Mapped[ConfirmationStatus] = mapped_column(
        _enum_column(ConfirmationStatus),
        nullable=False,
        default=ConfirmationStatus.PENDING,
    )

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    delay_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Higher for pre-bookings
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Reminder threshold markers already fired, e.g. ["30min", "20min"]
    notifications_sent: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_bookings_table_status", "table_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, table={self.table_id}, "
            f"customer='{self.customer_name}', status={self.status})>"
        )


class WaitingListEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Waiting list table model."""

    __tablename__ = "waiting_list"

    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)

    mobile: Mapped[str] = mapped_column(String(20), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    people_count: Mapped[int] = mapped_column(Integer, nullable=False)

    preferred_table_size: Mapped[TableSize] = mapped_column(_enum_column(TableSize), nullable=False)

    booking_type: Mapped[BookingType] = mapped_column(
        _enum_column(BookingType),
        nullable=False,
        default=BookingType.WALK_IN,
    )

    booking_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)

    booking_time_slot: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[WaitingStatus] = mapped_column(
        _enum_column(WaitingStatus),
        nullable=False,
        default=WaitingStatus.WAITING,
        index=True,
    )

    estimated_wait_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<WaitingListEntry(id={self.id}, customer='{self.customer_name}', "
            f"status={self.status})>"
        )
