"""Pytest configuration and fixtures for seating engine tests."""
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from core.utils_datetime import split_date_slot
from db.models_sqlalchemy import Booking, Floor, Table, WaitingListEntry
from db.session import create_session_factory, create_test_engine, drop_db, init_db
from db.storage import Storage
from domain.enums import (
    BookingStatus,
    BookingType,
    ConfirmationStatus,
    EventName,
    TableSize,
    TableStatus,
    WaitingStatus,
)
from services.events import EventPublisher, serialize_payload
from services.registry import Services, build_services


class FakeClock:
    """Controllable replacement for get_current_datetime."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingPublisher(EventPublisher):
    """Publisher that keeps every event for assertions."""

    def __init__(self):
        self.events: List[Tuple[EventName, Any]] = []

    async def publish(self, event: EventName, payload=None) -> None:
        self.events.append((event, serialize_payload(payload)))

    def names(self) -> List[EventName]:
        return [event for event, _ in self.events]

    def of(self, event: EventName) -> List[Any]:
        return [payload for name, payload in self.events if name == event]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture(scope="function")
def base_time():
    """Provide a base datetime for consistent testing."""
    return datetime(2026, 3, 15, 12, 0)  # Noon on March 15, 2026


@pytest.fixture(scope="function")
def clock(base_time):
    return FakeClock(base_time)


@pytest.fixture(scope="function")
def publisher():
    return RecordingPublisher()


@pytest_asyncio.fixture(scope="function")
async def storage(tmp_path) -> AsyncGenerator[Storage, None]:
    """Storage bound to a fresh SQLite database file."""
    engine = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'seating.db'}")
    await init_db(engine)
    yield Storage(create_session_factory(engine), timeout_seconds=5.0)
    await drop_db(engine)
    await engine.dispose()


@pytest.fixture(scope="function")
def services(storage, publisher, clock) -> Services:
    return build_services(storage, publisher, clock)


@pytest.fixture(scope="function")
def make_floor(storage, clock):
    """Factory fixture to create a floor."""
    async def _create(floor_number: int = 1, name: str = "Main hall") -> Floor:
        return await storage.create(Floor, floor_number=floor_number, name=name, created_at=clock())
    return _create


@pytest.fixture(scope="function")
def make_table(storage, clock):
    """Factory fixture to create a table."""
    counter = {"n": 0}

    async def _create(
        size: TableSize = TableSize.MEDIUM,
        status: TableStatus = TableStatus.AVAILABLE,
        floor_id: Optional[str] = None,
        **fields: Any,
    ) -> Table:
        counter["n"] += 1
        return await storage.create(
            Table,
            floor_id=floor_id,
            table_number=fields.pop("table_number", f"T{counter['n']}"),
            size=size,
            seats=size.seats,
            status=status,
            created_at=clock(),
            **fields,
        )
    return _create


@pytest.fixture(scope="function")
def make_booking(storage, clock):
    """
    Factory fixture to create a booking directly in storage.

    Pre-bookings are stored as date + slot, walk-ins as an absolute time.
    """
    async def _create(
        table: Table,
        start: datetime,
        booking_type: BookingType = BookingType.PRE_BOOKING,
        duration_minutes: int = 60,
        status: BookingStatus = BookingStatus.BOOKED,
        confirmation_status: ConfirmationStatus = ConfirmationStatus.PENDING,
        customer_name: str = "John Doe",
        created_at: Optional[datetime] = None,
        **fields: Any,
    ) -> Booking:
        if booking_type == BookingType.PRE_BOOKING:
            booking_date, time_slot = split_date_slot(start)
            when = {"booking_date": booking_date, "booking_time_slot": time_slot}
        else:
            when = {"booking_time": start}
        return await storage.create(
            Booking,
            table_id=table.id,
            customer_name=customer_name,
            mobile="+421900123456",
            people_count=fields.pop("people_count", 2),
            booking_type=booking_type,
            duration_minutes=duration_minutes,
            status=status,
            confirmation_status=confirmation_status,
            priority=10 if booking_type == BookingType.PRE_BOOKING else 0,
            notifications_sent=[],
            created_at=created_at or clock(),
            **when,
            **fields,
        )
    return _create


@pytest.fixture(scope="function")
def make_waiting_entry(storage, clock):
    """Factory fixture to create a waiting list entry."""
    async def _create(
        customer_name: str = "Jane Smith",
        created_at: Optional[datetime] = None,
        status: WaitingStatus = WaitingStatus.WAITING,
        booking_type: BookingType = BookingType.WALK_IN,
        **fields: Any,
    ) -> WaitingListEntry:
        return await storage.create(
            WaitingListEntry,
            customer_name=customer_name,
            mobile="+421900654321",
            people_count=fields.pop("people_count", 4),
            preferred_table_size=fields.pop("preferred_table_size", TableSize.MEDIUM),
            booking_type=booking_type,
            priority=10 if booking_type == BookingType.PRE_BOOKING else 0,
            status=status,
            created_at=created_at or clock(),
            **fields,
        )
    return _create


@pytest_asyncio.fixture(scope="function")
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the services dependency bound to the test database."""
    from apps.api.deps import get_services
    from apps.api.main import app

    app.dependency_overrides[get_services] = lambda: services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
