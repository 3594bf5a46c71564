"""Booking endpoints."""

from typing import List
from fastapi import APIRouter, Depends

from apps.api.deps import get_services
from domain.models import (
    BookingCreate,
    BookingCreateRequest,
    BookingOverrideRequest,
    BookingRecord,
    ReassignRequest,
)
from services.registry import Services


router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingRecord)
async def create_booking(data: BookingCreateRequest, services: Services = Depends(get_services)):
    """
    Create a booking.

    Responds 409 with the conflicting booking and a suggested slot when the
    window is taken, unless confirm_auto_schedule is set, in which case the
    booking is moved to the suggested slot.
    """
    booking = BookingCreate.model_validate(data.model_dump(exclude={"confirm_auto_schedule"}))
    return await services.bookings.create_booking(booking, data.confirm_auto_schedule)


@router.post("/override", response_model=BookingRecord)
async def override_booking(data: BookingOverrideRequest, services: Services = Depends(get_services)):
    """Create a booking, moving the conflicting one to the waiting list."""
    return await services.bookings.override_booking(data.booking, data.conflicting_booking_id)


@router.get("", response_model=List[BookingRecord])
async def list_bookings(services: Services = Depends(get_services)):
    """List all bookings."""
    return await services.bookings.list_bookings()


@router.get("/{booking_id}", response_model=BookingRecord)
async def get_booking(booking_id: str, services: Services = Depends(get_services)):
    """Get a booking by ID."""
    return await services.bookings.get_booking(booking_id)


@router.patch("/{booking_id}/cancel", response_model=BookingRecord)
async def cancel_booking(booking_id: str, services: Services = Depends(get_services)):
    """Cancel a booking."""
    return await services.bookings.cancel_booking(booking_id)


@router.patch("/{booking_id}/complete", response_model=BookingRecord)
async def complete_booking(booking_id: str, services: Services = Depends(get_services)):
    """Complete a booking; the party has left."""
    return await services.bookings.complete_booking(booking_id)


@router.patch("/{booking_id}/reassign", response_model=BookingRecord)
async def reassign_table(
    booking_id: str,
    data: ReassignRequest,
    services: Services = Depends(get_services)
):
    """Move a booking to another AVAILABLE table."""
    return await services.bookings.reassign_table(booking_id, data.new_table_id)
