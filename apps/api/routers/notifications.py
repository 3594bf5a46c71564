"""Confirmation workflow endpoints."""

from typing import List
from fastapi import APIRouter, Depends

from apps.api.deps import get_services
from domain.models import BookingRecord, DelayRequest
from services.registry import Services


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/pending", response_model=List[BookingRecord])
async def get_pending_notifications(services: Services = Depends(get_services)):
    """Unconfirmed bookings starting within the next 2 hours."""
    return await services.bookings.get_pending_notifications()


@router.post("/{booking_id}/confirm", response_model=BookingRecord)
async def confirm_booking(booking_id: str, services: Services = Depends(get_services)):
    """Customer confirmed they are coming."""
    return await services.bookings.confirm_booking(booking_id)


@router.post("/{booking_id}/delay", response_model=BookingRecord)
async def mark_client_delayed(
    booking_id: str,
    data: DelayRequest,
    services: Services = Depends(get_services)
):
    """Customer reported a delay; the booking start shifts by it."""
    return await services.bookings.mark_client_delayed(booking_id, data.delay_minutes)
