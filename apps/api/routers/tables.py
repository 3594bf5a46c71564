"""Table endpoints: staff status changes, lookups and reconciliation."""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from apps.api.deps import get_services
from core.utils_datetime import parse_time_slot
from domain.models import (
    BookingRecord,
    FloorWithTableStatuses,
    SyncResult,
    TableAvailabilityUpdate,
    TableCreate,
    TableRecord,
    TableStatusUpdate,
)
from services.registry import Services


router = APIRouter(prefix="/tables", tags=["tables"])


@router.post("", response_model=TableRecord)
async def create_table(data: TableCreate, services: Services = Depends(get_services)):
    """Create a table. Seats default to 2/4/6 by size."""
    return await services.floors.create_table(data)


@router.get("", response_model=List[TableRecord])
async def list_tables(
    floor_id: Optional[str] = Query(None, description="Only tables on this floor"),
    services: Services = Depends(get_services)
):
    """List tables."""
    return await services.floors.list_tables(floor_id)


@router.post("/sync", response_model=SyncResult)
async def sync_table_statuses(services: Services = Depends(get_services)):
    """
    Run one reconciliation pass immediately.

    Returns:
        SyncResult: Number of tables whose status changed
    """
    updated = await services.reconciliation.run_once()
    return SyncResult(updated=updated)


@router.get("/statuses", response_model=List[FloorWithTableStatuses])
async def get_statuses_for_datetime(
    booking_date: date = Query(..., description="Requested date"),
    booking_time_slot: str = Query(..., description="Requested slot, HH:MM"),
    duration_minutes: int = Query(60, ge=1, le=720),
    services: Services = Depends(get_services)
):
    """Virtual table statuses for a requested date and slot (pre-booking form)."""
    slot = parse_time_slot(booking_time_slot)
    if slot is None:
        raise HTTPException(status_code=422, detail=f"Invalid time slot: {booking_time_slot!r}, expected HH:MM")
    return await services.floors.get_statuses_for_datetime(booking_date, slot.strftime("%H:%M"), duration_minutes)


@router.patch("/{table_id}/status", response_model=TableRecord)
async def update_table_status(
    table_id: str,
    data: TableStatusUpdate,
    services: Services = Depends(get_services)
):
    """Staff status change (seat a party, free a table, hold a table)."""
    return await services.floors.update_table_status(table_id, data.status)


@router.patch("/{table_id}/availability", response_model=TableRecord)
async def update_table_availability(
    table_id: str,
    data: TableAvailabilityUpdate,
    services: Services = Depends(get_services)
):
    """Staff estimate of when the table frees up."""
    return await services.floors.update_table_availability(table_id, data.available_in_minutes)


@router.get("/{table_id}/current-booking", response_model=Optional[BookingRecord])
async def get_current_booking(table_id: str, services: Services = Depends(get_services)):
    """Booking the table is serving now or about to serve, or null."""
    return await services.floors.get_current_booking(table_id)


@router.get("/{table_id}/bookings", response_model=List[BookingRecord])
async def get_today_bookings(table_id: str, services: Services = Depends(get_services)):
    """Today's open bookings for the table, earliest first."""
    return await services.floors.get_today_bookings(table_id)


@router.delete("/{table_id}")
async def delete_table(table_id: str, services: Services = Depends(get_services)):
    """Delete a table with no open bookings."""
    await services.floors.delete_table(table_id)
    return {"message": "Table deleted"}
