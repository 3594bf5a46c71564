"""Waiting list endpoints."""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from apps.api.deps import get_services
from domain.models import (
    AdmissionResult,
    AssignRequest,
    BookingRecord,
    ConflictCheckRequest,
    ConflictCheckResult,
    WaitingListCreate,
    WaitingListRecord,
)
from services.registry import Services


router = APIRouter(prefix="/waiting-list", tags=["waiting-list"])


@router.post("", response_model=WaitingListRecord)
async def add_to_waiting_list(data: WaitingListCreate, services: Services = Depends(get_services)):
    """Queue a party that cannot be seated yet."""
    return await services.waiting_list.add_entry(data)


@router.get("", response_model=List[WaitingListRecord])
async def get_waiting_list(
    booking_date: Optional[date] = Query(None, alias="date", description="Only entries for this date"),
    services: Services = Depends(get_services)
):
    """Active entries, highest priority first."""
    return await services.waiting_list.list_entries(booking_date)


@router.post("/{waiting_id}/check-conflict", response_model=ConflictCheckResult)
async def check_assign_conflict(
    waiting_id: str,
    data: ConflictCheckRequest,
    services: Services = Depends(get_services)
):
    """Check whether admitting the party onto the table would conflict."""
    return await services.waiting_list.check_assign_conflict(waiting_id, data.table_id, data.duration_minutes)


@router.post("/{waiting_id}/assign", response_model=AdmissionResult)
async def assign_table(
    waiting_id: str,
    data: AssignRequest,
    services: Services = Depends(get_services)
):
    """Admit the party onto a table. Run check-conflict first."""
    booking, entry = await services.waiting_list.assign(waiting_id, data)
    return AdmissionResult(
        booking=BookingRecord.model_validate(booking),
        waiting_entry=WaitingListRecord.model_validate(entry),
    )


@router.patch("/{waiting_id}/cancel", response_model=WaitingListRecord)
async def cancel_waiting_entry(waiting_id: str, services: Services = Depends(get_services)):
    """Party left the queue."""
    return await services.waiting_list.cancel_entry(waiting_id)


@router.patch("/{waiting_id}/notify", response_model=WaitingListRecord)
async def notify_customer(waiting_id: str, services: Services = Depends(get_services)):
    """Mark the party as notified."""
    return await services.waiting_list.notify_customer(waiting_id)
