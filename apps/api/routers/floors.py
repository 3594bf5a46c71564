"""Floor endpoints."""

from typing import List
from fastapi import APIRouter, Depends

from apps.api.deps import get_services
from domain.models import FloorCreate, FloorRecord, FloorWithTables, TableRecord
from services.registry import Services


router = APIRouter(prefix="/floors", tags=["floors"])


@router.post("", response_model=FloorRecord)
async def create_floor(data: FloorCreate, services: Services = Depends(get_services)):
    """Create a floor."""
    return await services.floors.create_floor(data)


@router.get("", response_model=List[FloorRecord])
async def list_floors(services: Services = Depends(get_services)):
    """List floors ordered by floor number."""
    return await services.floors.list_floors()


@router.get("/with-tables", response_model=List[FloorWithTables])
async def list_floors_with_tables(services: Services = Depends(get_services)):
    """List floors with their tables."""
    return await services.floors.list_floors_with_tables()


@router.get("/{floor_id}/tables", response_model=List[TableRecord])
async def list_floor_tables(floor_id: str, services: Services = Depends(get_services)):
    """List the tables on one floor."""
    return await services.floors.list_tables(floor_id)


@router.delete("/{floor_id}")
async def delete_floor(floor_id: str, services: Services = Depends(get_services)):
    """Delete an empty floor."""
    await services.floors.delete_floor(floor_id)
    return {"message": "Floor deleted"}
