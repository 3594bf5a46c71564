"""Dashboard endpoints."""

from fastapi import APIRouter, Depends

from apps.api.deps import get_services
from domain.models import DashboardStats
from services.registry import Services


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(services: Services = Depends(get_services)):
    """Table, floor and booking counts for the staff dashboard."""
    return await services.floors.get_dashboard_stats()
