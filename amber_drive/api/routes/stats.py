"""
Dashboard statistics API route.
"""

from fastapi import APIRouter

from amber_drive.api.dependencies import AuthDep, DatabaseDep
from amber_drive.schemas import DashboardStats
from amber_drive.services.stats_service import StatsService

router = APIRouter()


@router.get("", response_model=DashboardStats)
async def get_stats(db: DatabaseDep, auth: AuthDep):
    """Fleet and quote counters with the latest quotes."""
    return await StatsService(db, auth).get_dashboard_stats()
