"""
Operator endpoints for scheduled jobs and repairs.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now
from app.db.session import get_db
from app.schemas.maintenance import DailyMaintenanceResponse, HealingResponse
from app.services.healing_service import heal_user_bookings
from app.services.maintenance_service import run_daily_maintenance

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


@router.post("/daily", response_model=DailyMaintenanceResponse)
async def daily_maintenance_endpoint(
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return await run_daily_maintenance(db, now)


@router.post("/heal-user-bookings", response_model=HealingResponse)
async def heal_user_bookings_endpoint(
    dry_run: bool = Query(True),
    season_id: Optional[int] = Query(None),
    household_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Find (and unless dry_run, restore) confirmed user bookings that were lost or altered."""
    return await heal_user_bookings(db, now, season_id=season_id, household_id=household_id, dry_run=dry_run)
