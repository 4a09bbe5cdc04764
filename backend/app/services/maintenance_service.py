"""
Daily maintenance job.

  1. Consume dinners that have ended (SCHEDULED/ANNOUNCED -> CONSUMED)
  2. Flag upcoming dinners past the menu announcement lead still without a menu
  3. Re-apply every household's standing preferences for the active season

Step 3 is idempotent, so running the job twice a day is harmless.
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger, job_context
from app.core.metrics import record_maintenance_run
from app.domain.deadlines import DeadlinePolicy
from app.repositories import season_repository
from app.schemas.maintenance import DailyMaintenanceResponse
from app.services import scaffold_service
from app.services.cache_service import invalidate_dinner_event_cache

logger = get_logger(__name__)

PLACEHOLDER_MENU = "TBD"


async def run_daily_maintenance(db: AsyncSession, now: datetime) -> DailyMaintenanceResponse:
    season = await season_repository.get_active_season(db, required=False)
    if season is None:
        logger.info("daily_maintenance_skipped", reason="no_active_season")
        return DailyMaintenanceResponse(season_id=None, consumed_dinners=0)

    policy = DeadlinePolicy.for_season(season)
    events = await season_repository.list_dinner_events(db, season.id)

    past = [e.id for e in events if e.state in scaffold_service.OPEN_STATES and policy.is_dinner_past(e.date, now)]
    consumed = await season_repository.set_dinner_event_states(db, past, "CONSUMED") if past else 0

    menus_due = [
        e.id
        for e in events
        if e.id not in past
        and e.state == "SCHEDULED"
        and (e.menu_title or PLACEHOLDER_MENU) == PLACEHOLDER_MENU
        and policy.is_menu_announcement_due(e.date, now)
    ]
    if menus_due:
        logger.warning("menu_announcement_overdue", season_id=season.id, dinner_event_ids=menus_due)

    try:
        with job_context("daily_maintenance", season_id=season.id):
            scaffold = await scaffold_service.scaffold_season(db, season, now)
    except Exception:
        record_maintenance_run("daily", success=False)
        raise
    await invalidate_dinner_event_cache(season.id)
    record_maintenance_run("daily", success=True)

    logger.info(
        "daily_maintenance_completed",
        season_id=season.id,
        consumed_dinners=consumed,
        menus_due=len(menus_due),
    )
    return DailyMaintenanceResponse(
        season_id=season.id,
        consumed_dinners=consumed,
        menus_due=menus_due,
        scaffold=scaffold,
    )
