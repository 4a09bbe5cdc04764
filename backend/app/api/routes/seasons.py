"""
Season endpoints: lifecycle, schedule generation, team rotation and the
(cached) dinner calendar.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_now
from app.core.logging import get_logger
from app.db.session import get_db
from app.repositories import season_repository
from app.schemas.household import ScaffoldResult
from app.schemas.season import (
    AffinityResult,
    CookingTeamCreate,
    CookingTeamResponse,
    DinnerEventListResponse,
    DinnerEventResponse,
    RosterResponse,
    ScheduleResult,
    SeasonCreate,
    SeasonResponse,
    SeasonSetupResponse,
    SeasonUpdate,
    TeamAssignmentResult,
)
from app.services import scaffold_service, season_service
from app.services.cache_service import (
    get_cached_dinner_events,
    invalidate_dinner_event_cache,
    set_cached_dinner_events,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/seasons", tags=["Seasons"])


@router.post("/", response_model=SeasonSetupResponse, status_code=status.HTTP_201_CREATED)
async def create_season_endpoint(
    season_data: SeasonCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a season and generate its dinner events, affinities and team assignments."""
    season, schedule, affinities, assigned = await season_service.create_season(db, season_data)
    return SeasonSetupResponse(
        season=SeasonResponse.model_validate(season),
        schedule=schedule,
        affinities_assigned=affinities,
        teams_assigned=assigned,
    )


@router.get("/active", response_model=SeasonResponse)
async def get_active_season_endpoint(db: AsyncSession = Depends(get_db)):
    return await season_repository.get_active_season(db)


@router.get("/{season_id}", response_model=SeasonResponse)
async def get_season_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    return await season_service.get_season(db, season_id)


@router.patch("/{season_id}", response_model=SeasonSetupResponse)
async def update_season_endpoint(
    season_id: int,
    season_data: SeasonUpdate,
    db: AsyncSession = Depends(get_db),
):
    season, schedule, affinities, assigned = await season_service.update_season(db, season_id, season_data)
    await invalidate_dinner_event_cache(season.id)
    return SeasonSetupResponse(
        season=SeasonResponse.model_validate(season),
        schedule=schedule or ScheduleResult(season_id=season.id),
        affinities_assigned=affinities,
        teams_assigned=assigned,
    )


@router.delete("/{season_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_season_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    await season_service.delete_season(db, season_id)
    await invalidate_dinner_event_cache(season_id)


@router.post("/{season_id}/activate", response_model=ScaffoldResult)
async def activate_season_endpoint(
    season_id: int,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Make the season active, align preferences with its cooking days and scaffold all households."""
    _, result = await season_service.activate_season(db, season_id, now)
    await invalidate_dinner_event_cache()
    return result


@router.post("/{season_id}/generate-dinner-events", response_model=ScheduleResult)
async def generate_dinner_events_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    season = await season_service.get_season(db, season_id)
    result = await season_service.generate_dinner_events(db, season)
    await invalidate_dinner_event_cache(season.id)
    return result


@router.post("/{season_id}/assign-team-affinities", response_model=AffinityResult)
async def assign_team_affinities_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    season = await season_service.get_season(db, season_id)
    teams = await season_service.assign_team_affinities(db, season)
    return AffinityResult(
        season_id=season.id,
        assigned=len(teams),
        teams=[CookingTeamResponse.model_validate(t) for t in teams],
    )


@router.post("/{season_id}/assign-cooking-teams", response_model=TeamAssignmentResult)
async def assign_cooking_teams_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    season = await season_service.get_season(db, season_id)
    assigned = await season_service.assign_cooking_teams(db, season)
    await invalidate_dinner_event_cache(season.id)
    return TeamAssignmentResult(season_id=season.id, assigned=assigned)


@router.get("/{season_id}/roster", response_model=RosterResponse)
async def get_roster_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    return await season_service.get_roster(db, season_id)


@router.get("/{season_id}/teams", response_model=list[CookingTeamResponse])
async def list_teams_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    season = await season_service.get_season(db, season_id)
    return await season_repository.list_teams(db, season.id)


@router.post("/{season_id}/teams", response_model=CookingTeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team_endpoint(
    season_id: int,
    team_data: CookingTeamCreate,
    db: AsyncSession = Depends(get_db),
):
    return await season_service.create_team(db, season_id, team_data)


@router.get("/{season_id}/dinner-events", response_model=DinnerEventListResponse)
async def list_dinner_events_endpoint(season_id: int, db: AsyncSession = Depends(get_db)):
    """
    The season's dinner calendar.
    Cached in Redis; invalidated whenever the schedule or team assignment changes.
    """
    cached = await get_cached_dinner_events(season_id)
    if cached:
        logger.info("dinner_events_cache_hit", season_id=season_id)
        cached["cached"] = True
        return DinnerEventListResponse(**cached)

    season = await season_service.get_season(db, season_id)
    events = await season_repository.list_dinner_events(db, season.id)
    response_data = {
        "season_id": season.id,
        "events": [DinnerEventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": len(events),
        "cached": False,
    }
    await set_cached_dinner_events(season.id, response_data)
    return DinnerEventListResponse(**response_data)


@router.post("/{season_id}/scaffold-prebookings", response_model=ScaffoldResult)
async def scaffold_prebookings_endpoint(
    season_id: int,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    """Re-apply every household's standing preferences to the upcoming dinners."""
    season = await season_service.get_season(db, season_id)
    return await scaffold_service.scaffold_season(db, season, now)
