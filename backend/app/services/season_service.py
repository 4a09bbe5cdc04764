"""
Season lifecycle and schedule generation.

Creating a season runs the whole setup chain:

  dinner events (cooking days minus holidays)
    -> team affinities (rotation slots for teams without one)
    -> team-to-event assignment (roster round-robin)

Every step is idempotent. Dinner events are reconciled by date: missing
dates are created, dates no longer wanted are removed unless orders already
point at them, and existing events are left as they are. Affinities and
event teams are only ever filled where they are empty.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidRequestError
from app.core.logging import get_logger
from app.core.metrics import record_schedule_change
from app.domain.orders import clip_preferences
from app.domain.rotation import (
    compute_affinities_for_teams,
    compute_team_assignments_for_events,
    create_team_roster,
)
from app.domain.schedule import compute_cooking_dates, first_cooking_date
from app.domain.weekdays import WEEKDAYS, WeekdayMap, weekday_of
from app.models.cooking_team import CookingTeam, CookingTeamAssignment
from app.models.season import Season, TicketPrice
from app.repositories import household_repository, season_repository
from app.schemas.season import (
    CookingTeamCreate,
    RosterEntry,
    RosterResponse,
    ScheduleResult,
    SeasonCreate,
    SeasonUpdate,
)
from app.services import scaffold_service
from app.schemas.household import ScaffoldResult

logger = get_logger(__name__)

SCHEDULE_FIELDS = ("season_start", "season_end", "cooking_days", "holidays")
ROTATION_FIELDS = ("cooking_days", "consecutive_cooking_days")


def _new_team(season_id: int, data: CookingTeamCreate) -> CookingTeam:
    return CookingTeam(
        season_id=season_id,
        name=data.name,
        affinity=data.affinity,
        assignments=[
            CookingTeamAssignment(
                inhabitant_id=m.inhabitant_id,
                role=m.role,
                allocation_percentage=m.allocation_percentage,
                affinity=m.affinity,
            )
            for m in data.members
        ],
    )


async def create_season(db: AsyncSession, data: SeasonCreate) -> tuple[Season, ScheduleResult, int, int]:
    """Create a season with prices and teams, then generate its schedule."""
    season = Season(
        short_name=data.short_name,
        season_start=data.season_start,
        season_end=data.season_end,
        cooking_days=data.cooking_days,
        holidays=[h.model_dump(mode="json") for h in data.holidays],
        consecutive_cooking_days=data.consecutive_cooking_days,
        ticket_is_cancellable_days_before=data.ticket_is_cancellable_days_before,
        dining_mode_is_editable_minutes_before=data.dining_mode_is_editable_minutes_before,
        is_active=False,
        ticket_prices=[
            TicketPrice(
                ticket_type=p.ticket_type.value,
                price=p.price,
                description=p.description,
                maximum_age_limit=p.maximum_age_limit,
            )
            for p in data.ticket_prices
        ],
    )
    db.add(season)
    await db.flush()
    db.add_all([_new_team(season.id, t) for t in data.teams])
    await db.flush()

    logger.info("season_created", season_id=season.id, name=season.short_name, teams=len(data.teams))

    schedule = await generate_dinner_events(db, season)
    affinities = await assign_team_affinities(db, season)
    assigned = await assign_cooking_teams(db, season)
    await db.refresh(season)
    return season, schedule, len(affinities), assigned


async def get_season(db: AsyncSession, season_id: int) -> Season:
    return await season_repository.get_season(db, season_id)


async def update_season(
    db: AsyncSession,
    season_id: int,
    data: SeasonUpdate,
) -> tuple[Season, Optional[ScheduleResult], int, int]:
    """
    Apply a partial update. Schedule fields regenerate the dinner events;
    schedule or rotation changes re-run affinity and team assignment.
    """
    season = await season_repository.get_season(db, season_id)
    # season columns are NOT NULL; null fields leave the value unchanged
    changes = data.model_dump(exclude_none=True)
    if "holidays" in changes:
        changes["holidays"] = [{"start": h["start"].isoformat(), "end": h["end"].isoformat()} for h in changes["holidays"]]
    for field, value in changes.items():
        setattr(season, field, value)

    start = season.season_start
    end = season.season_end
    if start > end:
        raise InvalidRequestError("season_start must be on or before season_end")
    await db.flush()

    logger.info("season_updated", season_id=season.id, fields=sorted(changes))

    schedule = None
    if any(f in changes for f in SCHEDULE_FIELDS):
        schedule = await generate_dinner_events(db, season)
    affinities, assigned = 0, 0
    if schedule is not None or any(f in changes for f in ROTATION_FIELDS):
        affinities = len(await assign_team_affinities(db, season))
        assigned = await assign_cooking_teams(db, season)
    await db.refresh(season)
    return season, schedule, affinities, assigned


async def delete_season(db: AsyncSession, season_id: int) -> None:
    season = await season_repository.get_season(db, season_id)
    await db.delete(season)
    await db.flush()
    logger.info("season_deleted", season_id=season_id)


async def generate_dinner_events(db: AsyncSession, season: Season) -> ScheduleResult:
    """Create/prune dinner events so there is one per non-holiday cooking day."""
    wanted = set(
        compute_cooking_dates(
            season_repository.cooking_days_of(season),
            season_repository.season_range(season),
            season_repository.holidays_of(season),
        )
    )
    existing = await season_repository.list_dinner_events(db, season.id)
    existing_dates = {e.date for e in existing}

    to_create = sorted(wanted - existing_dates)
    stale = [e.id for e in existing if e.date not in wanted]
    blocked = await season_repository.dinner_event_ids_with_orders(db, stale) if stale else set()
    to_delete = [event_id for event_id in stale if event_id not in blocked]

    created = await season_repository.add_dinner_events(db, season.id, to_create)
    deleted = await season_repository.delete_dinner_events(db, to_delete) if to_delete else 0

    if blocked:
        logger.warning(
            "dinner_events_kept_with_orders",
            season_id=season.id,
            dinner_event_ids=sorted(blocked),
        )
    record_schedule_change("events_created", created)
    record_schedule_change("events_deleted", deleted)
    logger.info("dinner_events_generated", season_id=season.id, created=created, deleted=deleted)

    return ScheduleResult(
        season_id=season.id,
        created=created,
        deleted=deleted,
        kept=len(existing) - len(stale),
        blocked=len(blocked),
    )


async def _first_cooking_day(db: AsyncSession, season: Season):
    cooking_days = season_repository.cooking_days_of(season)
    events = await season_repository.list_dinner_events(db, season.id)
    first = first_cooking_date(cooking_days, [e.date for e in events])
    if first is None:
        first = first_cooking_date(cooking_days, season_repository.season_range(season).days())
    return first


async def assign_team_affinities(db: AsyncSession, season: Season) -> list[CookingTeam]:
    """Give every team without an affinity its rotation slot. Returns the updated teams."""
    teams = await season_repository.list_teams(db, season.id)
    first_day = await _first_cooking_day(db, season)
    if not teams or first_day is None:
        return []

    before = season_repository.team_slots(teams)
    after = compute_affinities_for_teams(
        before,
        season_repository.cooking_days_of(season),
        season.consecutive_cooking_days,
        first_day,
    )
    computed = {
        new.id: new.affinity.to_dict()
        for old, new in zip(before, after)
        if old.affinity is None and new.affinity is not None
    }
    if computed:
        await season_repository.save_team_affinities(db, computed)
    record_schedule_change("affinities_assigned", len(computed))
    logger.info("team_affinities_assigned", season_id=season.id, assigned=len(computed))
    return [t for t in teams if t.id in computed]


async def assign_cooking_teams(db: AsyncSession, season: Season) -> int:
    """Assign a team to every dinner event that has none. Returns how many."""
    teams = await season_repository.list_teams(db, season.id)
    events = await season_repository.list_dinner_events(db, season.id)
    assignments = compute_team_assignments_for_events(
        season_repository.team_slots(teams),
        season_repository.cooking_days_of(season),
        season.consecutive_cooking_days,
        season_repository.event_slots(events),
        season_repository.holidays_of(season),
    )
    if assignments:
        await season_repository.save_event_teams(db, assignments)
    record_schedule_change("teams_assigned", len(assignments))
    logger.info("cooking_teams_assigned", season_id=season.id, assigned=len(assignments))
    return len(assignments)


async def get_roster(db: AsyncSession, season_id: int) -> RosterResponse:
    season = await season_repository.get_season(db, season_id)
    teams = await season_repository.list_teams(db, season.id)
    first_day = await _first_cooking_day(db, season)
    start_day = weekday_of(first_day) if first_day else WEEKDAYS[0]
    roster = create_team_roster(start_day, season_repository.team_slots(teams))
    return RosterResponse(
        season_id=season.id,
        start_day=start_day,
        roster=[
            RosterEntry(id=t.id, name=t.name, affinity=t.affinity.to_dict() if t.affinity else None)
            for t in roster
        ],
    )


async def create_team(db: AsyncSession, season_id: int, data: CookingTeamCreate) -> CookingTeam:
    season = await season_repository.get_season(db, season_id)
    team = _new_team(season.id, data)
    db.add(team)
    await db.flush()
    await db.refresh(team)
    logger.info("cooking_team_created", season_id=season.id, team_id=team.id, name=team.name)
    return team


async def activate_season(db: AsyncSession, season_id: int, now: datetime) -> tuple[Season, ScaffoldResult]:
    """
    Make a season the active one: align every inhabitant's preferences with
    its cooking days and scaffold all households.
    """
    season = await season_repository.get_season(db, season_id)
    await season_repository.deactivate_other_seasons(db, season.id)
    season.is_active = True

    cooking_days = season_repository.cooking_days_of(season)
    clipped = 0
    for inhabitant in await household_repository.list_inhabitants(db):
        aligned = clip_preferences(WeekdayMap.from_dict(inhabitant.dinner_preferences), cooking_days)
        as_json = {day: mode.value for day, mode in aligned.items()}
        if inhabitant.dinner_preferences != as_json:
            inhabitant.dinner_preferences = as_json
            clipped += 1
    await db.flush()

    logger.info("season_activated", season_id=season.id, preferences_clipped=clipped)
    result = await scaffold_service.scaffold_season(db, season, now)
    return season, result
