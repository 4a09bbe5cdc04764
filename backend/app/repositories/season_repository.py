"""
Season, dinner event and cooking team persistence.

Returns ORM rows for the services and converts them into the frozen
snapshots the scheduling core works on.
"""

from datetime import date
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import NoActiveSeasonError, SeasonNotFoundError
from app.domain.pricing import PriceOption, TicketType
from app.domain.rotation import EventSlot, TeamSlot
from app.domain.schedule import DateRange
from app.domain.weekdays import WeekdayMap
from app.models.cooking_team import CookingTeam
from app.models.dinner_event import DinnerEvent
from app.models.order import Order
from app.models.season import Season
from app.repositories.base import chunked

settings = get_settings()


async def get_season(db: AsyncSession, season_id: int) -> Season:
    result = await db.execute(select(Season).where(Season.id == season_id))
    season = result.scalar_one_or_none()
    if season is None:
        raise SeasonNotFoundError(season_id)
    return season


async def get_active_season(db: AsyncSession, required: bool = True) -> Optional[Season]:
    result = await db.execute(select(Season).where(Season.is_active.is_(True)))
    season = result.scalars().first()
    if season is None and required:
        raise NoActiveSeasonError()
    return season


async def deactivate_other_seasons(db: AsyncSession, season_id: int) -> None:
    await db.execute(
        update(Season).where(Season.id != season_id, Season.is_active.is_(True)).values(is_active=False)
    )


async def list_dinner_events(
    db: AsyncSession,
    season_id: int,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[DinnerEvent]:
    query = select(DinnerEvent).where(DinnerEvent.season_id == season_id)
    if start is not None:
        query = query.where(DinnerEvent.date >= start)
    if end is not None:
        query = query.where(DinnerEvent.date <= end)
    result = await db.execute(query.order_by(DinnerEvent.date.asc()))
    return list(result.scalars().all())


async def add_dinner_events(db: AsyncSession, season_id: int, dates: Sequence[date]) -> int:
    for batch in chunked(list(dates), settings.ORDER_BATCH_SIZE):
        db.add_all([DinnerEvent(season_id=season_id, date=day, state="SCHEDULED", menu_title="TBD") for day in batch])
        await db.flush()
    return len(dates)


async def dinner_event_ids_with_orders(db: AsyncSession, event_ids: Sequence[int]) -> set[int]:
    found: set[int] = set()
    for batch in chunked(list(event_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(select(Order.dinner_event_id).where(Order.dinner_event_id.in_(batch)).distinct())
        found.update(result.scalars().all())
    return found


async def delete_dinner_events(db: AsyncSession, event_ids: Sequence[int]) -> int:
    deleted = 0
    for batch in chunked(list(event_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(delete(DinnerEvent).where(DinnerEvent.id.in_(batch)))
        deleted += result.rowcount
    return deleted


async def set_dinner_event_states(db: AsyncSession, event_ids: Sequence[int], state: str) -> int:
    changed = 0
    for batch in chunked(list(event_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(update(DinnerEvent).where(DinnerEvent.id.in_(batch)).values(state=state))
        changed += result.rowcount
    return changed


async def list_teams(db: AsyncSession, season_id: int) -> list[CookingTeam]:
    result = await db.execute(
        select(CookingTeam).where(CookingTeam.season_id == season_id).order_by(CookingTeam.id.asc())
    )
    return list(result.scalars().all())


async def save_team_affinities(db: AsyncSession, affinities: dict[int, dict]) -> None:
    items = sorted(affinities.items())
    for batch in chunked(items, settings.TEAM_ASSIGNMENT_BATCH_SIZE):
        for team_id, affinity in batch:
            await db.execute(update(CookingTeam).where(CookingTeam.id == team_id).values(affinity=affinity))
        await db.flush()


async def save_event_teams(db: AsyncSession, assignments: dict[int, int]) -> None:
    items = sorted(assignments.items())
    for batch in chunked(items, settings.TEAM_ASSIGNMENT_BATCH_SIZE):
        for event_id, team_id in batch:
            await db.execute(update(DinnerEvent).where(DinnerEvent.id == event_id).values(cooking_team_id=team_id))
        await db.flush()


def cooking_days_of(season: Season) -> WeekdayMap:
    return WeekdayMap.from_dict(season.cooking_days) or WeekdayMap(default=False)


def holidays_of(season: Season) -> list[DateRange]:
    return [DateRange.from_dict(h) for h in (season.holidays or [])]


def season_range(season: Season) -> DateRange:
    return DateRange(season.season_start, season.season_end)


def price_options(season: Season) -> list[PriceOption]:
    return [
        PriceOption(
            id=p.id,
            ticket_type=TicketType(p.ticket_type),
            price=p.price,
            maximum_age_limit=p.maximum_age_limit,
            description=p.description,
        )
        for p in season.ticket_prices
    ]


def team_slots(teams: Sequence[CookingTeam]) -> list[TeamSlot]:
    return [TeamSlot(id=t.id, name=t.name, affinity=WeekdayMap.from_dict(t.affinity)) for t in teams]


def event_slots(events: Sequence[DinnerEvent]) -> list[EventSlot]:
    return [EventSlot(id=e.id, date=e.date, cooking_team_id=e.cooking_team_id) for e in events]
