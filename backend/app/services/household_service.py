"""
Household service: inhabitants, preferences and explicit bookings.

Preference changes re-scaffold the household in system mode. Explicit
bookings go through the same reconciler in user mode, which tags the audit
rows as USER_* and thereby pins the slots against later system runs.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DinnerEventNotFoundError, InhabitantNotFoundError
from app.core.logging import get_logger
from app.domain.orders import DesiredOrder, ReconcileMode
from app.models.household import Household, Inhabitant
from app.models.order import Order
from app.repositories import household_repository, order_repository, season_repository
from app.schemas.household import HouseholdCreate, OrderRequest, ScaffoldResult
from app.services import scaffold_service

logger = get_logger(__name__)


def _preferences_json(preferences: Optional[dict]) -> Optional[dict]:
    if preferences is None:
        return None
    return {day: (mode.value if mode is not None else None) for day, mode in preferences.items()}


async def create_household(db: AsyncSession, data: HouseholdCreate) -> Household:
    household = Household(
        name=data.name,
        address=data.address,
        inhabitants=[
            Inhabitant(
                name=i.name,
                last_name=i.last_name,
                birth_date=i.birth_date,
                dinner_preferences=_preferences_json(i.dinner_preferences),
            )
            for i in data.inhabitants
        ],
    )
    db.add(household)
    await db.flush()
    logger.info("household_created", household_id=household.id, inhabitants=len(data.inhabitants))
    return await household_repository.get_household(db, household.id)


async def get_household(db: AsyncSession, household_id: int) -> Household:
    return await household_repository.get_household(db, household_id)


async def update_preferences(
    db: AsyncSession,
    inhabitant_id: int,
    preferences: dict,
    now: datetime,
) -> tuple[Inhabitant, Optional[ScaffoldResult]]:
    """Store new weekday preferences and re-scaffold the household in the active season."""
    inhabitant = await household_repository.get_inhabitant(db, inhabitant_id)
    inhabitant.dinner_preferences = _preferences_json(preferences)
    await db.flush()
    logger.info("preferences_updated", inhabitant_id=inhabitant.id, household_id=inhabitant.household_id)

    season = await season_repository.get_active_season(db, required=False)
    if season is None:
        return inhabitant, None

    result = await scaffold_service.reconcile_household(db, season, inhabitant.household_id, now)
    await db.refresh(inhabitant)
    return inhabitant, scaffold_service.to_scaffold_result(result, season.id, inhabitant.household_id)


async def book_orders(
    db: AsyncSession,
    household_id: int,
    request: OrderRequest,
    now: datetime,
    user_id: Optional[int],
) -> tuple[ScaffoldResult, list[Order]]:
    """
    Apply explicit booking actions for one household in the active season.
    Validation failures abort the whole request before anything is written;
    an item whose ticket price cannot be resolved is reported and skipped.
    """
    season = await season_repository.get_active_season(db)
    household = await household_repository.get_household(db, household_id)
    inhabitants = {i.id: i for i in household.inhabitants}
    events = {e.id: e for e in await season_repository.list_dinner_events(db, season.id)}

    desired: list[DesiredOrder] = []
    for item in request.orders:
        if item.inhabitant_id not in inhabitants:
            raise InhabitantNotFoundError(item.inhabitant_id)
        if item.dinner_event_id not in events:
            raise DinnerEventNotFoundError(item.dinner_event_id)
        desired.append(
            DesiredOrder(
                inhabitant_id=item.inhabitant_id,
                dinner_event_id=item.dinner_event_id,
                dinner_mode=item.dinner_mode,
                is_guest_ticket=item.is_guest_ticket,
                existing_order_id=item.order_id,
                ticket_type=item.ticket_type,
            )
        )

    result = await scaffold_service.reconcile_household(
        db,
        season,
        household_id,
        now,
        desired=desired,
        mode=ReconcileMode.USER,
        performed_by_user_id=user_id,
    )
    orders = await order_repository.list_household_orders(
        db, household_id, sorted({item.dinner_event_id for item in request.orders})
    )
    logger.info(
        "orders_booked",
        household_id=household_id,
        user_id=user_id,
        requested=len(request.orders),
        **result.counts(),
    )
    return scaffold_service.to_scaffold_result(result, season.id, household_id), orders


async def list_orders(db: AsyncSession, household_id: int, season_id: Optional[int] = None) -> list[Order]:
    await household_repository.get_household(db, household_id)
    event_ids = None
    if season_id is not None:
        season = await season_repository.get_season(db, season_id)
        event_ids = [e.id for e in await season_repository.list_dinner_events(db, season.id)]
    return await order_repository.list_household_orders(db, household_id, event_ids)
