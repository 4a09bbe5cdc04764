"""
Household and inhabitant persistence.
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import HouseholdNotFoundError, InhabitantNotFoundError
from app.domain.orders import InhabitantSlot
from app.domain.weekdays import WeekdayMap
from app.models.household import Household, Inhabitant


async def get_household(db: AsyncSession, household_id: int) -> Household:
    result = await db.execute(select(Household).where(Household.id == household_id))
    household = result.scalar_one_or_none()
    if household is None:
        raise HouseholdNotFoundError(household_id)
    return household


async def list_household_ids(db: AsyncSession) -> list[int]:
    result = await db.execute(select(Household.id).order_by(Household.id.asc()))
    return list(result.scalars().all())


async def get_inhabitant(db: AsyncSession, inhabitant_id: int) -> Inhabitant:
    result = await db.execute(select(Inhabitant).where(Inhabitant.id == inhabitant_id))
    inhabitant = result.scalar_one_or_none()
    if inhabitant is None:
        raise InhabitantNotFoundError(inhabitant_id)
    return inhabitant


async def list_inhabitants(db: AsyncSession) -> list[Inhabitant]:
    result = await db.execute(select(Inhabitant).order_by(Inhabitant.id.asc()))
    return list(result.scalars().all())


def inhabitant_slots(inhabitants: Sequence[Inhabitant]) -> list[InhabitantSlot]:
    return [
        InhabitantSlot(
            id=i.id,
            household_id=i.household_id,
            birth_date=i.birth_date,
            dinner_preferences=WeekdayMap.from_dict(i.dinner_preferences),
        )
        for i in inhabitants
    ]
