"""
Household and inhabitant endpoints, including explicit bookings.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_acting_user_id, get_now
from app.db.session import get_db
from app.schemas.household import (
    HouseholdCreate,
    HouseholdResponse,
    InhabitantResponse,
    OrderActionResponse,
    OrderRequest,
    OrderResponse,
    PreferencesUpdate,
    PreferencesUpdateResponse,
)
from app.services import household_service

router = APIRouter(prefix="/households", tags=["Households"])
inhabitants_router = APIRouter(prefix="/inhabitants", tags=["Households"])


@router.post("/", response_model=HouseholdResponse, status_code=status.HTTP_201_CREATED)
async def create_household_endpoint(
    household_data: HouseholdCreate,
    db: AsyncSession = Depends(get_db),
):
    return await household_service.create_household(db, household_data)


@router.get("/{household_id}", response_model=HouseholdResponse)
async def get_household_endpoint(household_id: int, db: AsyncSession = Depends(get_db)):
    return await household_service.get_household(db, household_id)


@router.get("/{household_id}/orders", response_model=list[OrderResponse])
async def list_orders_endpoint(
    household_id: int,
    season_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await household_service.list_orders(db, household_id, season_id)


@router.post("/{household_id}/orders", response_model=OrderActionResponse)
async def book_orders_endpoint(
    household_id: int,
    request: OrderRequest,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
    user_id: Optional[int] = Depends(get_acting_user_id),
):
    """
    Book, change, cancel or claim tickets for the household's inhabitants.

    Returns 409 if an order was modified concurrently; nothing is written in
    that case and the request can be retried as is.
    """
    result, orders = await household_service.book_orders(db, household_id, request, now, user_id)
    return OrderActionResponse(result=result, orders=orders)


@inhabitants_router.put("/{inhabitant_id}/preferences", response_model=PreferencesUpdateResponse)
async def update_preferences_endpoint(
    inhabitant_id: int,
    update: PreferencesUpdate,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    inhabitant, scaffold = await household_service.update_preferences(
        db, inhabitant_id, update.dinner_preferences, now
    )
    return PreferencesUpdateResponse(
        inhabitant=InhabitantResponse.model_validate(inhabitant),
        scaffold=scaffold,
    )
