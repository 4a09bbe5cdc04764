"""
Pydantic schemas for households, inhabitants, orders and reconciliation results.
"""

from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from app.domain.orders import DinnerMode, OrderState
from app.domain.pricing import TicketType
from app.domain.weekdays import WEEKDAYS


def _check_preference_keys(value: Optional[dict]) -> Optional[dict]:
    if value is None:
        return value
    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    return value


DinnerPreferences = Annotated[dict[str, Optional[DinnerMode]], AfterValidator(_check_preference_keys)]


class InhabitantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    birth_date: Optional[date] = None
    dinner_preferences: Optional[DinnerPreferences] = None


class InhabitantResponse(BaseModel):
    id: int
    household_id: int
    name: str
    last_name: str
    birth_date: Optional[date]
    dinner_preferences: Optional[dict[str, Optional[DinnerMode]]] = None

    model_config = {"from_attributes": True}


class HouseholdCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    inhabitants: list[InhabitantCreate] = Field(default_factory=list)


class HouseholdResponse(BaseModel):
    id: int
    name: str
    address: str
    inhabitants: list[InhabitantResponse]

    model_config = {"from_attributes": True}


class PreferencesUpdate(BaseModel):
    dinner_preferences: DinnerPreferences


class OrderRequestItem(BaseModel):
    """One explicit booking action. dinner_mode NONE cancels."""

    inhabitant_id: int
    dinner_event_id: int
    dinner_mode: DinnerMode = DinnerMode.DINEIN
    ticket_type: Optional[TicketType] = None
    is_guest_ticket: bool = False
    order_id: Optional[int] = None


class OrderRequest(BaseModel):
    orders: list[OrderRequestItem] = Field(..., min_length=1, max_length=200)


class OrderResponse(BaseModel):
    id: int
    inhabitant_id: int
    dinner_event_id: int
    ticket_price_id: Optional[int]
    booked_by_user_id: Optional[int]
    dinner_mode: DinnerMode
    state: OrderState
    is_guest_ticket: bool
    price_at_booking: int
    released_at: Optional[datetime] = None
    version: int

    model_config = {"from_attributes": True}


class ReconcileCounts(BaseModel):
    created: int = 0
    mode_updated: int = 0
    price_updated: int = 0
    released: int = 0
    claimed: int = 0
    deleted: int = 0
    unchanged: int = 0
    skipped: int = 0
    errored: int = 0
    errors: list[str] = Field(default_factory=list)


class ScaffoldResult(ReconcileCounts):
    season_id: int
    household_id: Optional[int] = None
    households: int = 1


class PreferencesUpdateResponse(BaseModel):
    inhabitant: InhabitantResponse
    scaffold: Optional[ScaffoldResult] = None


class OrderActionResponse(BaseModel):
    result: ScaffoldResult
    orders: list[OrderResponse]
