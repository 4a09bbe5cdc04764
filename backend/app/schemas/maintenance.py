"""
Pydantic schemas for operator maintenance actions.
"""

from typing import Optional

from pydantic import BaseModel, Field

from app.domain.healing import HealingReason
from app.domain.orders import DinnerMode, OrderAction
from app.schemas.household import ScaffoldResult


class DailyMaintenanceResponse(BaseModel):
    season_id: Optional[int]
    consumed_dinners: int
    menus_due: list[int] = Field(default_factory=list)
    scaffold: Optional[ScaffoldResult] = None


class HealingCandidateResponse(BaseModel):
    inhabitant_id: int
    dinner_event_id: int
    intended_mode: DinnerMode
    reason: HealingReason
    confirmed_by: OrderAction
    order_id: Optional[int] = None
    current_mode: Optional[DinnerMode] = None

    model_config = {"from_attributes": True}


class HealingResponse(BaseModel):
    season_id: int
    dry_run: bool
    households_checked: int
    candidates: list[HealingCandidateResponse]
    healed: Optional[ScaffoldResult] = None
    errors: list[str] = Field(default_factory=list)
