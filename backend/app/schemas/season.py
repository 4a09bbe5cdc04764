"""
Pydantic schemas for seasons, ticket prices, dinner events and teams.
"""

from datetime import date
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator

from app.core.config import get_settings
from app.domain.pricing import TicketType
from app.domain.weekdays import WEEKDAYS

settings = get_settings()


def _check_weekday_keys(value: Optional[dict]) -> Optional[dict]:
    if value is None:
        return value
    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")
    return {day: value.get(day, False) for day in WEEKDAYS}


def _default_cooking_days() -> dict[str, bool]:
    return {day: day in settings.DEFAULT_COOKING_DAYS for day in WEEKDAYS}


WeekdayFlags = Annotated[dict[str, bool], AfterValidator(_check_weekday_keys)]


class DateRangeSchema(BaseModel):
    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start > self.end:
            raise ValueError("start must be on or before end")
        return self


class TicketPriceCreate(BaseModel):
    ticket_type: TicketType
    price: int = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=255)
    maximum_age_limit: Optional[int] = Field(None, ge=0)


class TicketPriceResponse(TicketPriceCreate):
    id: int

    model_config = {"from_attributes": True}


def _default_ticket_prices() -> list[TicketPriceCreate]:
    return [
        TicketPriceCreate(ticket_type=TicketType.BABY, price=0, maximum_age_limit=2,
                          description="Eats free tasters from the parents"),
        TicketPriceCreate(ticket_type=TicketType.BABY, price=900, maximum_age_limit=2,
                          description="Hungry baby, quarter cover"),
        TicketPriceCreate(ticket_type=TicketType.CHILD, price=1700, maximum_age_limit=12, description="Child"),
        TicketPriceCreate(ticket_type=TicketType.ADULT, price=4000, description="Adult"),
    ]


class TeamMemberCreate(BaseModel):
    inhabitant_id: int
    role: str = Field("COOK", pattern="^(CHEF|COOK|JUNIORHELPER)$")
    allocation_percentage: int = Field(100, gt=0, le=100)
    affinity: Optional[WeekdayFlags] = None


class CookingTeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    affinity: Optional[WeekdayFlags] = None
    members: list[TeamMemberCreate] = Field(default_factory=list)


class TeamMemberResponse(BaseModel):
    inhabitant_id: int
    role: str
    allocation_percentage: int
    affinity: Optional[WeekdayFlags] = None

    model_config = {"from_attributes": True}


class CookingTeamResponse(BaseModel):
    id: int
    season_id: int
    name: str
    affinity: Optional[WeekdayFlags] = None
    assignments: list[TeamMemberResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class SeasonCreate(BaseModel):
    short_name: str = Field(..., min_length=1, max_length=50)
    season_start: date
    season_end: date
    cooking_days: WeekdayFlags = Field(default_factory=_default_cooking_days)
    holidays: list[DateRangeSchema] = Field(default_factory=list)
    consecutive_cooking_days: int = Field(settings.DEFAULT_CONSECUTIVE_COOKING_DAYS, ge=1, le=7)
    ticket_is_cancellable_days_before: int = Field(settings.DEFAULT_TICKET_IS_CANCELLABLE_DAYS_BEFORE, ge=0)
    dining_mode_is_editable_minutes_before: int = Field(
        settings.DEFAULT_DINING_MODE_IS_EDITABLE_MINUTES_BEFORE, ge=0
    )
    ticket_prices: list[TicketPriceCreate] = Field(default_factory=_default_ticket_prices)
    teams: list[CookingTeamCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_dates(self):
        if self.season_start > self.season_end:
            raise ValueError("season_start must be on or before season_end")
        if not any(p.maximum_age_limit is None for p in self.ticket_prices):
            raise ValueError("ticket_prices must include an adult price without maximum_age_limit")
        return self


class SeasonUpdate(BaseModel):
    short_name: Optional[str] = Field(None, min_length=1, max_length=50)
    season_start: Optional[date] = None
    season_end: Optional[date] = None
    cooking_days: Optional[WeekdayFlags] = None
    holidays: Optional[list[DateRangeSchema]] = None
    consecutive_cooking_days: Optional[int] = Field(None, ge=1, le=7)
    ticket_is_cancellable_days_before: Optional[int] = Field(None, ge=0)
    dining_mode_is_editable_minutes_before: Optional[int] = Field(None, ge=0)


class SeasonResponse(BaseModel):
    id: int
    short_name: str
    season_start: date
    season_end: date
    cooking_days: dict[str, bool]
    holidays: list[DateRangeSchema]
    consecutive_cooking_days: int
    ticket_is_cancellable_days_before: int
    dining_mode_is_editable_minutes_before: int
    is_active: bool
    ticket_prices: list[TicketPriceResponse]

    model_config = {"from_attributes": True}


class DinnerEventResponse(BaseModel):
    id: int
    season_id: int
    date: date
    state: str
    menu_title: str
    cooking_team_id: Optional[int] = None
    chef_id: Optional[int] = None

    model_config = {"from_attributes": True}


class DinnerEventListResponse(BaseModel):
    season_id: int
    events: list[DinnerEventResponse]
    total: int
    cached: bool = False


class ScheduleResult(BaseModel):
    season_id: int
    created: int = 0
    deleted: int = 0
    kept: int = 0
    blocked: int = 0  # no longer wanted but still has orders


class AffinityResult(BaseModel):
    season_id: int
    assigned: int
    teams: list[CookingTeamResponse]


class TeamAssignmentResult(BaseModel):
    season_id: int
    assigned: int


class RosterEntry(BaseModel):
    id: int
    name: str
    affinity: Optional[WeekdayFlags] = None


class RosterResponse(BaseModel):
    season_id: int
    start_day: Optional[str]
    roster: list[RosterEntry]


class SeasonSetupResponse(BaseModel):
    season: SeasonResponse
    schedule: ScheduleResult
    affinities_assigned: int
    teams_assigned: int
