from app.schemas.season import (
    SeasonCreate, SeasonUpdate, SeasonResponse, DinnerEventResponse, CookingTeamCreate, CookingTeamResponse,
)
from app.schemas.household import (
    HouseholdCreate, HouseholdResponse, OrderRequest, OrderResponse, ScaffoldResult,
)
from app.schemas.maintenance import DailyMaintenanceResponse, HealingResponse

__all__ = [
    "SeasonCreate", "SeasonUpdate", "SeasonResponse", "DinnerEventResponse",
    "CookingTeamCreate", "CookingTeamResponse",
    "HouseholdCreate", "HouseholdResponse", "OrderRequest", "OrderResponse", "ScaffoldResult",
    "DailyMaintenanceResponse", "HealingResponse",
]
