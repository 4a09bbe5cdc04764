from app.models.season import Season, TicketPrice
from app.models.dinner_event import DinnerEvent
from app.models.cooking_team import CookingTeam, CookingTeamAssignment
from app.models.household import Household, Inhabitant
from app.models.order import Order, OrderHistory

__all__ = [
    "Season", "TicketPrice",
    "DinnerEvent",
    "CookingTeam", "CookingTeamAssignment",
    "Household", "Inhabitant",
    "Order", "OrderHistory",
]
