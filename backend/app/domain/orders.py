"""
Order value types, user-intent extraction and desired-order derivation.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from app.domain.pricing import TicketType
from app.domain.weekdays import WeekdayMap

OrderKey = tuple[int, int]  # (inhabitant_id, dinner_event_id)


class DinnerMode(str, Enum):
    DINEIN = "DINEIN"
    DINEINLATE = "DINEINLATE"
    TAKEAWAY = "TAKEAWAY"
    NONE = "NONE"


class OrderState(str, Enum):
    BOOKED = "BOOKED"
    RELEASED = "RELEASED"


class OrderAction(str, Enum):
    USER_BOOKED = "USER_BOOKED"
    USER_CLAIMED = "USER_CLAIMED"
    USER_CANCELLED = "USER_CANCELLED"
    SYSTEM_CREATED = "SYSTEM_CREATED"
    SYSTEM_UPDATED = "SYSTEM_UPDATED"
    SYSTEM_RELEASED = "SYSTEM_RELEASED"
    SYSTEM_DELETED = "SYSTEM_DELETED"

    @property
    def is_user_action(self) -> bool:
        return self.value.startswith("USER_")


class ReconcileMode(str, Enum):
    SYSTEM = "system"
    USER = "user"


DEFAULT_DINNER_MODE = DinnerMode.DINEIN


@dataclass(frozen=True)
class DesiredOrder:
    inhabitant_id: int
    dinner_event_id: int
    dinner_mode: DinnerMode
    ticket_price_id: Optional[int] = None
    is_guest_ticket: bool = False
    state: OrderState = OrderState.BOOKED
    existing_order_id: Optional[int] = None
    ticket_type: Optional[TicketType] = None

    @property
    def key(self) -> OrderKey:
        return (self.inhabitant_id, self.dinner_event_id)

    @property
    def wants_order(self) -> bool:
        return self.dinner_mode != DinnerMode.NONE and self.state == OrderState.BOOKED


@dataclass(frozen=True)
class StoredOrder:
    id: int
    inhabitant_id: int
    dinner_event_id: int
    dinner_mode: DinnerMode
    state: OrderState
    ticket_price_id: Optional[int]
    price_at_booking: int
    is_guest_ticket: bool = False
    version: int = 1

    @property
    def key(self) -> OrderKey:
        return (self.inhabitant_id, self.dinner_event_id)


@dataclass(frozen=True)
class HistoryEntry:
    """One audit row, reduced to what intent decisions need."""

    id: int
    inhabitant_id: int
    dinner_event_id: int
    action: OrderAction
    timestamp: datetime
    dinner_mode: Optional[DinnerMode] = None
    order_id: Optional[int] = None
    is_guest_ticket: bool = False

    @property
    def key(self) -> OrderKey:
        return (self.inhabitant_id, self.dinner_event_id)


@dataclass
class UserIntent:
    """
    Last deliberate user act per slot.

    confirmed: slots whose latest user action is USER_BOOKED/USER_CLAIMED,
    mapped to that entry. cancelled: slots whose latest user action is
    USER_CANCELLED. System rows never change intent, and neither do guest
    tickets, which are separate orders that merely share the inhabitant and
    dinner of the booker.
    """

    confirmed: dict[OrderKey, HistoryEntry] = field(default_factory=dict)
    cancelled: set[OrderKey] = field(default_factory=set)

    def confirmed_mode(self, key: OrderKey) -> Optional[DinnerMode]:
        entry = self.confirmed.get(key)
        return entry.dinner_mode if entry else None


def compute_user_intent(history: Iterable[HistoryEntry]) -> UserIntent:
    latest: dict[OrderKey, HistoryEntry] = {}
    for entry in sorted(history, key=lambda e: (e.timestamp, e.id)):
        if entry.action.is_user_action and not entry.is_guest_ticket:
            latest[entry.key] = entry

    intent = UserIntent()
    for key, entry in latest.items():
        if entry.action == OrderAction.USER_CANCELLED:
            intent.cancelled.add(key)
        else:
            intent.confirmed[key] = entry
    return intent


@dataclass(frozen=True)
class InhabitantSlot:
    id: int
    household_id: int
    birth_date: Optional[date] = None
    dinner_preferences: Optional[WeekdayMap] = None

    def preference_on(self, day: date) -> DinnerMode:
        """Standing preference for a date. Missing preferences mean DINEIN."""
        if self.dinner_preferences is None:
            return DEFAULT_DINNER_MODE
        value = self.dinner_preferences.for_date(day)
        return DinnerMode(value) if value is not None else DEFAULT_DINNER_MODE


@dataclass(frozen=True)
class DinnerSlot:
    id: int
    date: date


def desired_orders_from_preferences(
    inhabitants: Sequence[InhabitantSlot],
    dinners: Sequence[DinnerSlot],
) -> list[DesiredOrder]:
    """One desired order per inhabitant and dinner, NONE included."""
    return [
        DesiredOrder(
            inhabitant_id=inhabitant.id,
            dinner_event_id=dinner.id,
            dinner_mode=inhabitant.preference_on(dinner.date),
        )
        for inhabitant in inhabitants
        for dinner in sorted(dinners, key=lambda d: d.date)
    ]


def clip_preferences(preferences: Optional[WeekdayMap], cooking_days: WeekdayMap) -> WeekdayMap:
    """
    Align preferences with a season's cooking days: cooking days keep their
    value (DINEIN when unset), every other weekday becomes NONE.
    """
    base = preferences if preferences is not None else WeekdayMap()
    clipped = base.masked(cooking_days, off=DinnerMode.NONE, on_default=DEFAULT_DINNER_MODE)
    return clipped.map(lambda _day, value: DinnerMode(value))
