"""
Ticket price resolution by age bracket.

Brackets are sorted by `maximum_age_limit` ascending and the first one the
inhabitant is *under* wins (age < limit). A null limit is the unbounded adult
bracket. Inhabitants without a birth date are charged as adults.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from app.core.exceptions import TicketPriceNotFoundError


class TicketType(str, Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    BABY = "BABY"


@dataclass(frozen=True)
class PriceOption:
    id: int
    ticket_type: TicketType
    price: int  # minor units (øre)
    maximum_age_limit: Optional[int] = None
    description: Optional[str] = None


def calculate_age(birth_date: date, on_date: date) -> int:
    """Age in whole years on a given date."""
    had_birthday = (on_date.month, on_date.day) >= (birth_date.month, birth_date.day)
    return on_date.year - birth_date.year - (0 if had_birthday else 1)


def _adult_price(prices: Sequence[PriceOption]) -> Optional[PriceOption]:
    unbounded = [p for p in prices if p.maximum_age_limit is None]
    adults = [p for p in unbounded if TicketType(p.ticket_type) == TicketType.ADULT]
    return (adults or unbounded or [None])[0]


def resolve_ticket_price(
    birth_date: Optional[date],
    prices: Sequence[PriceOption],
    on_date: date,
    ticket_type: Optional[TicketType] = None,
) -> PriceOption:
    if ticket_type is not None:
        for price in prices:
            if TicketType(price.ticket_type) == TicketType(ticket_type):
                return price
        raise TicketPriceNotFoundError(f"No {TicketType(ticket_type).value} ticket price in season")

    if birth_date is not None:
        age = calculate_age(birth_date, on_date)
        bounded = sorted(
            (p for p in prices if p.maximum_age_limit is not None),
            key=lambda p: p.maximum_age_limit,
        )
        for price in bounded:
            if age < price.maximum_age_limit:
                return price

    adult = _adult_price(prices)
    if adult is None:
        raise TicketPriceNotFoundError(f"No ticket price bracket matches on {on_date.isoformat()}")
    return adult
