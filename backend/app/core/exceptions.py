"""
Domain errors and their HTTP mapping.

Services raise these instead of HTTPException so the scheduling and
reconciliation core stays framework-free. The handler registered in
main.py turns them into JSON responses.
"""

from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorCode(Enum):
    SEASON_NOT_FOUND = "SEASON_NOT_FOUND"
    NO_ACTIVE_SEASON = "NO_ACTIVE_SEASON"
    DINNER_EVENT_NOT_FOUND = "DINNER_EVENT_NOT_FOUND"
    HOUSEHOLD_NOT_FOUND = "HOUSEHOLD_NOT_FOUND"
    INHABITANT_NOT_FOUND = "INHABITANT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    TICKET_PRICE_NOT_FOUND = "TICKET_PRICE_NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"
    ORDER_CONFLICT = "ORDER_CONFLICT"


_STATUS_BY_CODE = {
    ErrorCode.SEASON_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.NO_ACTIVE_SEASON: status.HTTP_404_NOT_FOUND,
    ErrorCode.DINNER_EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.HOUSEHOLD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INHABITANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_PRICE_NOT_FOUND: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorCode.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ORDER_CONFLICT: status.HTTP_409_CONFLICT,
}


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    retryable = False

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class SeasonNotFoundError(DomainError):
    def __init__(self, season_id: int) -> None:
        super().__init__(ErrorCode.SEASON_NOT_FOUND, f"Season {season_id} not found")
        self.season_id = season_id


class NoActiveSeasonError(DomainError):
    def __init__(self) -> None:
        super().__init__(ErrorCode.NO_ACTIVE_SEASON, "No active season")


class DinnerEventNotFoundError(DomainError):
    def __init__(self, dinner_event_id: int) -> None:
        super().__init__(ErrorCode.DINNER_EVENT_NOT_FOUND, f"Dinner event {dinner_event_id} not found")
        self.dinner_event_id = dinner_event_id


class HouseholdNotFoundError(DomainError):
    def __init__(self, household_id: int) -> None:
        super().__init__(ErrorCode.HOUSEHOLD_NOT_FOUND, f"Household {household_id} not found")
        self.household_id = household_id


class InhabitantNotFoundError(DomainError):
    def __init__(self, inhabitant_id: int) -> None:
        super().__init__(ErrorCode.INHABITANT_NOT_FOUND, f"Inhabitant {inhabitant_id} not found")
        self.inhabitant_id = inhabitant_id


class OrderNotFoundError(DomainError):
    def __init__(self, order_id: int) -> None:
        super().__init__(ErrorCode.ORDER_NOT_FOUND, f"Order {order_id} not found")
        self.order_id = order_id


class TicketPriceNotFoundError(DomainError):
    """No ticket price bracket matches. Reported per order, never fatal to a batch."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.TICKET_PRICE_NOT_FOUND, message)


class InvalidRequestError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.INVALID_REQUEST, message)


class OrderConflictError(DomainError):
    """The stored order changed between read and write. Safe to retry."""

    retryable = True

    def __init__(self, order_id: int) -> None:
        super().__init__(
            ErrorCode.ORDER_CONFLICT,
            f"Order {order_id} was modified concurrently. Please try again.",
        )
        self.order_id = order_id


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = _STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.warning(
        "domain_error",
        code=exc.code.value,
        message=exc.message,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code.value, "retryable": exc.retryable},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
