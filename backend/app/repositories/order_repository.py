"""
Order and order history persistence.

Order writes use optimistic locking: every UPDATE/DELETE is conditioned on
the version read before planning. A zero row count means another writer got
there first, and the whole household batch is rolled back by the caller.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import OrderConflictError
from app.core.logging import get_logger
from app.core.metrics import record_order_conflict
from app.domain.orders import DinnerMode, HistoryEntry, OrderAction, OrderState, StoredOrder
from app.models.household import Inhabitant
from app.models.order import Order, OrderHistory
from app.repositories.base import chunked
from app.schemas.audit import parse_audit_payload

logger = get_logger(__name__)
settings = get_settings()


async def list_household_orders(
    db: AsyncSession,
    household_id: int,
    dinner_event_ids: Optional[Sequence[int]] = None,
) -> list[Order]:
    query = (
        select(Order)
        .join(Inhabitant, Inhabitant.id == Order.inhabitant_id)
        .where(Inhabitant.household_id == household_id)
        .execution_options(populate_existing=True)
    )
    if dinner_event_ids is None:
        result = await db.execute(query.order_by(Order.dinner_event_id.asc(), Order.id.asc()))
        return list(result.scalars().all())

    orders: list[Order] = []
    for batch in chunked(list(dinner_event_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(query.where(Order.dinner_event_id.in_(batch)))
        orders.extend(result.scalars().all())
    return sorted(orders, key=lambda o: (o.dinner_event_id, o.id))


async def get_orders(db: AsyncSession, order_ids: Sequence[int]) -> list[Order]:
    orders: list[Order] = []
    for batch in chunked(list(order_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(
            select(Order).where(Order.id.in_(batch)).execution_options(populate_existing=True)
        )
        orders.extend(result.scalars().all())
    return orders


async def list_history(
    db: AsyncSession,
    season_id: int,
    inhabitant_ids: Optional[Sequence[int]] = None,
    actions: Optional[Sequence[OrderAction]] = None,
) -> list[OrderHistory]:
    query = select(OrderHistory).where(OrderHistory.season_id == season_id)
    if actions is not None:
        query = query.where(OrderHistory.action.in_([a.value for a in actions]))
    query = query.order_by(OrderHistory.timestamp.asc(), OrderHistory.id.asc())
    if inhabitant_ids is None:
        result = await db.execute(query)
        return list(result.scalars().all())

    rows: list[OrderHistory] = []
    for batch in chunked(list(inhabitant_ids), settings.ORDER_BATCH_SIZE):
        result = await db.execute(query.where(OrderHistory.inhabitant_id.in_(batch)))
        rows.extend(result.scalars().all())
    return sorted(rows, key=lambda h: (_naive_utc(h.timestamp), h.id))


async def insert_orders(db: AsyncSession, orders: Sequence[Order]) -> None:
    for batch in chunked(list(orders), settings.ORDER_BATCH_SIZE):
        db.add_all(batch)
        await db.flush()


async def update_order(db: AsyncSession, order_id: int, expected_version: int, **values) -> None:
    result = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.version == expected_version)
        .values(version=Order.version + 1, **values)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        record_order_conflict()
        logger.warning("order_version_conflict", order_id=order_id, expected_version=expected_version)
        raise OrderConflictError(order_id)


async def delete_order(db: AsyncSession, order_id: int, expected_version: int) -> None:
    result = await db.execute(
        delete(Order)
        .where(Order.id == order_id, Order.version == expected_version)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        record_order_conflict()
        logger.warning("order_version_conflict", order_id=order_id, expected_version=expected_version)
        raise OrderConflictError(order_id)


async def append_history(db: AsyncSession, rows: Sequence[OrderHistory]) -> None:
    for batch in chunked(list(rows), settings.ORDER_BATCH_SIZE):
        db.add_all(batch)
        await db.flush()


def to_stored_order(order: Order) -> StoredOrder:
    return StoredOrder(
        id=order.id,
        inhabitant_id=order.inhabitant_id,
        dinner_event_id=order.dinner_event_id,
        dinner_mode=DinnerMode(order.dinner_mode),
        state=OrderState(order.state),
        ticket_price_id=order.ticket_price_id,
        price_at_booking=order.price_at_booking,
        is_guest_ticket=order.is_guest_ticket,
        version=order.version,
    )


def to_history_entry(row: OrderHistory) -> HistoryEntry:
    snapshot = parse_audit_payload(row.audit_data)
    return HistoryEntry(
        id=row.id,
        inhabitant_id=row.inhabitant_id,
        dinner_event_id=row.dinner_event_id,
        action=OrderAction(row.action),
        timestamp=_naive_utc(row.timestamp),
        dinner_mode=snapshot.dinner_mode if snapshot else None,
        order_id=row.order_id,
        is_guest_ticket=snapshot.is_guest_ticket if snapshot else False,
    )


def _naive_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes, PostgreSQL aware ones
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)
