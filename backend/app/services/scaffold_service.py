"""
Order scaffolding: keep a household's orders in line with what it wants.

FLOW
====
  1. Load the household, the season's dinners in scope, the stored orders for
     those dinners and the household's user-action history.
  2. Reduce history to user intent (latest deliberate act per slot).
  3. Let the OrderReconciler plan the mutations (pure, no I/O).
  4. Apply the plan: optimistic-locked UPDATE/DELETE, batched INSERTs, and
     one append-only history row per mutation.

Preference scaffolding (no explicit desired orders) covers the upcoming
dinners inside the prebooking window and also prunes orders no longer
backed by a preference. Explicit bookings cover exactly the slots they name.

CONCURRENCY
===========
The plan is computed from one read of the household. If any order changed
before the write lands, the versioned write affects zero rows and
OrderConflictError propagates: the request transaction rolls back, so no
partial plan survives, and the caller may retry against fresh state.
"""

import time
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.metrics import reconcile_latency, record_reconcile_counts
from app.domain.deadlines import DeadlinePolicy
from app.domain.orders import (
    DesiredOrder,
    DinnerSlot,
    OrderAction,
    OrderState,
    ReconcileMode,
    StoredOrder,
    compute_user_intent,
    desired_orders_from_preferences,
)
from app.domain.reconciler import Mutation, MutationKind, OrderReconciler, ReconcileResult
from app.models.dinner_event import DinnerEvent
from app.models.order import Order, OrderHistory
from app.models.season import Season
from app.repositories import household_repository, order_repository, season_repository
from app.schemas.audit import OrderSnapshot, build_audit_payload
from app.schemas.household import ScaffoldResult

logger = get_logger(__name__)

USER_ACTIONS = (OrderAction.USER_BOOKED, OrderAction.USER_CLAIMED, OrderAction.USER_CANCELLED)
OPEN_STATES = ("SCHEDULED", "ANNOUNCED")


def scaffoldable_dinners(events: Sequence[DinnerEvent], policy: DeadlinePolicy, now: datetime) -> list[DinnerSlot]:
    """Open, upcoming dinners inside the prebooking window."""
    return [
        DinnerSlot(id=e.id, date=e.date)
        for e in events
        if e.state in OPEN_STATES and policy.is_scaffoldable(e.date, now)
    ]


def _snapshot(mutation: Mutation, order_id: Optional[int], user_id: Optional[int]) -> OrderSnapshot:
    return OrderSnapshot(
        id=order_id,
        inhabitant_id=mutation.inhabitant_id,
        dinner_event_id=mutation.dinner_event_id,
        dinner_mode=mutation.dinner_mode,
        state=mutation.state.value,
        ticket_price_id=mutation.ticket_price_id,
        price_at_booking=mutation.price_at_booking,
        is_guest_ticket=mutation.is_guest_ticket,
        booked_by_user_id=user_id,
    )


def _changes(mutation: Mutation) -> dict:
    existing: Optional[StoredOrder] = mutation.existing
    if existing is None:
        return {}
    changes = {}
    if existing.dinner_mode != mutation.dinner_mode:
        changes["dinnerMode"] = {"from": existing.dinner_mode.value, "to": mutation.dinner_mode.value}
    if existing.state != mutation.state:
        changes["state"] = {"from": existing.state.value, "to": mutation.state.value}
    if existing.ticket_price_id != mutation.ticket_price_id:
        changes["ticketPriceId"] = {"from": existing.ticket_price_id, "to": mutation.ticket_price_id}
    return changes


def _history_row(
    mutation: Mutation,
    season_id: int,
    order_id: Optional[int],
    now: datetime,
    user_id: Optional[int],
) -> OrderHistory:
    return OrderHistory(
        order_id=order_id,
        inhabitant_id=mutation.inhabitant_id,
        dinner_event_id=mutation.dinner_event_id,
        season_id=season_id,
        action=mutation.action.value,
        performed_by_user_id=user_id,
        audit_data=build_audit_payload(_snapshot(mutation, order_id, user_id), _changes(mutation)),
        timestamp=now,
    )


async def apply_mutations(
    db: AsyncSession,
    season_id: int,
    mutations: Sequence[Mutation],
    now: datetime,
    performed_by_user_id: Optional[int] = None,
) -> list[int]:
    """Write a plan. Returns the ids of orders that exist afterwards."""
    history: list[OrderHistory] = []
    touched: list[int] = []
    creates: list[tuple[Mutation, Order]] = []

    for mutation in mutations:
        existing = mutation.existing
        if mutation.kind == MutationKind.CREATE:
            order = Order(
                inhabitant_id=mutation.inhabitant_id,
                dinner_event_id=mutation.dinner_event_id,
                ticket_price_id=mutation.ticket_price_id,
                booked_by_user_id=performed_by_user_id,
                dinner_mode=mutation.dinner_mode.value,
                state=OrderState.BOOKED.value,
                is_guest_ticket=mutation.is_guest_ticket,
                price_at_booking=mutation.price_at_booking,
                version=1,
            )
            creates.append((mutation, order))
            continue

        if mutation.kind == MutationKind.DELETE:
            await order_repository.delete_order(db, existing.id, existing.version)
        elif mutation.kind == MutationKind.RELEASE:
            await order_repository.update_order(
                db, existing.id, existing.version,
                state=OrderState.RELEASED.value,
                released_at=now,
            )
            touched.append(existing.id)
        else:
            values = {
                "dinner_mode": mutation.dinner_mode.value,
                "state": OrderState.BOOKED.value,
                "released_at": None,
            }
            if mutation.price_changed:
                values["ticket_price_id"] = mutation.ticket_price_id
                values["price_at_booking"] = mutation.price_at_booking
            if mutation.kind == MutationKind.CLAIM and performed_by_user_id is not None:
                values["booked_by_user_id"] = performed_by_user_id
            await order_repository.update_order(db, existing.id, existing.version, **values)
            touched.append(existing.id)
        history.append(_history_row(mutation, season_id, existing.id, now, performed_by_user_id))

    if creates:
        await order_repository.insert_orders(db, [order for _, order in creates])
        for mutation, order in creates:
            touched.append(order.id)
            history.append(_history_row(mutation, season_id, order.id, now, performed_by_user_id))

    await order_repository.append_history(db, history)
    return touched


async def reconcile_household(
    db: AsyncSession,
    season: Season,
    household_id: int,
    now: datetime,
    desired: Optional[Sequence[DesiredOrder]] = None,
    mode: ReconcileMode = ReconcileMode.SYSTEM,
    performed_by_user_id: Optional[int] = None,
) -> ReconcileResult:
    """
    Reconcile one household in `season`.

    Without `desired`, desired orders come from the inhabitants' standing
    preferences for every scaffoldable dinner. With `desired`, only those
    slots are reconciled (explicit bookings, healing).
    """
    started = time.perf_counter()
    household = await household_repository.get_household(db, household_id)
    inhabitants = household_repository.inhabitant_slots(household.inhabitants)
    policy = DeadlinePolicy.for_season(season)
    events = await season_repository.list_dinner_events(db, season.id)

    if desired is None:
        dinners = scaffoldable_dinners(events, policy, now)
        desired = desired_orders_from_preferences(inhabitants, dinners)
        prune_orphans = True
    else:
        dinners = [DinnerSlot(id=e.id, date=e.date) for e in events]
        prune_orphans = False

    dinner_dates = {d.id: d.date for d in dinners}
    stored = [
        order_repository.to_stored_order(o)
        for o in await order_repository.list_household_orders(db, household_id, list(dinner_dates))
    ]
    history = await order_repository.list_history(
        db, season.id, inhabitant_ids=[i.id for i in inhabitants], actions=USER_ACTIONS
    )
    intent = compute_user_intent(order_repository.to_history_entry(h) for h in history)

    reconciler = OrderReconciler(
        policy=policy,
        prices=season_repository.price_options(season),
        now=now,
        mode=mode,
        intent=intent,
    )
    result = reconciler.plan(
        desired,
        stored,
        dinner_dates,
        {i.id: i.birth_date for i in inhabitants},
        prune_orphans=prune_orphans,
    )
    await apply_mutations(db, season.id, result.mutations, now, performed_by_user_id)

    duration = time.perf_counter() - started
    reconcile_latency.observe(duration)
    record_reconcile_counts(mode.value, result.counts())
    if result.errors:
        logger.warning(
            "household_reconcile_errors",
            household_id=household_id,
            season_id=season.id,
            errors=result.errors,
        )
    logger.info(
        "household_reconciled",
        household_id=household_id,
        season_id=season.id,
        mode=mode.value,
        duration_ms=round(duration * 1000, 2),
        **result.counts(),
    )
    return result


def to_scaffold_result(
    result: ReconcileResult,
    season_id: int,
    household_id: Optional[int] = None,
    households: int = 1,
) -> ScaffoldResult:
    return ScaffoldResult(
        season_id=season_id,
        household_id=household_id,
        households=households,
        errors=list(result.errors),
        **result.counts(),
    )


async def scaffold_season(
    db: AsyncSession,
    season: Season,
    now: datetime,
    household_ids: Optional[Sequence[int]] = None,
) -> ScaffoldResult:
    """Re-apply standing preferences for every household (or the given ones)."""
    if household_ids is None:
        household_ids = await household_repository.list_household_ids(db)

    total = ReconcileResult()
    for household_id in household_ids:
        total.merge(await reconcile_household(db, season, household_id, now))

    logger.info("season_scaffolded", season_id=season.id, households=len(household_ids), **total.counts())
    return to_scaffold_result(total, season.id, households=len(household_ids))
