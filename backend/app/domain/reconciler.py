"""
Order reconciliation planner.

Given what a household *should* have (desired orders) and what it *has*
(stored orders), produce the smallest set of mutations that closes the gap,
without ever overriding a deliberate user action from a system run.

CONFIRMED-INTENT GATE (system mode only)
========================================
The audit trail decides who owns a slot. If the last user action on a slot
was a booking or claim, the slot is pinned: a system run may only restore
exactly that intent (same dinner mode, booked). If the last user action was a
cancellation, a system run never re-creates or re-claims the slot.

DEADLINE BUCKETS
================
Before the cancellation deadline:
  - wanted, no order         -> CREATE
  - not wanted, booked order -> DELETE (hard; the audit row keeps a snapshot)
  - wanted, different mode   -> UPDATE in place (same id, same price snapshot)
After the deadline:
  - not wanted, booked order -> RELEASE (row kept, state RELEASED)
  - wanted, released order   -> CLAIM
  - wanted, no order         -> skipped, never created

Independently of the buckets, a booked order keeps its mode once the dining
mode deadline has passed, and an order whose ticket price id no longer
matches is re-priced (UPDATE with a fresh price snapshot).

Re-running a plan against its own result yields no mutations.

Validation failures (unknown dinner, inhabitant or order) raise before any
mutation is planned. Ticket price failures are per order and only reported.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Mapping, Optional, Sequence

from app.core.exceptions import (
    DinnerEventNotFoundError,
    InhabitantNotFoundError,
    InvalidRequestError,
    OrderNotFoundError,
    TicketPriceNotFoundError,
)
from app.domain.deadlines import DeadlinePolicy
from app.domain.orders import (
    DesiredOrder,
    DinnerMode,
    OrderAction,
    OrderState,
    ReconcileMode,
    StoredOrder,
    UserIntent,
)
from app.domain.pricing import PriceOption, TicketType, resolve_ticket_price


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    CLAIM = "claim"
    RELEASE = "release"
    DELETE = "delete"


_SYSTEM_ACTIONS = {
    MutationKind.CREATE: OrderAction.SYSTEM_CREATED,
    MutationKind.UPDATE: OrderAction.SYSTEM_UPDATED,
    MutationKind.CLAIM: OrderAction.SYSTEM_UPDATED,
    MutationKind.RELEASE: OrderAction.SYSTEM_RELEASED,
    MutationKind.DELETE: OrderAction.SYSTEM_DELETED,
}

_USER_ACTIONS = {
    MutationKind.CREATE: OrderAction.USER_BOOKED,
    MutationKind.UPDATE: OrderAction.USER_BOOKED,
    MutationKind.CLAIM: OrderAction.USER_CLAIMED,
    MutationKind.RELEASE: OrderAction.USER_CANCELLED,
    MutationKind.DELETE: OrderAction.USER_CANCELLED,
}


@dataclass(frozen=True)
class Mutation:
    kind: MutationKind
    action: OrderAction
    inhabitant_id: int
    dinner_event_id: int
    dinner_mode: DinnerMode
    state: OrderState
    ticket_price_id: Optional[int]
    price_at_booking: Optional[int]
    is_guest_ticket: bool = False
    existing: Optional[StoredOrder] = None
    mode_changed: bool = False
    price_changed: bool = False


@dataclass
class ReconcileResult:
    created: int = 0
    mode_updated: int = 0
    price_updated: int = 0
    released: int = 0
    claimed: int = 0
    deleted: int = 0
    unchanged: int = 0
    skipped: int = 0
    errored: int = 0
    errors: list[str] = field(default_factory=list)
    mutations: list[Mutation] = field(default_factory=list)

    def add(self, mutation: Mutation) -> None:
        self.mutations.append(mutation)
        if mutation.kind == MutationKind.CREATE:
            self.created += 1
        elif mutation.kind == MutationKind.RELEASE:
            self.released += 1
        elif mutation.kind == MutationKind.DELETE:
            self.deleted += 1
        elif mutation.kind == MutationKind.CLAIM:
            self.claimed += 1
        if mutation.kind in (MutationKind.UPDATE, MutationKind.CLAIM):
            self.mode_updated += int(mutation.mode_changed)
            self.price_updated += int(mutation.price_changed)

    def error(self, message: str) -> None:
        self.errored += 1
        self.errors.append(message)

    def merge(self, other: "ReconcileResult") -> None:
        for name in (
            "created", "mode_updated", "price_updated", "released", "claimed",
            "deleted", "unchanged", "skipped", "errored",
        ):
            setattr(self, name, getattr(self, name) + getattr(other, name))
        self.errors.extend(other.errors)
        self.mutations.extend(other.mutations)

    def counts(self) -> dict[str, int]:
        return {
            "created": self.created,
            "mode_updated": self.mode_updated,
            "price_updated": self.price_updated,
            "released": self.released,
            "claimed": self.claimed,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "errored": self.errored,
        }


class OrderReconciler:
    def __init__(
        self,
        policy: DeadlinePolicy,
        prices: Sequence[PriceOption],
        now: datetime,
        mode: ReconcileMode = ReconcileMode.SYSTEM,
        intent: Optional[UserIntent] = None,
    ):
        self.policy = policy
        self.prices = list(prices)
        self.prices_by_id = {p.id: p for p in self.prices}
        self.now = now
        self.mode = mode
        self.intent = intent or UserIntent()
        self._actions = _USER_ACTIONS if mode == ReconcileMode.USER else _SYSTEM_ACTIONS

    def plan(
        self,
        desired: Sequence[DesiredOrder],
        stored: Sequence[StoredOrder],
        dinners: Mapping[int, date],
        birth_dates: Mapping[int, Optional[date]],
        prune_orphans: bool = False,
    ) -> ReconcileResult:
        """
        Plan mutations for one household.

        dinners maps dinner event id -> date for every dinner in scope,
        birth_dates maps inhabitant id -> birth date for the household.
        With prune_orphans, stored non-guest orders in scope that no desired
        order mentions are removed as well (system mode only).
        """
        stored_by_id = {o.id: o for o in stored}
        stored_by_key = {o.key: o for o in stored if not o.is_guest_ticket}
        self._validate(desired, stored_by_id, dinners, birth_dates)

        result = ReconcileResult()
        touched: set[int] = set()
        for wish in desired:
            if wish.existing_order_id is not None:
                existing = stored_by_id[wish.existing_order_id]
            elif wish.is_guest_ticket:
                existing = None
            else:
                existing = stored_by_key.get(wish.key)
            if existing is not None:
                touched.add(existing.id)
            self._plan_one(wish, existing, dinners[wish.dinner_event_id], birth_dates[wish.inhabitant_id], result)

        if prune_orphans and self.mode == ReconcileMode.SYSTEM:
            wanted_keys = {w.key for w in desired}
            for order in stored:
                if order.id in touched or order.is_guest_ticket or order.key in wanted_keys:
                    continue
                if order.dinner_event_id not in dinners:
                    continue
                self._plan_orphan(order, dinners[order.dinner_event_id], result)
        return result

    def _validate(self, desired, stored_by_id, dinners, birth_dates) -> None:
        seen: set = set()
        for wish in desired:
            if wish.dinner_event_id not in dinners:
                raise DinnerEventNotFoundError(wish.dinner_event_id)
            if wish.inhabitant_id not in birth_dates:
                raise InhabitantNotFoundError(wish.inhabitant_id)
            if wish.existing_order_id is not None:
                existing = stored_by_id.get(wish.existing_order_id)
                if existing is None:
                    raise OrderNotFoundError(wish.existing_order_id)
                if existing.key != wish.key:
                    raise InvalidRequestError(
                        f"Order {existing.id} does not belong to inhabitant {wish.inhabitant_id} "
                        f"on dinner event {wish.dinner_event_id}"
                    )
            slot = wish.existing_order_id if wish.is_guest_ticket else wish.key
            if slot is not None and slot in seen:
                raise InvalidRequestError(
                    f"Duplicate desired order for inhabitant {wish.inhabitant_id} "
                    f"on dinner event {wish.dinner_event_id}"
                )
            if slot is not None:
                seen.add(slot)

    def _gate(self, wish: DesiredOrder, existing: Optional[StoredOrder]) -> bool:
        """True when a system run must leave this slot alone."""
        if self.mode != ReconcileMode.SYSTEM or wish.is_guest_ticket:
            return False
        if wish.key in self.intent.confirmed:
            restores = wish.wants_order and wish.dinner_mode == self.intent.confirmed_mode(wish.key)
            return not restores
        if wish.key in self.intent.cancelled and wish.wants_order:
            return existing is None or existing.state == OrderState.RELEASED
        return False

    def _price_for(self, wish, existing, birth_date, dinner_date) -> PriceOption:
        if wish.ticket_price_id in self.prices_by_id:
            return self.prices_by_id[wish.ticket_price_id]
        if wish.ticket_type is not None:
            return resolve_ticket_price(birth_date, self.prices, dinner_date, wish.ticket_type)
        if existing is not None and existing.ticket_price_id in self.prices_by_id:
            return self.prices_by_id[existing.ticket_price_id]
        if wish.is_guest_ticket:
            return resolve_ticket_price(None, self.prices, dinner_date, TicketType.ADULT)
        return resolve_ticket_price(birth_date, self.prices, dinner_date)

    def _mutation(self, kind, wish_or_order, existing, mode, state, price=None, **flags) -> Mutation:
        return Mutation(
            kind=kind,
            action=self._actions[kind],
            inhabitant_id=wish_or_order.inhabitant_id,
            dinner_event_id=wish_or_order.dinner_event_id,
            dinner_mode=mode,
            state=state,
            ticket_price_id=price.id if price else (existing.ticket_price_id if existing else None),
            price_at_booking=price.price if price else (existing.price_at_booking if existing else None),
            is_guest_ticket=wish_or_order.is_guest_ticket,
            existing=existing,
            **flags,
        )

    def _plan_one(self, wish, existing, dinner_date, birth_date, result: ReconcileResult) -> None:
        if self._gate(wish, existing):
            result.unchanged += 1
            return

        can_modify = self.policy.can_modify_orders(dinner_date, self.now)

        if not wish.wants_order:
            if existing is None or existing.state == OrderState.RELEASED:
                result.unchanged += 1
            elif can_modify:
                result.add(self._mutation(MutationKind.DELETE, wish, existing, existing.dinner_mode, existing.state))
            else:
                result.add(self._mutation(MutationKind.RELEASE, wish, existing, existing.dinner_mode, OrderState.RELEASED))
            return

        try:
            price = self._price_for(wish, existing, birth_date, dinner_date)
        except TicketPriceNotFoundError as e:
            result.error(
                f"Inhabitant {wish.inhabitant_id}, dinner event {wish.dinner_event_id}: {e.message}"
            )
            return

        if existing is None:
            if can_modify:
                result.add(self._mutation(MutationKind.CREATE, wish, None, wish.dinner_mode, OrderState.BOOKED, price))
            else:
                result.skipped += 1
            return

        if self.policy.can_edit_dining_mode(dinner_date, self.now):
            target_mode = wish.dinner_mode
        else:
            target_mode = existing.dinner_mode
        mode_changed = target_mode != existing.dinner_mode
        price_changed = price.id != existing.ticket_price_id

        if existing.state == OrderState.RELEASED:
            kind = MutationKind.CLAIM
        elif mode_changed or price_changed:
            kind = MutationKind.UPDATE
        else:
            result.unchanged += 1
            return

        # The billing snapshot only moves when the ticket price itself changes
        snapshot = price if price_changed else None
        result.add(
            self._mutation(
                kind, wish, existing, target_mode, OrderState.BOOKED, snapshot,
                mode_changed=mode_changed, price_changed=price_changed,
            )
        )

    def _plan_orphan(self, order: StoredOrder, dinner_date: date, result: ReconcileResult) -> None:
        pinned = order.key in self.intent.confirmed
        if pinned or order.state == OrderState.RELEASED or not self.policy.can_modify_orders(dinner_date, self.now):
            result.unchanged += 1
            return
        result.add(self._mutation(MutationKind.DELETE, order, order, order.dinner_mode, order.state))
