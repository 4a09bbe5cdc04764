"""
Detect confirmed user bookings that a faulty reconciliation run broke.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Collection, Mapping, Optional, Sequence

from app.domain.orders import DesiredOrder, DinnerMode, OrderAction, OrderState, StoredOrder, UserIntent


class HealingReason(str, Enum):
    DELETED = "deleted"
    MODE_CHANGED = "mode_changed"
    RELEASED = "released"


@dataclass(frozen=True)
class HealingCandidate:
    inhabitant_id: int
    dinner_event_id: int
    intended_mode: DinnerMode
    reason: HealingReason
    confirmed_by: OrderAction
    order_id: Optional[int] = None
    current_mode: Optional[DinnerMode] = None

    def desired_order(self) -> DesiredOrder:
        return DesiredOrder(
            inhabitant_id=self.inhabitant_id,
            dinner_event_id=self.dinner_event_id,
            dinner_mode=self.intended_mode,
            existing_order_id=self.order_id,
        )


def find_broken_intents(
    intent: UserIntent,
    stored: Sequence[StoredOrder],
    dinners: Mapping[int, date],
    inhabitant_ids: Collection[int],
) -> tuple[list[HealingCandidate], list[str]]:
    """
    Compare every confirmed slot on an in-scope dinner with the stored order.
    Returns the slots to repair and the slots that could not be judged.
    """
    stored_by_key = {o.key: o for o in stored if not o.is_guest_ticket}
    candidates: list[HealingCandidate] = []
    errors: list[str] = []

    for key in sorted(intent.confirmed):
        entry = intent.confirmed[key]
        if entry.dinner_event_id not in dinners:
            continue
        if entry.inhabitant_id not in inhabitant_ids:
            errors.append(f"History entry {entry.id}: inhabitant {entry.inhabitant_id} not found")
            continue
        if entry.dinner_mode is None:
            errors.append(f"History entry {entry.id}: order snapshot has no dinner mode")
            continue
        if entry.dinner_mode == DinnerMode.NONE:
            continue

        order = stored_by_key.get(key)
        if order is None:
            reason = HealingReason.DELETED
        elif order.state == OrderState.RELEASED:
            reason = HealingReason.RELEASED
        elif order.dinner_mode != entry.dinner_mode:
            reason = HealingReason.MODE_CHANGED
        else:
            continue

        candidates.append(
            HealingCandidate(
                inhabitant_id=entry.inhabitant_id,
                dinner_event_id=entry.dinner_event_id,
                intended_mode=entry.dinner_mode,
                reason=reason,
                confirmed_by=entry.action,
                order_id=order.id if order else None,
                current_mode=order.dinner_mode if order else None,
            )
        )
    return candidates, errors
