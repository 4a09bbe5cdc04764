"""
Healing: repair confirmed user bookings broken by a faulty reconciliation.

For every slot whose latest user action is USER_BOOKED/USER_CLAIMED on an
upcoming dinner, the intended dinner mode is read from the audit snapshot and
compared with the stored order. Slots that were deleted, released or given
another mode are re-applied through the reconciler in system mode, so the
repair shows up as SYSTEM_* rows next to the untouched USER_* row.

Dry run (the default) only reports. Healing is best effort: unreadable
history and unresolvable prices are collected as errors next to whatever
was repaired.
"""

from collections import defaultdict
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger, job_context
from app.core.metrics import record_healing_candidate, record_maintenance_run
from app.domain.deadlines import DeadlinePolicy
from app.domain.healing import HealingCandidate, find_broken_intents
from app.domain.orders import UserIntent, compute_user_intent
from app.domain.reconciler import ReconcileResult
from app.repositories import household_repository, order_repository, season_repository
from app.schemas.maintenance import HealingCandidateResponse, HealingResponse
from app.services import scaffold_service

logger = get_logger(__name__)


async def heal_user_bookings(
    db: AsyncSession,
    now: datetime,
    season_id: Optional[int] = None,
    household_id: Optional[int] = None,
    dry_run: bool = True,
) -> HealingResponse:
    if season_id is not None:
        season = await season_repository.get_season(db, season_id)
    else:
        season = await season_repository.get_active_season(db)
    if household_id is not None:
        await household_repository.get_household(db, household_id)

    policy = DeadlinePolicy.for_season(season)
    events = await season_repository.list_dinner_events(db, season.id)
    dinners = {d.id: d.date for d in scaffold_service.scaffoldable_dinners(events, policy, now)}

    inhabitants = await household_repository.list_inhabitants(db)
    household_of = {i.id: i.household_id for i in inhabitants}
    history = await order_repository.list_history(db, season.id, actions=scaffold_service.USER_ACTIONS)
    intent = compute_user_intent(order_repository.to_history_entry(h) for h in history)

    # Split intent per household; slots of unknown inhabitants are reported
    per_household: dict[int, UserIntent] = defaultdict(UserIntent)
    errors: list[str] = []
    for key, entry in intent.confirmed.items():
        owner = household_of.get(entry.inhabitant_id)
        if owner is None:
            if household_id is None and entry.dinner_event_id in dinners:
                errors.append(f"History entry {entry.id}: inhabitant {entry.inhabitant_id} not found")
            continue
        if household_id is None or owner == household_id:
            per_household[owner].confirmed[key] = entry

    candidates: list[HealingCandidate] = []
    healed = ReconcileResult()
    for owner in sorted(per_household):
        stored = [
            order_repository.to_stored_order(o)
            for o in await order_repository.list_household_orders(db, owner, list(dinners))
        ]
        members = [i for i, h in household_of.items() if h == owner]
        found, problems = find_broken_intents(per_household[owner], stored, dinners, members)
        candidates.extend(found)
        errors.extend(problems)
        for candidate in found:
            record_healing_candidate(candidate.reason.value)

        if found and not dry_run:
            with job_context("heal_user_bookings", household_id=owner):
                result = await scaffold_service.reconcile_household(
                    db, season, owner, now, desired=[c.desired_order() for c in found]
                )
            healed.merge(result)
            errors.extend(result.errors)

    record_maintenance_run("heal", success=not errors)
    logger.info(
        "user_bookings_healed" if not dry_run else "user_bookings_heal_dry_run",
        season_id=season.id,
        household_id=household_id,
        households=len(per_household),
        candidates=len(candidates),
        errors=len(errors),
    )

    return HealingResponse(
        season_id=season.id,
        dry_run=dry_run,
        households_checked=len(per_household),
        candidates=[HealingCandidateResponse.model_validate(c) for c in candidates],
        healed=None if dry_run else scaffold_service.to_scaffold_result(
            healed, season.id, household_id, households=len(per_household)
        ),
        errors=errors,
    )
