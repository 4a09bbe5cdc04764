"""
Cooking-team rotation.

AFFINITY ASSIGNMENT
===================
The season's cooking weekdays (Monday first) form a circular list of M slots.
Teams without an affinity, taken in id order, get consecutive blocks of R
(`consecutive_cooking_days`) slots, the first block starting at the weekday of
the season's first cooking date:

    team i -> slots (offset + i*R + k) mod M   for k in 0..R-1

Teams that already carry an affinity are left exactly as they are.

ROSTER
======
Teams are bucketed by the first weekday of their affinity. Buckets are ordered
by circular distance from a start weekday, teams inside a bucket by name, and
the roster is the zig-zag flattening: round k emits the k-th team of every
bucket that still has one. Teams with the same affinity therefore never sit
next to each other while another bucket still has a team in that round.

EVENT ASSIGNMENT
================
Unassigned events take their team from the roster in blocks of R cooking
days. A counter walks every would-be cooking date from the first event to the
last. Holiday cooking days forming whole cooking weeks are a week off and do
not move the counter; left-over holiday cooking days are ghost duty and do.
"""

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Sequence

from app.domain.schedule import DateRange, cooking_days_in, is_holiday_ghost_duty
from app.domain.weekdays import WeekdayMap, weekday_index, weekday_of


@dataclass(frozen=True)
class TeamSlot:
    id: int
    name: str
    affinity: Optional[WeekdayMap] = None


@dataclass(frozen=True)
class EventSlot:
    id: int
    date: date
    cooking_team_id: Optional[int] = None


def compute_affinities_for_teams(
    teams: Sequence[TeamSlot],
    cooking_days: WeekdayMap,
    consecutive_cooking_days: int,
    first_day: date,
) -> list[TeamSlot]:
    rotation = cooking_days.selected()
    if not rotation or consecutive_cooking_days < 1:
        return list(teams)

    start_day = weekday_of(first_day)
    if start_day not in rotation:
        return list(teams)
    offset = rotation.index(start_day)

    pending = sorted((t for t in teams if t.affinity is None), key=lambda t: t.id)
    if not pending:
        return list(teams)

    computed: dict[int, WeekdayMap] = {}
    for i, team in enumerate(pending):
        block_start = offset + i * consecutive_cooking_days
        days = [rotation[(block_start + k) % len(rotation)] for k in range(consecutive_cooking_days)]
        computed[team.id] = WeekdayMap.from_selection(days)

    return [replace(t, affinity=computed[t.id]) if t.id in computed else t for t in teams]


def _distance(weekday: str, start_day: str) -> int:
    return (weekday_index(weekday) - weekday_index(start_day) + 7) % 7


def create_team_roster(start_day: str, teams: Sequence[TeamSlot]) -> list[TeamSlot]:
    buckets: dict[str, list[TeamSlot]] = {}
    for team in teams:
        first = team.affinity.first_selected() if team.affinity is not None else None
        if first is None:
            continue
        buckets.setdefault(first, []).append(team)

    ordered = [
        sorted(buckets[day], key=lambda t: t.name)
        for day in sorted(buckets, key=lambda d: _distance(d, start_day))
    ]
    rounds = max((len(bucket) for bucket in ordered), default=0)
    return [bucket[k] for k in range(rounds) for bucket in ordered if k < len(bucket)]


def compute_team_assignments_for_events(
    teams: Sequence[TeamSlot],
    cooking_days: WeekdayMap,
    consecutive_cooking_days: int,
    events: Sequence[EventSlot],
    holidays: Sequence[DateRange] = (),
) -> dict[int, int]:
    """Map of event id -> team id for every event that had no team."""
    if not teams or not events or consecutive_cooking_days < 1:
        return {}

    pending = sorted((e for e in events if e.cooking_team_id is None), key=lambda e: e.date)
    if not pending:
        return {}

    with_affinity = [t for t in teams if t.affinity is not None]
    if not with_affinity:
        return {}

    first_event_date = pending[0].date
    roster = create_team_roster(weekday_of(first_event_date), with_affinity)
    if not roster:
        return {}

    # Ghost duties in holidays before the first event still count
    earlier_ghosts = sorted(
        day
        for holiday in holidays
        if holiday.start < first_event_date
        for day in cooking_days_in(holiday, cooking_days)
        if day < first_event_date and is_holiday_ghost_duty(day, holidays, cooking_days)
    )
    start = earlier_ghosts[0] if earlier_ghosts else first_event_date

    by_date = {e.date: e for e in pending}
    assignments: dict[int, int] = {}
    counter = 0
    for day in cooking_days_in(DateRange(start, pending[-1].date), cooking_days):
        week_off = any(day in h for h in holidays) and not is_holiday_ghost_duty(day, holidays, cooking_days)
        if week_off:
            continue
        team = roster[(counter // consecutive_cooking_days) % len(roster)]
        counter += 1
        event = by_date.get(day)
        if event is not None:
            assignments[event.id] = team.id
    return assignments
