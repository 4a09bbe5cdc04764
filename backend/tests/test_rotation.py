"""
Tests for team affinity assignment, roster ordering and event assignment.
"""

from datetime import date

from app.domain.rotation import (
    EventSlot,
    TeamSlot,
    compute_affinities_for_teams,
    compute_team_assignments_for_events,
    create_team_roster,
)
from app.domain.schedule import DateRange
from app.domain.weekdays import WeekdayMap

MON_WED_FRI = WeekdayMap.from_selection(["monday", "wednesday", "friday"])
MONDAY = date(2025, 1, 13)


def days(*names: str) -> WeekdayMap:
    return WeekdayMap.from_selection(names)


def teams_without_affinity(count: int) -> list[TeamSlot]:
    return [TeamSlot(id=i, name=f"Team {i}") for i in range(1, count + 1)]


def test_one_day_per_team_follows_cooking_days():
    result = compute_affinities_for_teams(teams_without_affinity(3), MON_WED_FRI, 1, MONDAY)
    assert [t.affinity.selected() for t in result] == [["monday"], ["wednesday"], ["friday"]]


def test_blocks_wrap_around_the_week():
    result = compute_affinities_for_teams(teams_without_affinity(2), MON_WED_FRI, 2, MONDAY)
    assert result[0].affinity.selected() == ["monday", "wednesday"]
    assert result[1].affinity.selected() == ["monday", "friday"]


def test_rotation_starts_at_first_cooking_weekday():
    result = compute_affinities_for_teams(teams_without_affinity(3), MON_WED_FRI, 1, date(2025, 1, 15))
    assert [t.affinity.selected() for t in result] == [["wednesday"], ["friday"], ["monday"]]


def test_existing_affinities_are_kept():
    teams = [TeamSlot(id=1, name="Team 1", affinity=days("friday"))] + teams_without_affinity(3)[1:]
    result = compute_affinities_for_teams(teams, MON_WED_FRI, 1, MONDAY)
    assert result[0].affinity == days("friday")
    assert result[1].affinity.selected() == ["monday"]
    assert result[2].affinity.selected() == ["wednesday"]


def test_roster_zig_zags_over_weekday_buckets():
    teams = [
        TeamSlot(id=1, name="A", affinity=days("monday")),
        TeamSlot(id=2, name="B", affinity=days("monday")),
        TeamSlot(id=3, name="C", affinity=days("wednesday")),
    ]
    assert [t.name for t in create_team_roster("monday", teams)] == ["A", "C", "B"]
    assert [t.name for t in create_team_roster("wednesday", teams)] == ["C", "A", "B"]


def test_roster_skips_teams_without_affinity():
    teams = [TeamSlot(id=1, name="A", affinity=days("monday")), TeamSlot(id=2, name="B")]
    assert [t.name for t in create_team_roster("monday", teams)] == ["A"]


def one_day_teams() -> list[TeamSlot]:
    return compute_affinities_for_teams(teams_without_affinity(3), MON_WED_FRI, 1, MONDAY)


def test_events_follow_roster_round_robin():
    events = [
        EventSlot(id=1, date=date(2025, 1, 13)),
        EventSlot(id=2, date=date(2025, 1, 15)),
        EventSlot(id=3, date=date(2025, 1, 17)),
        EventSlot(id=4, date=date(2025, 1, 20)),
    ]
    assert compute_team_assignments_for_events(one_day_teams(), MON_WED_FRI, 1, events) == {1: 1, 2: 2, 3: 3, 4: 1}


def test_consecutive_days_keep_the_same_team():
    teams = compute_affinities_for_teams(teams_without_affinity(2), MON_WED_FRI, 2, MONDAY)
    events = [EventSlot(id=i, date=d) for i, d in enumerate(
        [date(2025, 1, 13), date(2025, 1, 15), date(2025, 1, 17), date(2025, 1, 20)], start=1
    )]
    assignments = compute_team_assignments_for_events(teams, MON_WED_FRI, 2, events)
    assert assignments[1] == assignments[2]
    assert assignments[3] == assignments[4]
    assert assignments[1] != assignments[3]


def test_assigned_events_are_left_alone():
    events = [EventSlot(id=1, date=date(2025, 1, 13), cooking_team_id=3), EventSlot(id=2, date=date(2025, 1, 15))]
    assignments = compute_team_assignments_for_events(one_day_teams(), MON_WED_FRI, 1, events)
    assert 1 not in assignments
    assert 2 in assignments


def test_holiday_week_off_does_not_advance_rotation():
    holidays = [DateRange(date(2025, 1, 20), date(2025, 1, 24))]
    events = [
        EventSlot(id=1, date=date(2025, 1, 13)),
        EventSlot(id=2, date=date(2025, 1, 15)),
        EventSlot(id=3, date=date(2025, 1, 17)),
        EventSlot(id=4, date=date(2025, 1, 27)),
    ]
    assignments = compute_team_assignments_for_events(one_day_teams(), MON_WED_FRI, 1, events, holidays)
    assert assignments[4] == 1


def test_ghost_duty_advances_rotation():
    holidays = [DateRange(date(2025, 1, 20), date(2025, 1, 27))]
    events = [
        EventSlot(id=1, date=date(2025, 1, 13)),
        EventSlot(id=2, date=date(2025, 1, 15)),
        EventSlot(id=3, date=date(2025, 1, 17)),
        EventSlot(id=4, date=date(2025, 1, 29)),
    ]
    assignments = compute_team_assignments_for_events(one_day_teams(), MON_WED_FRI, 1, events, holidays)
    # 2025-01-27 is ghost duty for team 1, so team 2 cooks on the 29th
    assert assignments[4] == 2


def test_ghost_duty_before_first_event_counts():
    holidays = [DateRange(date(2025, 1, 6), date(2025, 1, 13))]
    events = [EventSlot(id=1, date=date(2025, 1, 15))]
    assignments = compute_team_assignments_for_events(one_day_teams(), MON_WED_FRI, 1, events, holidays)
    # Roster from Wednesday is [2, 3, 1]; the 13th is ghost duty for team 2
    assert assignments == {1: 3}


def test_no_teams_no_assignments():
    events = [EventSlot(id=1, date=MONDAY)]
    assert compute_team_assignments_for_events([], MON_WED_FRI, 1, events) == {}
