"""
Tests for the dinner deadline policy.

Dinners start 18:00 Europe/Copenhagen: 17:00 UTC in winter, 16:00 UTC in summer.
"""

from datetime import date, datetime, timezone

from app.domain.deadlines import DeadlinePolicy, is_before_deadline

POLICY = DeadlinePolicy(ticket_is_cancellable_days_before=8, dining_mode_is_editable_minutes_before=90)
DINNER = date(2025, 1, 20)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_orders_modifiable_until_lead_days_before_start():
    assert POLICY.can_modify_orders(DINNER, utc(2025, 1, 12, 16, 59))
    assert not POLICY.can_modify_orders(DINNER, utc(2025, 1, 12, 17, 0))


def test_dining_mode_editable_until_lead_minutes_before_start():
    assert POLICY.can_edit_dining_mode(DINNER, utc(2025, 1, 20, 15, 29))
    assert not POLICY.can_edit_dining_mode(DINNER, utc(2025, 1, 20, 15, 30))


def test_summer_time_moves_the_start_instant():
    summer = date(2025, 7, 7)
    assert is_before_deadline(summer, utc(2025, 7, 7, 15, 59))
    assert not is_before_deadline(summer, utc(2025, 7, 7, 16, 0))


def test_naive_now_is_read_as_utc():
    assert POLICY.can_modify_orders(DINNER, datetime(2025, 1, 12, 16, 59))
    assert not POLICY.can_modify_orders(DINNER, datetime(2025, 1, 12, 17, 0))


def test_dinner_is_past_after_its_duration():
    assert not POLICY.is_dinner_past(DINNER, utc(2025, 1, 20, 17, 59))
    assert POLICY.is_dinner_past(DINNER, utc(2025, 1, 20, 18, 0))


def test_scaffold_window():
    now = utc(2025, 1, 6, 9, 0)
    assert POLICY.is_scaffoldable(date(2025, 1, 6), now)
    assert POLICY.is_scaffoldable(date(2025, 3, 6), now)
    assert not POLICY.is_scaffoldable(date(2025, 3, 8), now)
    assert not POLICY.is_scaffoldable(date(2025, 1, 5), now)


def test_menu_announcement_due_inside_lead():
    assert not POLICY.is_menu_announcement_due(DINNER, utc(2025, 1, 10, 16, 0))
    assert POLICY.is_menu_announcement_due(DINNER, utc(2025, 1, 10, 17, 0))
