"""
Tests for user-intent extraction and broken-booking detection.
"""

from datetime import date, datetime

from app.domain.healing import HealingReason, find_broken_intents
from app.domain.orders import DinnerMode, HistoryEntry, OrderAction, OrderState, StoredOrder, compute_user_intent

DINNERS = {20: date(2025, 1, 20), 22: date(2025, 1, 22)}


def entry(entry_id, action, mode=DinnerMode.DINEIN, dinner_event_id=20, inhabitant_id=1, minute=0, guest=False):
    return HistoryEntry(
        id=entry_id,
        inhabitant_id=inhabitant_id,
        dinner_event_id=dinner_event_id,
        action=action,
        timestamp=datetime(2025, 1, 1, 12, minute),
        dinner_mode=mode,
        is_guest_ticket=guest,
    )


def order(mode=DinnerMode.DINEIN, state=OrderState.BOOKED, dinner_event_id=20):
    return StoredOrder(id=7, inhabitant_id=1, dinner_event_id=dinner_event_id, dinner_mode=mode,
                       state=state, ticket_price_id=4, price_at_booking=4000)


def test_latest_user_action_wins():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, minute=0),
        entry(2, OrderAction.USER_CANCELLED, minute=5),
        entry(3, OrderAction.USER_BOOKED, DinnerMode.TAKEAWAY, dinner_event_id=22, minute=1),
    ])
    assert (1, 20) in intent.cancelled
    assert intent.confirmed_mode((1, 22)) == DinnerMode.TAKEAWAY


def test_system_rows_do_not_change_intent():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, DinnerMode.TAKEAWAY, minute=0),
        entry(2, OrderAction.SYSTEM_UPDATED, DinnerMode.DINEIN, minute=5),
        entry(3, OrderAction.SYSTEM_DELETED, minute=6),
    ])
    assert intent.confirmed_mode((1, 20)) == DinnerMode.TAKEAWAY
    assert not intent.cancelled


def test_guest_ticket_rows_do_not_change_own_intent():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, DinnerMode.TAKEAWAY, guest=True, minute=0),
        entry(2, OrderAction.USER_CANCELLED, dinner_event_id=22, guest=True, minute=1),
    ])
    assert not intent.confirmed
    assert not intent.cancelled

    candidates, errors = find_broken_intents(intent, [order(DinnerMode.DINEIN)], DINNERS, [1])
    assert candidates == []
    assert errors == []


def test_guest_ticket_after_own_booking_keeps_own_intent():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, DinnerMode.DINEINLATE, minute=0),
        entry(2, OrderAction.USER_CANCELLED, guest=True, minute=5),
    ])
    assert intent.confirmed_mode((1, 20)) == DinnerMode.DINEINLATE
    assert not intent.cancelled


def test_same_timestamp_ordered_by_id():
    intent = compute_user_intent([
        entry(2, OrderAction.USER_CANCELLED),
        entry(1, OrderAction.USER_BOOKED),
    ])
    assert (1, 20) in intent.cancelled


def test_broken_intents_by_reason():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, DinnerMode.TAKEAWAY),
        entry(2, OrderAction.USER_CLAIMED, dinner_event_id=22),
    ])
    candidates, errors = find_broken_intents(
        intent, [order(mode=DinnerMode.DINEIN), order(state=OrderState.RELEASED, dinner_event_id=22)], DINNERS, [1]
    )
    assert errors == []
    assert [(c.dinner_event_id, c.reason) for c in candidates] == [
        (20, HealingReason.MODE_CHANGED),
        (22, HealingReason.RELEASED),
    ]
    assert candidates[0].desired_order().dinner_mode == DinnerMode.TAKEAWAY
    assert candidates[0].desired_order().existing_order_id == 7


def test_deleted_booking_is_a_candidate():
    intent = compute_user_intent([entry(1, OrderAction.USER_BOOKED)])
    candidates, _ = find_broken_intents(intent, [], DINNERS, [1])
    assert candidates[0].reason == HealingReason.DELETED
    assert candidates[0].order_id is None


def test_intact_and_out_of_scope_bookings_are_ignored():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED),
        entry(2, OrderAction.USER_BOOKED, dinner_event_id=99),
    ])
    assert find_broken_intents(intent, [order()], DINNERS, [1]) == ([], [])


def test_unreadable_history_is_reported():
    intent = compute_user_intent([
        entry(1, OrderAction.USER_BOOKED, mode=None),
        entry(2, OrderAction.USER_BOOKED, dinner_event_id=22, inhabitant_id=5),
    ])
    candidates, errors = find_broken_intents(intent, [], DINNERS, [1])
    assert candidates == []
    assert len(errors) == 2
