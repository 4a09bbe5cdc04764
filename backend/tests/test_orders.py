"""
Tests for preferences and explicit bookings, including how user actions
survive later system runs.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.api.deps import get_now
from app.main import app
from app.models.dinner_event import DinnerEvent
from app.models.order import OrderHistory


async def dinner_id(db_session, season, day: str) -> int:
    result = await db_session.execute(
        select(DinnerEvent.id).where(DinnerEvent.season_id == season.id, DinnerEvent.date == datetime.fromisoformat(day).date())
    )
    return result.scalar_one()


def orders_for(orders: list[dict], inhabitant_id: int, event_id: int) -> list[dict]:
    return [o for o in orders if o["inhabitant_id"] == inhabitant_id and o["dinner_event_id"] == event_id]


@pytest.mark.asyncio
async def test_create_household(client: AsyncClient):
    response = await client.post(
        "/api/v1/households/",
        json={
            "name": "Number 7",
            "address": "Skråningen 7",
            "inhabitants": [
                {"name": "Eva", "last_name": "Holm", "dinner_preferences": {"monday": "TAKEAWAY"}},
                {"name": "Finn", "last_name": "Holm", "birth_date": "2019-05-05"},
            ],
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert [i["name"] for i in data["inhabitants"]] == ["Eva", "Finn"]
    assert data["inhabitants"][0]["dinner_preferences"] == {"monday": "TAKEAWAY"}


@pytest.mark.asyncio
async def test_invalid_preference_rejected(client: AsyncClient, household):
    anna = household.inhabitants[0]
    response = await client.put(
        f"/api/v1/inhabitants/{anna.id}/preferences",
        json={"dinner_preferences": {"monday": "BRUNCH"}},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_preference_off_deletes_upcoming_orders(client: AsyncClient, active_season, household):
    anna = household.inhabitants[0]
    response = await client.put(
        f"/api/v1/inhabitants/{anna.id}/preferences",
        json={"dinner_preferences": {"monday": "DINEIN", "wednesday": "NONE", "friday": "DINEIN"}},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["inhabitant"]["dinner_preferences"]["wednesday"] == "NONE"
    # Seven Wednesdays, all still before their cancellation deadline
    assert data["scaffold"]["deleted"] == 7
    assert data["scaffold"]["created"] == 0


@pytest.mark.asyncio
async def test_preferences_without_active_season(client: AsyncClient, household):
    anna = household.inhabitants[0]
    response = await client.put(
        f"/api/v1/inhabitants/{anna.id}/preferences",
        json={"dinner_preferences": {"monday": "TAKEAWAY"}},
    )
    assert response.status_code == 200
    assert response.json()["scaffold"] is None


@pytest.mark.asyncio
async def test_user_mode_change_survives_rescaffold(client: AsyncClient, db_session, active_season, household):
    anna = household.inhabitants[0]
    event_id = await dinner_id(db_session, active_season, "2025-01-15")

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": anna.id, "dinner_event_id": event_id, "dinner_mode": "TAKEAWAY"}]},
        headers={"X-User-Id": "42"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["result"]["mode_updated"] == 1
    [order] = orders_for(data["orders"], anna.id, event_id)
    assert order["dinner_mode"] == "TAKEAWAY"
    assert order["version"] == 2

    rescaffold = await client.post(f"/api/v1/seasons/{active_season.id}/scaffold-prebookings")
    assert rescaffold.json()["mode_updated"] == 0

    orders = (await client.get(f"/api/v1/households/{household.id}/orders")).json()
    assert orders_for(orders, anna.id, event_id)[0]["dinner_mode"] == "TAKEAWAY"

    history = (await db_session.execute(
        select(OrderHistory).where(OrderHistory.action == "USER_BOOKED")
    )).scalars().all()
    assert len(history) == 1
    assert history[0].performed_by_user_id == 42
    assert history[0].audit_data["schema"] == "order_snapshot.v2"
    assert history[0].audit_data["orderSnapshot"]["dinnerMode"] == "TAKEAWAY"


@pytest.mark.asyncio
async def test_user_cancellation_is_not_recreated(client: AsyncClient, db_session, active_season, household):
    bo = household.inhabitants[1]
    event_id = await dinner_id(db_session, active_season, "2025-01-15")

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": bo.id, "dinner_event_id": event_id, "dinner_mode": "NONE"}]},
    )
    assert response.json()["result"]["deleted"] == 1

    rescaffold = await client.post(f"/api/v1/seasons/{active_season.id}/scaffold-prebookings")
    assert rescaffold.json()["created"] == 0

    orders = (await client.get(f"/api/v1/households/{household.id}/orders")).json()
    assert orders_for(orders, bo.id, event_id) == []


@pytest.mark.asyncio
async def test_cancel_after_deadline_releases_then_claims(client: AsyncClient, db_session, active_season, household):
    later = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)
    app.dependency_overrides[get_now] = lambda: later
    anna = household.inhabitants[0]
    event_id = await dinner_id(db_session, active_season, "2025-01-15")
    url = f"/api/v1/households/{household.id}/orders"

    response = await client.post(url, json={"orders": [
        {"inhabitant_id": anna.id, "dinner_event_id": event_id, "dinner_mode": "NONE"},
    ]})
    data = response.json()
    assert data["result"]["released"] == 1
    assert data["result"]["deleted"] == 0
    assert orders_for(data["orders"], anna.id, event_id)[0]["state"] == "RELEASED"

    response = await client.post(url, json={"orders": [
        {"inhabitant_id": anna.id, "dinner_event_id": event_id, "dinner_mode": "DINEIN"},
    ]})
    data = response.json()
    assert data["result"]["claimed"] == 1
    [order] = orders_for(data["orders"], anna.id, event_id)
    assert order["state"] == "BOOKED"
    assert order["released_at"] is None


@pytest.mark.asyncio
async def test_guest_ticket_is_extra_order(client: AsyncClient, db_session, active_season, household):
    anna = household.inhabitants[0]
    event_id = await dinner_id(db_session, active_season, "2025-01-17")

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": anna.id, "dinner_event_id": event_id, "is_guest_ticket": True}]},
        headers={"X-User-Id": "7"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["result"]["created"] == 1
    orders = orders_for(data["orders"], anna.id, event_id)
    assert len(orders) == 2
    guest = next(o for o in orders if o["is_guest_ticket"])
    assert guest["price_at_booking"] == 4000
    assert guest["booked_by_user_id"] == 7


@pytest.mark.asyncio
async def test_explicit_ticket_type(client: AsyncClient, db_session, active_season, household):
    anna = household.inhabitants[0]
    event_id = await dinner_id(db_session, active_season, "2025-01-17")

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": anna.id, "dinner_event_id": event_id, "ticket_type": "CHILD"}]},
    )
    data = response.json()
    assert data["result"]["price_updated"] == 1
    assert orders_for(data["orders"], anna.id, event_id)[0]["price_at_booking"] == 1700


@pytest.mark.asyncio
async def test_unpriceable_ticket_type_skips_only_that_item(client: AsyncClient, db_session, active_season, household):
    anna, bo = household.inhabitants[0], household.inhabitants[1]
    event_id = await dinner_id(db_session, active_season, "2025-01-17")
    for price in [p for p in active_season.ticket_prices if p.ticket_type == "BABY"]:
        active_season.ticket_prices.remove(price)
    await db_session.commit()

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [
            {"inhabitant_id": anna.id, "dinner_event_id": event_id, "dinner_mode": "TAKEAWAY"},
            {"inhabitant_id": bo.id, "dinner_event_id": event_id, "ticket_type": "BABY"},
        ]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["result"]["mode_updated"] == 1
    assert data["result"]["errored"] == 1
    assert "No BABY ticket price" in data["result"]["errors"][0]
    assert orders_for(data["orders"], anna.id, event_id)[0]["dinner_mode"] == "TAKEAWAY"
    [bo_order] = orders_for(data["orders"], bo.id, event_id)
    assert bo_order["price_at_booking"] == 4000


@pytest.mark.asyncio
async def test_child_and_baby_prices(client: AsyncClient, active_season, household):
    clara, dino = household.inhabitants[2], household.inhabitants[3]
    orders = (await client.get(f"/api/v1/households/{household.id}/orders")).json()
    assert {o["price_at_booking"] for o in orders if o["inhabitant_id"] == clara.id} == {1700}
    assert {o["price_at_booking"] for o in orders if o["inhabitant_id"] == dino.id} == {0}


@pytest.mark.asyncio
async def test_booking_for_other_household_rejected(client: AsyncClient, db_session, active_season, household):
    other = await client.post(
        "/api/v1/households/",
        json={"name": "Other", "address": "Skråningen 9", "inhabitants": [{"name": "Gus", "last_name": "Lund"}]},
    )
    gus_id = other.json()["inhabitants"][0]["id"]
    event_id = await dinner_id(db_session, active_season, "2025-01-17")

    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": gus_id, "dinner_event_id": event_id}]},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "INHABITANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_dinner_rejected(client: AsyncClient, active_season, household):
    anna = household.inhabitants[0]
    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": anna.id, "dinner_event_id": 9999}]},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "DINNER_EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_booking_without_active_season(client: AsyncClient, household):
    anna = household.inhabitants[0]
    response = await client.post(
        f"/api/v1/households/{household.id}/orders",
        json={"orders": [{"inhabitant_id": anna.id, "dinner_event_id": 1}]},
    )
    assert response.status_code == 404
    assert response.json()["code"] == "NO_ACTIVE_SEASON"
