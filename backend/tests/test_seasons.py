"""
Tests for season endpoints: setup chain, calendar, rotation and activation.
"""

import pytest
from httpx import AsyncClient

SEASON_PAYLOAD = {
    "short_name": "Spring 2025",
    "season_start": "2025-01-13",
    "season_end": "2025-02-28",
    "cooking_days": {"monday": True, "wednesday": True, "friday": True},
    "consecutive_cooking_days": 2,
    "teams": [{"name": "Team 1"}, {"name": "Team 2"}, {"name": "Team 3"}],
}


@pytest.mark.asyncio
async def test_create_season_runs_setup_chain(client: AsyncClient):
    """Creating a season generates one dinner per cooking day and staffs each one."""
    response = await client.post("/api/v1/seasons/", json=SEASON_PAYLOAD)
    assert response.status_code == 201
    data = response.json()
    assert data["schedule"]["created"] == 21
    assert data["affinities_assigned"] == 3
    assert data["teams_assigned"] == 21
    assert data["season"]["is_active"] is False
    assert data["season"]["cooking_days"]["tuesday"] is False
    assert len(data["season"]["ticket_prices"]) == 4


@pytest.mark.asyncio
async def test_season_requires_adult_price(client: AsyncClient):
    payload = dict(SEASON_PAYLOAD, ticket_prices=[{"ticket_type": "CHILD", "price": 1700, "maximum_age_limit": 12}])
    response = await client.post("/api/v1/seasons/", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_cooking_day_rejected(client: AsyncClient):
    payload = dict(SEASON_PAYLOAD, cooking_days={"caturday": True})
    response = await client.post("/api/v1/seasons/", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_dinner_calendar_rotates_teams(client: AsyncClient, season):
    response = await client.get(f"/api/v1/seasons/{season.id}/dinner-events")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 21
    assert data["cached"] is False
    events = data["events"]
    assert events[0]["date"] == "2025-01-13"
    assert all(e["cooking_team_id"] is not None for e in events)
    # Two consecutive cooking days per team
    assert events[0]["cooking_team_id"] == events[1]["cooking_team_id"]
    assert events[2]["cooking_team_id"] == events[3]["cooking_team_id"]
    assert events[1]["cooking_team_id"] != events[2]["cooking_team_id"]


@pytest.mark.asyncio
async def test_roster(client: AsyncClient, season):
    response = await client.get(f"/api/v1/seasons/{season.id}/roster")
    assert response.status_code == 200
    data = response.json()
    assert data["start_day"] == "monday"
    assert [t["name"] for t in data["roster"]] == ["Team 1", "Team 3", "Team 2"]


@pytest.mark.asyncio
async def test_setup_steps_are_idempotent(client: AsyncClient, season):
    for path, key in (
        ("generate-dinner-events", "created"),
        ("assign-team-affinities", "assigned"),
        ("assign-cooking-teams", "assigned"),
    ):
        response = await client.post(f"/api/v1/seasons/{season.id}/{path}")
        assert response.status_code == 200
        assert response.json()[key] == 0


@pytest.mark.asyncio
async def test_new_team_gets_affinity_and_keeps_others(client: AsyncClient, season):
    teams_before = (await client.get(f"/api/v1/seasons/{season.id}/teams")).json()
    response = await client.post(f"/api/v1/seasons/{season.id}/teams", json={"name": "Team 4"})
    assert response.status_code == 201
    assert response.json()["affinity"] is None

    response = await client.post(f"/api/v1/seasons/{season.id}/assign-team-affinities")
    assert response.json()["assigned"] == 1
    teams_after = (await client.get(f"/api/v1/seasons/{season.id}/teams")).json()
    assert [t["affinity"] for t in teams_after[:3]] == [t["affinity"] for t in teams_before]
    assert teams_after[3]["affinity"] is not None


@pytest.mark.asyncio
async def test_adding_holiday_prunes_unbooked_dinners(client: AsyncClient, season):
    response = await client.patch(
        f"/api/v1/seasons/{season.id}",
        json={"holidays": [{"start": "2025-01-20", "end": "2025-01-24"}]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["schedule"]["deleted"] == 3
    assert data["schedule"]["blocked"] == 0
    assert data["season"]["holidays"] == [{"start": "2025-01-20", "end": "2025-01-24"}]


@pytest.mark.asyncio
async def test_holiday_keeps_dinners_with_orders(client: AsyncClient, active_season):
    response = await client.patch(
        f"/api/v1/seasons/{active_season.id}",
        json={"holidays": [{"start": "2025-01-20", "end": "2025-01-24"}]},
    )
    assert response.status_code == 200
    assert response.json()["schedule"]["blocked"] == 3
    assert response.json()["schedule"]["deleted"] == 0


@pytest.mark.asyncio
async def test_null_fields_leave_season_unchanged(client: AsyncClient, season):
    response = await client.patch(
        f"/api/v1/seasons/{season.id}",
        json={"short_name": None, "holidays": None, "consecutive_cooking_days": 3},
    )
    assert response.status_code == 200
    data = response.json()["season"]
    assert data["short_name"] == "Spring 2025"
    assert data["holidays"] == []
    assert data["consecutive_cooking_days"] == 3


@pytest.mark.asyncio
async def test_reversed_dates_rejected_on_update(client: AsyncClient, season):
    response = await client.patch(f"/api/v1/seasons/{season.id}", json={"season_end": "2025-01-01"})
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_activation_scaffolds_households(client: AsyncClient, season, household):
    response = await client.post(f"/api/v1/seasons/{season.id}/activate")
    assert response.status_code == 200
    data = response.json()
    # 2025-01-13 is already past its cancellation deadline: no new orders there
    assert data["created"] == 80
    assert data["skipped"] == 4
    assert data["errored"] == 0

    active = await client.get("/api/v1/seasons/active")
    assert active.json()["id"] == season.id


@pytest.mark.asyncio
async def test_rescaffolding_changes_nothing(client: AsyncClient, active_season):
    response = await client.post(f"/api/v1/seasons/{active_season.id}/scaffold-prebookings")
    assert response.status_code == 200
    data = response.json()
    assert data["created"] == 0
    assert data["deleted"] == 0
    assert data["unchanged"] == 80


@pytest.mark.asyncio
async def test_delete_season(client: AsyncClient, season):
    response = await client.delete(f"/api/v1/seasons/{season.id}")
    assert response.status_code == 204
    response = await client.get(f"/api/v1/seasons/{season.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_season_is_404(client: AsyncClient):
    response = await client.get("/api/v1/seasons/999")
    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "SEASON_NOT_FOUND"
    assert body["retryable"] is False
