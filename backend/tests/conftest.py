"""
Pytest fixtures for test database, client, and seeded community data.

Runs against in-memory SQLite (aiosqlite) on a single shared connection;
tables are created and dropped per test for isolation. The request clock is
pinned through the `get_now` dependency so deadline buckets are stable.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")

from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.deps import get_now
from app.db.base import Base
from app.db.session import get_db
from app.models.household import Household, Inhabitant
from app.schemas.season import CookingTeamCreate, SeasonCreate
from app.services import season_service

TEST_DATABASE_URL = "sqlite+aiosqlite://"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

# Monday 2025-01-06 09:00 UTC; the season below starts the week after
NOW = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, now: datetime) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client sharing the test session, with the request clock pinned to `now`."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: now

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def household(db_session: AsyncSession) -> Household:
    """Two adults, one child (7) and one baby (1); no preferences set."""
    household = Household(
        name="Skråningen 31",
        address="Skråningen 31",
        inhabitants=[
            Inhabitant(name="Anna", last_name="Berg", birth_date=date(1985, 3, 1)),
            Inhabitant(name="Bo", last_name="Berg", birth_date=None),
            Inhabitant(name="Clara", last_name="Berg", birth_date=date(2017, 6, 1)),
            Inhabitant(name="Dino", last_name="Berg", birth_date=date(2024, 2, 1)),
        ],
    )
    db_session.add(household)
    await db_session.commit()
    await db_session.refresh(household)
    return household


@pytest_asyncio.fixture
async def season(db_session: AsyncSession):
    """Mon/Wed/Fri season, two consecutive days per team, three teams."""
    data = SeasonCreate(
        short_name="Spring 2025",
        season_start=date(2025, 1, 13),
        season_end=date(2025, 2, 28),
        cooking_days={"monday": True, "wednesday": True, "friday": True},
        consecutive_cooking_days=2,
        teams=[CookingTeamCreate(name=f"Team {n}") for n in (1, 2, 3)],
    )
    season, _, _, _ = await season_service.create_season(db_session, data)
    await db_session.commit()
    return season


@pytest_asyncio.fixture
async def active_season(db_session: AsyncSession, season, household, now):
    """The season activated; the household is scaffolded with DINEIN everywhere."""
    season, _ = await season_service.activate_season(db_session, season.id, now)
    await db_session.commit()
    return season
