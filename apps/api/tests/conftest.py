"""Pytest configuration and fixtures for API tests."""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from uuid import UUID

import pytest
import pytest_asyncio
from earthlord_api.config import Settings
from earthlord_api.database import Base, get_db
from earthlord_api.dependencies import get_settings
from earthlord_api.main import app
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.schemas import BuildingTemplate, Territory
from earthlord_api.services.templates import TemplateCatalog, get_template_catalog
from earthlord_shared import GeoPoint
from earthlord_shared.territory import build_territory_geometry
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

# Test user IDs (must match the ones used in test files)
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
OTHER_USER_ID = UUID("00000000-0000-0000-0000-000000000002")

# Use SQLite for local tests, PostgreSQL in CI (when TEST_DATABASE_URL is set)
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)

is_sqlite = TEST_DATABASE_URL.startswith("sqlite")

# A roughly 95 m x 100 m block in Shanghai, inside the GCJ-02 region
SQUARE_BOUNDARY = [
    GeoPoint(latitude=31.2300, longitude=121.4700),
    GeoPoint(latitude=31.2300, longitude=121.4710),
    GeoPoint(latitude=31.2309, longitude=121.4710),
    GeoPoint(latitude=31.2309, longitude=121.4700),
]
INSIDE_POINT = GeoPoint(latitude=31.23045, longitude=121.4705)
OUTSIDE_POINT = GeoPoint(latitude=31.2400, longitude=121.4800)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

TEST_TEMPLATES = [
    BuildingTemplate(
        template_id="campfire",
        name="Campfire",
        tier=1,
        category="survival",
        required_resources={"wood": 30},
        build_time_seconds=60,
        max_per_territory=1,
        max_level=3,
    ),
    BuildingTemplate(
        template_id="lean_to",
        name="Lean-to",
        tier=1,
        category="survival",
        required_resources={"wood": 10},
        build_time_seconds=0,
        max_per_territory=3,
        max_level=2,
        upgrade_resources={2: {"wood": 5}},
    ),
    BuildingTemplate(
        template_id="storage_crate",
        name="Storage Crate",
        tier=2,
        category="storage",
        required_resources={"wood": 40},
        build_time_seconds=120,
        max_per_territory=2,
        max_level=3,
    ),
]


@pytest_asyncio.fixture
async def engine():
    """A fresh database per test.

    SQLite in-memory requires StaticPool so every session shares the one
    connection that holds the schema.
    """
    if is_sqlite:
        test_engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        # PostgreSQL settings - use NullPool to avoid event loop issues
        test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests that need direct DB access."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog() -> TemplateCatalog:
    return TemplateCatalog(TEST_TEMPLATES, version="test")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(demolish_refund_ratio=0.5)


@pytest_asyncio.fixture
async def client(session_factory, catalog, test_settings):
    """Async test client for FastAPI app."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_template_catalog] = lambda: catalog
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_territory(
    db: AsyncSession, owner_id: UUID = TEST_USER_ID, boundary: list[GeoPoint] | None = None
) -> Territory:
    """Insert a committed territory without walking a tracking session."""
    geometry = build_territory_geometry(boundary or SQUARE_BOUNDARY)
    territory = await territory_repo.add_territory(
        db, owner_id=owner_id, geometry=geometry, started_at=T0, completed_at=T0
    )
    await db.commit()
    return territory


@pytest_asyncio.fixture
async def territory(db_session) -> Territory:
    return await create_territory(db_session)


@pytest_asyncio.fixture
async def other_territory(db_session) -> Territory:
    return await create_territory(db_session, owner_id=OTHER_USER_ID)
