import random
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sleeved.db.database import get_session, get_session_factory
from sleeved.main import app
from sleeved.models.card import CardDefinition
from sleeved.models.db import Base
from sleeved.models.rules import GameRules

# The animal hand holds every active animal and the equipment hand every
# equipment card, so each round's choices are available regardless of shuffles.
CATALOG: list[dict[str, Any]] = [
    {
        "id": "s1",
        "type": "sleeve",
        "name": "Plain Sleeve",
        "background_stats": {"damage": 1, "health": 1},
        "foreground_stats": {},
    },
    {
        "id": "wolf",
        "type": "animal",
        "name": "Wolf",
        "stats": {"damage": 6, "health": 5, "initiative": 2},
    },
    {
        "id": "mouse",
        "type": "animal",
        "name": "Mouse",
        "stats": {"damage": 1, "health": 2, "initiative": 0},
    },
    {
        "id": "bear",
        "type": "animal",
        "name": "Bear",
        "stats": {"damage": 3, "health": 9, "initiative": 1},
    },
    {
        "id": "claws",
        "type": "equipment",
        "name": "Claws",
        "stats": {"modifier": {"type": "damage", "amount": 1}},
    },
    {
        "id": "shell",
        "type": "equipment",
        "name": "Shell",
        "stats": {
            "modifier": {"type": "health", "amount": 2},
            "special_effect": {
                "trigger": "if_survives",
                "effect": {"type": "add_persistent_modifier", "stat": "health", "amount": 1},
            },
        },
    },
    {
        "id": "retired",
        "type": "animal",
        "name": "Retired",
        "active": False,
        "stats": {"damage": 99, "health": 99},
    },
]


@pytest.fixture
def catalog_payload() -> list[dict[str, Any]]:
    """Card catalog as request JSON."""
    return [dict(card) for card in CATALOG]


@pytest.fixture
def catalog() -> list[CardDefinition]:
    return [CardDefinition.from_dict(card) for card in CATALOG]


@pytest.fixture
def rules() -> GameRules:
    return GameRules(starting_animal_hand=3, starting_equipment_hand=2, max_rounds=3)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
async def async_engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncSession:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Provide an async test client with overridden database access."""

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
