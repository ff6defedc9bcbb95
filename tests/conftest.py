"""Shared fixtures: a throwaway SQLite file per test and a cast of actors."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace.config import ModerationConfig, Settings
from marketplace.db import crud
from marketplace.models import Base
from marketplace.schemas import PropertyCreate
from marketplace.services.auth import AuthContext


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so side-effect sessions see the same database as the test session.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        moderation=ModerationConfig(report_flag_threshold=3),
    )


async def _actor(db, email, role) -> AuthContext:
    user = await crud.create_user(db, email, "not-a-real-hash", role=role)
    return AuthContext(user_id=user.id, role=user.role, email=user.email, display_name=user.display_name)


@pytest_asyncio.fixture
async def actors(db):
    """Two admins, two agents and a plain user."""
    return {
        "admin": await _actor(db, "admin@test.com", "admin"),
        "admin2": await _actor(db, "admin2@test.com", "admin"),
        "agent": await _actor(db, "agent@test.com", "agent"),
        "other_agent": await _actor(db, "other@test.com", "agent"),
        "user": await _actor(db, "buyer@test.com", "user"),
    }


@pytest.fixture
def listing():
    """Factory for a clean listing submission."""
    def _make(**overrides) -> PropertyCreate:
        data = {
            "title": "Luxury Condo",
            "description": "Bright two-bedroom unit with a view of the park.",
            "price": 450000.0,
            "city": "Austin",
            "state": "TX",
            "bedrooms": 2,
            "bathrooms": 2.0,
            "area": 1100.0,
            "property_type": "Condo",
        }
        data.update(overrides)
        return PropertyCreate(**data)
    return _make
