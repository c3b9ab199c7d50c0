"""Shared test fixtures.

Database tests run against an in-memory SQLite database shared across
connections (StaticPool), with the schema built from the ORM models.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from focusflow.config import get_settings
from focusflow.database import get_session
from focusflow.db.base import Base
from focusflow.db.models import Streak
from focusflow.dependencies import get_redis_dep
from focusflow.main import create_app

@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> MagicMock:
    """In-memory stand-in for the redis.asyncio client (get/setex/delete/publish)."""
    store: dict[str, str] = {}
    redis = MagicMock()

    async def _get(key):
        return store.get(key)

    async def _setex(key, _ttl, value):
        store[key] = value

    async def _delete(*keys):
        for key in keys:
            store.pop(key, None)

    redis.get = AsyncMock(side_effect=_get)
    redis.setex = AsyncMock(side_effect=_setex)
    redis.delete = AsyncMock(side_effect=_delete)
    redis.publish = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    redis.store = store
    return redis


@pytest.fixture
def broken_redis() -> MagicMock:
    """A Redis client whose every call fails."""
    redis = MagicMock()
    for name in ("get", "setex", "delete", "publish", "ping"):
        setattr(redis, name, AsyncMock(side_effect=RedisError("connection refused")))
    return redis


@pytest.fixture
def redis_override() -> dict:
    """Holder for the Redis client the app should see; None means Redis disabled."""
    return {"client": None}


@pytest_asyncio.fixture
async def client(session_factory, redis_override) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client with the database and Redis dependencies overridden."""
    get_settings.cache_clear()
    app = create_app()

    async def _session_override() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _redis_override() -> AsyncGenerator[object, None]:
        yield redis_override["client"]

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_redis_dep] = _redis_override

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_streak(db_session: AsyncSession):
    """Factory for streak rows."""

    async def _make(user_id: str = "user-1", name: str = "Reading", **kwargs) -> Streak:
        kwargs.setdefault("category", "learning")
        streak = Streak(user_id=user_id, name=name, **kwargs)
        db_session.add(streak)
        await db_session.commit()
        return streak

    return _make
