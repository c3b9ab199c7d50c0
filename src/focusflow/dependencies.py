"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from focusflow.redis_client import get_redis as _get_redis


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client, or None when Redis is not configured."""
    try:
        client = _get_redis()
    except RuntimeError:
        client = None
    yield client
