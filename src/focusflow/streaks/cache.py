"""Cache-aside for the streak grid.

The grid listing is cached in Redis per user and dropped on every write to
one of the user's streaks. Redis is optional: with no client, or when Redis
errors, reads fall through to the database.
"""

from __future__ import annotations

import json

import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()

STREAK_LIST_CACHE_KEY = "streaks:list:{user_id}"


async def get_cached_streaks(redis: object, user_id: str) -> list[dict] | None:
    """Cached grid payload for a user, or None on miss."""
    if redis is None:
        return None
    try:
        cached = await redis.get(STREAK_LIST_CACHE_KEY.format(user_id=user_id))  # type: ignore[union-attr]
    except RedisError:
        logger.warning("streak_cache_read_failed", user_id=user_id, exc_info=True)
        return None
    if not cached:
        return None
    return json.loads(cached)


async def set_cached_streaks(redis: object, user_id: str, payload: list[dict], ttl_seconds: int) -> None:
    if redis is None:
        return
    try:
        await redis.setex(  # type: ignore[union-attr]
            STREAK_LIST_CACHE_KEY.format(user_id=user_id),
            ttl_seconds,
            json.dumps(payload, default=str),
        )
    except RedisError:
        logger.warning("streak_cache_write_failed", user_id=user_id, exc_info=True)


async def invalidate_streaks(redis: object, user_id: str) -> None:
    """Drop the cached grid after any streak write."""
    if redis is None:
        return
    try:
        await redis.delete(STREAK_LIST_CACHE_KEY.format(user_id=user_id))  # type: ignore[union-attr]
    except RedisError:
        logger.warning("streak_cache_invalidate_failed", user_id=user_id, exc_info=True)
