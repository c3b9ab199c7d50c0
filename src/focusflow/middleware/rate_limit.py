"""Fixed-window request limiting per client address, counted in Redis.

Without Redis, or while Redis is failing, requests pass through unlimited.
"""

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from focusflow.redis_client import get_redis

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a client exceeds ``requests_per_window`` in the current window."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, remaining: int) -> dict[str, str]:
        return {
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Limit": str(self.requests_per_window),
        }

    async def _count_hit(self, client: str, now: float) -> int | None:
        """Increment the client's counter for this window. None when Redis is unavailable."""
        window = int(now) // self.window_seconds
        key = f"ratelimit:{client}:{window}"
        try:
            pipe = get_redis().pipeline()
        except RuntimeError:
            return None
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        try:
            results: list[Any] = await pipe.execute()
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return None
        return int(results[0])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        now = time.time()
        client = request.client.host if request.client else "unknown"
        count = await self._count_hit(client, now)
        if count is None:
            return await call_next(request)

        if count > self.requests_per_window:
            retry_after = self.window_seconds - int(now) % self.window_seconds
            logger.info("rate_limited", client=client, count=count)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "kind": "rate_limited"},
                headers={"Retry-After": str(retry_after), **self._limit_headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(max(0, self.requests_per_window - count)))
        return response
