"""Middleware tests: request ID, rate limiting, CORS, error handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from redis.exceptions import RedisError


def _mock_rate_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_no_rate_limit_without_redis(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, monkeypatch) -> None:
    """Rate limit headers are present on non-exempt endpoints."""
    monkeypatch.setattr("focusflow.middleware.rate_limit.get_redis", lambda: _mock_rate_redis(1))
    response = await client.get("/version")
    assert response.headers["x-ratelimit-remaining"] == "99"
    assert response.headers["x-ratelimit-limit"] == "100"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, monkeypatch) -> None:
    """Request over the window quota returns 429 with Retry-After header."""
    monkeypatch.setattr("focusflow.middleware.rate_limit.get_redis", lambda: _mock_rate_redis(101))
    response = await client.get("/version")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert response.json()["kind"] == "rate_limited"
    assert 1 <= int(response.headers["retry-after"]) <= 60
    assert response.headers["x-ratelimit-remaining"] == "0"


@pytest.mark.asyncio
async def test_rate_limit_fails_open_on_redis_error(client: AsyncClient, monkeypatch) -> None:
    redis = _mock_rate_redis(1)
    redis.pipeline.return_value.execute = AsyncMock(side_effect=RedisError("connection refused"))
    monkeypatch.setattr("focusflow.middleware.rate_limit.get_redis", lambda: redis)

    response = await client.get("/version")

    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr("focusflow.middleware.rate_limit.get_redis", lambda: _mock_rate_redis(500))
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for configured origin."""
    response = await client.options(
        "/api/v1/streaks",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    assert response.headers["content-type"] == "application/json"
    assert response.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_validation_error_shape(client: AsyncClient) -> None:
    response = await client.get("/api/v1/streaks")
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert data["kind"] == "invalid_input"
    assert data["errors"][0]["loc"] == ["query", "user_id"]


@pytest.mark.asyncio
async def test_cors_allows_any_localhost_port_in_development(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/streaks",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
async def test_cors_rejects_unknown_origin(client: AsyncClient) -> None:
    response = await client.options(
        "/api/v1/streaks",
        headers={
            "Origin": "https://evil.example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert "access-control-allow-origin" not in response.headers
