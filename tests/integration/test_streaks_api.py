"""API tests for the streak endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

USER = "user-1"
D = "2026-03-16"


async def _create(client: AsyncClient, name: str = "Reading", user_id: str = USER, **extra) -> dict:
    response = await client.post("/api/v1/streaks", json={"user_id": user_id, "name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()["streak"]


class TestStreakCrud:
    @pytest.mark.asyncio
    async def test_create_and_list(self, client: AsyncClient):
        await _create(client, "Reading")
        await _create(client, "Piano", category="music", color="#ff0000")

        response = await client.get("/api/v1/streaks", params={"user_id": USER})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [s["name"] for s in data["streaks"]] == ["Reading", "Piano"]
        assert data["streaks"][1]["color"] == "#ff0000"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client: AsyncClient):
        await _create(client, "Reading")
        response = await client.post("/api/v1/streaks", json={"user_id": USER, "name": "Reading"})
        assert response.status_code == 409
        assert response.json() == {"detail": "A streak with this name already exists", "kind": "conflict"}

    @pytest.mark.asyncio
    async def test_missing_name_is_validation_error(self, client: AsyncClient):
        response = await client.post("/api/v1/streaks", json={"user_id": USER})
        assert response.status_code == 422
        data = response.json()
        assert data["kind"] == "invalid_input"
        assert data["errors"]

    @pytest.mark.asyncio
    async def test_update_and_rename_collision(self, client: AsyncClient):
        await _create(client, "Reading")
        piano = await _create(client, "Piano")

        response = await client.put(
            f"/api/v1/streaks/{piano['id']}", json={"user_id": USER, "description": "Scales first"}
        )
        assert response.status_code == 200
        assert response.json()["streak"]["description"] == "Scales first"

        response = await client.put(f"/api/v1/streaks/{piano['id']}", json={"user_id": USER, "name": "Reading"})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_detail_and_soft_delete(self, client: AsyncClient):
        streak = await _create(client, "Reading")
        await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})

        response = await client.get(f"/api/v1/streaks/{streak['id']}", params={"user_id": USER, "day": D})
        assert response.status_code == 200
        data = response.json()
        assert data["recent_activity"][0]["activity_date"] == D
        assert [a["name"] for a in data["achievements"]] == ["First Streak"]

        response = await client.delete(f"/api/v1/streaks/{streak['id']}", params={"user_id": USER})
        assert response.status_code == 200
        assert response.json()["streak"]["is_active"] is False

        response = await client.get(f"/api/v1/streaks/{streak['id']}", params={"user_id": USER})
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_other_users_streak_not_found(self, client: AsyncClient):
        streak = await _create(client, "Reading", user_id="owner")
        response = await client.get(f"/api/v1/streaks/{streak['id']}", params={"user_id": USER})
        assert response.status_code == 404


class TestCompleteAndReset:
    @pytest.mark.asyncio
    async def test_complete_today_once(self, client: AsyncClient):
        streak = await _create(client)

        response = await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})
        assert response.status_code == 200
        data = response.json()
        assert data["streak"]["current_streak"] == 1
        assert data["streak"]["longest_streak"] == 1
        assert data["streak"]["streak_start_date"] == D
        assert [a["name"] for a in data["new_achievements"]] == ["First Streak"]

        response = await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})
        assert response.status_code == 409
        assert response.json()["kind"] == "already_completed"

    @pytest.mark.asyncio
    async def test_reset(self, client: AsyncClient):
        streak = await _create(client)
        await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})

        response = await client.post(f"/api/v1/streaks/{streak['id']}/reset", json={"user_id": USER})

        assert response.status_code == 200
        data = response.json()["streak"]
        assert data["current_streak"] == 0
        assert data["longest_streak"] == 1
        assert data["last_activity_date"] is None
        assert data["streak_start_date"] is None

    @pytest.mark.asyncio
    async def test_completion_after_reset_starts_over(self, client: AsyncClient):
        streak = await _create(client)
        for day in ("2026-03-13", "2026-03-14", "2026-03-15"):
            await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": day})
        await client.post(f"/api/v1/streaks/{streak['id']}/reset", json={"user_id": USER})

        response = await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})

        assert response.status_code == 200
        data = response.json()["streak"]
        assert data["current_streak"] == 1
        assert data["streak_start_date"] == D
        assert data["longest_streak"] == 3

    @pytest.mark.asyncio
    async def test_unknown_timezone(self, client: AsyncClient):
        streak = await _create(client)
        response = await client.post(
            f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "timezone": "Nowhere/City"}
        )
        assert response.status_code == 422
        assert response.json()["kind"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_timezone_resolves_today(self, client: AsyncClient):
        streak = await _create(client)
        response = await client.post(
            f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "timezone": "Pacific/Auckland"}
        )
        assert response.status_code == 200
        assert response.json()["activity"]["activity_date"] is not None


class TestSessions:
    @pytest.mark.asyncio
    async def test_session_accumulates(self, client: AsyncClient):
        streak = await _create(client)
        body = {"user_id": USER, "streak_id": streak["id"], "minutes": 20, "day": D}

        await client.post("/api/v1/streaks/sessions", json=body)
        response = await client.post("/api/v1/streaks/sessions", json={**body, "minutes": 15})

        assert response.status_code == 201
        activity = response.json()["activity"]
        assert activity["total_minutes"] == 35
        assert activity["session_count"] == 2

    @pytest.mark.asyncio
    async def test_task_name_matches_streak(self, client: AsyncClient):
        await _create(client, "Reading")
        piano = await _create(client, "Piano practice")

        response = await client.post(
            "/api/v1/streaks/sessions",
            json={"user_id": USER, "task_name": "Piano etudes", "minutes": 30, "day": D},
        )

        assert response.status_code == 201
        assert response.json()["streak"]["id"] == piano["id"]

    @pytest.mark.asyncio
    async def test_first_session_creates_default_streak(self, client: AsyncClient):
        response = await client.post("/api/v1/streaks/sessions", json={"user_id": "fresh", "minutes": 25, "day": D})

        assert response.status_code == 201
        assert response.json()["streak"]["name"] == "Daily Focus"

    @pytest.mark.asyncio
    async def test_negative_minutes(self, client: AsyncClient):
        response = await client.post("/api/v1/streaks/sessions", json={"user_id": USER, "minutes": -10})
        assert response.status_code == 422
        assert response.json()["kind"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_unknown_streak(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/streaks/sessions", json={"user_id": USER, "streak_id": 999, "minutes": 10, "day": D}
        )
        assert response.status_code == 404


class TestFreeze:
    @pytest.mark.asyncio
    async def test_freeze_flow(self, client: AsyncClient):
        await _create(client)

        response = await client.get("/api/v1/streaks/freeze", params={"user_id": USER, "day": D})
        assert response.json() == {"tokens_used": 0, "tokens_remaining": 3, "max_tokens": 3, "can_use_freeze": True}

        for expected in (2, 1, 0):
            response = await client.post("/api/v1/streaks/freeze", json={"user_id": USER, "day": D})
            assert response.status_code == 200
            assert response.json()["freeze_tokens_remaining"] == expected

        response = await client.post("/api/v1/streaks/freeze", json={"user_id": USER, "day": D})
        assert response.status_code == 400
        assert response.json()["kind"] == "quota_exceeded"

        response = await client.get("/api/v1/streaks/freeze", params={"user_id": USER, "day": D})
        assert response.json()["can_use_freeze"] is False

    @pytest.mark.asyncio
    async def test_freeze_message_and_freeze_master(self, client: AsyncClient):
        await _create(client)

        response = await client.post("/api/v1/streaks/freeze", json={"user_id": USER, "day": D, "days": 2})

        data = response.json()
        assert data["message"] == "Streak frozen for 2 day(s). You have 2 freeze tokens remaining."
        assert [a["name"] for a in data["new_achievements"]] == ["Freeze Master"]


class TestAchievementsAndRecalculate:
    @pytest.mark.asyncio
    async def test_achievements_listing(self, client: AsyncClient):
        streak = await _create(client)
        await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": D})

        response = await client.get("/api/v1/streaks/achievements", params={"user_id": USER})

        assert response.status_code == 200
        data = response.json()
        assert data["stats"] == {"total": 1, "milestone": 1, "consistency": 0, "special": 0}
        assert data["achievements"][0]["metadata"]["days"] == 1
        assert len(data["available_achievements"]) == 15

    @pytest.mark.asyncio
    async def test_bad_type_filter(self, client: AsyncClient):
        response = await client.get("/api/v1/streaks/achievements", params={"user_id": USER, "type": "legendary"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_event_unlocks_social_sharer_once(self, client: AsyncClient):
        body = {"user_id": USER, "event": "social_share"}

        first = await client.post("/api/v1/streaks/achievements/events", json=body)
        second = await client.post("/api/v1/streaks/achievements/events", json=body)

        assert [a["name"] for a in first.json()["new_achievements"]] == ["Social Sharer"]
        assert second.json()["new_achievements"] == []

    @pytest.mark.asyncio
    async def test_recalculate_twice(self, client: AsyncClient):
        streak = await _create(client)
        for day in ("2026-03-14", "2026-03-15", D):
            await client.post(f"/api/v1/streaks/{streak['id']}/complete", json={"user_id": USER, "day": day})

        body = {"user_id": USER, "day": D, "recalculate_all": True}
        first = await client.post("/api/v1/streaks/recalculate", json=body)
        second = await client.post("/api/v1/streaks/recalculate", json=body)

        assert first.status_code == 200
        assert second.json()["new_achievements"] == []
        for key in ("current_streak", "longest_streak", "streak_start_date", "last_activity_date"):
            assert first.json()["streak"][key] == second.json()["streak"][key]
        assert second.json()["streak"]["current_streak"] == 3


class TestGridCache:
    @pytest.mark.asyncio
    async def test_list_is_cached_and_invalidated(self, client: AsyncClient, fake_redis, redis_override):
        redis_override["client"] = fake_redis
        await _create(client, "Reading")

        await client.get("/api/v1/streaks", params={"user_id": USER})
        fake_redis.setex.assert_awaited_once()

        response = await client.get("/api/v1/streaks", params={"user_id": USER})
        assert response.json()["total"] == 1
        fake_redis.setex.assert_awaited_once()

        await _create(client, "Piano")
        response = await client.get("/api/v1/streaks", params={"user_id": USER})
        assert response.json()["total"] == 2

    @pytest.mark.asyncio
    async def test_redis_errors_fall_back_to_database(self, client: AsyncClient, broken_redis, redis_override):
        redis_override["client"] = broken_redis

        await _create(client, "Reading")
        response = await client.get("/api/v1/streaks", params={"user_id": USER})

        assert response.status_code == 200
        assert response.json()["total"] == 1
