"""Streak engine API endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.config import get_settings
from focusflow.database import get_session
from focusflow.db.models import Achievement, DailyActivity, Streak
from focusflow.dependencies import get_redis_dep
from focusflow.streaks import activity_service, freeze_service, streak_service
from focusflow.streaks.achievement_service import AchievementUnlocker, list_achievements
from focusflow.streaks.cache import get_cached_streaks, set_cached_streaks
from focusflow.streaks.day_boundary import resolve_today
from focusflow.streaks.schemas import (
    AchievementEventRequest,
    AchievementResponse,
    AchievementsResponse,
    AchievementStats,
    ActivityResponse,
    ActivityResultResponse,
    CatalogEntryResponse,
    CreateStreakRequest,
    DayContext,
    FreezeRequest,
    FreezeResponse,
    FreezeStatusResponse,
    NewAchievementsResponse,
    RecalculateRequest,
    RecalculateResponse,
    RecordSessionRequest,
    StreakDetailResponse,
    StreakEnvelope,
    StreakListResponse,
    StreakResponse,
    UpdateStreakRequest,
    UserRequest,
)
from focusflow.streaks.task_matching import keyword_matcher

router = APIRouter(prefix="/api/v1", tags=["Streaks"])


# ── Helpers ──


def _today(day: date | None, tz_name: str | None) -> date:
    return resolve_today(day, tz_name, get_settings().default_timezone)


def _context_today(ctx: DayContext) -> date:
    return _today(ctx.day, ctx.timezone)


def _streak_response(streak: Streak) -> StreakResponse:
    return StreakResponse(
        id=streak.id,
        user_id=streak.user_id,
        name=streak.name,
        category=streak.category,
        icon=streak.icon,
        color=streak.color,
        description=streak.description,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_activity_date=streak.last_activity_date,
        streak_start_date=streak.streak_start_date,
        freeze_count=streak.freeze_count,
        is_active=streak.is_active,
        display_order=streak.display_order,
        created_at=streak.created_at,
        updated_at=streak.updated_at,
    )


def _activity_response(activity: DailyActivity) -> ActivityResponse:
    return ActivityResponse(
        streak_id=activity.streak_id,
        activity_date=activity.activity_date,
        session_count=activity.session_count,
        total_minutes=activity.total_minutes,
        streak_eligible=activity.streak_eligible,
    )


def _achievement_response(achievement: Achievement) -> AchievementResponse:
    return AchievementResponse(
        id=achievement.id,
        name=achievement.name,
        achievement_type=achievement.achievement_type,
        streak_id=achievement.streak_id,
        unlocked_at=achievement.unlocked_at,
        metadata=achievement.achievement_metadata or {},
    )


def _activity_result(
    activity: DailyActivity, streak: Streak, achievements: list[Achievement]
) -> ActivityResultResponse:
    return ActivityResultResponse(
        activity=_activity_response(activity),
        streak=_streak_response(streak),
        new_achievements=[_achievement_response(a) for a in achievements],
    )


# ── Activity ──


@router.post("/streaks/sessions", response_model=ActivityResultResponse, status_code=201)
async def record_session(
    body: RecordSessionRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Record a completed focus session against a streak."""
    matcher = None
    if body.streak_id is None and body.task_name:
        matcher = keyword_matcher(await streak_service.list_streaks(db, body.user_id))

    activity, streak, achievements = await activity_service.record_session(
        db,
        redis,
        body.user_id,
        body.minutes,
        _context_today(body),
        sessions=body.sessions,
        streak_id=body.streak_id,
        task_name=body.task_name,
        matcher=matcher,
        eligible=body.eligible,
    )
    return _activity_result(activity, streak, achievements)


@router.post("/streaks/{streak_id}/complete", response_model=ActivityResultResponse)
async def complete_streak(
    streak_id: int,
    body: UserRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Mark a streak complete for today (once per day)."""
    activity, streak, achievements = await activity_service.complete_today(
        db, redis, body.user_id, streak_id, _context_today(body)
    )
    return _activity_result(activity, streak, achievements)


@router.post("/streaks/{streak_id}/reset", response_model=StreakEnvelope)
async def reset_streak(
    streak_id: int,
    body: UserRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Reset the current streak. Longest streak is kept."""
    streak = await streak_service.reset_streak(db, redis, body.user_id, streak_id)
    return StreakEnvelope(streak=_streak_response(streak))


# ── Freeze tokens ──


@router.post("/streaks/freeze", response_model=FreezeResponse)
async def use_freeze(
    body: FreezeRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Spend a freeze token to protect the streak for ``days`` days."""
    streak, remaining, achievements = await freeze_service.use_freeze(
        db,
        redis,
        body.user_id,
        _context_today(body),
        days=body.days,
        streak_id=body.streak_id,
        start=body.start_date,
    )
    return FreezeResponse(
        streak=_streak_response(streak),
        freeze_tokens_remaining=remaining,
        message=(
            f"Streak frozen for {body.days} day(s). "
            f"You have {remaining} freeze tokens remaining."
        ),
        new_achievements=[_achievement_response(a) for a in achievements],
    )


@router.get("/streaks/freeze", response_model=FreezeStatusResponse)
async def get_freeze_status(
    user_id: str = Query(..., min_length=1, max_length=64),
    streak_id: int | None = Query(None),
    day: date | None = Query(None),
    timezone: str | None = Query(None, max_length=64),
    db: AsyncSession = Depends(get_session),
):
    """Freeze tokens used and remaining this month."""
    status = await freeze_service.freeze_status(db, user_id, _today(day, timezone), streak_id=streak_id)
    return FreezeStatusResponse(**status)


# ── Achievements ──


@router.get("/streaks/achievements", response_model=AchievementsResponse)
async def get_achievements(
    user_id: str = Query(..., min_length=1, max_length=64),
    type: str | None = Query(None),  # noqa: A002
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
):
    """Unlocked achievements, per-type stats and what is still available."""
    result = await list_achievements(db, user_id, achievement_type=type, limit=limit)
    return AchievementsResponse(
        achievements=[_achievement_response(a) for a in result["achievements"]],
        stats=AchievementStats(**result["stats"]),
        available_achievements=[
            CatalogEntryResponse(
                name=entry["name"],
                type=entry["type"],
                description=entry["description"],
                icon=entry["icon"],
                requirement=entry["requirement"],
                points=entry["points"],
            )
            for entry in result["available"]
        ],
    )


@router.post("/streaks/achievements/events", response_model=NewAchievementsResponse)
async def trigger_achievement_event(
    body: AchievementEventRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Report an external event (e.g. social_share) that can unlock special achievements."""
    if body.streak_id is not None:
        await streak_service.get_streak(db, body.user_id, body.streak_id)
    unlocker = AchievementUnlocker(db, redis)
    achievements = await unlocker.check_event_trigger(body.user_id, body.event, streak_id=body.streak_id)
    return NewAchievementsResponse(new_achievements=[_achievement_response(a) for a in achievements])


# ── Maintenance ──


@router.post("/streaks/recalculate", response_model=RecalculateResponse)
async def recalculate(
    body: RecalculateRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Rebuild streak metrics from the full activity history."""
    streak, achievements = await streak_service.recalculate(
        db,
        redis,
        body.user_id,
        _context_today(body),
        streak_id=body.streak_id,
        recalculate_all=body.recalculate_all,
    )
    return RecalculateResponse(
        streak=_streak_response(streak),
        new_achievements=[_achievement_response(a) for a in achievements],
    )


# ── Streak CRUD ──


@router.get("/streaks", response_model=StreakListResponse)
async def list_streaks(
    user_id: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Active streaks for the grid, by display order."""
    cached = await get_cached_streaks(redis, user_id)
    if cached is not None:
        return StreakListResponse(streaks=cached, total=len(cached))

    streaks = [_streak_response(s) for s in await streak_service.list_streaks(db, user_id)]
    await set_cached_streaks(
        redis,
        user_id,
        [s.model_dump(mode="json") for s in streaks],
        get_settings().streak_cache_ttl_seconds,
    )
    return StreakListResponse(streaks=streaks, total=len(streaks))


@router.post("/streaks", response_model=StreakEnvelope, status_code=201)
async def create_streak(
    body: CreateStreakRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Create a new streak."""
    streak = await streak_service.create_streak(
        db,
        redis,
        body.user_id,
        body.name,
        category=body.category,
        icon=body.icon,
        color=body.color,
        description=body.description,
    )
    return StreakEnvelope(streak=_streak_response(streak))


@router.get("/streaks/{streak_id}", response_model=StreakDetailResponse)
async def get_streak(
    streak_id: int,
    user_id: str = Query(..., min_length=1, max_length=64),
    day: date | None = Query(None),
    timezone: str | None = Query(None, max_length=64),
    db: AsyncSession = Depends(get_session),
):
    """Streak with its recent activity and achievements."""
    streak, activities, achievements = await streak_service.get_streak_detail(
        db, user_id, streak_id, _today(day, timezone)
    )
    return StreakDetailResponse(
        streak=_streak_response(streak),
        recent_activity=[_activity_response(a) for a in activities],
        achievements=[_achievement_response(a) for a in achievements],
    )


@router.put("/streaks/{streak_id}", response_model=StreakEnvelope)
async def update_streak(
    streak_id: int,
    body: UpdateStreakRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Update a streak's display properties."""
    streak = await streak_service.update_streak(
        db,
        redis,
        body.user_id,
        streak_id,
        name=body.name,
        icon=body.icon,
        color=body.color,
        description=body.description,
    )
    return StreakEnvelope(streak=_streak_response(streak))


@router.delete("/streaks/{streak_id}", response_model=StreakEnvelope)
async def delete_streak(
    streak_id: int,
    user_id: str = Query(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Soft-delete a streak. Its history is kept."""
    streak = await streak_service.delete_streak(db, redis, user_id, streak_id)
    return StreakEnvelope(streak=_streak_response(streak))
