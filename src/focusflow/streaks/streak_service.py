"""Streak lifecycle and recalculation.

Streak metrics are always derived from the stored activity log (plus frozen
dates) by ``calculator.compute_streak``; this module loads that history,
writes the result back onto the streak row, and hands the updated metrics to
the achievement unlocker.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.config import get_settings
from focusflow.db.models import Achievement, DailyActivity, FrozenDate, Streak
from focusflow.streaks.achievement_service import AchievementUnlocker
from focusflow.streaks.cache import invalidate_streaks
from focusflow.streaks.calculator import StreakMetrics, compute_streak, started_after_break
from focusflow.streaks.catalog import COMEBACK_KID
from focusflow.streaks.exceptions import ConflictError, InternalError, InvalidInputError, NotFoundError

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


async def get_streak(db: AsyncSession, user_id: str, streak_id: int) -> Streak:
    """Fetch an active streak owned by ``user_id``.

    Raises:
        NotFoundError: If the streak does not exist, is soft-deleted, or
            belongs to another user.
    """
    result = await db.execute(
        select(Streak).where(
            Streak.id == streak_id,
            Streak.user_id == user_id,
            Streak.is_active.is_(True),
        )
    )
    streak = result.scalar_one_or_none()
    if streak is None:
        msg = f"Streak {streak_id} not found"
        raise NotFoundError(msg)
    return streak


async def get_primary_streak(db: AsyncSession, user_id: str) -> Streak | None:
    """The user's first active streak by display order, if any."""
    result = await db.execute(
        select(Streak)
        .where(Streak.user_id == user_id, Streak.is_active.is_(True))
        .order_by(Streak.display_order, Streak.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_streak(db: AsyncSession, user_id: str, streak_id: int | None) -> Streak:
    """Explicit streak if given, else the user's primary streak."""
    if streak_id is not None:
        return await get_streak(db, user_id, streak_id)
    streak = await get_primary_streak(db, user_id)
    if streak is None:
        msg = f"No active streak for user {user_id}"
        raise NotFoundError(msg)
    return streak


async def get_or_create_default_streak(db: AsyncSession, user_id: str) -> Streak:
    """Get the user's default streak, creating it on the first qualifying session."""
    settings = get_settings()
    result = await db.execute(
        select(Streak).where(
            Streak.user_id == user_id,
            Streak.name == settings.default_streak_name,
        )
    )
    streak = result.scalar_one_or_none()
    if streak is not None and not streak.is_active:
        # Soft-deleted earlier; the name is still taken, so bring it back
        streak.is_active = True
        logger.info("default_streak_reactivated", user_id=user_id, streak_id=streak.id)
    elif streak is None:
        streak = Streak(
            user_id=user_id,
            name=settings.default_streak_name,
            category=settings.default_streak_category,
            display_order=await _next_display_order(db, user_id),
        )
        db.add(streak)
        await db.flush()
        logger.info("default_streak_created", user_id=user_id, streak_id=streak.id)
    return streak


async def list_streaks(db: AsyncSession, user_id: str) -> list[Streak]:
    """Active streaks for the grid, by display order."""
    result = await db.execute(
        select(Streak)
        .where(Streak.user_id == user_id, Streak.is_active.is_(True))
        .order_by(Streak.display_order, Streak.id)
    )
    return list(result.scalars())


async def get_streak_detail(
    db: AsyncSession,
    user_id: str,
    streak_id: int,
    today: date,
) -> tuple[Streak, list[DailyActivity], list[Achievement]]:
    """Streak, its recent activity window and the achievements tied to it."""
    streak = await get_streak(db, user_id, streak_id)
    since = today - timedelta(days=get_settings().activity_window_days)

    activities = await db.execute(
        select(DailyActivity)
        .where(DailyActivity.streak_id == streak.id, DailyActivity.activity_date >= since)
        .order_by(DailyActivity.activity_date.desc())
    )
    achievements = await db.execute(
        select(Achievement)
        .where(Achievement.streak_id == streak.id)
        .order_by(Achievement.unlocked_at.desc(), Achievement.id.desc())
    )
    return streak, list(activities.scalars()), list(achievements.scalars())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def _next_display_order(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.max(Streak.display_order)).where(Streak.user_id == user_id)
    )
    return (result.scalar_one_or_none() or 0) + 1


async def _name_taken(db: AsyncSession, user_id: str, name: str, exclude_id: int | None = None) -> bool:
    query = select(Streak.id).where(Streak.user_id == user_id, Streak.name == name)
    if exclude_id is not None:
        query = query.where(Streak.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


def _clean_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        msg = "Streak name is required"
        raise InvalidInputError(msg)
    return cleaned


async def create_streak(
    db: AsyncSession,
    redis: object,
    user_id: str,
    name: str,
    category: str = "general",
    icon: str | None = None,
    color: str | None = None,
    description: str | None = None,
) -> Streak:
    """Create a named streak for a user.

    Raises:
        InvalidInputError: If the name is blank.
        ConflictError: If the user already has a streak with this name.
    """
    name = _clean_name(name)
    if await _name_taken(db, user_id, name):
        msg = "A streak with this name already exists"
        raise ConflictError(msg)

    streak = Streak(
        user_id=user_id,
        name=name,
        category=category,
        icon=icon,
        color=color,
        description=description,
        display_order=await _next_display_order(db, user_id),
    )
    db.add(streak)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        msg = "A streak with this name already exists"
        raise ConflictError(msg) from exc

    await invalidate_streaks(redis, user_id)
    logger.info("streak_created", user_id=user_id, streak_id=streak.id, name=name)
    return streak


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: str,
    streak_id: int,
    name: str | None = None,
    icon: str | None = None,
    color: str | None = None,
    description: str | None = None,
) -> Streak:
    """Update display properties. Only the fields given are changed.

    Raises:
        NotFoundError: If the streak is missing or not owned by the user.
        InvalidInputError: If ``name`` is blank.
        ConflictError: If the new name collides with another of the user's streaks.
    """
    streak = await get_streak(db, user_id, streak_id)

    if name is not None:
        name = _clean_name(name)
        if name != streak.name and await _name_taken(db, user_id, name, exclude_id=streak.id):
            msg = "A streak with this name already exists"
            raise ConflictError(msg)
        streak.name = name
    if icon is not None:
        streak.icon = icon
    if color is not None:
        streak.color = color
    if description is not None:
        streak.description = description
    streak.updated_at = datetime.now(timezone.utc)

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        msg = "A streak with this name already exists"
        raise ConflictError(msg) from exc

    await invalidate_streaks(redis, user_id)
    return streak


async def delete_streak(db: AsyncSession, redis: object, user_id: str, streak_id: int) -> Streak:
    """Soft-delete: clear the active flag, keep the streak and its history."""
    streak = await get_streak(db, user_id, streak_id)
    streak.is_active = False
    streak.updated_at = datetime.now(timezone.utc)
    await commit_streak(db, "delete")

    await invalidate_streaks(redis, user_id)
    logger.info("streak_deleted", user_id=user_id, streak_id=streak_id)
    return streak


async def reset_streak(db: AsyncSession, redis: object, user_id: str, streak_id: int) -> Streak:
    """Reset the current streak to 0. The longest streak is a permanent record and is kept.

    The activity log is never rewritten. Instead the latest recorded day
    becomes the streak's ``reset_through`` floor, so later recomputations
    start counting again from the first activity after the reset.
    """
    streak = await get_streak(db, user_id, streak_id)
    latest = await db.execute(
        select(func.max(DailyActivity.activity_date)).where(DailyActivity.streak_id == streak.id)
    )
    latest_day = latest.scalar_one_or_none()
    if latest_day is not None and (streak.reset_through is None or latest_day > streak.reset_through):
        streak.reset_through = latest_day

    streak.current_streak = 0
    streak.last_activity_date = None
    streak.streak_start_date = None
    streak.updated_at = datetime.now(timezone.utc)
    await commit_streak(db, "reset")

    await invalidate_streaks(redis, user_id)
    logger.info(
        "streak_reset",
        user_id=user_id,
        streak_id=streak_id,
        longest=streak.longest_streak,
        reset_through=streak.reset_through,
    )
    return streak


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


async def commit_streak(db: AsyncSession, action: str) -> None:
    """Commit pending streak writes, classifying storage failures as ``InternalError``.

    Whatever was recorded before a failed commit can be rebuilt later with
    ``recalculate``.
    """
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("streak_commit_failed", action=action, error=str(exc))
        msg = f"Storage failure during {action}"
        raise InternalError(msg) from exc


async def load_history(db: AsyncSession, streak_id: int) -> tuple[set[date], set[date], set[date]]:
    """(eligible activity dates, frozen dates, every recorded date) for a streak."""
    activity = await db.execute(
        select(DailyActivity.activity_date, DailyActivity.streak_eligible).where(
            DailyActivity.streak_id == streak_id
        )
    )
    rows = activity.all()
    frozen = await db.execute(
        select(FrozenDate.frozen_date).where(FrozenDate.streak_id == streak_id)
    )
    eligible = {day for day, is_eligible in rows if is_eligible}
    recorded = {day for day, _ in rows}
    return eligible, set(frozen.scalars()), recorded


async def compute_for(db: AsyncSession, streak: Streak, today: date) -> tuple[StreakMetrics, set[date]]:
    """Metrics for ``streak`` as of ``today``, plus its eligible activity dates."""
    activity_dates, frozen_dates, recorded_dates = await load_history(db, streak.id)
    metrics = compute_streak(
        activity_dates,
        today,
        frozen_dates,
        recorded_dates=recorded_dates,
        reset_through=streak.reset_through,
    )
    return metrics, activity_dates


def apply_metrics(streak: Streak, metrics: StreakMetrics) -> None:
    """Write computed metrics onto the streak row. Longest never decreases."""
    streak.current_streak = metrics.current
    streak.longest_streak = max(streak.longest_streak or 0, metrics.longest)
    streak.last_activity_date = metrics.last_activity_date
    streak.streak_start_date = metrics.streak_start_date
    streak.updated_at = datetime.now(timezone.utc)


async def refresh_streak(
    db: AsyncSession,
    redis: object,
    streak: Streak,
    today: date,
    activity: DailyActivity | None = None,
) -> list[Achievement]:
    """Recompute the streak from its history, persist it, then unlock achievements.

    The streak row is committed before any achievement is written, so an
    achievement failure never loses the streak update.
    """
    metrics, activity_dates = await compute_for(db, streak, today)
    apply_metrics(streak, metrics)
    await commit_streak(db, "streak update")
    await invalidate_streaks(redis, streak.user_id)

    user_id = streak.user_id
    streak_id = streak.id
    longest = streak.longest_streak
    if activity is not None:
        activity_day = activity.activity_date
        activity_minutes = activity.total_minutes
        activity_eligible = activity.streak_eligible

    unlocker = AchievementUnlocker(db, redis)
    already_unlocked = await unlocker.unlocked_names(user_id)
    awarded = await unlocker.check_milestones(user_id, longest, already_unlocked, streak_id=streak_id)

    if started_after_break(activity_dates, metrics):
        comeback = await unlocker.unlock(
            user_id,
            COMEBACK_KID,
            streak_id=streak_id,
            metadata={"longest_streak": longest},
            already_unlocked=already_unlocked,
        )
        if comeback is not None:
            awarded.append(comeback)

    if activity is not None:
        awarded += await unlocker.check_consistency(
            user_id,
            streak_id,
            activity_day,
            activity_minutes,
            activity_eligible,
            activity_dates,
            already_unlocked,
        )

    await unlocker.restore(streak, activity, *awarded)

    return awarded


async def recalculate(
    db: AsyncSession,
    redis: object,
    user_id: str,
    today: date,
    streak_id: int | None = None,
    recalculate_all: bool = False,
) -> tuple[Streak, list[Achievement]]:
    """Maintenance path: rebuild streak metrics from the full activity log.

    With ``recalculate_all`` the milestone achievements are re-evaluated
    against the recomputed longest streak. Running it twice in a row changes
    nothing the second time.
    """
    streak = await resolve_streak(db, user_id, streak_id)

    metrics, _ = await compute_for(db, streak, today)
    apply_metrics(streak, metrics)
    await commit_streak(db, "recalculation")
    await invalidate_streaks(redis, user_id)

    logger.info(
        "streak_recalculated",
        user_id=user_id,
        streak_id=streak.id,
        current=streak.current_streak,
        longest=streak.longest_streak,
    )

    if not recalculate_all:
        return streak, []

    longest = streak.longest_streak
    unlocker = AchievementUnlocker(db, redis)
    already_unlocked = await unlocker.unlocked_names(user_id)
    awarded = await unlocker.check_milestones(user_id, longest, already_unlocked, streak_id=streak.id)
    await unlocker.restore(streak, *awarded)
    return streak, awarded
