"""Activity recording: the entry point for sessions and daily completions."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.db.models import Achievement, DailyActivity, Streak
from focusflow.db.upsert import dialect_insert
from focusflow.streaks.exceptions import AlreadyCompletedError, InternalError, InvalidInputError
from focusflow.streaks.streak_service import get_or_create_default_streak, get_streak, refresh_streak
from focusflow.streaks.task_matching import TaskMatcher

logger = logging.getLogger(__name__)


def validate_deltas(minutes: int, sessions: int) -> None:
    """Reject negative effort before anything is written."""
    if minutes < 0:
        msg = "minutes must be >= 0"
        raise InvalidInputError(msg)
    if sessions < 1:
        msg = "sessions must be >= 1"
        raise InvalidInputError(msg)


async def _upsert_activity(
    db: AsyncSession,
    streak: Streak,
    day: date,
    minutes: int,
    sessions: int,
    eligible: bool,
) -> None:
    """Atomically add to the (streak, day) row, creating it if absent."""
    now = datetime.now(timezone.utc)
    stmt = dialect_insert(db, DailyActivity).values(
        streak_id=streak.id,
        user_id=streak.user_id,
        activity_date=day,
        session_count=sessions,
        total_minutes=minutes,
        streak_eligible=eligible,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["streak_id", "activity_date"],
        set_={
            "session_count": DailyActivity.session_count + stmt.excluded.session_count,
            "total_minutes": DailyActivity.total_minutes + stmt.excluded.total_minutes,
            # Once eligible, a day stays eligible
            "streak_eligible": or_(DailyActivity.streak_eligible, stmt.excluded.streak_eligible),
            "updated_at": now,
        },
    )
    await db.execute(stmt)


async def _load_activity(db: AsyncSession, streak_id: int, day: date) -> DailyActivity:
    result = await db.execute(
        select(DailyActivity)
        .where(DailyActivity.streak_id == streak_id, DailyActivity.activity_date == day)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def record_activity(
    db: AsyncSession,
    redis: object,
    user_id: str,
    streak_id: int,
    day: date,
    minutes: int,
    sessions: int = 1,
    eligible: bool = True,
    *,
    today: date,
) -> tuple[DailyActivity, Streak, list[Achievement]]:
    """Merge a day's effort into the activity log, then recompute the streak.

    Repeated calls for the same day accumulate minutes and sessions into one
    row. ``day`` may be any day up to ``today``; the streak is always
    recomputed as of ``today``, so backfilling a past day never rewinds it.

    Raises:
        InvalidInputError: If ``minutes < 0``, ``sessions < 1`` or ``day`` is after ``today``.
        InternalError: If the activity row cannot be written.
        NotFoundError: If the streak is missing, inactive or not the user's.
    """
    validate_deltas(minutes, sessions)
    if day > today:
        msg = f"Cannot record activity for {day}, after today ({today})"
        raise InvalidInputError(msg)
    streak = await get_streak(db, user_id, streak_id)

    try:
        await _upsert_activity(db, streak, day, minutes, sessions, eligible)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Activity upsert failed: user=%s streak=%s date=%s", user_id, streak_id, day)
        msg = "Storage failure while recording activity"
        raise InternalError(msg) from exc
    activity = await _load_activity(db, streak.id, day)

    new_achievements = await refresh_streak(db, redis, streak, today, activity=activity)

    logger.info(
        "Activity recorded: user=%s streak=%s date=%s minutes=%d sessions=%d current=%d",
        user_id, streak.id, day, minutes, sessions, streak.current_streak,
    )
    return activity, streak, new_achievements


async def complete_today(
    db: AsyncSession,
    redis: object,
    user_id: str,
    streak_id: int,
    today: date,
) -> tuple[DailyActivity, Streak, list[Achievement]]:
    """Mark a streak done for ``today``. At most once per streak per day.

    Raises:
        AlreadyCompletedError: If the streak already has a row for ``today``.
    """
    streak = await get_streak(db, user_id, streak_id)
    existing = await db.execute(
        select(DailyActivity.id).where(
            DailyActivity.streak_id == streak.id,
            DailyActivity.activity_date == today,
        )
    )
    if existing.first() is not None:
        msg = "Streak already completed today"
        raise AlreadyCompletedError(msg)

    return await record_activity(
        db, redis, user_id, streak.id, today, minutes=0, sessions=1, eligible=True, today=today
    )


async def record_session(
    db: AsyncSession,
    redis: object,
    user_id: str,
    minutes: int,
    today: date,
    sessions: int = 1,
    streak_id: int | None = None,
    task_name: str | None = None,
    matcher: TaskMatcher | None = None,
    eligible: bool = True,
) -> tuple[DailyActivity, Streak, list[Achievement]]:
    """Focus-timer completion.

    The target streak is ``streak_id`` when given, else whatever ``matcher``
    maps ``task_name`` to, else the user's default streak (created on the
    first qualifying session).
    """
    validate_deltas(minutes, sessions)

    if streak_id is None and task_name and matcher is not None:
        streak_id = matcher(task_name)
        if streak_id is not None:
            logger.debug("Task %r matched to streak %s", task_name, streak_id)

    if streak_id is None:
        streak = await get_or_create_default_streak(db, user_id)
        streak_id = streak.id

    return await record_activity(
        db, redis, user_id, streak_id, today, minutes=minutes, sessions=sessions, eligible=eligible, today=today
    )
