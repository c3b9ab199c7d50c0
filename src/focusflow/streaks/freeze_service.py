"""Freeze tokens: a capped monthly allowance of streak-preserving days."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.config import get_settings
from focusflow.db.models import Achievement, FrozenDate, Streak
from focusflow.db.upsert import dialect_insert
from focusflow.streaks.achievement_service import AchievementUnlocker
from focusflow.streaks.catalog import FREEZE_MASTER
from focusflow.streaks.day_boundary import get_period
from focusflow.streaks.exceptions import InvalidInputError, QuotaExceededError
from focusflow.streaks.streak_service import get_primary_streak, refresh_streak, resolve_streak

logger = logging.getLogger(__name__)


def roll_period(streak: Streak, today: date) -> None:
    """Reset the usage counter when ``today`` falls in a new period."""
    period = get_period(today)
    if streak.freeze_period != period:
        streak.freeze_count = 0
        streak.freeze_period = period


def tokens_used(streak: Streak | None, today: date) -> int:
    """Tokens used in the period containing ``today``. Stale periods count as 0."""
    if streak is None or streak.freeze_period != get_period(today):
        return 0
    return streak.freeze_count or 0


async def use_freeze(
    db: AsyncSession,
    redis: object,
    user_id: str,
    today: date,
    days: int = 1,
    streak_id: int | None = None,
    start: date | None = None,
) -> tuple[Streak, int, list[Achievement]]:
    """Consume one freeze token covering ``days`` calendar days from ``start``.

    ``start`` defaults to ``today``. One token is used regardless of
    ``days``. Returns the refreshed streak, the tokens left this period and
    any achievements unlocked along the way.

    Raises:
        InvalidInputError: If ``days < 1``.
        NotFoundError: If the user has no matching active streak.
        QuotaExceededError: If the period's tokens are used up.
    """
    if days < 1:
        msg = "days must be >= 1"
        raise InvalidInputError(msg)

    max_tokens = get_settings().freeze_tokens_per_period
    streak = await resolve_streak(db, user_id, streak_id)

    roll_period(streak, today)
    if streak.freeze_count >= max_tokens:
        msg = "No freeze tokens remaining this month"
        raise QuotaExceededError(msg)

    first_use = streak.freeze_count == 0
    streak.freeze_count += 1
    remaining = max_tokens - streak.freeze_count

    start = start or today
    stmt = dialect_insert(db, FrozenDate).values(
        [{"streak_id": streak.id, "frozen_date": start + timedelta(days=offset)} for offset in range(days)]
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["streak_id", "frozen_date"])
    await db.execute(stmt)

    user_id = streak.user_id
    streak_id = streak.id
    awarded = await refresh_streak(db, redis, streak, today)

    if first_use:
        unlocker = AchievementUnlocker(db, redis)
        freeze_master = await unlocker.unlock(
            user_id,
            FREEZE_MASTER,
            streak_id=streak_id,
            metadata={"period": get_period(today)},
        )
        if freeze_master is not None:
            awarded.append(freeze_master)
        await unlocker.restore(streak, *awarded)

    logger.info(
        "Freeze used: user=%s streak=%s days=%d remaining=%d", user_id, streak_id, days, remaining
    )
    return streak, remaining, awarded


async def freeze_status(db: AsyncSession, user_id: str, today: date, streak_id: int | None = None) -> dict:
    """Token usage for the period containing ``today``.

    A user without any streak yet simply has the full allowance.
    """
    max_tokens = get_settings().freeze_tokens_per_period
    if streak_id is not None:
        streak = await resolve_streak(db, user_id, streak_id)
    else:
        streak = await get_primary_streak(db, user_id)

    used = tokens_used(streak, today)
    remaining = max(0, max_tokens - used)
    return {
        "tokens_used": used,
        "tokens_remaining": remaining,
        "max_tokens": max_tokens,
        "can_use_freeze": remaining > 0,
    }
