"""Achievement unlocking with per-user dedup and best-effort persistence."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from focusflow.db.models import Achievement
from focusflow.streaks.catalog import (
    ACHIEVEMENT_TYPES,
    MARATHON_MASTER,
    MARATHON_MINUTES,
    WEEKEND_WARRIOR,
    available_achievements,
    event_definitions,
    get_definition,
    milestone_thresholds,
)
from focusflow.streaks.day_boundary import is_weekend_pair
from focusflow.streaks.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class AchievementUnlocker:
    """Evaluates achievement conditions and records each unlock exactly once.

    Every unlock is committed on its own. A failed insert is rolled back and
    logged; it never stops the remaining unlocks. Because a rollback expires
    every instance in the session, callers holding ORM objects should refresh
    them when ``rollbacks`` is non-zero.
    """

    def __init__(self, db: AsyncSession, redis: object) -> None:
        self.db = db
        self.redis = redis
        self.rollbacks = 0

    async def unlocked_names(self, user_id: str) -> set[str]:
        """Names of every achievement the user already has."""
        result = await self.db.execute(
            select(Achievement.name).where(Achievement.user_id == user_id)
        )
        return set(result.scalars())

    async def unlock(
        self,
        user_id: str,
        name: str,
        streak_id: int | None = None,
        metadata: dict | None = None,
        already_unlocked: set[str] | None = None,
    ) -> Achievement | None:
        """Insert the achievement if the user does not have it yet.

        Returns the new Achievement, or None if it was already unlocked, is
        not in the catalog, or could not be persisted.
        """
        definition = get_definition(name)
        if definition is None:
            logger.warning("Achievement not in catalog: %s", name)
            return None

        if already_unlocked is None:
            already_unlocked = await self.unlocked_names(user_id)
        if name in already_unlocked:
            return None

        achievement = Achievement(
            user_id=user_id,
            streak_id=streak_id,
            achievement_type=definition["type"],
            name=name,
            unlocked_at=datetime.now(timezone.utc),
            achievement_metadata={
                "description": definition["description"],
                "icon": definition["icon"],
                "points": definition["points"],
                **(metadata or {}),
            },
        )
        self.db.add(achievement)

        try:
            await self.db.commit()
        except IntegrityError:
            # Unlocked concurrently by another request
            await self.db.rollback()
            self.rollbacks += 1
            already_unlocked.add(name)
            return None
        except SQLAlchemyError:
            await self.db.rollback()
            self.rollbacks += 1
            logger.warning("Failed to persist achievement %s for user %s", name, user_id, exc_info=True)
            return None

        already_unlocked.add(name)
        logger.info("Achievement unlocked: user=%s name=%s", user_id, name)
        await self._publish_unlocked(achievement)
        return achievement

    async def check_milestones(
        self,
        user_id: str,
        longest_streak: int,
        already_unlocked: set[str],
        streak_id: int | None = None,
    ) -> list[Achievement]:
        """Unlock every milestone whose threshold ``longest_streak`` has reached."""
        awarded = []
        for threshold, entry in milestone_thresholds():
            if longest_streak < threshold or entry["name"] in already_unlocked:
                continue
            achievement = await self.unlock(
                user_id,
                entry["name"],
                streak_id=streak_id,
                metadata={"days": threshold, "streak_type": "daily"},
                already_unlocked=already_unlocked,
            )
            if achievement is not None:
                awarded.append(achievement)
        return awarded

    async def check_consistency(
        self,
        user_id: str,
        streak_id: int,
        day: date,
        total_minutes: int,
        eligible: bool,
        activity_dates: set[date],
        already_unlocked: set[str],
    ) -> list[Achievement]:
        """Unlock consistency achievements that a day's accumulated activity qualifies for.

        Takes plain values rather than the DailyActivity row: earlier unlocks
        may have rolled back and expired it.
        """
        awarded = []

        if total_minutes > MARATHON_MINUTES:
            achievement = await self.unlock(
                user_id,
                MARATHON_MASTER,
                streak_id=streak_id,
                metadata={"minutes": total_minutes, "date": day.isoformat()},
                already_unlocked=already_unlocked,
            )
            if achievement is not None:
                awarded.append(achievement)

        saturday = day - timedelta(days=1) if day.weekday() == 6 else day
        if eligible and is_weekend_pair(saturday, activity_dates):
            achievement = await self.unlock(
                user_id,
                WEEKEND_WARRIOR,
                streak_id=streak_id,
                metadata={"weekend_of": saturday.isoformat()},
                already_unlocked=already_unlocked,
            )
            if achievement is not None:
                awarded.append(achievement)

        return awarded

    async def restore(self, *instances: object) -> None:
        """Reload instances expired by a rollback. No-op when nothing rolled back."""
        if not self.rollbacks:
            return
        for instance in instances:
            if instance is not None:
                await self.db.refresh(instance)

    async def check_event_trigger(
        self,
        user_id: str,
        event: str,
        streak_id: int | None = None,
    ) -> list[Achievement]:
        """Unlock achievements driven by a named external event (e.g. social_share)."""
        definitions = event_definitions(event)
        if not definitions:
            msg = f"Unknown achievement event: {event!r}"
            raise InvalidInputError(msg)

        already_unlocked = await self.unlocked_names(user_id)
        awarded = []
        for entry in definitions:
            achievement = await self.unlock(
                user_id,
                entry["name"],
                streak_id=streak_id,
                metadata={"event": event},
                already_unlocked=already_unlocked,
            )
            if achievement is not None:
                awarded.append(achievement)
        await self.restore(*awarded)
        return awarded

    async def _publish_unlocked(self, achievement: Achievement) -> None:
        """Push the unlock to subscribers via Redis pub/sub."""
        if self.redis is None:
            return
        try:
            await self.redis.publish(  # type: ignore[union-attr]
                "pubsub:achievement_unlocked",
                json.dumps({
                    "user_id": achievement.user_id,
                    "streak_id": achievement.streak_id,
                    "name": achievement.name,
                    "type": achievement.achievement_type,
                }),
            )
        except Exception:
            logger.warning("Failed to publish achievement_unlocked notification", exc_info=True)


async def list_achievements(
    db: AsyncSession,
    user_id: str,
    achievement_type: str | None = None,
    limit: int = 50,
) -> dict:
    """Unlocked achievements (newest first), per-type stats and locked catalog entries."""
    if achievement_type is not None and achievement_type not in ACHIEVEMENT_TYPES:
        msg = f"Unknown achievement type: {achievement_type!r}"
        raise InvalidInputError(msg)

    query = (
        select(Achievement)
        .where(Achievement.user_id == user_id)
        .order_by(Achievement.unlocked_at.desc(), Achievement.id.desc())
        .limit(limit)
    )
    if achievement_type is not None:
        query = query.where(Achievement.achievement_type == achievement_type)
    result = await db.execute(query)
    achievements = list(result.scalars())

    counts_result = await db.execute(
        select(Achievement.achievement_type, func.count())
        .where(Achievement.user_id == user_id)
        .group_by(Achievement.achievement_type)
    )
    counts = dict(counts_result.all())
    stats = {t: counts.get(t, 0) for t in ACHIEVEMENT_TYPES}
    stats["total"] = sum(stats.values())

    names_result = await db.execute(
        select(Achievement.name).where(Achievement.user_id == user_id)
    )
    unlocked = set(names_result.scalars())

    return {
        "achievements": achievements,
        "stats": stats,
        "available": available_achievements(unlocked),
    }
