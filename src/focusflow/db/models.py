"""ORM models for the streak engine.

Tables are created by the Alembic migration in alembic/versions. The column
types are portable so the same models run on PostgreSQL and SQLite.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from focusflow.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------


class Streak(Base):
    """A named, user-owned tracked goal. UNIQUE(user_id, name)."""

    __tablename__ = "streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="streaks_user_id_name_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="general", server_default="general")
    icon: Mapped[str | None] = mapped_column(String(32), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    streak_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Activity on or before this day no longer counts toward the current streak
    reset_through: Mapped[date | None] = mapped_column(Date, nullable=True)

    freeze_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    freeze_period: Mapped[str | None] = mapped_column(String(7), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


class DailyActivity(Base):
    """One row per (streak, calendar day). Repeated activity accumulates in place."""

    __tablename__ = "daily_activities"
    __table_args__ = (
        UniqueConstraint("streak_id", "activity_date", name="daily_activities_streak_id_activity_date_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    streak_id: Mapped[int] = mapped_column(Integer, ForeignKey("streaks.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    session_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    streak_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


class FrozenDate(Base):
    """A calendar day covered by a consumed freeze token."""

    __tablename__ = "frozen_dates"
    __table_args__ = (
        UniqueConstraint("streak_id", "frozen_date", name="frozen_dates_streak_id_frozen_date_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    streak_id: Mapped[int] = mapped_column(Integer, ForeignKey("streaks.id", ondelete="CASCADE"), nullable=False)
    frozen_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=_utcnow, server_default=func.now())


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Unlocked achievement, immutable. UNIQUE(user_id, name) prevents duplicates."""

    __tablename__ = "achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="achievements_user_id_name_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    streak_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("streaks.id", ondelete="SET NULL"), nullable=True
    )
    achievement_type: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    achievement_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
