"""Streak engine tables.

Creates streaks, daily_activities, frozen_dates and achievements.

Revision ID: 001_streak_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_streak_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS streaks (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            name VARCHAR(128) NOT NULL,
            category VARCHAR(32) NOT NULL DEFAULT 'general',
            icon VARCHAR(32),
            color VARCHAR(32),
            description TEXT,
            current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
            longest_streak INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= 0),
            last_activity_date DATE,
            streak_start_date DATE,
            reset_through DATE,
            freeze_count INTEGER NOT NULL DEFAULT 0,
            freeze_period VARCHAR(7),
            is_active BOOLEAN NOT NULL DEFAULT true,
            display_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT streaks_user_id_name_key UNIQUE(user_id, name)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_streaks_user_active
        ON streaks(user_id, is_active, display_order)
    """)

    # --- Daily Activities ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_activities (
            id SERIAL PRIMARY KEY,
            streak_id INTEGER NOT NULL REFERENCES streaks(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL,
            activity_date DATE NOT NULL,
            session_count INTEGER NOT NULL DEFAULT 1 CHECK (session_count >= 1),
            total_minutes INTEGER NOT NULL DEFAULT 0 CHECK (total_minutes >= 0),
            streak_eligible BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT daily_activities_streak_id_activity_date_key UNIQUE(streak_id, activity_date)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_daily_activities_user
        ON daily_activities(user_id, activity_date)
    """)

    # --- Frozen Dates ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS frozen_dates (
            id SERIAL PRIMARY KEY,
            streak_id INTEGER NOT NULL REFERENCES streaks(id) ON DELETE CASCADE,
            frozen_date DATE NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT frozen_dates_streak_id_frozen_date_key UNIQUE(streak_id, frozen_date)
        )
    """)

    # --- Achievements ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            streak_id INTEGER REFERENCES streaks(id) ON DELETE SET NULL,
            achievement_type VARCHAR(16) NOT NULL
                CHECK (achievement_type IN ('milestone', 'consistency', 'special')),
            name VARCHAR(64) NOT NULL,
            unlocked_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            metadata JSONB NOT NULL DEFAULT '{}',
            CONSTRAINT achievements_user_id_name_key UNIQUE(user_id, name)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_achievements_user_unlocked
        ON achievements(user_id, unlocked_at DESC)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS achievements CASCADE")
    op.execute("DROP TABLE IF EXISTS frozen_dates CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_activities CASCADE")
    op.execute("DROP TABLE IF EXISTS streaks CASCADE")
