"""Pydantic request/response models for streak endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

# --- Requests ---


class DayContext(BaseModel):
    """Which calendar day counts as "today": an explicit day, or the local day in an IANA zone."""

    day: date | None = None
    timezone: str | None = Field(None, max_length=64)


class UserRequest(DayContext):
    user_id: str = Field(..., min_length=1, max_length=64)


class RecordSessionRequest(UserRequest):
    minutes: int = Field(..., ge=0)
    sessions: int = Field(1, ge=1)
    streak_id: int | None = None
    task_name: str | None = Field(None, max_length=256)
    eligible: bool = True


class FreezeRequest(UserRequest):
    days: int = Field(1, ge=1, le=31)
    streak_id: int | None = None
    start_date: date | None = None


class RecalculateRequest(UserRequest):
    streak_id: int | None = None
    recalculate_all: bool = False


class AchievementEventRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    event: str = Field(..., min_length=1, max_length=64)
    streak_id: int | None = None


class CreateStreakRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=128)
    category: str = Field("general", min_length=1, max_length=32)
    icon: str | None = Field(None, max_length=32)
    color: str | None = Field(None, max_length=32)
    description: str | None = None


class UpdateStreakRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=128)
    icon: str | None = Field(None, max_length=32)
    color: str | None = Field(None, max_length=32)
    description: str | None = None


# --- Streak ---


class StreakResponse(BaseModel):
    id: int
    user_id: str
    name: str
    category: str
    icon: str | None = None
    color: str | None = None
    description: str | None = None
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None
    streak_start_date: date | None = None
    freeze_count: int = 0
    is_active: bool = True
    display_order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StreakEnvelope(BaseModel):
    streak: StreakResponse


class StreakListResponse(BaseModel):
    streaks: list[StreakResponse]
    total: int


class ActivityResponse(BaseModel):
    streak_id: int
    activity_date: date
    session_count: int
    total_minutes: int
    streak_eligible: bool


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: int
    name: str
    achievement_type: str
    streak_id: int | None = None
    unlocked_at: datetime
    metadata: dict = {}


class CatalogEntryResponse(BaseModel):
    name: str
    type: str
    description: str
    icon: str
    requirement: str
    points: int


class AchievementStats(BaseModel):
    total: int = 0
    milestone: int = 0
    consistency: int = 0
    special: int = 0


class AchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
    stats: AchievementStats
    available_achievements: list[CatalogEntryResponse]


class NewAchievementsResponse(BaseModel):
    new_achievements: list[AchievementResponse] = []


# --- Composite ---


class ActivityResultResponse(BaseModel):
    activity: ActivityResponse
    streak: StreakResponse
    new_achievements: list[AchievementResponse] = []


class StreakDetailResponse(BaseModel):
    streak: StreakResponse
    recent_activity: list[ActivityResponse]
    achievements: list[AchievementResponse]


class RecalculateResponse(BaseModel):
    streak: StreakResponse
    new_achievements: list[AchievementResponse] = []


class FreezeResponse(BaseModel):
    streak: StreakResponse
    freeze_tokens_remaining: int
    message: str
    new_achievements: list[AchievementResponse] = []


class FreezeStatusResponse(BaseModel):
    tokens_used: int
    tokens_remaining: int
    max_tokens: int
    can_use_freeze: bool
