"""Achievement catalog: static definitions, not persisted.

Achievement names are the per-user dedup key, so they must never change once
shipped.
"""

from __future__ import annotations

MILESTONE = "milestone"
CONSISTENCY = "consistency"
SPECIAL = "special"

ACHIEVEMENT_TYPES = (MILESTONE, CONSISTENCY, SPECIAL)

FREEZE_MASTER = "Freeze Master"
COMEBACK_KID = "Comeback Kid"
MARATHON_MASTER = "Marathon Master"
WEEKEND_WARRIOR = "Weekend Warrior"

MARATHON_MINUTES = 120

ACHIEVEMENT_CATALOG: list[dict] = [
    # Milestones
    {
        "name": "First Streak",
        "type": MILESTONE,
        "description": "Completed your first day streak!",
        "icon": "\U0001f3af",
        "requirement": "1 day streak",
        "points": 10,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 1},
    },
    {
        "name": "Getting Started",
        "type": MILESTONE,
        "description": "Maintained a 3-day streak!",
        "icon": "\U0001f680",
        "requirement": "3 day streak",
        "points": 30,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 3},
    },
    {
        "name": "Week Warrior",
        "type": MILESTONE,
        "description": "Maintained a 7-day streak!",
        "icon": "⚔️",
        "requirement": "7 day streak",
        "points": 70,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 7},
    },
    {
        "name": "Two Week Champion",
        "type": MILESTONE,
        "description": "Maintained a 14-day streak!",
        "icon": "\U0001f3c6",
        "requirement": "14 day streak",
        "points": 140,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 14},
    },
    {
        "name": "Month Master",
        "type": MILESTONE,
        "description": "Maintained a 30-day streak!",
        "icon": "\U0001f451",
        "requirement": "30 day streak",
        "points": 300,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 30},
    },
    {
        "name": "Halfway Hero",
        "type": MILESTONE,
        "description": "Maintained a 50-day streak!",
        "icon": "⭐",
        "requirement": "50 day streak",
        "points": 500,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 50},
    },
    {
        "name": "Century Achiever",
        "type": MILESTONE,
        "description": "Maintained a 100-day streak!",
        "icon": "\U0001f4af",
        "requirement": "100 day streak",
        "points": 1000,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 100},
    },
    {
        "name": "Year of Focus",
        "type": MILESTONE,
        "description": "Maintained a 365-day streak!",
        "icon": "\U0001f31f",
        "requirement": "365 day streak",
        "points": 3650,
        "trigger_type": "streak_length",
        "trigger_config": {"threshold": 365},
    },
    # Consistency
    {
        "name": WEEKEND_WARRIOR,
        "type": CONSISTENCY,
        "description": "Maintained your streak through the weekend!",
        "icon": "\U0001f305",
        "requirement": "Focus session on Saturday and Sunday",
        "points": 50,
        "trigger_type": "weekend_pair",
        "trigger_config": {},
    },
    {
        "name": "Early Bird",
        "type": CONSISTENCY,
        "description": "Completed morning sessions 5 days in a row!",
        "icon": "\U0001f426",
        "requirement": "Sessions before 10 AM for 5 days",
        "points": 100,
        "trigger_type": "event",
        "trigger_config": {"event": "early_bird"},
    },
    {
        "name": "Night Owl",
        "type": CONSISTENCY,
        "description": "Completed evening sessions 5 days in a row!",
        "icon": "\U0001f989",
        "requirement": "Sessions after 8 PM for 5 days",
        "points": 100,
        "trigger_type": "event",
        "trigger_config": {"event": "night_owl"},
    },
    {
        "name": MARATHON_MASTER,
        "type": CONSISTENCY,
        "description": "Completed sessions over 2 hours in a single day!",
        "icon": "\U0001f3c3",
        "requirement": "Total daily sessions > 2 hours",
        "points": 150,
        "trigger_type": "daily_minutes",
        "trigger_config": {"minutes": MARATHON_MINUTES},
    },
    # Special
    {
        "name": FREEZE_MASTER,
        "type": SPECIAL,
        "description": "Used your first streak freeze token wisely!",
        "icon": "\U0001f9ca",
        "requirement": "Use a streak freeze",
        "points": 25,
        "trigger_type": "freeze_used",
        "trigger_config": {},
    },
    {
        "name": COMEBACK_KID,
        "type": SPECIAL,
        "description": "Started a new streak after breaking one!",
        "icon": "\U0001f4aa",
        "requirement": "Start new streak after breaking previous",
        "points": 75,
        "trigger_type": "comeback",
        "trigger_config": {},
    },
    {
        "name": "Perfectionist",
        "type": SPECIAL,
        "description": "Completed 100% of planned sessions for 7 days!",
        "icon": "✨",
        "requirement": "Meet daily goals for 7 consecutive days",
        "points": 200,
        "trigger_type": "event",
        "trigger_config": {"event": "perfect_week"},
    },
    {
        "name": "Social Sharer",
        "type": SPECIAL,
        "description": "Shared your streak achievement on social media!",
        "icon": "\U0001f4f1",
        "requirement": "Share streak on social media",
        "points": 50,
        "trigger_type": "event",
        "trigger_config": {"event": "social_share"},
    },
]

_BY_NAME: dict[str, dict] = {entry["name"]: entry for entry in ACHIEVEMENT_CATALOG}


def get_definition(name: str) -> dict | None:
    """Catalog entry for an achievement name, or None."""
    return _BY_NAME.get(name)


def milestone_thresholds() -> list[tuple[int, dict]]:
    """(threshold, entry) for every milestone, ascending by threshold."""
    return sorted(
        (
            (entry["trigger_config"]["threshold"], entry)
            for entry in ACHIEVEMENT_CATALOG
            if entry["type"] == MILESTONE
        ),
        key=lambda item: item[0],
    )


def event_definitions(event: str) -> list[dict]:
    """Catalog entries unlocked by a named external event."""
    return [
        entry
        for entry in ACHIEVEMENT_CATALOG
        if entry["trigger_type"] == "event" and entry["trigger_config"].get("event") == event
    ]


def available_achievements(unlocked_names: set[str]) -> list[dict]:
    """Catalog entries the user has not unlocked yet, in catalog order."""
    return [entry for entry in ACHIEVEMENT_CATALOG if entry["name"] not in unlocked_names]
