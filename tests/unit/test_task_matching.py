"""Keyword task matcher tests."""

from __future__ import annotations

from focusflow.db.models import Streak
from focusflow.streaks.task_matching import keyword_matcher, keywords


def _streak(streak_id: int, name: str, category: str = "general", display_order: int = 0) -> Streak:
    return Streak(id=streak_id, user_id="u", name=name, category=category, display_order=display_order)


def test_keywords_lowercase_and_drop_short_words():
    assert keywords("Read a Python book") == {"read", "python", "book"}
    assert keywords(None) == set()


def test_matches_on_name_keyword():
    match = keyword_matcher([_streak(1, "Python practice"), _streak(2, "Morning run", "fitness")])
    assert match("Python exercises") == 1
    assert match("Evening RUN") == 2


def test_matches_on_category():
    match = keyword_matcher([_streak(1, "Daily pages", "writing")])
    assert match("writing session") == 1


def test_most_overlap_wins():
    match = keyword_matcher([
        _streak(1, "Spanish vocabulary", display_order=1),
        _streak(2, "Spanish grammar drills", display_order=2),
    ])
    assert match("spanish grammar") == 2


def test_tie_goes_to_lowest_display_order():
    match = keyword_matcher([
        _streak(1, "Guitar scales", display_order=5),
        _streak(2, "Guitar songs", display_order=2),
    ])
    assert match("guitar") == 2


def test_no_overlap_is_no_match():
    match = keyword_matcher([_streak(1, "Meditation")])
    assert match("taxes") is None
    assert match("") is None
