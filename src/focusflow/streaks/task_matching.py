"""Task-name to streak mapping.

The recorder never guesses which streak a focus session belongs to; callers
pass a ``TaskMatcher``. ``keyword_matcher`` is the stock heuristic used by the
HTTP layer.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from focusflow.db.models import Streak

TaskMatcher = Callable[[str], int | None]

MIN_KEYWORD_LENGTH = 3

_WORD_RE = re.compile(r"[a-z0-9]+")


def keywords(text: str | None) -> set[str]:
    """Lowercased words of at least MIN_KEYWORD_LENGTH characters."""
    if not text:
        return set()
    return {w for w in _WORD_RE.findall(text.lower()) if len(w) >= MIN_KEYWORD_LENGTH}


def keyword_matcher(streaks: Iterable[Streak]) -> TaskMatcher:
    """Build a matcher that picks the streak sharing the most keywords with a task name.

    Keywords come from each streak's name and category. Ties go to the
    streak with the lowest display order; no overlap means no match.
    """
    candidates = [
        (streak.display_order, streak.id, keywords(streak.name) | keywords(streak.category))
        for streak in streaks
    ]

    def match(task_name: str) -> int | None:
        words = keywords(task_name)
        best_id = None
        best_key = None
        for display_order, streak_id, streak_words in candidates:
            overlap = len(words & streak_words)
            if overlap == 0:
                continue
            key = (-overlap, display_order, streak_id)
            if best_key is None or key < best_key:
                best_key = key
                best_id = streak_id
        return best_id

    return match
