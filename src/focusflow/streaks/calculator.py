"""Pure streak computation over an activity log.

Nothing here touches the database or the clock: the service layer loads the
eligible activity dates and frozen dates for a streak, resolves "today", and
calls ``compute_streak``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class StreakMetrics:
    """Result of a streak computation."""

    current: int = 0
    longest: int = 0
    streak_start_date: date | None = None
    last_activity_date: date | None = None


def current_streak(
    activity_dates: set[date],
    today: date,
    frozen_dates: set[date] | frozenset[date] = frozenset(),
) -> tuple[int, date | None]:
    """Walk backward from today and count consecutive active days.

    Returns ``(count, start_date)``. If today has neither activity nor a
    freeze, the walk starts at yesterday (today not logged yet is not a
    break). Frozen days keep the walk going but do not add to the count.
    The start date is the earliest active day of the run.
    """
    cursor = today
    if cursor not in activity_dates and cursor not in frozen_dates:
        cursor -= ONE_DAY

    count = 0
    start: date | None = None
    while cursor in activity_dates or cursor in frozen_dates:
        if cursor in activity_dates:
            count += 1
            start = cursor
        cursor -= ONE_DAY

    return count, start


def longest_run(activity_dates: Iterable[date]) -> int:
    """Length of the longest run of calendar-consecutive dates."""
    ordered = sorted(set(activity_dates))
    if not ordered:
        return 0

    best = run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        if (cur - prev).days == 1:
            run += 1
        else:
            best = max(best, run)
            run = 1
    return max(best, run)


def compute_streak(
    activity_dates: Iterable[date],
    today: date,
    frozen_dates: Iterable[date] = (),
    recorded_dates: Iterable[date] = (),
    reset_through: date | None = None,
) -> StreakMetrics:
    """Compute current streak, longest streak, start and last activity dates.

    ``activity_dates`` must only hold streak-eligible days; ``recorded_dates``
    may add days whose activity did not count toward the streak, which only
    affect ``last_activity_date``. Dates after ``today`` are ignored, so
    recomputing "as of" a past day is stable.

    ``reset_through`` is the floor left by an explicit reset: days on or
    before it no longer feed the current streak or the last activity date.
    The longest-run scan still covers the whole history.

    Freezes bridge gaps for the current streak only; they never inflate the
    longest-run scan over history.
    """
    dates = {d for d in activity_dates if d <= today}
    recorded = dates | {d for d in recorded_dates if d <= today}
    frozen = {d for d in frozen_dates if d <= today}

    if reset_through is not None:
        live = {d for d in dates if d > reset_through}
        recorded = {d for d in recorded if d > reset_through}
        frozen = {d for d in frozen if d > reset_through}
    else:
        live = dates

    current, start = current_streak(live, today, frozen)
    longest = max(longest_run(dates), current)

    return StreakMetrics(
        current=current,
        longest=longest,
        streak_start_date=start if current > 0 else None,
        last_activity_date=max(recorded) if recorded else None,
    )


def started_after_break(activity_dates: Iterable[date], metrics: StreakMetrics) -> bool:
    """True when ``metrics`` describe a live streak that follows an earlier one.

    The history must hold eligible activity older than the current run. It
    can only be separated from the run by a gap or by a reset.
    """
    if metrics.current == 0 or metrics.streak_start_date is None:
        return False
    return any(d < metrics.streak_start_date for d in activity_dates)
