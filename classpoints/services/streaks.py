"""Consecutive-day streaks.

A streak is a run of consecutive local calendar days that each contain at
least one positive-point event. A day with only negative or zero-point events
breaks the run just like a day with no events at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from classpoints.config import settings
from classpoints.services.points import PointEvent
from classpoints.utils import local_date

DEFAULT_MILESTONES: tuple[int, int, int] = tuple(settings.STREAK_MILESTONES)


@dataclass(frozen=True)
class StreakMilestones:
    three_day: bool = False
    weekly: bool = False
    monthly: bool = False

    def reached(self) -> list[str]:
        return [name for name in ("three_day", "weekly", "monthly") if getattr(self, name)]


@dataclass(frozen=True)
class StreakInfo:
    current_streak: int = 0
    longest_streak: int = 0
    last_event_date: Optional[datetime] = None
    milestones: StreakMilestones = field(default_factory=StreakMilestones)


def milestones_for(streak: int, thresholds: Sequence[int] = DEFAULT_MILESTONES) -> StreakMilestones:
    three_day, weekly, monthly = thresholds
    return StreakMilestones(
        three_day=streak >= three_day,
        weekly=streak >= weekly,
        monthly=streak >= monthly,
    )


def _longest_run(days: Iterable[date]) -> int:
    longest = run = 0
    previous: Optional[date] = None
    for d in sorted(days):
        run = run + 1 if previous is not None and d - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = d
    return longest


def compute_streak(
    events: Sequence[PointEvent],
    tz: tzinfo = timezone.utc,
    thresholds: Sequence[int] = DEFAULT_MILESTONES,
) -> StreakInfo:
    if not events:
        return StreakInfo()

    # Event ids and insertion order say nothing about time; only created_at does.
    last_event = max(e.created_at for e in events)
    positive_days = {local_date(e.created_at, tz) for e in events if e.points > 0}

    current = 0
    day = local_date(last_event, tz)
    while day in positive_days:
        current += 1
        day -= timedelta(days=1)

    return StreakInfo(
        current_streak=current,
        longest_streak=_longest_run(positive_days),
        last_event_date=last_event,
        milestones=milestones_for(current, thresholds),
    )
