"""Point aggregation over behaviour events.

Everything here is a pure function of its input: no session, no clock unless
``now`` is omitted. Window bounds are half-open, ``start <= created_at < end``,
with either bound optional. All timestamps are naive UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Iterable, Optional, Protocol, Sequence

from classpoints.config import settings
from classpoints.errors import ValidationError
from classpoints.utils import get_zone, local_date, to_local, to_utc_naive, utcnow


class PointEvent(Protocol):
    student_id: int
    points: int
    created_at: datetime


class TimeWindow(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"
    CUSTOM = "custom"


ROLLING = "rolling"
CALENDAR = "calendar"


@dataclass(frozen=True)
class WindowPolicy:
    """How the weekly/monthly windows are cut.

    ``rolling`` windows end at ``now`` and reach back a fixed number of days.
    ``calendar`` windows start at local midnight on the Monday of the current
    ISO week, or on the first of the current month.
    """

    mode: str = ROLLING
    week_days: int = 7
    month_days: int = 30
    tz: tzinfo = timezone.utc

    @classmethod
    def from_settings(cls, cfg=settings) -> "WindowPolicy":
        return cls(
            mode=cfg.WINDOW_MODE,
            week_days=cfg.WEEK_WINDOW_DAYS,
            month_days=cfg.MONTH_WINDOW_DAYS,
            tz=get_zone(cfg.TIMEZONE),
        )

    def _local_midnight(self, d: date) -> datetime:
        return to_utc_naive(datetime.combine(d, time.min, tzinfo=self.tz))

    def today_start(self, now: datetime) -> datetime:
        return self._local_midnight(local_date(now, self.tz))

    def week_start(self, now: datetime) -> datetime:
        if self.mode == CALENDAR:
            today = local_date(now, self.tz)
            return self._local_midnight(today - timedelta(days=today.weekday()))
        return now - timedelta(days=self.week_days)

    def month_start(self, now: datetime) -> datetime:
        if self.mode == CALENDAR:
            return self._local_midnight(local_date(now, self.tz).replace(day=1))
        return now - timedelta(days=self.month_days)


DEFAULT_POLICY = WindowPolicy()


@dataclass(frozen=True)
class PointTotals:
    total: int = 0
    weekly_total: int = 0
    monthly_total: int = 0
    good_count: int = 0
    bad_count: int = 0

    def __add__(self, other: "PointTotals") -> "PointTotals":
        if not isinstance(other, PointTotals):
            return NotImplemented
        return PointTotals(
            total=self.total + other.total,
            weekly_total=self.weekly_total + other.weekly_total,
            monthly_total=self.monthly_total + other.monthly_total,
            good_count=self.good_count + other.good_count,
            bad_count=self.bad_count + other.bad_count,
        )


def in_window(created_at: datetime, start: Optional[datetime], end: Optional[datetime]) -> bool:
    if start is not None and created_at < start:
        return False
    if end is not None and created_at >= end:
        return False
    return True


def compute_totals(
    events: Iterable[PointEvent],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    now: Optional[datetime] = None,
    policy: Optional[WindowPolicy] = None,
) -> PointTotals:
    policy = policy or DEFAULT_POLICY
    now = now or utcnow()
    week_start = policy.week_start(now)
    month_start = policy.month_start(now)

    total = weekly = monthly = good = bad = 0
    for e in events:
        if not in_window(e.created_at, window_start, window_end):
            continue
        points = e.points or 0
        total += points
        if points > 0:
            good += 1
        elif points < 0:
            bad += 1
        if in_window(e.created_at, week_start, None) and e.created_at <= now:
            weekly += points
        if in_window(e.created_at, month_start, None) and e.created_at <= now:
            monthly += points
    return PointTotals(
        total=total, weekly_total=weekly, monthly_total=monthly, good_count=good, bad_count=bad
    )


def resolve_window(
    window: TimeWindow | str,
    now: Optional[datetime] = None,
    policy: Optional[WindowPolicy] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Map a named window onto ``(start, end)`` bounds."""
    try:
        window = TimeWindow(window)
    except ValueError:
        raise ValidationError(f"Unknown window {window!r}") from None
    policy = policy or DEFAULT_POLICY
    now = now or utcnow()

    if window is TimeWindow.TODAY:
        return policy.today_start(now), None
    if window is TimeWindow.WEEK:
        return policy.week_start(now), None
    if window is TimeWindow.MONTH:
        return policy.month_start(now), None
    if window is TimeWindow.CUSTOM:
        if start is None and end is None:
            raise ValidationError("A custom window needs a start or an end")
        start = to_utc_naive(start) if start else None
        end = to_utc_naive(end) if end else None
        if start and end and start > end:
            raise ValidationError("Window start is after its end")
        return start, end
    return None, None


@dataclass
class DailyCount:
    day: date
    positive: int = 0
    negative: int = 0
    points: int = 0


def daily_breakdown(
    events: Sequence[PointEvent],
    days: int = 7,
    today: Optional[date] = None,
    tz: tzinfo = timezone.utc,
) -> list[DailyCount]:
    """Positive/negative event counts for each of the last ``days`` local days, oldest first."""
    today = today or to_local(utcnow(), tz).date()
    buckets = {today - timedelta(days=offset): DailyCount(day=today - timedelta(days=offset))
               for offset in range(days)}
    for e in events:
        bucket = buckets.get(local_date(e.created_at, tz))
        if bucket is None:
            continue
        bucket.points += e.points or 0
        if e.points > 0:
            bucket.positive += 1
        elif e.points < 0:
            bucket.negative += 1
    return [buckets[d] for d in sorted(buckets)]
