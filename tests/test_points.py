from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

import pytest

from classpoints.errors import ValidationError
from classpoints.services.points import (
    CALENDAR,
    PointTotals,
    TimeWindow,
    WindowPolicy,
    compute_totals,
    daily_breakdown,
    in_window,
    resolve_window,
)

NOW = datetime(2026, 3, 11, 12, 0, 0)


@dataclass
class Event:
    points: int
    created_at: datetime
    student_id: int = 1


def test_empty_input_is_all_zeros():
    assert compute_totals([], now=NOW) == PointTotals()


def test_totals_and_counts():
    events = [Event(5, NOW), Event(5, NOW), Event(5, NOW), Event(-2, NOW), Event(0, NOW)]
    totals = compute_totals(events, now=NOW)
    assert totals.total == 13
    assert totals.good_count == 3
    assert totals.bad_count == 1


def test_window_bounds_are_half_open():
    start = NOW - timedelta(hours=1)
    assert in_window(start, start, NOW)
    assert not in_window(NOW, start, NOW)
    events = [Event(1, start), Event(10, NOW)]
    assert compute_totals(events, window_start=start, window_end=NOW, now=NOW).total == 1


def test_rolling_week_and_month():
    events = [
        Event(1, NOW - timedelta(days=1)),
        Event(10, NOW - timedelta(days=10)),
        Event(100, NOW - timedelta(days=40)),
    ]
    totals = compute_totals(events, now=NOW)
    assert totals.total == 111
    assert totals.weekly_total == 1
    assert totals.monthly_total == 11


def test_future_events_are_outside_weekly_and_monthly():
    totals = compute_totals([Event(4, NOW + timedelta(hours=2))], now=NOW)
    assert totals.total == 4
    assert totals.weekly_total == 0
    assert totals.monthly_total == 0


def test_calendar_week_starts_monday():
    policy = WindowPolicy(mode=CALENDAR)
    assert policy.week_start(NOW) == datetime(2026, 3, 9)
    assert policy.month_start(NOW) == datetime(2026, 3, 1)
    events = [Event(2, datetime(2026, 3, 9, 0, 5)), Event(7, datetime(2026, 3, 8, 23, 55))]
    totals = compute_totals(events, now=NOW, policy=policy)
    assert totals.weekly_total == 2
    assert totals.monthly_total == 9


def test_calendar_windows_follow_the_local_zone():
    brisbane = timezone(timedelta(hours=10))
    policy = WindowPolicy(mode=CALENDAR, tz=brisbane)
    # 2026-03-01 local midnight is 2026-02-28 14:00 UTC
    assert policy.month_start(NOW) == datetime(2026, 2, 28, 14, 0)


def test_partitions_recombine_to_the_whole():
    events = [Event(p, NOW - timedelta(days=d)) for p, d in [(5, 0), (-2, 3), (3, 8), (0, 1), (-1, 35), (4, 2)]]
    whole = compute_totals(events, now=NOW)
    for split in range(len(events) + 1):
        left = compute_totals(events[:split], now=NOW)
        right = compute_totals(events[split:], now=NOW)
        assert left + right == whole


def test_resolve_named_windows():
    assert resolve_window(TimeWindow.ALL, NOW) == (None, None)
    assert resolve_window("today", NOW) == (datetime(2026, 3, 11), None)
    assert resolve_window("week", NOW) == (NOW - timedelta(days=7), None)
    assert resolve_window("month", NOW) == (NOW - timedelta(days=30), None)


def test_resolve_custom_window():
    start, end = datetime(2026, 3, 1), datetime(2026, 3, 5)
    assert resolve_window("custom", NOW, start=start, end=end) == (start, end)
    aware = datetime(2026, 3, 1, 10, tzinfo=timezone(timedelta(hours=10)))
    assert resolve_window("custom", NOW, start=aware) == (datetime(2026, 3, 1, 0, 0), None)


@pytest.mark.parametrize(
    "window, start, end",
    [
        ("fortnight", None, None),
        ("custom", None, None),
        ("custom", datetime(2026, 3, 5), datetime(2026, 3, 1)),
    ],
)
def test_resolve_window_rejects_bad_input(window, start, end):
    with pytest.raises(ValidationError):
        resolve_window(window, NOW, start=start, end=end)


def test_daily_breakdown_oldest_first():
    events = [
        Event(5, NOW),
        Event(-2, NOW),
        Event(3, NOW - timedelta(days=2)),
        Event(3, NOW - timedelta(days=9)),
    ]
    days = daily_breakdown(events, days=7, today=date(2026, 3, 11))
    assert [d.day for d in days][0] == date(2026, 3, 5)
    assert days[-1].day == date(2026, 3, 11)
    assert (days[-1].positive, days[-1].negative, days[-1].points) == (1, 1, 3)
    assert days[-3].positive == 1
    assert sum(d.positive for d in days) == 2
