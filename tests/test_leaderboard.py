from dataclasses import dataclass
from datetime import datetime, timedelta

from classpoints.services.leaderboard import DOWN, SAME, UP, LeaderboardEntry, apply_trends, rank, trend_for

NOW = datetime(2026, 3, 11, 12, 0, 0)


@dataclass
class Student:
    id: int
    first_name: str

    @property
    def full_name(self) -> str:
        return self.first_name


@dataclass
class Event:
    student_id: int
    points: int
    created_at: datetime = NOW


AVA, BEN, CAL = Student(1, "Ava"), Student(2, "Ben"), Student(3, "Cal")


def test_sorted_by_total_descending():
    board = rank([AVA, BEN, CAL], [Event(1, 2), Event(2, 9), Event(3, 4)])
    assert [e.student_id for e in board] == [2, 3, 1]
    assert [e.rank for e in board] == [1, 2, 3]


def test_ties_keep_enrolment_order_and_never_share_ranks():
    events = [Event(1, 5), Event(2, 5), Event(3, 10)]
    board = rank([AVA, BEN, CAL], events)
    assert [(e.student_name, e.rank) for e in board] == [("Cal", 1), ("Ava", 2), ("Ben", 3)]

    flipped = rank([BEN, AVA, CAL], events)
    assert [e.student_name for e in flipped] == ["Cal", "Ben", "Ava"]


def test_students_without_events_rank_with_zero():
    board = rank([AVA, BEN], [Event(2, -3)])
    assert [(e.student_id, e.total_points) for e in board] == [(1, 0), (2, -3)]
    assert board[1].bad_behaviours == 1


def test_counts_and_window():
    events = [
        Event(1, 5, NOW - timedelta(days=1)),
        Event(1, -2, NOW - timedelta(days=1)),
        Event(1, 50, NOW - timedelta(days=20)),
    ]
    board = rank([AVA], events, window_start=NOW - timedelta(days=7))
    assert board[0].total_points == 3
    assert (board[0].good_behaviours, board[0].bad_behaviours) == (1, 1)


def test_trend_scenario():
    before = rank([AVA, BEN], [Event(1, 10), Event(2, 5)])
    assert [(e.student_id, e.rank) for e in before] == [(1, 1), (2, 2)]

    after = rank([AVA, BEN], [Event(1, 10), Event(2, 5), Event(2, 20)], previous=before)
    by_id = {e.student_id: e for e in after}
    assert (by_id[2].rank, by_id[2].trend) == (1, UP)
    assert (by_id[1].rank, by_id[1].trend) == (2, DOWN)


def test_trend_with_no_previous_entry_is_up():
    board = rank([AVA, BEN], [Event(1, 1)], previous={1: 1})
    assert [e.trend for e in board] == [SAME, UP]


def test_trend_for():
    assert trend_for(2, None) == UP
    assert trend_for(1, 3) == UP
    assert trend_for(3, 1) == DOWN
    assert trend_for(2, 2) == SAME


def test_apply_trends_accepts_entries_or_mapping():
    entries = [LeaderboardEntry(1, 7, "G", 3, 1, 0), LeaderboardEntry(2, 8, "H", 1, 1, 0)]
    previous = [LeaderboardEntry(2, 7, "G", 0, 0, 0), LeaderboardEntry(1, 8, "H", 2, 1, 0)]
    assert [e.trend for e in apply_trends(entries, previous)] == [UP, DOWN]
    assert [e.trend for e in apply_trends(entries, {7: 1, 8: 2})] == [SAME, SAME]
