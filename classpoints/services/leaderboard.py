"""Class leaderboard ranking.

Ranking is always recomputed from raw events for the requested window. Ties
on total points keep the order of the ``students`` argument (Python's sort is
stable), and ranks are never shared: equal totals get consecutive ranks.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from classpoints.services.points import PointEvent, in_window

UP = "up"
DOWN = "down"
SAME = "same"


class RankedStudent(Protocol):
    id: int
    full_name: str


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    student_id: int
    student_name: str
    total_points: int
    good_behaviours: int
    bad_behaviours: int
    trend: str = SAME


def trend_for(new_rank: int, previous_rank: Optional[int]) -> str:
    if previous_rank is None:
        return UP
    if new_rank < previous_rank:
        return UP
    if new_rank > previous_rank:
        return DOWN
    return SAME


def apply_trends(
    entries: Sequence[LeaderboardEntry],
    previous: Optional[Iterable[LeaderboardEntry]] | Mapping[int, int] = None,
) -> list[LeaderboardEntry]:
    """Set each entry's trend against a previous ranking.

    ``previous`` is either a list of entries of the same shape or a mapping of
    ``student_id -> rank``. Students with no prior rank trend ``up``.
    """
    if previous is None:
        previous_ranks: Mapping[int, int] = {}
    elif isinstance(previous, Mapping):
        previous_ranks = previous
    else:
        previous_ranks = {p.student_id: p.rank for p in previous}
    return [replace(e, trend=trend_for(e.rank, previous_ranks.get(e.student_id))) for e in entries]


def rank(
    students: Sequence[RankedStudent],
    events: Iterable[PointEvent],
    window_start: Optional[datetime] = None,
    window_end: Optional[datetime] = None,
    previous: Optional[Iterable[LeaderboardEntry]] | Mapping[int, int] = None,
) -> list[LeaderboardEntry]:
    totals: dict[int, int] = defaultdict(int)
    good: dict[int, int] = defaultdict(int)
    bad: dict[int, int] = defaultdict(int)
    for e in events:
        if not in_window(e.created_at, window_start, window_end):
            continue
        totals[e.student_id] += e.points
        if e.points > 0:
            good[e.student_id] += 1
        elif e.points < 0:
            bad[e.student_id] += 1

    ordered = sorted(students, key=lambda s: totals[s.id], reverse=True)
    entries = [
        LeaderboardEntry(
            rank=position,
            student_id=s.id,
            student_name=s.full_name,
            total_points=totals[s.id],
            good_behaviours=good[s.id],
            bad_behaviours=bad[s.id],
        )
        for position, s in enumerate(ordered, start=1)
    ]
    return apply_trends(entries, previous)
