"""Caches of derived views.

Two layers, both rebuildable from the behaviour log at any time:

* ``SnapshotCache`` keeps computed views in memory, keyed by
  ``(student_id, class_id, view)`` and leaderboards by ``(class_id, window)``.
  A change-feed signal drops the matching entries; nothing is patched.
* ``SnapshotStore`` persists ``PointSnapshot`` rows. The ``all`` row for a
  student is recomputed from source events after every write.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Hashable, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from classpoints.config import settings
from classpoints.models import BehaviourEvent, PointSnapshot, StudentReward
from classpoints.services.change_feed import ChangeFeed
from classpoints.services.leaderboard import LeaderboardEntry
from classpoints.services.points import PointTotals, WindowPolicy, compute_totals

log = logging.getLogger(__name__)

ALL_PERIOD = "all"


class SnapshotCache:
    """In-memory views, dropped by change-feed signals.

    Every invalidation of a class bumps that class's generation. A reader
    takes ``generation(class_id)`` before it loads events and hands it back to
    ``put_view``/``put_leaderboard``; if a write was published in between the
    value is discarded instead of stored.
    """

    def __init__(self, feed: Optional[ChangeFeed] = None, ttl: Optional[float] = None) -> None:
        self.ttl = settings.SNAPSHOT_TTL_SECONDS if ttl is None else ttl
        self._views: dict[tuple[int, int, Hashable], tuple[float, Any]] = {}
        self._leaderboards: dict[tuple[int, Hashable], tuple[float, list[LeaderboardEntry]]] = {}
        self._generations: dict[int, int] = {}
        if feed is not None:
            feed.subscribe(self.invalidate)

    def _fresh(self, stored_at: float) -> bool:
        return not self.ttl or time.monotonic() - stored_at < self.ttl

    def generation(self, class_id: int) -> int:
        return self._generations.get(class_id, 0)

    def is_current(self, class_id: int, generation: Optional[int]) -> bool:
        return generation is None or generation == self.generation(class_id)

    def get_view(self, student_id: int, class_id: int, view: Hashable) -> Optional[Any]:
        hit = self._views.get((student_id, class_id, view))
        if hit is None or not self._fresh(hit[0]):
            return None
        return hit[1]

    def put_view(
        self, student_id: int, class_id: int, view: Hashable, value: Any, generation: Optional[int] = None
    ) -> bool:
        if not self.is_current(class_id, generation):
            log.debug("discarding stale %s view: student=%s class=%s", view, student_id, class_id)
            return False
        self._views[(student_id, class_id, view)] = (time.monotonic(), value)
        return True

    def get_leaderboard(self, class_id: int, window: Hashable) -> Optional[list[LeaderboardEntry]]:
        hit = self._leaderboards.get((class_id, window))
        if hit is None or not self._fresh(hit[0]):
            return None
        return hit[1]

    def put_leaderboard(
        self, class_id: int, window: Hashable, entries: list[LeaderboardEntry], generation: Optional[int] = None
    ) -> bool:
        if not self.is_current(class_id, generation):
            log.debug("discarding stale leaderboard: class=%s window=%s", class_id, window)
            return False
        self._leaderboards[(class_id, window)] = (time.monotonic(), entries)
        return True

    def invalidate(self, class_id: int, student_id: Optional[int] = None, **_: Any) -> None:
        """Drop views for the class (or one student in it) and every leaderboard of the class."""
        self._generations[class_id] = self.generation(class_id) + 1
        self._leaderboards = {k: v for k, v in self._leaderboards.items() if k[0] != class_id}
        self._views = {
            k: v for k, v in self._views.items()
            if not (k[1] == class_id and (student_id is None or k[0] == student_id))
        }


class SnapshotStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, student_id: int, class_id: int, period: str = ALL_PERIOD) -> Optional[PointSnapshot]:
        return (await self.session.execute(
            select(PointSnapshot).where(
                PointSnapshot.student_id == student_id,
                PointSnapshot.class_id == class_id,
                PointSnapshot.period == period,
            )
        )).scalar_one_or_none()

    async def _get_or_add(self, student_id: int, class_id: int, period: str) -> PointSnapshot:
        snapshot = await self.get(student_id, class_id, period)
        if snapshot is None:
            snapshot = PointSnapshot(student_id=student_id, class_id=class_id, period=period)
            self.session.add(snapshot)
        return snapshot

    async def spent_points(self, student_id: int, class_id: int) -> int:
        total = (await self.session.execute(
            select(func.coalesce(func.sum(StudentReward.points_deducted), 0)).where(
                StudentReward.student_id == student_id,
                StudentReward.class_id == class_id,
            )
        )).scalar_one()
        return int(total)

    async def source_events(self, student_id: int, class_id: int) -> list[BehaviourEvent]:
        return list((await self.session.execute(
            select(BehaviourEvent)
            .where(BehaviourEvent.student_id == student_id, BehaviourEvent.class_id == class_id)
            .order_by(BehaviourEvent.created_at, BehaviourEvent.id)
        )).scalars())

    async def rebuild(
        self, student_id: int, class_id: int, now: datetime, policy: WindowPolicy
    ) -> tuple[PointSnapshot, PointTotals]:
        """Recompute the student's ``all`` snapshot from the behaviour log and redemption records."""
        events = await self.source_events(student_id, class_id)
        totals = compute_totals(events, now=now, policy=policy)
        spent = await self.spent_points(student_id, class_id)

        snapshot = await self._get_or_add(student_id, class_id, ALL_PERIOD)
        snapshot.total_points = totals.total
        snapshot.good_behaviour_count = totals.good_count
        snapshot.bad_behaviour_count = totals.bad_count
        snapshot.balance = totals.total - spent
        snapshot.snapshot_date = now
        await self.session.flush()
        log.debug("snapshot rebuilt: student=%s class=%s total=%s balance=%s",
                  student_id, class_id, totals.total, snapshot.balance)
        return snapshot, totals

    async def write_balance(self, student_id: int, class_id: int, balance: int, now: datetime) -> PointSnapshot:
        snapshot = await self._get_or_add(student_id, class_id, ALL_PERIOD)
        snapshot.balance = balance
        snapshot.snapshot_date = now
        await self.session.flush()
        return snapshot

    async def ranks(self, class_id: int, period: str) -> dict[int, int]:
        rows = (await self.session.execute(
            select(PointSnapshot.student_id, PointSnapshot.rank).where(
                PointSnapshot.class_id == class_id,
                PointSnapshot.period == period,
                PointSnapshot.rank.is_not(None),
            )
        )).all()
        return {student_id: rank for student_id, rank in rows}

    async def store_ranks(
        self, class_id: int, period: str, entries: Iterable[LeaderboardEntry], now: datetime
    ) -> None:
        for entry in entries:
            snapshot = await self._get_or_add(entry.student_id, class_id, period)
            snapshot.rank = entry.rank
            snapshot.snapshot_date = now
            if period != ALL_PERIOD:
                snapshot.total_points = entry.total_points
                snapshot.good_behaviour_count = entry.good_behaviours
                snapshot.bad_behaviour_count = entry.bad_behaviours
        await self.session.flush()
