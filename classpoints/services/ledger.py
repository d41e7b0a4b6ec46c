"""The behaviour ledger: derived views and mutating operations.

Every derived value (totals, balance, ranks, streaks, eligibility) is
recomputed from the behaviour log. Writes publish on the change feed, which
drops cached views; the persisted snapshot for the affected student is then
rebuilt from source rather than incremented.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from classpoints.config import settings
from classpoints.errors import ValidationError
from classpoints.extensions import Database
from classpoints.models import BehaviourEvent, Classroom, PointSnapshot, StudentBadge, StudentReward, User
from classpoints.models.notification import BEHAVIOR_LOGGED, MILESTONE_ACHIEVED, REWARD_REDEEMED, STREAK_BROKEN
from classpoints.services.awarding import grant_badge
from classpoints.services.change_feed import AWARD, BEHAVIOUR, REDEMPTION, ChangeFeed
from classpoints.services.eligibility import evaluate
from classpoints.services.leaderboard import LeaderboardEntry, rank
from classpoints.services.notifications import MILESTONE_NAMES, TITLES, NotificationEmitter, format_message
from classpoints.services.points import (
    DailyCount,
    PointTotals,
    TimeWindow,
    WindowPolicy,
    compute_totals,
    daily_breakdown,
    resolve_window,
)
from classpoints.services.redemption import StudentLocks, redeem
from classpoints.services.snapshots import SnapshotCache, SnapshotStore
from classpoints.services.store import BehaviourFilter, ConfigStore, EventStore, RecordStore, check_category_sign
from classpoints.services.streaks import StreakInfo, compute_streak
from classpoints.utils import local_date, to_utc_naive, utcnow

log = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class LoggedBehaviour:
    event: BehaviourEvent
    totals: PointTotals
    balance: int
    streak: StreakInfo
    awarded_badge_ids: list[int] = field(default_factory=list)


@dataclass
class AwardResult:
    award: Optional[StudentBadge]
    created: bool


@dataclass
class RedemptionResult:
    record: StudentReward
    new_balance: int
    created: bool = True


@dataclass
class HistoryPage:
    items: list[BehaviourEvent]
    count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.count / self.page_size) if self.count else 0


@dataclass
class StudentStats:
    total_points: int
    good_behaviours: int
    bad_behaviours: int
    balance: int
    rewards: int
    badges: int
    current_streak: int
    longest_streak: int


def _require(**values) -> None:
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


class BehaviourLedger:
    def __init__(
        self,
        db: Database,
        feed: Optional[ChangeFeed] = None,
        cache: Optional[SnapshotCache] = None,
        emitter: Optional[NotificationEmitter] = None,
        policy: Optional[WindowPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
        locks: Optional[StudentLocks] = None,
        notifications_enabled: Optional[bool] = None,
    ) -> None:
        self.db = db
        self.feed = feed or ChangeFeed()
        # A cache passed in is expected to be subscribed to the same feed already.
        self.cache = cache if cache is not None else SnapshotCache(self.feed)
        self.emitter = emitter or NotificationEmitter(db)
        self.policy = policy or WindowPolicy.from_settings()
        self.clock = clock
        self.locks = locks if locks is not None else StudentLocks()
        self.notifications_enabled = (
            settings.NOTIFICATIONS_ENABLED if notifications_enabled is None else notifications_enabled
        )

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    async def log_behaviour(
        self,
        student_id: int,
        class_id: int,
        category_id: int,
        teacher_id: int,
        points: Optional[int] = None,
        note: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> LoggedBehaviour:
        _require(student_id=student_id, class_id=class_id, category_id=category_id, teacher_id=teacher_id)
        async with self.db.session() as session:
            config = ConfigStore(session)
            classroom = await config.require_class(class_id)
            student = await config.require_student(student_id, class_id)
            category = await config.require_category(category_id, class_id)
            teacher = await config.require_user(teacher_id)
            if points is None:
                points = category.point_value
            check_category_sign(category.type, points)

            store = EventStore(session)
            history = await store.list(BehaviourFilter(student_id=student_id, class_id=class_id))
            event = BehaviourEvent(
                student_id=student_id,
                class_id=class_id,
                category_id=category_id,
                teacher_id=teacher.id,
                points=points,
                note=note.strip() if note else None,
                created_at=to_utc_naive(created_at) if created_at else self.clock(),
            )
            await store.append(event)
            await session.commit()

        log.info("behaviour %s logged: student=%s class=%s points=%s", event.id, student_id, class_id, points)
        self.feed.publish(class_id, student_id, BEHAVIOUR)

        snapshot, totals = await self._refresh_snapshot(student_id, class_id)
        streak_before = compute_streak(history, self.policy.tz)
        streak = compute_streak(history + [event], self.policy.tz)
        awarded = await self._award_eligible(student, class_id, totals)

        if self._notify(classroom):
            await self._safe_emit(
                user_id=teacher.id,
                type=BEHAVIOR_LOGGED,
                title=TITLES[BEHAVIOR_LOGGED],
                content=format_message(BEHAVIOR_LOGGED, student.full_name, category.name),
                related_data={"behaviour_id": event.id, "points": points},
            )
            await self._streak_notifications(student, class_id, streak_before, streak)

        return LoggedBehaviour(
            event=event,
            totals=totals,
            balance=snapshot.balance,
            streak=streak,
            awarded_badge_ids=awarded,
        )

    async def delete_behaviour(self, event_id: int) -> BehaviourEvent:
        """Hard-delete an event. Badges already awarded are kept."""
        async with self.db.session() as session:
            event = await EventStore(session).delete(event_id)
            await session.commit()
        log.info("behaviour %s deleted: student=%s class=%s", event.id, event.student_id, event.class_id)
        self.feed.publish(event.class_id, event.student_id, BEHAVIOUR)
        await self._refresh_snapshot(event.student_id, event.class_id)
        return event

    async def award_badge(self, student_id: int, badge_id: int) -> AwardResult:
        """Manual award. Bypasses thresholds; a repeat award is a no-op."""
        _require(student_id=student_id, badge_id=badge_id)
        async with self.db.session() as session:
            config = ConfigStore(session)
            badge = await config.require_badge(badge_id)
            student = await config.require_student(student_id, badge.class_id)
        award, created = await grant_badge(self.db, self.emitter, student, badge)
        if created:
            self.feed.publish(badge.class_id, student_id, AWARD)
        return AwardResult(award=award, created=created)

    async def redeem_reward(
        self,
        student_id: int,
        reward_id: int,
        request_id: Optional[str] = None,
        expected_balance: Optional[int] = None,
    ) -> RedemptionResult:
        """Debit a reward's cost from the student's balance.

        The balance is recomputed from the behaviour log inside the
        student's critical section; ``expected_balance`` is only compared
        against it. The redemption record and the snapshot balance are
        written in one transaction. A repeated ``request_id`` returns the
        original redemption without debiting again.
        """
        _require(student_id=student_id, reward_id=reward_id)
        if request_id is not None and not request_id.strip():
            raise ValidationError("request_id cannot be blank")

        async with self.locks.get("student", student_id):
            async with self.db.session() as session:
                config = ConfigStore(session)
                records = RecordStore(session)
                snapshots = SnapshotStore(session)

                if request_id:
                    existing = await records.find_redemption(request_id)
                    if existing is not None:
                        if existing.student_id != student_id or existing.reward_id != reward_id:
                            raise ValidationError(f"request_id {request_id!r} belongs to another redemption")
                        balance = await self._balance(snapshots, student_id, existing.class_id)
                        log.info("redemption %s replayed for request %s", existing.id, request_id)
                        return RedemptionResult(record=existing, new_balance=balance, created=False)

                reward = await config.require_reward(reward_id)
                student = await config.require_student(student_id, reward.class_id)
                balance = await self._balance(snapshots, student_id, reward.class_id)
                if expected_balance is not None and expected_balance != balance:
                    log.warning(
                        "stale balance for student %s: caller had %s, ledger has %s; using ledger value",
                        student_id, expected_balance, balance,
                    )

                redemption = redeem(student_id, reward, balance, request_id)
                try:
                    record = await records.add_redemption(
                        student_id, reward.id, reward.class_id, redemption.points_deducted, request_id
                    )
                    await snapshots.write_balance(student_id, reward.class_id, redemption.new_balance, self.clock())
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        log.info(
            "reward %s redeemed by student %s: %s -> %s",
            reward.id, student_id, redemption.previous_balance, redemption.new_balance,
        )
        self.feed.publish(reward.class_id, student_id, REDEMPTION)
        await self._safe_emit(
            user_id=student_id,
            type=REWARD_REDEEMED,
            title=TITLES[REWARD_REDEEMED],
            content=format_message(REWARD_REDEEMED, student.full_name, reward.name, reward.point_cost),
            related_data={"reward_id": reward.id, "redemption_id": record.id},
        )
        return RedemptionResult(record=record, new_balance=redemption.new_balance)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    async def get_totals(self, student_id: int, class_id: int) -> PointTotals:
        cached = self.cache.get_view(student_id, class_id, "totals")
        if cached is not None:
            return cached
        generation = self.cache.generation(class_id)
        async with self.db.session() as session:
            await ConfigStore(session).require_student(student_id, class_id)
            events = await EventStore(session).list(BehaviourFilter(student_id=student_id, class_id=class_id))
        totals = compute_totals(events, now=self.clock(), policy=self.policy)
        self.cache.put_view(student_id, class_id, "totals", totals, generation)
        return totals

    async def get_balance(self, student_id: int, class_id: int) -> int:
        async with self.db.session() as session:
            await ConfigStore(session).require_student(student_id, class_id)
            return await self._balance(SnapshotStore(session), student_id, class_id)

    async def get_snapshot(self, student_id: int, class_id: int) -> PointSnapshot:
        async with self.db.session() as session:
            await ConfigStore(session).require_student(student_id, class_id)
            snapshot = await SnapshotStore(session).get(student_id, class_id)
        if snapshot is None or snapshot.balance is None:
            # Rows first created by a rank write carry no balance yet.
            snapshot, _ = await self._refresh_snapshot(student_id, class_id)
        return snapshot

    async def get_streak(self, student_id: int, class_id: int) -> StreakInfo:
        cached = self.cache.get_view(student_id, class_id, "streak")
        if cached is not None:
            return cached
        generation = self.cache.generation(class_id)
        async with self.db.session() as session:
            await ConfigStore(session).require_student(student_id, class_id)
            events = await EventStore(session).list(BehaviourFilter(student_id=student_id, class_id=class_id))
        streak = compute_streak(events, self.policy.tz)
        self.cache.put_view(student_id, class_id, "streak", streak, generation)
        return streak

    async def get_leaderboard(
        self,
        class_id: int,
        window: TimeWindow | str = TimeWindow.ALL,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[LeaderboardEntry]:
        now = self.clock()
        window_start, window_end = resolve_window(window, now, self.policy, start, end)
        window = TimeWindow(window)
        key = window.value if window is not TimeWindow.CUSTOM else (window.value, window_start, window_end)
        cached = self.cache.get_leaderboard(class_id, key)
        if cached is not None:
            return list(cached)
        generation = self.cache.generation(class_id)

        # Custom ranges are one-off views: no stored previous ranking, every entry trends up.
        persist = window is not TimeWindow.CUSTOM
        async with self.db.session() as session:
            config = ConfigStore(session)
            await config.require_class(class_id)
            students = await config.students_in_class(class_id)
            events = await EventStore(session).list(
                BehaviourFilter(class_id=class_id, start=window_start, end=window_end)
            )
            snapshots = SnapshotStore(session)
            previous = await snapshots.ranks(class_id, window.value) if persist else None
            entries = rank(students, events, window_start, window_end, previous=previous)
            # A write published since the events were read makes these ranks stale.
            if persist and self.cache.is_current(class_id, generation):
                try:
                    await snapshots.store_ranks(class_id, window.value, entries, now)
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    log.warning("rank snapshot for class %s/%s lost a race; not stored", class_id, window.value)

        self.cache.put_leaderboard(class_id, key, entries, generation)
        return entries

    async def get_eligible_badges(self, student_id: int, class_id: Optional[int] = None) -> list[int]:
        now = self.clock()
        eligible: list[int] = []
        async with self.db.session() as session:
            config = ConfigStore(session)
            await config.require_student(student_id, class_id)
            class_ids = [class_id] if class_id is not None else await config.classes_for_student(student_id)
            earned = await RecordStore(session).earned_badges(student_id)
            store = EventStore(session)
            for cid in class_ids:
                events = await store.list(BehaviourFilter(student_id=student_id, class_id=cid))
                totals = compute_totals(events, now=now, policy=self.policy)
                eligible.extend(evaluate(totals, await config.badges(cid), earned))
        return eligible

    async def get_history(
        self,
        class_id: int,
        student_id: Optional[int] = None,
        category_id: Optional[int] = None,
        kind: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> HistoryPage:
        if page < 1:
            raise ValidationError("page starts at 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if kind is not None and kind not in ("positive", "negative"):
            raise ValidationError(f"kind must be 'positive' or 'negative', not {kind!r}")
        flt = BehaviourFilter(
            class_id=class_id, student_id=student_id, category_id=category_id,
            kind=kind, start=start, end=end, search=search,
        )
        async with self.db.session() as session:
            await ConfigStore(session).require_class(class_id)
            store = EventStore(session)
            count = await store.count(flt)
            items = await store.list(flt, limit=page_size, offset=(page - 1) * page_size, newest_first=True)
        return HistoryPage(items=items, count=count, page=page, page_size=page_size)

    async def get_student_stats(self, student_id: int, class_id: int) -> StudentStats:
        async with self.db.session() as session:
            config = ConfigStore(session)
            records = RecordStore(session)
            await config.require_student(student_id, class_id)
            events = await EventStore(session).list(BehaviourFilter(student_id=student_id, class_id=class_id))
            redemptions = await records.redemptions(student_id, class_id)
            class_badges = {b.id for b in await config.badges(class_id)}
            earned = [a for a in await records.earned_badges(student_id) if a.badge_id in class_badges]

        totals = compute_totals(events, now=self.clock(), policy=self.policy)
        streak = compute_streak(events, self.policy.tz)
        return StudentStats(
            total_points=totals.total,
            good_behaviours=totals.good_count,
            bad_behaviours=totals.bad_count,
            balance=totals.total - sum(r.points_deducted for r in redemptions),
            rewards=len(redemptions),
            badges=len(earned),
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
        )

    async def get_daily_trend(
        self, class_id: int, student_id: Optional[int] = None, days: int = 7
    ) -> list[DailyCount]:
        if days < 1:
            raise ValidationError("days must be positive")
        now = self.clock()
        today = local_date(now, self.policy.tz)
        since = self.policy.today_start(now) - timedelta(days=days - 1)
        async with self.db.session() as session:
            await ConfigStore(session).require_class(class_id)
            events = await EventStore(session).list(
                BehaviourFilter(class_id=class_id, student_id=student_id, start=since)
            )
        return daily_breakdown(events, days=days, today=today, tz=self.policy.tz)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _balance(self, snapshots: SnapshotStore, student_id: int, class_id: int) -> int:
        events = await snapshots.source_events(student_id, class_id)
        return sum(e.points for e in events) - await snapshots.spent_points(student_id, class_id)

    async def _rebuild(self, student_id: int, class_id: int) -> tuple[PointSnapshot, PointTotals]:
        async with self.db.session() as session:
            snapshot, totals = await SnapshotStore(session).rebuild(student_id, class_id, self.clock(), self.policy)
            await session.commit()
            return snapshot, totals

    async def _refresh_snapshot(self, student_id: int, class_id: int) -> tuple[PointSnapshot, PointTotals]:
        async with self.locks.get("student", student_id):
            try:
                return await self._rebuild(student_id, class_id)
            except IntegrityError:
                # A rank write inserted the row first; rebuild onto it.
                log.info("snapshot row for student %s/class %s appeared concurrently", student_id, class_id)
                return await self._rebuild(student_id, class_id)

    async def _award_eligible(self, student: User, class_id: int, totals: PointTotals) -> list[int]:
        async with self.db.session() as session:
            badges = await ConfigStore(session).badges(class_id)
            earned = await RecordStore(session).earned_badges(student.id)
        by_id = {b.id: b for b in badges}
        awarded: list[int] = []
        for badge_id in evaluate(totals, badges, earned):
            _, created = await grant_badge(self.db, self.emitter, student, by_id[badge_id])
            if created:
                awarded.append(badge_id)
        if awarded:
            log.info("student %s earned badges %s", student.id, awarded)
            self.feed.publish(class_id, student.id, AWARD)
        return awarded

    def _notify(self, classroom: Classroom) -> bool:
        return self.notifications_enabled and bool(classroom.notifications_enabled)

    async def _streak_notifications(
        self, student: User, class_id: int, before: StreakInfo, after: StreakInfo
    ) -> None:
        reached = [m for m in after.milestones.reached() if m not in before.milestones.reached()]
        for milestone in reached:
            await self._safe_emit(
                user_id=student.id,
                type=MILESTONE_ACHIEVED,
                title=TITLES[MILESTONE_ACHIEVED],
                content=format_message(MILESTONE_ACHIEVED, student.full_name, MILESTONE_NAMES[milestone]),
                related_data={"class_id": class_id, "milestone": milestone, "streak": after.current_streak},
            )
        if before.current_streak > 0 and after.current_streak == 0:
            await self._safe_emit(
                user_id=student.id,
                type=STREAK_BROKEN,
                title=TITLES[STREAK_BROKEN],
                content=format_message(STREAK_BROKEN, student.full_name),
                related_data={"class_id": class_id, "previous_streak": before.current_streak},
            )

    async def _safe_emit(self, **kwargs) -> None:
        try:
            await self.emitter.emit(**kwargs)
        except Exception:
            log.exception("notification %s for user %s failed", kwargs.get("type"), kwargs.get("user_id"))
