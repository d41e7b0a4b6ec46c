"""Storage adapters.

``EventStore`` is append-only access to the behaviour log. ``ConfigStore``
reads classes, students and the category/badge/reward catalogs, and validates
catalog writes. ``RecordStore`` holds badge award and redemption records.
None of them make business decisions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classpoints.errors import AlreadyAwarded, NotFoundError, ValidationError
from classpoints.models import (
    NEGATIVE,
    POSITIVE,
    REQUIREMENT_TYPES,
    Badge,
    BehaviourCategory,
    BehaviourEvent,
    Classroom,
    Enrollment,
    Reward,
    StudentBadge,
    StudentReward,
    User,
)
from classpoints.utils import to_utc_naive


@dataclass
class BehaviourFilter:
    student_id: Optional[int] = None
    class_id: Optional[int] = None
    category_id: Optional[int] = None
    kind: Optional[str] = None  # positive|negative
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    search: Optional[str] = None


def check_category_sign(category_type: str, point_value: int) -> None:
    if category_type not in (POSITIVE, NEGATIVE):
        raise ValidationError(f"Category type must be 'positive' or 'negative', not {category_type!r}")
    if category_type == POSITIVE and point_value < 0:
        raise ValidationError("A positive category cannot have a negative point value")
    if category_type == NEGATIVE and point_value > 0:
        raise ValidationError("A negative category cannot have a positive point value")


class EventStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(self, event: BehaviourEvent) -> int:
        self.session.add(event)
        await self.session.flush()
        return event.id

    async def get(self, event_id: int) -> Optional[BehaviourEvent]:
        return await self.session.get(BehaviourEvent, event_id)

    def _apply(self, stmt, flt: Optional[BehaviourFilter]):
        if flt is None:
            return stmt
        if flt.student_id is not None:
            stmt = stmt.where(BehaviourEvent.student_id == flt.student_id)
        if flt.class_id is not None:
            stmt = stmt.where(BehaviourEvent.class_id == flt.class_id)
        if flt.category_id is not None:
            stmt = stmt.where(BehaviourEvent.category_id == flt.category_id)
        if flt.kind == POSITIVE:
            stmt = stmt.where(BehaviourEvent.points > 0)
        elif flt.kind == NEGATIVE:
            stmt = stmt.where(BehaviourEvent.points < 0)
        if flt.start is not None:
            stmt = stmt.where(BehaviourEvent.created_at >= to_utc_naive(flt.start))
        if flt.end is not None:
            stmt = stmt.where(BehaviourEvent.created_at < to_utc_naive(flt.end))
        if flt.search:
            pattern = f"%{flt.search.strip()}%"
            stmt = stmt.join(User, User.id == BehaviourEvent.student_id).where(or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                BehaviourEvent.note.ilike(pattern),
            ))
        return stmt

    async def list(
        self,
        flt: Optional[BehaviourFilter] = None,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        newest_first: bool = False,
    ) -> list[BehaviourEvent]:
        stmt = self._apply(select(BehaviourEvent), flt)
        if newest_first:
            stmt = stmt.order_by(BehaviourEvent.created_at.desc(), BehaviourEvent.id.desc())
        else:
            stmt = stmt.order_by(BehaviourEvent.created_at, BehaviourEvent.id)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        return list((await self.session.execute(stmt)).scalars())

    async def count(self, flt: Optional[BehaviourFilter] = None) -> int:
        stmt = self._apply(select(func.count(BehaviourEvent.id)), flt)
        return int((await self.session.execute(stmt)).scalar_one())

    async def delete(self, event_id: int) -> BehaviourEvent:
        event = await self.get(event_id)
        if event is None:
            raise NotFoundError("Behaviour", event_id)
        await self.session.delete(event)
        await self.session.flush()
        return event


class ConfigStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def require_class(self, class_id: int) -> Classroom:
        classroom = await self.session.get(Classroom, class_id)
        if classroom is None:
            raise NotFoundError("Class", class_id)
        return classroom

    async def require_user(self, user_id: int) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def is_enrolled(self, user_id: int, class_id: int) -> bool:
        found = (await self.session.execute(
            select(Enrollment.id).where(Enrollment.user_id == user_id, Enrollment.class_id == class_id)
        )).first()
        return found is not None

    async def require_student(self, student_id: int, class_id: Optional[int] = None) -> User:
        student = await self.session.get(User, student_id)
        if student is None or student.role != "student":
            raise NotFoundError("Student", student_id)
        if class_id is not None and not await self.is_enrolled(student_id, class_id):
            raise NotFoundError("Student", student_id, scope=f"class {class_id}")
        return student

    async def students_in_class(self, class_id: int) -> list[User]:
        """Enrolled students in enrolment order (the leaderboard tie-break order)."""
        return list((await self.session.execute(
            select(User)
            .join(Enrollment, Enrollment.user_id == User.id)
            .where(Enrollment.class_id == class_id, User.role == "student")
            .order_by(Enrollment.id)
        )).scalars())

    async def classes_for_student(self, student_id: int) -> list[int]:
        return list((await self.session.execute(
            select(Enrollment.class_id).where(Enrollment.user_id == student_id).order_by(Enrollment.id)
        )).scalars())

    async def categories(self, class_id: int) -> list[BehaviourCategory]:
        return list((await self.session.execute(
            select(BehaviourCategory).where(BehaviourCategory.class_id == class_id).order_by(BehaviourCategory.id)
        )).scalars())

    async def require_category(self, category_id: int, class_id: Optional[int] = None) -> BehaviourCategory:
        category = await self.session.get(BehaviourCategory, category_id)
        if category is None or (class_id is not None and category.class_id != class_id):
            raise NotFoundError("Category", category_id, scope=f"class {class_id}" if class_id else None)
        return category

    async def badges(self, class_id: int) -> list[Badge]:
        return list((await self.session.execute(
            select(Badge).where(Badge.class_id == class_id).order_by(Badge.id)
        )).scalars())

    async def require_badge(self, badge_id: int) -> Badge:
        badge = await self.session.get(Badge, badge_id)
        if badge is None:
            raise NotFoundError("Badge", badge_id)
        return badge

    async def rewards(self, class_id: int, active_only: bool = False) -> list[Reward]:
        stmt = select(Reward).where(Reward.class_id == class_id)
        if active_only:
            stmt = stmt.where(Reward.is_active.is_(True))
        return list((await self.session.execute(stmt.order_by(Reward.point_cost, Reward.id))).scalars())

    async def require_reward(self, reward_id: int) -> Reward:
        reward = await self.session.get(Reward, reward_id)
        if reward is None:
            raise NotFoundError("Reward", reward_id)
        return reward

    async def add_category(
        self,
        class_id: int,
        name: str,
        point_value: int,
        type: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
    ) -> BehaviourCategory:
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        check_category_sign(type, point_value)
        await self.require_class(class_id)
        category = BehaviourCategory(
            class_id=class_id, name=name.strip(), point_value=point_value, type=type,
            description=description, icon=icon, color=color,
        )
        self.session.add(category)
        await self.session.flush()
        return category

    async def add_badge(
        self,
        class_id: int,
        name: str,
        requirement_type: str,
        requirement_value: int,
        description: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Badge:
        if not name or not name.strip():
            raise ValidationError("Badge name is required")
        if requirement_type not in REQUIREMENT_TYPES:
            raise ValidationError(f"Unknown requirement type {requirement_type!r}")
        if requirement_value is None or requirement_value < 0:
            raise ValidationError("Requirement value cannot be negative")
        await self.require_class(class_id)
        badge = Badge(
            class_id=class_id, name=name.strip(), requirement_type=requirement_type,
            requirement_value=requirement_value, description=description, icon=icon,
        )
        self.session.add(badge)
        await self.session.flush()
        return badge

    async def add_reward(
        self,
        class_id: int,
        name: str,
        point_cost: int,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        is_active: bool = True,
    ) -> Reward:
        if not name or not name.strip():
            raise ValidationError("Reward name is required")
        if point_cost is None or point_cost <= 0:
            raise ValidationError("Point cost must be positive")
        await self.require_class(class_id)
        reward = Reward(
            class_id=class_id, name=name.strip(), point_cost=point_cost,
            description=description, icon=icon, color=color, is_active=is_active,
        )
        self.session.add(reward)
        await self.session.flush()
        return reward


class RecordStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def earned_badges(self, student_id: int) -> list[StudentBadge]:
        return list((await self.session.execute(
            select(StudentBadge).where(StudentBadge.student_id == student_id).order_by(StudentBadge.earned_at)
        )).scalars())

    async def find_award(self, student_id: int, badge_id: int) -> Optional[StudentBadge]:
        return (await self.session.execute(
            select(StudentBadge).where(StudentBadge.student_id == student_id, StudentBadge.badge_id == badge_id)
        )).scalar_one_or_none()

    async def add_student_badge(self, student_id: int, badge_id: int) -> StudentBadge:
        """Insert an award record. Raises ``AlreadyAwarded`` if the pair exists."""
        if await self.find_award(student_id, badge_id) is not None:
            raise AlreadyAwarded(student_id, badge_id)
        award = StudentBadge(student_id=student_id, badge_id=badge_id)
        self.session.add(award)
        try:
            # A concurrent award of the same pair is settled by uq_student_badge.
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise AlreadyAwarded(student_id, badge_id) from exc
        return award

    async def redemptions(self, student_id: int, class_id: Optional[int] = None) -> list[StudentReward]:
        stmt = select(StudentReward).where(StudentReward.student_id == student_id)
        if class_id is not None:
            stmt = stmt.where(StudentReward.class_id == class_id)
        return list((await self.session.execute(stmt.order_by(StudentReward.earned_at))).scalars())

    async def find_redemption(self, request_id: str) -> Optional[StudentReward]:
        return (await self.session.execute(
            select(StudentReward).where(StudentReward.request_id == request_id)
        )).scalar_one_or_none()

    async def add_redemption(
        self, student_id: int, reward_id: int, class_id: int, points_deducted: int, request_id: Optional[str] = None
    ) -> StudentReward:
        record = StudentReward(
            student_id=student_id, reward_id=reward_id, class_id=class_id,
            points_deducted=points_deducted, request_id=request_id,
        )
        self.session.add(record)
        await self.session.flush()
        return record
