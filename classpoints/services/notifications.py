from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select, update

from classpoints.errors import NotFoundError, ValidationError
from classpoints.extensions import Database
from classpoints.models import Notification
from classpoints.models.notification import (
    BADGE_EARNED,
    BEHAVIOR_LOGGED,
    MILESTONE_ACHIEVED,
    REWARD_REDEEMED,
    STREAK_BROKEN,
)

log = logging.getLogger(__name__)

NOTIFICATION_TYPES = (BEHAVIOR_LOGGED, BADGE_EARNED, REWARD_REDEEMED, MILESTONE_ACHIEVED, STREAK_BROKEN)

TITLES = {
    BEHAVIOR_LOGGED: "Behaviour Logged",
    BADGE_EARNED: "New Badge Earned!",
    REWARD_REDEEMED: "Reward Redeemed",
    MILESTONE_ACHIEVED: "Streak Milestone!",
    STREAK_BROKEN: "Streak Ended",
}

MILESTONE_NAMES = {
    "three_day": "3-day streak",
    "weekly": "7-day streak",
    "monthly": "30-day streak",
}


def format_message(kind: str, student_name: str, achievement: str = "", points: Optional[int] = None) -> str:
    if kind == BADGE_EARNED:
        return f'{student_name} earned the "{achievement}" badge!'
    if kind == REWARD_REDEEMED:
        return f'{student_name} redeemed "{achievement}" for {points} points!'
    if kind == MILESTONE_ACHIEVED:
        return f'{student_name} reached the "{achievement}" milestone!'
    if kind == STREAK_BROKEN:
        return f"{student_name}'s streak was broken. Keep going!"
    if kind == BEHAVIOR_LOGGED:
        return f'You logged "{achievement}" for {student_name}'
    return f"{student_name} achieved something great!"


class NotificationEmitter:
    """Creates notification records in their own transaction.

    Notifications are advisory: callers wrap ``emit`` and log failures, and a
    failed notification never rolls back the operation that triggered it.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def emit(
        self,
        user_id: int,
        type: str,
        title: str,
        content: str,
        related_data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValidationError(f"Unknown notification type {type!r}")
        async with self.db.session() as session:
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                content=content,
                related_data=related_data or {},
                is_read=False,
            )
            session.add(notification)
            await session.commit()
        log.debug("notification %s -> user %s", type, user_id)
        return notification

    async def list_for_user(self, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        async with self.db.session() as session:
            stmt = select(Notification).where(Notification.user_id == user_id)
            if unread_only:
                stmt = stmt.where(Notification.is_read.is_(False))
            stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
            return list((await session.execute(stmt)).scalars())

    async def mark_read(self, notification_id: int) -> Notification:
        async with self.db.session() as session:
            notification = await session.get(Notification, notification_id)
            if notification is None:
                raise NotFoundError("Notification", notification_id)
            notification.is_read = True
            await session.commit()
            return notification

    async def mark_all_read(self, user_id: int) -> int:
        async with self.db.session() as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
            await session.commit()
            return result.rowcount or 0
