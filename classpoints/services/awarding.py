from __future__ import annotations

import logging
from typing import Optional

from classpoints.errors import AlreadyAwarded
from classpoints.extensions import Database
from classpoints.models import Badge, StudentBadge, User
from classpoints.models.notification import BADGE_EARNED
from classpoints.services.notifications import TITLES, NotificationEmitter, format_message
from classpoints.services.store import RecordStore

log = logging.getLogger(__name__)


async def grant_badge(
    db: Database, emitter: NotificationEmitter, student: User, badge: Badge
) -> tuple[Optional[StudentBadge], bool]:
    """
    Idempotently award a badge and notify the student.
    Returns (award, created). The award and the notification are separate
    transactions: both are attempted, and a failed notification leaves the
    award in place. An existing award is returned with created=False and no
    second notification.
    """
    award: Optional[StudentBadge] = None
    async with db.session() as session:
        records = RecordStore(session)
        try:
            award = await records.add_student_badge(student.id, badge.id)
            await session.commit()
        except AlreadyAwarded:
            return await records.find_award(student.id, badge.id), False
        except Exception:
            await session.rollback()
            log.exception("Failed to award badge %s to student %s", badge.id, student.id)
            award = None

    try:
        await emitter.emit(
            user_id=student.id,
            type=BADGE_EARNED,
            title=TITLES[BADGE_EARNED],
            content=format_message(BADGE_EARNED, student.full_name, badge.name),
            related_data={"badge_id": badge.id},
        )
    except Exception:
        log.exception("Failed to notify student %s about badge %s", student.id, badge.id)

    return award, award is not None
