from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from classpoints.extensions import Base
from classpoints.utils import utcnow

BEHAVIOR_LOGGED = "behavior_logged"
BADGE_EARNED = "badge_earned"
REWARD_REDEEMED = "reward_redeemed"
MILESTONE_ACHIEVED = "milestone_achieved"
STREAK_BROKEN = "streak_broken"


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    related_data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
    )
