from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from classpoints.extensions import Base
from classpoints.utils import utcnow


class Reward(Base):
    __tablename__ = "rewards"
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    point_cost = Column(Integer, nullable=False)
    icon = Column(String(255), nullable=True)
    color = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("point_cost > 0", name="ck_reward_cost_positive"),
    )


class StudentReward(Base):
    __tablename__ = "student_rewards"
    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reward_id = Column(Integer, ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    earned_at = Column(DateTime, default=utcnow, nullable=False)
    points_deducted = Column(Integer, nullable=False)
    # Client-supplied id that makes a retried redemption a no-op.
    request_id = Column(String(64), nullable=True, unique=True)

    reward = relationship("Reward")

    __table_args__ = (
        Index("ix_student_reward_student_class", "student_id", "class_id"),
    )
