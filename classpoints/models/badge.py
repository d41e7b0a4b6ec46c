from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from classpoints.extensions import Base
from classpoints.utils import utcnow

POINTS_THRESHOLD = "points_threshold"
BEHAVIOR_COUNT = "behavior_count"
ACHIEVEMENT = "achievement"
REQUIREMENT_TYPES = (POINTS_THRESHOLD, BEHAVIOR_COUNT, ACHIEVEMENT)


class Badge(Base):
    __tablename__ = "badges"
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(255), nullable=True)
    requirement_type = Column(String(32), nullable=False, default=ACHIEVEMENT)
    requirement_value = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("requirement_value >= 0", name="ck_badge_requirement_nonneg"),
    )


class StudentBadge(Base):
    __tablename__ = "student_badges"
    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id = Column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    earned_at = Column(DateTime, default=utcnow, nullable=False)

    badge = relationship("Badge")

    __table_args__ = (
        UniqueConstraint("student_id", "badge_id", name="uq_student_badge"),
        Index("ix_student_badge_student_id", "student_id"),
    )
