from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from classpoints.extensions import Base
from classpoints.utils import utcnow

POSITIVE = "positive"
NEGATIVE = "negative"


class BehaviourCategory(Base):
    __tablename__ = "behaviour_categories"
    id = Column(Integer, primary_key=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    point_value = Column(Integer, nullable=False, default=0)
    type = Column(String(20), nullable=False, default=POSITIVE)  # positive|negative
    icon = Column(String(255), nullable=True)
    color = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(type = 'positive' AND point_value >= 0) OR (type = 'negative' AND point_value <= 0)",
            name="ck_category_sign_matches_type",
        ),
    )


class BehaviourEvent(Base):
    __tablename__ = "behaviours"
    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(Integer, ForeignKey("behaviour_categories.id"), nullable=False)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    points = Column(Integer, nullable=False)  # signed
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    student = relationship("User", foreign_keys=[student_id])
    teacher = relationship("User", foreign_keys=[teacher_id])
    category = relationship("BehaviourCategory")

    __table_args__ = (
        Index("ix_behaviour_student_class_created", "student_id", "class_id", "created_at"),
        Index("ix_behaviour_class_created", "class_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<BehaviourEvent {self.id} student={self.student_id} points={self.points}>"
