from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from classpoints.extensions import Base
from classpoints.utils import utcnow


class PointSnapshot(Base):
    """Rebuildable cache row. Never the source of truth for points."""

    __tablename__ = "point_snapshots"
    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    period = Column(String(16), nullable=False, default="all")
    total_points = Column(Integer, nullable=False, default=0)
    good_behaviour_count = Column(Integer, nullable=False, default=0)
    bad_behaviour_count = Column(Integer, nullable=False, default=0)
    balance = Column(Integer, nullable=True)  # only maintained for period="all"
    rank = Column(Integer, nullable=True)
    snapshot_date = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "period", name="uq_snapshot_student_class_period"),
    )
