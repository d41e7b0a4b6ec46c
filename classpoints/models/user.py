from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from classpoints.extensions import Base
from classpoints.utils import utcnow


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    first_name = Column(String(120), nullable=False)
    last_name = Column(String(120), nullable=False, default="")
    role = Column(String(20), nullable=False, default="student")  # student|teacher|parent|admin
    created_at = Column(DateTime, default=utcnow, nullable=False)

    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Classroom(Base):
    __tablename__ = "classes"
    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    notifications_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    enrollments = relationship(
        "Enrollment", back_populates="classroom", cascade="all, delete-orphan", order_by="Enrollment.id"
    )


class Enrollment(Base):
    __tablename__ = "enrollment"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="enrollments")
    classroom = relationship("Classroom", back_populates="enrollments")

    __table_args__ = (
        UniqueConstraint("user_id", "class_id", name="uq_enrollment_user_class"),
        Index("ix_enrollment_class_id", "class_id"),
    )
