from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BadgeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    requirement_type: Literal["points_threshold", "behavior_count", "achievement"] = "achievement"
    requirement_value: int = Field(default=0, ge=0)
    description: Optional[str] = None
    icon: Optional[str] = None


class BadgeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    class_id: int
    name: str
    requirement_type: str
    requirement_value: int
    description: Optional[str] = None
    icon: Optional[str] = None


class AwardCreate(BaseModel):
    student_id: int


class StudentBadgeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    badge_id: int
    earned_at: datetime


class AwardOut(BaseModel):
    award: Optional[StudentBadgeOut] = None
    created: bool


class EligibleBadgesOut(BaseModel):
    student_id: int
    class_id: Optional[int] = None
    badge_ids: list[int]
