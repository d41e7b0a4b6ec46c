from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    point_value: int
    type: Literal["positive", "negative"]
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None

    @model_validator(mode="after")
    def sign_matches_type(self) -> "CategoryCreate":
        if self.type == "positive" and self.point_value < 0:
            raise ValueError("A positive category cannot have a negative point value")
        if self.type == "negative" and self.point_value > 0:
            raise ValueError("A negative category cannot have a positive point value")
        return self


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    class_id: int
    name: str
    point_value: int
    type: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class BehaviourCreate(BaseModel):
    student_id: int
    class_id: int
    category_id: int
    teacher_id: int
    # Defaults to the category's point value.
    points: Optional[int] = None
    note: Optional[str] = Field(default=None, max_length=2000)
    created_at: Optional[datetime] = None


class BehaviourOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    class_id: int
    category_id: int
    teacher_id: int
    points: int
    note: Optional[str] = None
    created_at: datetime


class BehaviourPage(BaseModel):
    items: list[BehaviourOut]
    count: int
    page: int
    page_size: int
    total_pages: int


class DailyCountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    positive: int
    negative: int
    points: int
