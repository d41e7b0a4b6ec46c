from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RewardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    point_cost: int = Field(gt=0)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool = True


class RewardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    class_id: int
    name: str
    point_cost: int
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    is_active: bool


class RedeemRequest(BaseModel):
    student_id: int
    # Retrying with the same id returns the first redemption instead of debiting twice.
    request_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    expected_balance: Optional[int] = None


class StudentRewardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    reward_id: int
    class_id: int
    points_deducted: int
    earned_at: datetime
    request_id: Optional[str] = None


class RedemptionOut(BaseModel):
    redemption: StudentRewardOut
    new_balance: int
    created: bool
