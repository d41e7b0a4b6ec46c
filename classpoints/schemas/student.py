from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class TotalsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    weekly_total: int
    monthly_total: int
    good_count: int
    bad_count: int


class BalanceOut(BaseModel):
    student_id: int
    class_id: int
    balance: int


class MilestonesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    three_day: bool
    weekly: bool
    monthly: bool


class StreakOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    last_event_date: Optional[datetime] = None
    milestones: MilestonesOut


class StatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_points: int
    good_behaviours: int
    bad_behaviours: int
    balance: int
    rewards: int
    badges: int
    current_streak: int
    longest_streak: int


class LeaderboardEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rank: int
    student_id: int
    student_name: str
    total_points: int
    good_behaviours: int
    bad_behaviours: int
    trend: Literal["up", "down", "same"]


class LoggedBehaviourOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    behaviour_id: int
    totals: TotalsOut
    balance: int
    streak: StreakOut
    awarded_badge_ids: list[int]
