from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from classpoints.dependencies import get_ledger
from classpoints.schemas import BalanceOut, EligibleBadgesOut, StatsOut, StreakOut, TotalsOut
from classpoints.services.ledger import BehaviourLedger

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/{student_id}/totals", response_model=TotalsOut)
async def totals(student_id: int, class_id: int, ledger: BehaviourLedger = Depends(get_ledger)):
    return await ledger.get_totals(student_id, class_id)


@router.get("/{student_id}/balance", response_model=BalanceOut)
async def balance(student_id: int, class_id: int, ledger: BehaviourLedger = Depends(get_ledger)):
    value = await ledger.get_balance(student_id, class_id)
    return BalanceOut(student_id=student_id, class_id=class_id, balance=value)


@router.get("/{student_id}/streak", response_model=StreakOut)
async def streak(student_id: int, class_id: int, ledger: BehaviourLedger = Depends(get_ledger)):
    return await ledger.get_streak(student_id, class_id)


@router.get("/{student_id}/stats", response_model=StatsOut)
async def stats(student_id: int, class_id: int, ledger: BehaviourLedger = Depends(get_ledger)):
    return await ledger.get_student_stats(student_id, class_id)


@router.get("/{student_id}/eligible-badges", response_model=EligibleBadgesOut)
async def eligible_badges(
    student_id: int,
    class_id: Optional[int] = None,
    ledger: BehaviourLedger = Depends(get_ledger),
):
    badge_ids = await ledger.get_eligible_badges(student_id, class_id)
    return EligibleBadgesOut(student_id=student_id, class_id=class_id, badge_ids=badge_ids)
