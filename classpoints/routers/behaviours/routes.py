from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from classpoints.dependencies import get_ledger
from classpoints.schemas import BehaviourCreate, BehaviourOut, BehaviourPage, LoggedBehaviourOut
from classpoints.services.ledger import BehaviourLedger

router = APIRouter(prefix="/behaviours", tags=["behaviours"])


@router.post("", response_model=LoggedBehaviourOut, status_code=201)
async def log_behaviour(payload: BehaviourCreate, ledger: BehaviourLedger = Depends(get_ledger)):
    logged = await ledger.log_behaviour(**payload.model_dump())
    return LoggedBehaviourOut(
        behaviour_id=logged.event.id,
        totals=asdict(logged.totals),
        balance=logged.balance,
        streak=asdict(logged.streak),
        awarded_badge_ids=logged.awarded_badge_ids,
    )


@router.get("", response_model=BehaviourPage)
async def list_behaviours(
    class_id: int,
    student_id: Optional[int] = None,
    category_id: Optional[int] = None,
    kind: Optional[Literal["positive", "negative"]] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    ledger: BehaviourLedger = Depends(get_ledger),
):
    result = await ledger.get_history(
        class_id,
        student_id=student_id,
        category_id=category_id,
        kind=kind,
        start=start,
        end=end,
        search=search,
        page=page,
        page_size=page_size,
    )
    return BehaviourPage(
        items=[BehaviourOut.model_validate(e) for e in result.items],
        count=result.count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.delete("/{behaviour_id}", response_model=BehaviourOut)
async def delete_behaviour(behaviour_id: int, ledger: BehaviourLedger = Depends(get_ledger)):
    return await ledger.delete_behaviour(behaviour_id)
