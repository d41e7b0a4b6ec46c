from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from classpoints.dependencies import get_ledger
from classpoints.schemas import LeaderboardEntryOut
from classpoints.services.ledger import BehaviourLedger
from classpoints.services.points import TimeWindow

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/{class_id}", response_model=list[LeaderboardEntryOut])
async def class_leaderboard(
    class_id: int,
    window: TimeWindow = TimeWindow.ALL,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    ledger: BehaviourLedger = Depends(get_ledger),
):
    return await ledger.get_leaderboard(class_id, window, start=start, end=end)
