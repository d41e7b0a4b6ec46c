from __future__ import annotations

from fastapi import APIRouter, Depends

from classpoints.dependencies import get_ledger
from classpoints.schemas import AwardCreate, AwardOut, StudentBadgeOut
from classpoints.services.ledger import BehaviourLedger

router = APIRouter(prefix="/badges", tags=["badges"])


@router.post("/{badge_id}/award", response_model=AwardOut)
async def award_badge(badge_id: int, payload: AwardCreate, ledger: BehaviourLedger = Depends(get_ledger)):
    """Manual award; thresholds are not checked and a repeat is a no-op."""
    result = await ledger.award_badge(payload.student_id, badge_id)
    award = StudentBadgeOut.model_validate(result.award) if result.award is not None else None
    return AwardOut(award=award, created=result.created)
