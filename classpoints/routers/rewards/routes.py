from __future__ import annotations

from fastapi import APIRouter, Depends

from classpoints.dependencies import get_ledger
from classpoints.schemas import RedeemRequest, RedemptionOut, StudentRewardOut
from classpoints.services.ledger import BehaviourLedger

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/{reward_id}/redeem", response_model=RedemptionOut)
async def redeem_reward(reward_id: int, payload: RedeemRequest, ledger: BehaviourLedger = Depends(get_ledger)):
    result = await ledger.redeem_reward(
        payload.student_id,
        reward_id,
        request_id=payload.request_id,
        expected_balance=payload.expected_balance,
    )
    return RedemptionOut(
        redemption=StudentRewardOut.model_validate(result.record),
        new_balance=result.new_balance,
        created=result.created,
    )
