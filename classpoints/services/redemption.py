"""Balance check and debit for reward redemption.

``redeem`` is the pure half of the operation. Running it inside a critical
section and persisting its result atomically is the caller's job
(see ``BehaviourLedger.redeem_reward``).
"""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass
from typing import Optional, Protocol

from classpoints.errors import InsufficientPoints, ValidationError


class RedeemableReward(Protocol):
    id: int
    point_cost: int
    is_active: bool


@dataclass(frozen=True)
class Redemption:
    student_id: int
    reward_id: int
    points_deducted: int
    previous_balance: int
    new_balance: int
    request_id: Optional[str] = None


def redeem(
    student_id: int,
    reward: RedeemableReward,
    current_balance: int,
    request_id: Optional[str] = None,
) -> Redemption:
    if reward.point_cost is None or reward.point_cost <= 0:
        raise ValidationError(f"Reward {reward.id} has no positive point cost")
    if not reward.is_active:
        raise ValidationError(f"Reward {reward.id} is not active")
    if current_balance < reward.point_cost:
        raise InsufficientPoints(student_id, current_balance, reward.point_cost)
    return Redemption(
        student_id=student_id,
        reward_id=reward.id,
        points_deducted=reward.point_cost,
        previous_balance=current_balance,
        new_balance=current_balance - reward.point_cost,
        request_id=request_id,
    )


class StudentLocks:
    """One ``asyncio.Lock`` per key, created on first use.

    Locks are held weakly: once no task holds or waits on a lock it is
    dropped, so the table only carries keys that are in use.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, operation: str, *identifiers: object) -> asyncio.Lock:
        key = f"{operation}:{':'.join(str(i) for i in identifiers)}"
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock
