from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from classpoints.dependencies import get_db, get_ledger
from classpoints.schemas import (
    BadgeCreate,
    BadgeOut,
    CategoryCreate,
    CategoryOut,
    DailyCountOut,
    RewardCreate,
    RewardOut,
)
from classpoints.services.ledger import BehaviourLedger
from classpoints.services.store import ConfigStore

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("/{class_id}/categories", response_model=list[CategoryOut])
async def list_categories(class_id: int, session: AsyncSession = Depends(get_db)):
    config = ConfigStore(session)
    await config.require_class(class_id)
    return await config.categories(class_id)


@router.post("/{class_id}/categories", response_model=CategoryOut, status_code=201)
async def create_category(class_id: int, payload: CategoryCreate, session: AsyncSession = Depends(get_db)):
    category = await ConfigStore(session).add_category(class_id, **payload.model_dump())
    await session.commit()
    return category


@router.get("/{class_id}/badges", response_model=list[BadgeOut])
async def list_badges(class_id: int, session: AsyncSession = Depends(get_db)):
    config = ConfigStore(session)
    await config.require_class(class_id)
    return await config.badges(class_id)


@router.post("/{class_id}/badges", response_model=BadgeOut, status_code=201)
async def create_badge(class_id: int, payload: BadgeCreate, session: AsyncSession = Depends(get_db)):
    badge = await ConfigStore(session).add_badge(class_id, **payload.model_dump())
    await session.commit()
    return badge


@router.get("/{class_id}/rewards", response_model=list[RewardOut])
async def list_rewards(class_id: int, active_only: bool = False, session: AsyncSession = Depends(get_db)):
    config = ConfigStore(session)
    await config.require_class(class_id)
    return await config.rewards(class_id, active_only=active_only)


@router.post("/{class_id}/rewards", response_model=RewardOut, status_code=201)
async def create_reward(class_id: int, payload: RewardCreate, session: AsyncSession = Depends(get_db)):
    reward = await ConfigStore(session).add_reward(class_id, **payload.model_dump())
    await session.commit()
    return reward


@router.get("/{class_id}/trend", response_model=list[DailyCountOut])
async def daily_trend(
    class_id: int,
    student_id: Optional[int] = None,
    days: int = Query(7, ge=1, le=90),
    ledger: BehaviourLedger = Depends(get_ledger),
):
    return await ledger.get_daily_trend(class_id, student_id=student_id, days=days)
