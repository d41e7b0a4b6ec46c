from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from classpoints.dependencies import get_emitter
from classpoints.schemas import MarkedRead, NotificationOut
from classpoints.services.notifications import NotificationEmitter

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    user_id: int,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    emitter: NotificationEmitter = Depends(get_emitter),
):
    return await emitter.list_for_user(user_id, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(notification_id: int, emitter: NotificationEmitter = Depends(get_emitter)):
    return await emitter.mark_read(notification_id)


@router.post("/read-all", response_model=MarkedRead)
async def mark_all_read(user_id: int, emitter: NotificationEmitter = Depends(get_emitter)):
    return MarkedRead(updated=await emitter.mark_all_read(user_id))
