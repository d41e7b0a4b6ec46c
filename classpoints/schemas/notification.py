from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    title: str
    content: str
    related_data: Optional[dict[str, Any]] = None
    is_read: bool
    created_at: datetime


class MarkedRead(BaseModel):
    updated: int
