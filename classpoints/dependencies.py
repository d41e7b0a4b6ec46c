from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from .services.ledger import BehaviourLedger
from .services.notifications import NotificationEmitter


def get_ledger(request: Request) -> BehaviourLedger:
    """The ledger facade the app was created with."""
    return request.app.state.ledger


def get_emitter(request: Request) -> NotificationEmitter:
    return request.app.state.ledger.emitter


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dependency to provide a database session."""
    async with request.app.state.ledger.db.session() as session:
        yield session
