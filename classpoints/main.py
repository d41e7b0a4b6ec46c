from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from classpoints.config import settings
from classpoints.errors import InsufficientPoints, LedgerError, NotFoundError, ValidationError
from classpoints.extensions import Database
from classpoints.routers.badges import routes as badges
from classpoints.routers.behaviours import routes as behaviours
from classpoints.routers.classes import routes as classes
from classpoints.routers.leaderboard import routes as leaderboard
from classpoints.routers.notifications import routes as notifications
from classpoints.routers.rewards import routes as rewards
from classpoints.routers.students import routes as students
from classpoints.services.ledger import BehaviourLedger

log = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse({"ok": False, "error": str(exc), **extra}, status_code=status_code)


def create_app(ledger: Optional[BehaviourLedger] = None) -> FastAPI:
    configure_logging()
    if ledger is None:
        ledger = BehaviourLedger(Database(settings.DATABASE_URL, echo=settings.SQL_ECHO))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await ledger.db.create_all()
        log.info("%s %s ready on %s", settings.APP_NAME, settings.APP_VERSION, ledger.db.url)
        yield
        await ledger.db.dispose()

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.ledger = ledger

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(422, exc)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, exc)

    @app.exception_handler(InsufficientPoints)
    async def insufficient_points(request: Request, exc: InsufficientPoints):
        return _error(409, exc, balance=exc.balance, cost=exc.cost, shortfall=exc.shortfall)

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError):
        log.warning("unhandled ledger error on %s: %s", request.url.path, exc)
        return _error(400, exc)

    app.include_router(classes.router)
    app.include_router(behaviours.router)
    app.include_router(students.router)
    app.include_router(leaderboard.router)
    app.include_router(badges.router)
    app.include_router(rewards.router)
    app.include_router(notifications.router)

    @app.get("/health")
    async def health():
        return {"ok": True, "version": settings.APP_VERSION}

    return app
