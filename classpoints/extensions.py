from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class Database:
    def __init__(self, database_url: str, echo: bool = False):
        kwargs: dict = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            # An in-memory SQLite database only lives as long as its connection.
            if ":memory:" in database_url:
                kwargs["poolclass"] = StaticPool
        self.url = database_url
        self.engine: AsyncEngine = create_async_engine(database_url, **kwargs)
        self.SessionLocal = async_sessionmaker(bind=self.engine, expire_on_commit=False, autoflush=False)

    def session(self) -> AsyncSession:
        return self.SessionLocal()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
