# clinic_portal/db/session.py

from typing import AsyncIterator, Optional

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from clinic_portal.core.logging import get_logger

logger = get_logger(__name__)


# Declarative Base: all models inherit from this
class Base(DeclarativeBase):
    pass


class Database:
    """
    Store handle: one engine plus a session factory.

    Built explicitly and passed to whoever needs it (the FastAPI app keeps it on
    app.state); connect() on startup, dispose() on shutdown.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs):
        self.url = url
        self._echo = echo
        self._engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        if self._engine is not None:
            return
        kwargs = dict(self._engine_kwargs)
        if self.url.startswith("sqlite"):
            # Writers queue on the file lock instead of failing straight away
            kwargs.setdefault("connect_args", {"timeout": 30})
        else:
            kwargs.setdefault("pool_pre_ping", True)  # avoids stale connection errors
        self._engine = create_async_engine(self.url, echo=self._echo, **kwargs)
        self._sessionmaker = async_sessionmaker(
            self._engine,
            expire_on_commit=False,  # keep objects usable after commit
            class_=AsyncSession,
        )
        logger.info("database_connected", dialect=self._engine.dialect.name)

    async def create_all(self) -> None:
        # Import models so they register on Base.metadata
        import clinic_portal.db.base  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.session() as db:
            await db.execute(sa.text("SELECT 1"))

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._sessionmaker()

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("database_disposed")


def get_database(request: Request) -> Database:
    return request.app.state.database


# FastAPI dependency: yields a session and closes it safely
async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with get_database(request).session() as session:
        yield session


# BIGINT ids on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY
BigIntId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
