from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..core.logging import get_logger

logger = get_logger(__name__)

class Base(DeclarativeBase):
    pass

class Database:
    """Owns the engine and session factory for one running application."""

    def __init__(self, url: str):
        self.url = url
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    async def connect(self) -> None:
        # Import models to register metadata
        from . import models  # noqa
        self._engine = create_async_engine(self.url, echo=False, future=True)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False, class_=AsyncSession)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_connected", url=self._engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("database_disconnected")
        self._engine = None
        self._sessionmaker = None

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
