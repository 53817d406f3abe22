"""SQLite engine and transactional sessions for the preference store."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import settings
from .models import Base

# Seconds a writer waits on SQLite's file lock before failing
SQLITE_BUSY_TIMEOUT = 30


class DatabaseManager:
    """Owns the aiosqlite engine and hands out one-transaction sessions."""

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        """Initialize database manager.

        Args:
            database_url: sqlite+aiosqlite URL. If None, uses settings.database_url
            echo: Log emitted SQL. If None, uses settings.database_echo
        """
        self.database_url = database_url or settings.database_url
        self.echo = settings.database_echo if echo is None else echo
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Create the engine on first use."""
        if self._engine is None:
            self._engine = create_async_engine(
                self.database_url,
                echo=self.echo,
                connect_args={"timeout": SQLITE_BUSY_TIMEOUT},
            )
            logger.info(f"Opened preference store at {self.database_url}")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker:
        if self._sessionmaker is None:
            self._sessionmaker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._sessionmaker

    async def init_db(self) -> None:
        """Create the articles, likes, tag_weights and settings tables if absent."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Preference store tables ready")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session scoped to one transaction.

        The session commits when the block exits cleanly and rolls back
        on any exception, cancellation included.

        Yields:
            AsyncSession: Database session
        """
        async with self.sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Dispose of the engine; the next session reopens it."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._sessionmaker = None
            logger.info("Preference store closed")
