"""
Database handle with SQLAlchemy async.

The handle is built once at process start and passed to the components
that need it; `dispose()` closes it at process end.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import settings
from models.base import Base
import logging

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine and the session factory for one process."""

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or settings.DATABASE_URL
        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=echo,
            poolclass=NullPool,
            future=True
        )
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that is closed on exit"""
        async with self.session_maker() as session:
            yield session

    async def create_all(self):
        """Create all tables defined in models"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        """Release pooled connections"""
        await self.engine.dispose()
        logger.debug("Database engine disposed")
