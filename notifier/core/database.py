"""
Database engine and session management
Uses SQLAlchemy with async support
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import logging

from .config import settings

logger = logging.getLogger(__name__)

def build_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine for a database URL

    SQLite gets one connection per session (NullPool) so concurrent sessions
    never share a transaction; other backends get a pre-pinged pool.
    """
    url = url or settings.database_url_async
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DATABASE_ECHO, poolclass=NullPool)

    return create_async_engine(
        url,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
    )

def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # Logs are read back after commit, so instances must not expire
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)

@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for the command line entry points, committed on success"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create the notification tables if they do not exist"""
    from notifier.models import Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")

async def close_db() -> None:
    await engine.dispose()
    logger.info("Database connections closed")
