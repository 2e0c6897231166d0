"""SQLAlchemy async session management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from calendar_sync.database.connection import get_engine

logger = logging.getLogger(__name__)

# Global session factory
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Session factory created")
    return _session_factory


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session from the given factory, committing on success and rolling back on error.

    Usage:
        async with session_scope(factory) as session:
            await session.execute(...)
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Unexpected error in database session: {e}")
            raise


async def init_db() -> None:
    """Initialize database connection and verify connectivity."""
    from calendar_sync.config import get_settings
    from calendar_sync.database.connection import check_connection, create_tables

    settings = get_settings()
    if settings.database.is_sqlite:
        await create_tables()

    is_connected = await check_connection()
    if is_connected:
        logger.info("Database connection initialized successfully")
    else:
        logger.warning("Database connection check failed")


async def close_db() -> None:
    """Close database connections."""
    global _session_factory
    try:
        from calendar_sync.database.connection import close_engine

        await close_engine()
        _session_factory = None
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")
