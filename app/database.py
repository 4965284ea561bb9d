"""
Async SQLAlchemy engine and sessions for the whitepaper history store.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator
import logging

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    poolclass=NullPool,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.  Commits when the handler returns normally and
    rolls back if it raises, so a failed generation leaves no history row.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Whitepaper store session error: {e}")
            raise
        finally:
            await session.close()


async def ping(session: AsyncSession) -> bool:
    """Round-trip ``SELECT 1``; False (logged) when the database is unreachable."""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return False


async def init_db() -> None:
    """Create the whitepapers table if it does not exist yet."""
    try:
        async with engine.begin() as conn:
            from app.models import database_models  # noqa: F401

            await conn.run_sync(Base.metadata.create_all)
            logger.info("Whitepaper tables created/verified")

    except Exception as e:
        logger.error(f"Error initializing whitepaper store: {e}")
        raise


async def close_db() -> None:
    """Dispose of the engine's connections."""
    try:
        await engine.dispose()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")
        raise
