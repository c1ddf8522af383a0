"""
Async engine and sessions.

Request handlers get a session per request from get_session. Game commits
and best-effort follow-up writes open their own sessions from the factory
returned by get_session_factory, one per transaction attempt.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sleeved.config import settings
from sleeved.models.db import Base

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.database_url, echo=settings.debug, pool_pre_ping=True)

async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed if the handler returns normally."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def init_db() -> None:
    """Create missing tables. Existing tables are left as they are."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))


async def dispose_db() -> None:
    await engine.dispose()


async def drop_db() -> None:
    """Drop every sleeved table. Test use only."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
