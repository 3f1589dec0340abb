"""Async database engine and sessions.

The engine is built on first use rather than at import, so it binds to
whichever event loop is running at that point (uvicorn's, a test's, or
the one asyncio.run() makes for a script). Changing settings.database_url
takes effect after reset_database().
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from workorders.config import settings
from workorders.logging_config import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _engine_options() -> dict[str, Any]:
    # Pooled connections cannot cross event loops, and each test has its own
    if settings.testing:
        return {"poolclass": NullPool}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, **_engine_options())
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory. Objects stay readable after commit."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_maker


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Session for code running outside a request (backups, scripts).

    Nothing is committed implicitly; callers commit their own work.
    """
    async with get_session_maker()() as session:
        yield session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with get_db_session() as session:
        yield session


async def check_database_connection() -> bool:
    """Run a trivial query; False if the database cannot be reached."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database connectivity check failed", error=str(e))
        return False
    return True


async def close_database() -> None:
    """Dispose of the engine. The next get_engine() builds a new one."""
    global _engine, _session_maker
    engine, _engine, _session_maker = _engine, None, None
    if engine is not None:
        await engine.dispose()


# Tests swap database_url between cases
reset_database = close_database
