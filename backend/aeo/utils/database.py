"""
Async database sessions

Services take a ``SessionFactory`` so every write runs in its own short
session; concurrent prompt executions never share one.
"""

import os
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncGenerator, Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from aeo.config import get_settings
from aeo.models import Base

# Created on first use so importing the package never opens a connection
_engine = None
_async_session_maker = None

# Anything that opens a committing session: get_db_context or a test double
SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]


def async_database_url(url: str) -> str:
    """Point a plain postgres URL at the asyncpg driver"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options() -> Dict[str, Any]:
    settings = get_settings()
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}

    # Celery tasks run each pipeline on a fresh event loop; pooled
    # asyncpg connections cannot cross loops.
    if os.environ.get("AEO_WORKER"):
        options["poolclass"] = NullPool
    else:
        options["pool_size"] = settings.DATABASE_POOL_SIZE
        options["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return options


def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(async_database_url(get_settings().DATABASE_URL), **_engine_options())
    return _engine


def _get_session_maker() -> async_sessionmaker:
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            _get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_maker


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on clean exit and rolls back on error"""
    async with _get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping get_db_context"""
    async with get_db_context() as session:
        yield session


async def init_db():
    """Create any missing tables"""
    async with _get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Dispose the engine; the next session recreates it"""
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
