# bakehouse/db/session.py
# Async engine / session factory + FastAPI dependency (get_session).
from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from bakehouse.core.config import get_settings
from bakehouse.db.base import Base, init_models
from bakehouse.db.engine import create_async_engine_safe

log = logging.getLogger("bakehouse.db")


@lru_cache
def get_engine() -> AsyncEngine:
    settings = get_settings()
    # SQL_ECHO is applied by setup_logging
    engine = create_async_engine_safe(settings.DATABASE_URL)
    log.info("[DB] Using DSN: %s", engine.url.render_as_string(hide_password=True))
    return engine


@lru_cache
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Usage: async def endpoint(session: AsyncSession = Depends(get_session)): ...
    Routers commit; anything left open is rolled back on close.
    """
    async with get_sessionmaker()() as session:
        yield session


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create every table registered on Base.metadata (dev / first run)."""
    init_models()
    eng = engine or get_engine()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine() -> None:
    await get_engine().dispose()
