"""Async SQLAlchemy engine and session factory."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crm_pro_service.db.models import Base
from crm_pro_service.settings import settings

log = structlog.get_logger(__name__)

_engine = None
_session_factory = None


async def init_db() -> None:
    global _engine, _session_factory
    _engine = create_async_engine(
        settings.database_url, echo=False, pool_size=settings.database_pool_size
    )
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    if settings.database_create_schema:
        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    log.info("database_initialized", pool_size=settings.database_pool_size)


async def close_db() -> None:
    global _engine
    if _engine:
        await _engine.dispose()
        _engine = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
