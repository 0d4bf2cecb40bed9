"""
Database engine, session factory, and declarative base.

One engine per process, built on first use from DATABASE_URL:
- postgresql+asyncpg in production (pooled)
- sqlite+aiosqlite for local development and tests (no pool sizing)

The ledger adapter and the admin API share the session factory; each
ledger read and each request opens its own session from it.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from rechargepanel.config import settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _pool_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle,
        "pool_pre_ping": True,
    }


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        url = settings.async_database_url
        _engine = create_async_engine(url, echo=settings.debug, **_pool_options(url))
        logger.info("database_engine_created", driver=url.split("://", 1)[0])
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _session_factory


async def init_db() -> None:
    """
    Create the engine at startup.

    Development creates missing ledger tables from the models; every other
    environment runs on the Alembic-managed schema.
    """
    engine = get_engine()
    import rechargepanel.db.models  # noqa: F401

    if settings.environment.lower() != "development":
        logger.info("database_initialized", schema="alembic")
        return

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized", schema="create_all", tables=len(Base.metadata.tables))


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("database_closed")
