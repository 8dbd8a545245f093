"""
Async SQLAlchemy engine and session factory.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config.settings import config
from database.models import get_tables

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine; pool sizing only applies to server databases."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)
    return create_async_engine(
        database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Lazily create the process-wide engine from ``config.database_url``."""
    global _engine
    if _engine is None:
        _engine = build_engine(config.database_url)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def create_schema(engine: AsyncEngine, kind_prefix: str = "") -> None:
    """Create the users / user_connections tables for ``kind_prefix`` if missing."""
    tables = get_tables(kind_prefix)
    async with engine.begin() as conn:
        await conn.run_sync(tables.metadata.create_all)
    logger.info("Schema ready (prefix=%r)", kind_prefix)
