"""
Database Layer

Async SQLAlchemy engine and session factory for the pgvector document
store. Nothing is created at import time: the composition root builds one
engine per process and hands the session factory to the store.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from impact_rag.core.config import Settings

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured PostgreSQL database."""
    engine = create_async_engine(settings.DATABASE_URL, echo=False, pool_size=5)
    logger.info(
        "Database engine created: %s@%s/%s",
        settings.POSTGRES_USER,
        settings.POSTGRES_HOST,
        settings.POSTGRES_DB,
    )
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a reusable session maker bound to ``engine``."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def check_connection(engine: AsyncEngine) -> None:
    """
    Run a trivial query to verify connectivity.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If the database is unreachable.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection verified")
