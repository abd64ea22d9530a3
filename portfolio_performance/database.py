# portfolio_performance/database.py
"""
Async database engine and session management.

This module configures SQLAlchemy's asyncio extension with:
- An engine built from `settings.database_url` unless a URL is given
- An `async_sessionmaker` shared by the SQL-backed collaborators
- Schema creation

The SQL-backed stores in `portfolio_performance.services.stores` and
`portfolio_performance.services.pricing` take the session factory as a
constructor argument, so tests can point them at a temporary database.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

logger = logging.getLogger(__name__)


def create_engine_for_url(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """
    Create an async engine with configuration appropriate for the URL.

    In-memory SQLite uses a StaticPool so every session shares the one
    connection that holds the database.

    Args:
        url: Database URL (default: settings.database_url)
        echo: Log emitted SQL (default: settings.db_echo)
    """
    url = url or settings.database_url
    echo = settings.db_echo if echo is None else echo

    if url.endswith(":memory:"):
        logger.info("Configuring in-memory SQLite database")
        return create_async_engine(url, poolclass=StaticPool, echo=echo)

    logger.info(f"Configuring database engine for {url.split('://', 1)[0]}")
    return create_async_engine(url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables that don't exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
