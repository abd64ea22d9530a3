# tests/test_database.py
"""
Tests for engine and session factory construction.
"""

import asyncio

from sqlalchemy import inspect
from sqlalchemy.pool import StaticPool

from portfolio_performance.config import settings
from portfolio_performance.database import create_all, create_engine_for_url, create_session_factory


class TestCreateEngine:
    """Tests for create_engine_for_url."""

    def test_defaults_to_settings(self):
        engine = create_engine_for_url()
        assert engine.url.render_as_string(hide_password=False) == settings.database_url
        assert bool(engine.sync_engine.echo) == settings.db_echo

    def test_file_database_uses_default_pool(self, tmp_path):
        engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path}/app.db", echo=True)
        assert not isinstance(engine.sync_engine.pool, StaticPool)
        assert engine.sync_engine.echo

    def test_memory_database_creates_tables(self):
        async def scenario():
            engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
            assert isinstance(engine.sync_engine.pool, StaticPool)
            try:
                await create_all(engine)
                session_factory = create_session_factory(engine)
                async with session_factory() as session:
                    connection = await session.connection()
                    return await connection.run_sync(
                        lambda sync_conn: inspect(sync_conn).get_table_names()
                    )
            finally:
                await engine.dispose()

        tables = asyncio.run(scenario())

        assert "performance_snapshots" in tables
        assert "transactions" in tables
