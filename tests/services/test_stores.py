# tests/services/test_stores.py
"""
Tests for the SQLAlchemy-backed stores on a temporary aiosqlite database.

Each test runs one coroutine under asyncio.run so the engine is created,
used and disposed on the same event loop.
"""

import asyncio
from datetime import date
from decimal import Decimal

from portfolio_performance.models import Asset, PriceHistory, Transaction, TransactionType
from portfolio_performance.services.pricing import SqlPriceLookup
from portfolio_performance.services.snapshots import SnapshotService
from portfolio_performance.services.snapshots.types import PerformanceSnapshot
from portfolio_performance.services.stores import (
    SqlAssetDirectory,
    SqlSnapshotStore,
    SqlTransactionReader,
)

D = Decimal


def snap(portfolio_id: str, d: date, value: str, twr: str = "0") -> PerformanceSnapshot:
    return PerformanceSnapshot(
        portfolio_id=portfolio_id,
        date=d,
        total_value=D(value),
        total_cost=D("1000"),
        twr_return=D(twr),
        holding_count=1,
    )


class TestSqlSnapshotStore:
    """Tests for SqlSnapshotStore."""

    def test_upsert_and_read_back_exactly(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                store = SqlSnapshotStore(session_factory)
                stored = snap("p1", date(2024, 1, 2), "1234.5678901234", twr="0.000000123")
                await store.upsert(stored)
                return await store.get_by_portfolio("p1")

        rows = asyncio.run(scenario())

        assert len(rows) == 1
        assert rows[0].total_value == D("1234.5678901234")
        assert rows[0].twr_return == D("0.000000123")
        assert rows[0].id == "perf-snap-p1-2024-01-02"

    def test_upsert_replaces_same_day(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                store = SqlSnapshotStore(session_factory)
                await store.upsert(snap("p1", date(2024, 1, 2), "100"))
                await store.upsert_many([
                    snap("p1", date(2024, 1, 2), "150"),
                    snap("p1", date(2024, 1, 3), "160"),
                ])
                return await store.get_by_portfolio("p1")

        rows = asyncio.run(scenario())

        assert [(r.date, r.total_value) for r in rows] == [
            (date(2024, 1, 2), D("150")),
            (date(2024, 1, 3), D("160")),
        ]

    def test_range_and_latest(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                store = SqlSnapshotStore(session_factory)
                await store.upsert_many([
                    snap("p1", date(2024, 1, d), str(100 + d)) for d in (5, 1, 3, 4, 2)
                ])
                await store.upsert(snap("p2", date(2024, 2, 1), "1"))
                window = await store.get_by_portfolio("p1", date(2024, 1, 2), date(2024, 1, 4))
                latest = await store.get_latest("p1")
                missing = await store.get_latest("nope")
                return window, latest, missing

        window, latest, missing = asyncio.run(scenario())

        assert [r.date.day for r in window] == [2, 3, 4]
        assert latest.date == date(2024, 1, 5)
        assert missing is None

    def test_deletes(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                store = SqlSnapshotStore(session_factory)
                await store.upsert_many([snap("p1", date(2024, 1, d), "1") for d in range(1, 6)])
                await store.upsert(snap("p2", date(2024, 1, 1), "1"))
                from_date = await store.delete_from_date("p1", date(2024, 1, 4))
                remaining = await store.get_by_portfolio("p1")
                whole = await store.delete_by_portfolio("p1")
                other = await store.get_by_portfolio("p2")
                return from_date, remaining, whole, other

        from_date, remaining, whole, other = asyncio.run(scenario())

        assert from_date == 2
        assert [r.date.day for r in remaining] == [1, 2, 3]
        assert whole == 3
        assert len(other) == 1


class TestSqlTransactionReaderAndAssets:
    """Tests for SqlTransactionReader and SqlAssetDirectory."""

    def test_reads_portfolio_ledger(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                async with session_factory() as session:
                    async with session.begin():
                        session.add_all([
                            Transaction(
                                id="t1", portfolio_id="p1", asset_id="AAPL",
                                transaction_type=TransactionType.BUY, date=date(2024, 1, 2),
                                quantity=D("10"), price=D("100.25"), total_amount=D("1002.5"),
                            ),
                            Transaction(
                                id="t2", portfolio_id="p2", asset_id="AAPL",
                                transaction_type=TransactionType.BUY, date=date(2024, 1, 2),
                                quantity=D("1"), price=D("1"), total_amount=D("1"),
                            ),
                        ])
                return await SqlTransactionReader(session_factory).get_by_portfolio("p1")

        rows = asyncio.run(scenario())

        assert [r.id for r in rows] == ["t1"]
        assert rows[0].total_amount == D("1002.5")
        assert rows[0].fees == D("0")
        assert rows[0].transaction_type == TransactionType.BUY

    def test_asset_directory(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                async with session_factory() as session:
                    async with session.begin():
                        session.add_all([
                            Asset(id="a1", symbol="AAPL", name="Apple Inc."),
                            Asset(id="a2", symbol="VTI"),
                        ])
                directory = SqlAssetDirectory(session_factory)
                return await directory.get_assets(["a1", "a2", "a3"]), await directory.get_assets([])

        found, empty = asyncio.run(scenario())

        assert set(found) == {"a1", "a2"}
        assert found["a1"].name == "Apple Inc."
        assert found["a2"].name is None
        assert empty == {}


class TestSnapshotServiceOnSql:
    """The snapshot service wired to the SQL stores end to end."""

    def test_compute_and_recompute_is_idempotent(self, sql_database):
        async def scenario():
            async with sql_database() as session_factory:
                async with session_factory() as session:
                    async with session.begin():
                        session.add(Transaction(
                            id="t1", portfolio_id="p1", asset_id="AAPL",
                            transaction_type=TransactionType.BUY, date=date(2024, 1, 1),
                            quantity=D("10"), price=D("100"), total_amount=D("1000"),
                        ))
                        session.add_all([
                            PriceHistory(asset_id="AAPL", date=date(2024, 1, 1), price=D("100")),
                            PriceHistory(asset_id="AAPL", date=date(2024, 1, 2), price=D("110")),
                        ])

                store = SqlSnapshotStore(session_factory)
                service = SnapshotService(
                    SqlTransactionReader(session_factory),
                    store,
                    SqlPriceLookup(session_factory),
                    today=lambda: date(2024, 1, 3),
                )
                await service.compute_snapshots("p1", date(2024, 1, 1))
                first = await store.get_by_portfolio("p1")
                await service.compute_snapshots("p1", date(2024, 1, 1))
                second = await store.get_by_portfolio("p1")
                return first, second

        first, second = asyncio.run(scenario())

        assert first == second
        assert [s.total_value for s in first] == [D("1000"), D("1100"), D("1100")]
        # Jan 3 carries Jan 2's price: one day old, within the threshold
        assert first[2].has_interpolated_prices is False
        assert first[2].twr_return == D("0.1")
