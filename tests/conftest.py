# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- In-memory fakes of the service collaborators (ledger, snapshot store,
  price lookup, asset directory)
- Transaction factories
- Temporary aiosqlite database for the SQL-backed stores
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Sequence

import pytest

from portfolio_performance.database import create_all, create_engine_for_url, create_session_factory
from portfolio_performance.models import TransactionType
from portfolio_performance.services.pricing import PriceCache, PriceLookupResult
from portfolio_performance.services.protocols import AssetInfo
from portfolio_performance.services.snapshots.types import PerformanceSnapshot


# =============================================================================
# MOCK OBJECTS
# =============================================================================

@dataclass
class MockTransaction:
    """Ledger row for unit testing (same attributes as the ORM model)."""
    id: str
    asset_id: str
    transaction_type: TransactionType
    date: date
    quantity: Decimal
    price: Decimal = field(default_factory=lambda: Decimal("0"))
    total_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    fees: Decimal = field(default_factory=lambda: Decimal("0"))
    portfolio_id: str = "p1"
    currency: str = "USD"


def buy(txn_id: str, asset_id: str, on: date, quantity: str, price: str, portfolio_id: str = "p1"):
    """Buy transaction with total_amount = quantity × price."""
    qty, px = Decimal(quantity), Decimal(price)
    return MockTransaction(
        id=txn_id,
        asset_id=asset_id,
        transaction_type=TransactionType.BUY,
        date=on,
        quantity=qty,
        price=px,
        total_amount=qty * px,
        portfolio_id=portfolio_id,
    )


def sell(txn_id: str, asset_id: str, on: date, quantity: str, price: str, portfolio_id: str = "p1"):
    """Sell transaction with total_amount = quantity × price."""
    qty, px = Decimal(quantity), Decimal(price)
    return MockTransaction(
        id=txn_id,
        asset_id=asset_id,
        transaction_type=TransactionType.SELL,
        date=on,
        quantity=qty,
        price=px,
        total_amount=qty * px,
        portfolio_id=portfolio_id,
    )


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeTransactionReader:
    """In-memory ledger keyed by portfolio."""

    def __init__(self, transactions: Sequence[MockTransaction] = ()):
        self.transactions: list[MockTransaction] = list(transactions)

    def add(self, *transactions: MockTransaction) -> None:
        self.transactions.extend(transactions)

    def remove(self, txn_id: str) -> None:
        self.transactions = [t for t in self.transactions if t.id != txn_id]

    async def get_by_portfolio(self, portfolio_id: str) -> list[MockTransaction]:
        # Reverse so callers can't rely on storage order
        return [t for t in reversed(self.transactions) if t.portfolio_id == portfolio_id]


class FakeSnapshotStore:
    """
    In-memory snapshot store keyed by (portfolio_id, date).

    Failures can be injected for the batch write and for single days.
    """

    def __init__(self):
        self.rows: dict[tuple[str, date], PerformanceSnapshot] = {}
        self.fail_upsert_many = False
        self.fail_dates: set[date] = set()
        self.upsert_many_calls = 0
        self.upsert_calls = 0

    async def get_by_portfolio(self, portfolio_id, start_date=None, end_date=None):
        return sorted(
            (
                s for (pid, d), s in self.rows.items()
                if pid == portfolio_id
                and (start_date is None or d >= start_date)
                and (end_date is None or d <= end_date)
            ),
            key=lambda s: s.date,
        )

    async def get_latest(self, portfolio_id):
        rows = await self.get_by_portfolio(portfolio_id)
        return rows[-1] if rows else None

    async def upsert(self, snapshot):
        self.upsert_calls += 1
        if snapshot.date in self.fail_dates:
            raise RuntimeError(f"disk full on {snapshot.date}")
        self.rows[(snapshot.portfolio_id, snapshot.date)] = snapshot

    async def upsert_many(self, snapshots):
        self.upsert_many_calls += 1
        if self.fail_upsert_many:
            raise RuntimeError("batch write failed")
        for snapshot in snapshots:
            self.rows[(snapshot.portfolio_id, snapshot.date)] = snapshot

    async def delete_by_portfolio(self, portfolio_id):
        keys = [k for k in self.rows if k[0] == portfolio_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def delete_from_date(self, portfolio_id, from_date):
        keys = [k for k in self.rows if k[0] == portfolio_id and k[1] >= from_date]
        for key in keys:
            del self.rows[key]
        return len(keys)

    def add(self, *snapshots: PerformanceSnapshot) -> None:
        for snapshot in snapshots:
            self.rows[(snapshot.portfolio_id, snapshot.date)] = snapshot


class FakePriceLookup:
    """
    Price lookup over explicit (asset_id, date) prices.

    `constant` prices apply to every day not explicitly set. Days in
    `errors` raise, days in `stale` come back interpolated.
    """

    def __init__(self):
        self.prices: dict[tuple[str, date], Decimal] = {}
        self.constant: dict[str, Decimal] = {}
        self.errors: set[tuple[str, date]] = set()
        self.stale: set[tuple[str, date]] = set()
        self.calls = 0

    def set_price(self, asset_id: str, on: date, price: str) -> None:
        self.prices[(asset_id, on)] = Decimal(price)

    def set_series(self, asset_id: str, start: date, prices: Sequence[str]) -> None:
        for offset, price in enumerate(prices):
            self.set_price(asset_id, start + timedelta(days=offset), price)

    def create_price_cache(self) -> PriceCache:
        return PriceCache()

    async def get_price_at_date(self, asset_id, on_date, cache=None):
        if cache is not None and (asset_id, on_date) in cache:
            return cache.get(asset_id, on_date)

        self.calls += 1
        if (asset_id, on_date) in self.errors:
            raise ConnectionError(f"price feed down for {asset_id}")

        price = self.prices.get((asset_id, on_date), self.constant.get(asset_id))
        result = None
        if price is not None:
            result = PriceLookupResult(
                price=price,
                is_interpolated=(asset_id, on_date) in self.stale,
                price_date=on_date,
            )
        if cache is not None:
            cache.put(asset_id, on_date, result)
        return result


class FakeAssetDirectory:
    """Asset names for display."""

    def __init__(self, assets: Sequence[AssetInfo] = ()):
        self.assets = {a.id: a for a in assets}

    async def get_assets(self, asset_ids):
        return {i: self.assets[i] for i in asset_ids if i in self.assets}


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def transaction_reader():
    return FakeTransactionReader()


@pytest.fixture
def snapshot_store():
    return FakeSnapshotStore()


@pytest.fixture
def price_lookup():
    return FakePriceLookup()


@pytest.fixture
def asset_directory():
    return FakeAssetDirectory([
        AssetInfo(id="AAPL", symbol="AAPL", name="Apple Inc."),
        AssetInfo(id="MSFT", symbol="MSFT", name="Microsoft Corporation"),
    ])


@pytest.fixture
def sql_database(tmp_path):
    """
    Async context manager yielding a session factory on a fresh aiosqlite
    file with all tables created.

    Use it inside the coroutine passed to asyncio.run so the engine's
    connections live and die on one event loop.
    """
    url = f"sqlite+aiosqlite:///{tmp_path}/test.db"

    @asynccontextmanager
    async def _database():
        engine = create_engine_for_url(url)
        await create_all(engine)
        try:
            yield create_session_factory(engine)
        finally:
            await engine.dispose()

    return _database
