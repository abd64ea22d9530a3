# portfolio_performance/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- The SQL-backed stores satisfy protocols without inheriting from them
- Test fakes work without explicit inheritance
- Clear documentation of what each service needs from its collaborators

Transactions are consumed through `LedgerTransaction`, so ORM rows and
plain test objects are interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_performance.models import TransactionType
    from portfolio_performance.services.pricing import PriceCache, PriceLookupResult
    from portfolio_performance.services.snapshots.types import PerformanceSnapshot


class LedgerTransaction(Protocol):
    """Read-only view of a transaction as the services need it."""
    id: str
    portfolio_id: str
    asset_id: str
    transaction_type: TransactionType
    date: date
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    fees: Decimal


@dataclass(frozen=True)
class AssetInfo:
    """Display details of an asset."""
    id: str
    symbol: str
    name: str | None = None


class PriceLookupProtocol(Protocol):
    """Interface required by SnapshotService and PerformanceAnalyticsService."""

    def create_price_cache(self) -> PriceCache:
        ...

    async def get_price_at_date(
        self,
        asset_id: str,
        on_date: date,
        cache: PriceCache | None = None,
    ) -> PriceLookupResult | None:
        ...


class TransactionReaderProtocol(Protocol):
    """Interface required by SnapshotService and PerformanceAnalyticsService."""

    async def get_by_portfolio(self, portfolio_id: str) -> Sequence[LedgerTransaction]:
        ...


class SnapshotStoreProtocol(Protocol):
    """
    Interface required by SnapshotService and PerformanceAnalyticsService.

    Rows are keyed by (portfolio_id, date); upserting an existing key
    replaces the row.
    """

    async def get_by_portfolio(
        self,
        portfolio_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[PerformanceSnapshot]:
        ...

    async def get_latest(self, portfolio_id: str) -> PerformanceSnapshot | None:
        ...

    async def upsert(self, snapshot: PerformanceSnapshot) -> None:
        ...

    async def upsert_many(self, snapshots: Sequence[PerformanceSnapshot]) -> None:
        ...

    async def delete_by_portfolio(self, portfolio_id: str) -> int:
        ...

    async def delete_from_date(self, portfolio_id: str, from_date: date) -> int:
        ...


class AssetDirectoryProtocol(Protocol):
    """Interface required by PerformanceAnalyticsService for display names."""

    async def get_assets(self, asset_ids: Sequence[str]) -> dict[str, AssetInfo]:
        ...
