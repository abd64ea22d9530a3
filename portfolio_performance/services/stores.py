# portfolio_performance/services/stores.py
"""
SQLAlchemy-backed collaborators for the snapshot and analytics services.

- SqlTransactionReader: ledger rows of a portfolio
- SqlSnapshotStore: performance snapshots keyed by (portfolio_id, date)
- SqlAssetDirectory: display names for assets

Each store takes an `async_sessionmaker` and opens a short-lived session
per call. Snapshots cross this boundary as `PerformanceSnapshot`
dataclasses; the ORM rows never leave this module.
"""

import logging
from collections.abc import Sequence
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portfolio_performance.models import Asset, PortfolioSnapshot, Transaction
from portfolio_performance.services.protocols import AssetInfo
from portfolio_performance.services.snapshots.types import PerformanceSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class SqlTransactionReader:
    """Reads a portfolio's ledger from the `transactions` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_portfolio(self, portfolio_id: str) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.portfolio_id == portfolio_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())


# =============================================================================
# SNAPSHOTS
# =============================================================================

def _to_row(snapshot: PerformanceSnapshot) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        id=snapshot.id,
        portfolio_id=snapshot.portfolio_id,
        date=snapshot.date,
        total_value=snapshot.total_value,
        total_cost=snapshot.total_cost,
        day_change=snapshot.day_change,
        day_change_percent=snapshot.day_change_percent,
        cumulative_return=snapshot.cumulative_return,
        twr_return=snapshot.twr_return,
        holding_count=snapshot.holding_count,
        has_interpolated_prices=snapshot.has_interpolated_prices,
    )


def _from_row(row: PortfolioSnapshot) -> PerformanceSnapshot:
    return PerformanceSnapshot(
        portfolio_id=row.portfolio_id,
        date=row.date,
        total_value=row.total_value,
        total_cost=row.total_cost,
        day_change=row.day_change,
        day_change_percent=row.day_change_percent,
        cumulative_return=row.cumulative_return,
        twr_return=row.twr_return,
        holding_count=row.holding_count,
        has_interpolated_prices=row.has_interpolated_prices,
    )


class SqlSnapshotStore:
    """
    Snapshot persistence in the `performance_snapshots` table.

    Upserts go through `session.merge()` on the deterministic snapshot id,
    which works on every backend without dialect-specific ON CONFLICT.
    `upsert_many` writes the whole batch in one transaction, so readers
    never see a half-updated series.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_portfolio(
            self,
            portfolio_id: str,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> list[PerformanceSnapshot]:
        stmt = select(PortfolioSnapshot).where(PortfolioSnapshot.portfolio_id == portfolio_id)
        if start_date is not None:
            stmt = stmt.where(PortfolioSnapshot.date >= start_date)
        if end_date is not None:
            stmt = stmt.where(PortfolioSnapshot.date <= end_date)
        stmt = stmt.order_by(PortfolioSnapshot.date)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_from_row(row) for row in result.scalars().all()]

    async def get_latest(self, portfolio_id: str) -> PerformanceSnapshot | None:
        stmt = (
            select(PortfolioSnapshot)
            .where(PortfolioSnapshot.portfolio_id == portfolio_id)
            .order_by(PortfolioSnapshot.date.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalars().first()
            return _from_row(row) if row is not None else None

    async def upsert(self, snapshot: PerformanceSnapshot) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.merge(_to_row(snapshot))

    async def upsert_many(self, snapshots: Sequence[PerformanceSnapshot]) -> None:
        if not snapshots:
            return
        async with self._session_factory() as session:
            async with session.begin():
                for snapshot in snapshots:
                    await session.merge(_to_row(snapshot))
        logger.debug(f"Upserted {len(snapshots)} snapshots")

    async def delete_by_portfolio(self, portfolio_id: str) -> int:
        stmt = delete(PortfolioSnapshot).where(PortfolioSnapshot.portfolio_id == portfolio_id)
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                deleted = result.rowcount or 0
        return deleted

    async def delete_from_date(self, portfolio_id: str, from_date: date) -> int:
        stmt = delete(PortfolioSnapshot).where(
            PortfolioSnapshot.portfolio_id == portfolio_id,
            PortfolioSnapshot.date >= from_date,
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                deleted = result.rowcount or 0
        return deleted


# =============================================================================
# ASSETS
# =============================================================================

class SqlAssetDirectory:
    """Looks up asset symbols and names for display."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_assets(self, asset_ids: Sequence[str]) -> dict[str, AssetInfo]:
        if not asset_ids:
            return {}
        stmt = select(Asset).where(Asset.id.in_(list(asset_ids)))
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return {
            row.id: AssetInfo(id=row.id, symbol=row.symbol, name=row.name)
            for row in rows
        }
