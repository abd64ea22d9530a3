# portfolio_performance/services/analytics/service.py
"""
Performance Analytics Service - read-only views over the snapshot series.

Provides:
    get_summary               period statistics (high/low, best/worst day,
                              TWR, annualized return, volatility, Sharpe)
    get_chart_data            snapshot series reduced to chart resolution
    get_holding_performance   per-asset value and gain over a period
    export_to_csv             CSV report of the period

Architecture:
    PerformanceAnalyticsService
        ├── uses → SnapshotStoreProtocol (stored daily snapshots)
        ├── uses → TransactionReaderProtocol (holdings replay, optional)
        ├── uses → PriceLookupProtocol (holding and benchmark prices, optional)
        ├── uses → AssetDirectoryProtocol (symbols and names, optional)
        ├── uses → aggregation (chart resolution)
        └── uses → export (CSV rendering)

Period TWR:
    Stored twr_return values are cumulative from inception, so the TWR of
    a window is (1 + twr_last) / (1 + twr_first) - 1.

Usage:
    service = PerformanceAnalyticsService(
        SqlSnapshotStore(session_factory),
        transactions=SqlTransactionReader(session_factory),
        price_lookup=SqlPriceLookup(session_factory),
        assets=SqlAssetDirectory(session_factory),
    )
    summary = await service.get_summary("p-1", TimePeriod.YEAR)
"""

import logging
from collections.abc import Callable
from datetime import date
from decimal import Decimal

from portfolio_performance.config import settings
from portfolio_performance.services.analytics.aggregation import aggregate_snapshots
from portfolio_performance.services.analytics.export import build_performance_csv
from portfolio_performance.services.analytics.types import (
    ChartDataPoint,
    DayPerformance,
    ExportOptions,
    HoldingPerformance,
    PerformanceSummary,
    TimePeriod,
)
from portfolio_performance.services.constants import HUNDRED, ONE, ZERO
from portfolio_performance.services.exceptions import ServiceError
from portfolio_performance.services.performance.risk import (
    calculate_sharpe_ratio,
    calculate_volatility,
)
from portfolio_performance.services.performance.twr import (
    annualize_return,
    calculate_simple_return,
)
from portfolio_performance.services.pricing import PriceCache
from portfolio_performance.services.protocols import (
    AssetDirectoryProtocol,
    AssetInfo,
    PriceLookupProtocol,
    SnapshotStoreProtocol,
    TransactionReaderProtocol,
)
from portfolio_performance.services.snapshots.holdings import calculate_holdings_at_date
from portfolio_performance.services.snapshots.types import PerformanceSnapshot

logger = logging.getLogger(__name__)


class PerformanceAnalyticsService:
    """
    Analytics over stored performance snapshots.

    Only the snapshot store is required. Holding performance (and the
    holdings section of exports) needs the transaction reader and price
    lookup; benchmark export columns need the price lookup.
    """

    def __init__(
            self,
            snapshots: SnapshotStoreProtocol,
            transactions: TransactionReaderProtocol | None = None,
            price_lookup: PriceLookupProtocol | None = None,
            assets: AssetDirectoryProtocol | None = None,
            today: Callable[[], date] = date.today,
            risk_free_rate_pct: Decimal | None = None,
    ) -> None:
        self._snapshots = snapshots
        self._transactions = transactions
        self._price_lookup = price_lookup
        self._assets = assets
        self._today = today
        self._risk_free_rate_pct = (
            settings.risk_free_rate_pct if risk_free_rate_pct is None else risk_free_rate_pct
        )

    # =========================================================================
    # SUMMARY
    # =========================================================================

    async def get_summary(
            self,
            portfolio_id: str,
            period: TimePeriod | str,
            as_of: date | None = None,
    ) -> PerformanceSummary | None:
        """
        Summary statistics of a period.

        Returns:
            PerformanceSummary, or None when the period has no snapshots

        Raises:
            InvalidPeriodError: If the period name is unknown
        """
        period = TimePeriod.parse(period)
        as_of = as_of or self._today()
        start_date, snapshots = await self._load_period(portfolio_id, period, as_of)
        if not snapshots:
            return None

        first = snapshots[0]
        last = snapshots[-1]

        # Single pass for extremes and daily returns
        period_high = period_low = best_day = worst_day = first
        daily_returns: list[Decimal] = []
        for snap in snapshots:
            if snap.total_value > period_high.total_value:
                period_high = snap
            if snap.total_value < period_low.total_value:
                period_low = snap
            if snap.day_change_percent > best_day.day_change_percent:
                best_day = snap
            if snap.day_change_percent < worst_day.day_change_percent:
                worst_day = snap
            if snap.day_change_percent != ZERO:
                daily_returns.append(snap.day_change_percent / HUNDRED)

        total_return = last.total_value - first.total_value
        twr_return = self._period_twr(first, last)
        annualized = annualize_return(twr_return, (last.date - first.date).days)
        volatility = calculate_volatility(daily_returns)
        sharpe = calculate_sharpe_ratio(annualized, volatility, self._risk_free_rate_pct)

        return PerformanceSummary(
            portfolio_id=portfolio_id,
            period=period,
            start_date=start_date,
            end_date=as_of,
            start_value=first.total_value,
            end_value=last.total_value,
            total_return=total_return,
            total_return_percent=calculate_simple_return(first.total_value, last.total_value) * HUNDRED,
            twr_return=twr_return,
            annualized_return=annualized,
            period_high=period_high.total_value,
            period_high_date=period_high.date,
            period_low=period_low.total_value,
            period_low_date=period_low.date,
            best_day=DayPerformance(
                date=best_day.date,
                change=best_day.day_change,
                change_percent=best_day.day_change_percent,
            ),
            worst_day=DayPerformance(
                date=worst_day.date,
                change=worst_day.day_change,
                change_percent=worst_day.day_change_percent,
            ),
            volatility=volatility,
            sharpe_ratio=sharpe,
            snapshot_count=len(snapshots),
            has_interpolated_prices=any(s.has_interpolated_prices for s in snapshots),
        )

    @staticmethod
    def _period_twr(first: PerformanceSnapshot, last: PerformanceSnapshot) -> Decimal:
        base = ONE + first.twr_return
        if base == ZERO:
            return ZERO
        return (ONE + last.twr_return) / base - ONE

    # =========================================================================
    # CHART
    # =========================================================================

    async def get_chart_data(
            self,
            portfolio_id: str,
            period: TimePeriod | str,
            as_of: date | None = None,
    ) -> list[ChartDataPoint]:
        """Chart points of a period, reduced to the period's resolution."""
        period = TimePeriod.parse(period)
        as_of = as_of or self._today()
        start_date, snapshots = await self._load_period(portfolio_id, period, as_of)
        if not snapshots:
            return []
        return aggregate_snapshots(snapshots, start_date, as_of)

    # =========================================================================
    # HOLDINGS
    # =========================================================================

    async def get_holding_performance(
            self,
            portfolio_id: str,
            period: TimePeriod | str,
            as_of: date | None = None,
    ) -> list[HoldingPerformance]:
        """
        Per-asset performance of the positions held on `as_of`.

        Positions are rebuilt from the ledger at `as_of` and at the period
        start; both are valued through the price lookup. For ALL the start
        value is the position's cost basis, so the period gain is the gain
        against capital invested.

        Returns:
            Holdings sorted by current value (largest first); empty
            without transactions

        Raises:
            ServiceError: If the service was built without a transaction
                          reader or price lookup
        """
        if self._transactions is None or self._price_lookup is None:
            raise ServiceError(
                "Holding performance requires a transaction reader and a price lookup"
            )

        period = TimePeriod.parse(period)
        as_of = as_of or self._today()

        transactions = await self._transactions.get_by_portfolio(portfolio_id)
        if not transactions:
            return []

        first_txn_date = min(t.date for t in transactions)
        start_date = period.start_date(as_of, first_txn_date)

        current_positions = calculate_holdings_at_date(transactions, as_of)
        if not current_positions:
            return []
        start_quantities = {
            p.asset_id: p.quantity
            for p in calculate_holdings_at_date(transactions, start_date)
        }

        asset_ids = [p.asset_id for p in current_positions]
        asset_info: dict[str, AssetInfo] = {}
        if self._assets is not None:
            asset_info = await self._assets.get_assets(asset_ids)

        cache = self._price_lookup.create_price_cache()
        rows: list[HoldingPerformance] = []

        for position in current_positions:
            current_price, current_interp = await self._price(position.asset_id, as_of, cache)
            current_value = position.quantity * current_price

            start_qty = start_quantities.get(position.asset_id, ZERO)
            start_interp = False
            period_start_value = ZERO
            if period is TimePeriod.ALL:
                period_start_value = position.cost_basis
            elif start_qty > ZERO:
                start_price, start_interp = await self._price(position.asset_id, start_date, cache)
                period_start_value = start_qty * start_price

            absolute_gain = current_value - position.cost_basis
            percent_gain = (
                absolute_gain / position.cost_basis * HUNDRED
                if position.cost_basis > ZERO
                else ZERO
            )

            info = asset_info.get(position.asset_id)
            symbol = info.symbol if info is not None else position.asset_id
            name = info.name if info is not None and info.name else symbol

            rows.append(HoldingPerformance(
                asset_id=position.asset_id,
                symbol=symbol,
                name=name,
                quantity=position.quantity,
                cost_basis=position.cost_basis,
                current_value=current_value,
                period_start_value=period_start_value,
                absolute_gain=absolute_gain,
                percent_gain=percent_gain,
                period_gain=current_value - period_start_value,
                weight=ZERO,
                is_interpolated=current_interp or start_interp,
            ))

        total_value = sum((r.current_value for r in rows), ZERO)
        if total_value != ZERO:
            for row in rows:
                row.weight = row.current_value / total_value * HUNDRED

        rows.sort(key=lambda r: (-r.current_value, r.symbol))
        return rows

    async def _price(self, asset_id: str, on_date: date, cache: PriceCache) -> tuple[Decimal, bool]:
        """Price and interpolation flag; a missing price values at 0."""
        result = await self._price_lookup.get_price_at_date(asset_id, on_date, cache)
        if result is None:
            logger.warning(f"No price for {asset_id} on {on_date}; valuing at 0")
            return ZERO, True
        return result.price, result.is_interpolated

    # =========================================================================
    # EXPORT
    # =========================================================================

    async def export_to_csv(
            self,
            portfolio_id: str,
            period: TimePeriod | str,
            options: ExportOptions | None = None,
            as_of: date | None = None,
    ) -> str:
        """
        CSV report of a period.

        Returns:
            CSV text; "" when the period has no snapshots
        """
        period = TimePeriod.parse(period)
        options = options or ExportOptions()
        as_of = as_of or self._today()

        _, snapshots = await self._load_period(portfolio_id, period, as_of)
        if not snapshots:
            return ""

        benchmark_prices: dict[date, Decimal | None] = {}
        if options.include_benchmark:
            if self._price_lookup is None:
                logger.warning("Benchmark requested without a price lookup; columns left empty")
            else:
                cache = self._price_lookup.create_price_cache()
                for snap in snapshots:
                    result = await self._price_lookup.get_price_at_date(
                        options.benchmark_symbol, snap.date, cache
                    )
                    benchmark_prices[snap.date] = result.price if result is not None else None

        holdings = None
        if options.include_holdings:
            holdings = await self.get_holding_performance(portfolio_id, period, as_of)

        csv_text = build_performance_csv(snapshots, options, benchmark_prices, holdings)
        logger.info(
            f"Exported {len(snapshots)} snapshot rows for portfolio {portfolio_id} "
            f"({period.value})"
        )
        return csv_text

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _load_period(
            self,
            portfolio_id: str,
            period: TimePeriod,
            as_of: date,
    ) -> tuple[date | None, list[PerformanceSnapshot]]:
        """Start of the window and the snapshots inside it, in date order."""
        if period is TimePeriod.ALL:
            snapshots = await self._snapshots.get_by_portfolio(portfolio_id, None, as_of)
            snapshots = sorted(snapshots, key=lambda s: s.date)
            start_date = period.start_date(as_of, snapshots[0].date if snapshots else None)
        else:
            start_date = period.start_date(as_of)
            snapshots = await self._snapshots.get_by_portfolio(portfolio_id, start_date, as_of)
            snapshots = sorted(snapshots, key=lambda s: s.date)
        return start_date, snapshots
