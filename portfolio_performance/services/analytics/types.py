# portfolio_performance/services/analytics/types.py
"""
Data types for the Performance Analytics Service.

Everything here is read-model output derived from stored snapshots; none
of it is persisted. Money and returns are Decimal.

Architecture:
    - TimePeriod: Named lookback windows (TODAY ... ALL)
    - ChartResolution: Point density of chart data
    - DayPerformance: A single day's change (best/worst day)
    - PerformanceSummary: Period statistics for the summary card
    - ChartDataPoint: One (possibly aggregated) chart point
    - HoldingPerformance: Per-asset contribution over a period
    - ExportOptions: CSV export switches
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from portfolio_performance.config import settings
from portfolio_performance.services.exceptions import InvalidPeriodError


class TimePeriod(str, Enum):
    """
    Lookback window ending at the reference day.

    ALL has no fixed length: it starts at the portfolio's first snapshot.
    """
    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    QUARTER = "QUARTER"
    YEAR = "YEAR"
    ALL = "ALL"

    @classmethod
    def parse(cls, value: "TimePeriod | str") -> "TimePeriod":
        """
        Coerce a period name (case-insensitive) to a TimePeriod.

        Raises:
            InvalidPeriodError: If the name is not a known period
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as e:
            raise InvalidPeriodError(str(value)) from e

    @property
    def lookback_days(self) -> int | None:
        return _PERIOD_DAYS[self]

    def start_date(self, as_of: date, first_snapshot_date: date | None = None) -> date | None:
        """
        First day of the window.

        Returns None for ALL when the portfolio has no snapshots yet.
        """
        if self is TimePeriod.ALL:
            return first_snapshot_date
        return as_of - timedelta(days=self.lookback_days)


_PERIOD_DAYS: dict[TimePeriod, int | None] = {
    TimePeriod.TODAY: 0,
    TimePeriod.WEEK: 7,
    TimePeriod.MONTH: 30,
    TimePeriod.QUARTER: 90,
    TimePeriod.YEAR: 365,
    TimePeriod.ALL: None,
}


class ChartResolution(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass
class DayPerformance:
    """A single day's change."""
    date: date
    change: Decimal
    change_percent: Decimal


@dataclass
class PerformanceSummary:
    """
    Summary statistics over a period.

    Return units:
        total_return_percent, annualized_return, volatility: percent (10 = 10%)
        twr_return: fraction (0.10 = 10%), cash-flow neutral
        sharpe_ratio: plain ratio

    Attributes:
        start_value / end_value: First and last snapshot values in the period
        total_return: end_value - start_value (includes contributions)
        period_high / period_low: Extremes of total_value in the period
        best_day / worst_day: Extremes of day_change_percent in the period
        has_interpolated_prices: Any snapshot in the period used a substitute price
    """
    portfolio_id: str
    period: TimePeriod
    start_date: date
    end_date: date
    start_value: Decimal
    end_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    twr_return: Decimal
    annualized_return: Decimal
    period_high: Decimal
    period_high_date: date
    period_low: Decimal
    period_low_date: date
    best_day: DayPerformance
    worst_day: DayPerformance
    volatility: Decimal
    sharpe_ratio: Decimal
    snapshot_count: int = 0
    has_interpolated_prices: bool = False


# =============================================================================
# CHART
# =============================================================================

@dataclass
class ChartDataPoint:
    """
    One chart point.

    For aggregated resolutions the point carries the bucket's last value,
    the change over the bucket, and the bucket's high/low.
    """
    date: date
    value: Decimal
    change: Decimal
    change_percent: Decimal
    high: Decimal
    low: Decimal
    twr_return: Decimal = field(default_factory=lambda: Decimal("0"))
    has_interpolated_prices: bool = False


# =============================================================================
# HOLDINGS
# =============================================================================

@dataclass
class HoldingPerformance:
    """
    Performance of one held asset over a period.

    Attributes:
        cost_basis: Remaining cost of the open position
        current_value: Quantity × price on the reference day
        period_start_value: Value of the position held at period start
            (the cost basis for ALL)
        absolute_gain: current_value - cost_basis
        percent_gain: absolute_gain / cost_basis × 100 (0 without cost)
        period_gain: current_value - period_start_value
        weight: Share of the portfolio value, in percent
        is_interpolated: Either valuation used a substitute or stale price
    """
    asset_id: str
    symbol: str
    name: str
    quantity: Decimal
    cost_basis: Decimal
    current_value: Decimal
    period_start_value: Decimal
    absolute_gain: Decimal
    percent_gain: Decimal
    period_gain: Decimal
    weight: Decimal
    is_interpolated: bool = False


# =============================================================================
# EXPORT
# =============================================================================

@dataclass
class ExportOptions:
    """
    Switches for CSV export.

    Attributes:
        include_benchmark: Append benchmark value and change columns
        benchmark_symbol: Asset id of the benchmark in the price lookup
                          (default: DEFAULT_BENCHMARK_SYMBOL setting)
        include_holdings: Append the holdings performance section
        date_format: strftime format of the Date column
    """
    include_benchmark: bool = False
    benchmark_symbol: str = field(default_factory=lambda: settings.default_benchmark_symbol)
    include_holdings: bool = False
    date_format: str = "%Y-%m-%d"
