# portfolio_performance/services/analytics/__init__.py
"""
Performance Analytics package.

Usage:
    from portfolio_performance.services.analytics import (
        PerformanceAnalyticsService,
        TimePeriod,
    )

    service = PerformanceAnalyticsService(snapshot_store)
    summary = await service.get_summary("p-1", TimePeriod.MONTH)
    points = await service.get_chart_data("p-1", TimePeriod.YEAR)
"""

from portfolio_performance.services.analytics.aggregation import (
    aggregate_snapshots,
    resolve_resolution,
)
from portfolio_performance.services.analytics.export import (
    build_holdings_section,
    build_performance_csv,
    export_cumulative_return_pct,
    format_decimal,
)
from portfolio_performance.services.analytics.service import PerformanceAnalyticsService
from portfolio_performance.services.analytics.types import (
    ChartDataPoint,
    ChartResolution,
    DayPerformance,
    ExportOptions,
    HoldingPerformance,
    PerformanceSummary,
    TimePeriod,
)

__all__ = [
    # Service
    "PerformanceAnalyticsService",
    # Types
    "ChartDataPoint",
    "ChartResolution",
    "DayPerformance",
    "ExportOptions",
    "HoldingPerformance",
    "PerformanceSummary",
    "TimePeriod",
    # Aggregation
    "aggregate_snapshots",
    "resolve_resolution",
    # Export
    "build_holdings_section",
    "build_performance_csv",
    "export_cumulative_return_pct",
    "format_decimal",
]
