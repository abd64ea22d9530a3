# portfolio_performance/services/analytics/aggregation.py
"""
Chart point reduction.

Resolution by range length (end - start, in days):
    <= 90     daily    one point per snapshot
    <= 365    weekly   one point per ISO week
    >  365    monthly  one point per calendar month

An aggregated point carries the bucket's last snapshot value and date,
the bucket's min/max value as low/high, and the change since the value
the bucket opened on (the first snapshot's value before its own day
change). Buckets are emitted in date order.
"""

from collections.abc import Callable, Sequence
from datetime import date
from itertools import groupby

from portfolio_performance.services.analytics.types import ChartDataPoint, ChartResolution
from portfolio_performance.services.constants import (
    DAILY_RESOLUTION_MAX_DAYS,
    HUNDRED,
    WEEKLY_RESOLUTION_MAX_DAYS,
    ZERO,
)
from portfolio_performance.services.snapshots.types import PerformanceSnapshot
from portfolio_performance.utils.date_utils import days_between, iso_week_key, month_key


def resolve_resolution(start_date: date, end_date: date) -> ChartResolution:
    days = days_between(start_date, end_date)
    if days <= DAILY_RESOLUTION_MAX_DAYS:
        return ChartResolution.DAILY
    if days <= WEEKLY_RESOLUTION_MAX_DAYS:
        return ChartResolution.WEEKLY
    return ChartResolution.MONTHLY


def _daily_point(snapshot: PerformanceSnapshot) -> ChartDataPoint:
    return ChartDataPoint(
        date=snapshot.date,
        value=snapshot.total_value,
        change=snapshot.day_change,
        change_percent=snapshot.day_change_percent,
        high=snapshot.total_value,
        low=snapshot.total_value,
        twr_return=snapshot.twr_return,
        has_interpolated_prices=snapshot.has_interpolated_prices,
    )


def _bucket_point(bucket: list[PerformanceSnapshot]) -> ChartDataPoint:
    first = bucket[0]
    last = bucket[-1]
    values = [s.total_value for s in bucket]

    opening_value = first.total_value - first.day_change
    change = last.total_value - opening_value
    change_percent = change / opening_value * HUNDRED if opening_value != ZERO else ZERO

    return ChartDataPoint(
        date=last.date,
        value=last.total_value,
        change=change,
        change_percent=change_percent,
        high=max(values),
        low=min(values),
        twr_return=last.twr_return,
        has_interpolated_prices=any(s.has_interpolated_prices for s in bucket),
    )


def _group(
        snapshots: Sequence[PerformanceSnapshot],
        key: Callable[[date], tuple[int, int]],
) -> list[ChartDataPoint]:
    return [
        _bucket_point(list(bucket))
        for _, bucket in groupby(snapshots, key=lambda s: key(s.date))
    ]


def aggregate_snapshots(
        snapshots: Sequence[PerformanceSnapshot],
        start_date: date,
        end_date: date,
) -> list[ChartDataPoint]:
    """
    Reduce a snapshot series to chart points for the given range.

    Args:
        snapshots: Snapshots of one portfolio (any order)
        start_date: First day of the charted range
        end_date: Last day of the charted range

    Returns:
        Points in date order; empty for an empty series
    """
    ordered = sorted(snapshots, key=lambda s: s.date)
    if not ordered:
        return []

    resolution = resolve_resolution(start_date, end_date)
    if resolution == ChartResolution.DAILY:
        return [_daily_point(s) for s in ordered]
    if resolution == ChartResolution.WEEKLY:
        return _group(ordered, iso_week_key)
    return _group(ordered, month_key)
