# portfolio_performance/services/snapshots/types.py
"""
Data types for the Snapshot Service.

Architecture:
    - SnapshotTriggerType / SnapshotTrigger: ledger-mutation notifications
    - PerformanceSnapshot: one persisted day of portfolio performance
    - SnapshotBatchResult: outcome of one compute_snapshots call
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from portfolio_performance.services.constants import SNAPSHOT_ID_PREFIX
from portfolio_performance.services.exceptions import SnapshotFailure


def make_snapshot_id(portfolio_id: str, snapshot_date: date) -> str:
    """Deterministic snapshot id: perf-snap-{portfolio_id}-{YYYY-MM-DD}."""
    return f"{SNAPSHOT_ID_PREFIX}-{portfolio_id}-{snapshot_date.isoformat()}"


class SnapshotTriggerType(str, Enum):
    """Ledger events that invalidate part of a snapshot series."""
    TRANSACTION_ADDED = "TRANSACTION_ADDED"
    TRANSACTION_MODIFIED = "TRANSACTION_MODIFIED"
    TRANSACTION_DELETED = "TRANSACTION_DELETED"
    MANUAL_REFRESH = "MANUAL_REFRESH"


@dataclass
class SnapshotTrigger:
    """
    Notification that a portfolio's ledger changed.

    Attributes:
        trigger_type: What happened
        portfolio_id: Portfolio whose ledger changed
        date: Transaction date (ADDED, DELETED)
        old_date: Date before the edit (MODIFIED)
        new_date: Date after the edit (MODIFIED)
        transaction_id: Transaction involved, for logging only

    Dates may be given as dates, datetimes or ISO strings.
    """
    trigger_type: SnapshotTriggerType
    portfolio_id: str
    date: date | datetime | str | None = None
    old_date: date | datetime | str | None = None
    new_date: date | datetime | str | None = None
    transaction_id: str | None = None


@dataclass
class PerformanceSnapshot:
    """
    One day of portfolio performance.

    Attributes:
        portfolio_id: Owning portfolio
        date: Snapshot day
        total_value: Σ quantity × price over held assets
        total_cost: Cost basis of held assets
        day_change: total_value minus the previous day's value
        day_change_percent: day_change as a percentage of the previous value
        cumulative_return: Return since the portfolio's first day (fraction)
        twr_return: Time-weighted return since the first day (fraction)
        holding_count: Number of assets with quantity > 0
        has_interpolated_prices: True if any held asset's price was interpolated
    """
    portfolio_id: str
    date: date
    total_value: Decimal = field(default_factory=lambda: Decimal("0"))
    total_cost: Decimal = field(default_factory=lambda: Decimal("0"))
    day_change: Decimal = field(default_factory=lambda: Decimal("0"))
    day_change_percent: Decimal = field(default_factory=lambda: Decimal("0"))
    cumulative_return: Decimal = field(default_factory=lambda: Decimal("0"))
    twr_return: Decimal = field(default_factory=lambda: Decimal("0"))
    holding_count: int = 0
    has_interpolated_prices: bool = False

    @property
    def id(self) -> str:
        return make_snapshot_id(self.portfolio_id, self.date)


@dataclass
class SnapshotBatchResult:
    """
    Outcome of a compute_snapshots call.

    Attributes:
        portfolio_id: Portfolio computed
        start_date: First day written (None when nothing was written)
        end_date: Last day written (None when nothing was written)
        snapshots: Snapshots written, in date order
        failures: Upstream failures recorded along the way
    """
    portfolio_id: str
    start_date: date | None = None
    end_date: date | None = None
    snapshots: list[PerformanceSnapshot] = field(default_factory=list)
    failures: list[SnapshotFailure] = field(default_factory=list)

    @property
    def interpolated_days(self) -> int:
        return sum(1 for s in self.snapshots if s.has_interpolated_prices)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)
