# portfolio_performance/services/snapshots/__init__.py
"""
Snapshot Service package.

Usage:
    from portfolio_performance.services.snapshots import (
        SnapshotService,
        SnapshotTrigger,
        SnapshotTriggerType,
    )

    service = SnapshotService(transactions, snapshots, price_lookup)
    await service.handle_snapshot_trigger(SnapshotTrigger(
        trigger_type=SnapshotTriggerType.TRANSACTION_ADDED,
        portfolio_id="p-1",
        date=date(2024, 3, 1),
    ))
"""

from portfolio_performance.services.snapshots.holdings import (
    HeldPosition,
    HoldingsCalculator,
    calculate_holdings_at_date,
    get_cash_flow_events,
    sort_transactions,
)
from portfolio_performance.services.snapshots.service import SnapshotService
from portfolio_performance.services.snapshots.types import (
    PerformanceSnapshot,
    SnapshotBatchResult,
    SnapshotTrigger,
    SnapshotTriggerType,
    make_snapshot_id,
)

__all__ = [
    "SnapshotService",
    "PerformanceSnapshot",
    "SnapshotBatchResult",
    "SnapshotTrigger",
    "SnapshotTriggerType",
    "make_snapshot_id",
    "HeldPosition",
    "HoldingsCalculator",
    "calculate_holdings_at_date",
    "get_cash_flow_events",
    "sort_transactions",
]
