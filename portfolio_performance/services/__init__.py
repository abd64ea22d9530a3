# portfolio_performance/services/__init__.py
"""
Service layer for performance and tax computation.

Services:
- Have NO knowledge of HTTP or UI
- Raise domain-specific exceptions only for programmer errors and
  upstream failures; absent data yields empty results
- Receive their collaborators (stores, price lookup) through the
  constructor, typed by the Protocols in `protocols.py`

Usage:
    from portfolio_performance.services import SnapshotService
    from portfolio_performance.services import PerformanceAnalyticsService
    from portfolio_performance.services import calculate_tax_exposure
    from portfolio_performance.services import (
        ServiceError,
        InvalidTriggerError,
        SnapshotComputationError,
    )

Architecture:
    services/
    ├── __init__.py                  # This file - main exports
    ├── exceptions.py                # Domain exceptions
    ├── constants.py                 # Business constants
    ├── protocols.py                 # Collaborator interfaces (Protocol classes)
    ├── pricing.py                   # Price lookup and per-batch price cache
    ├── stores.py                    # SQLAlchemy stores (ledger, snapshots, assets)
    ├── performance/                 # TWR Calculator (pure functions)
    │   ├── twr.py                   # Modified Dietz, compounding, annualization
    │   ├── risk.py                  # Volatility, Sharpe ratio
    │   └── types.py                 # Cash flows, sub-periods, results
    ├── snapshots/                   # Snapshot Service
    │   ├── service.py               # Trigger handling and daily replay
    │   ├── holdings.py              # Ledger replay into holdings
    │   └── types.py                 # Snapshot and trigger types
    ├── analytics/                   # Performance Analytics
    │   ├── service.py               # Summary, chart, holdings, export
    │   ├── aggregation.py           # Chart resolution reduction
    │   ├── export.py                # CSV rendering
    │   └── types.py                 # Periods and result types
    └── tax/                         # Tax Calculator
        ├── calculator.py            # Holding period, aging lots, exposure
        └── types.py                 # Lots, metrics, TaxSettings
"""

# Exceptions
from portfolio_performance.services.exceptions import (
    InvalidPeriodError,
    InvalidTriggerError,
    ServiceError,
    SnapshotComputationError,
    SnapshotFailure,
    ValidationError,
)

# Collaborators
from portfolio_performance.services.pricing import (
    PriceCache,
    PriceLookupResult,
    SqlPriceLookup,
    create_price_cache,
)
from portfolio_performance.services.stores import (
    SqlAssetDirectory,
    SqlSnapshotStore,
    SqlTransactionReader,
)

# Services
from portfolio_performance.services.analytics import (
    ExportOptions,
    PerformanceAnalyticsService,
    TimePeriod,
)
from portfolio_performance.services.snapshots import (
    PerformanceSnapshot,
    SnapshotBatchResult,
    SnapshotService,
    SnapshotTrigger,
    SnapshotTriggerType,
)
from portfolio_performance.services.tax import (
    TaxSettings,
    calculate_tax_exposure,
    detect_aging_lots,
)

__all__ = [
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidTriggerError",
    "InvalidPeriodError",
    "SnapshotComputationError",
    "SnapshotFailure",
    # Collaborators
    "PriceCache",
    "PriceLookupResult",
    "SqlPriceLookup",
    "create_price_cache",
    "SqlAssetDirectory",
    "SqlSnapshotStore",
    "SqlTransactionReader",
    # Snapshots
    "SnapshotService",
    "PerformanceSnapshot",
    "SnapshotBatchResult",
    "SnapshotTrigger",
    "SnapshotTriggerType",
    # Analytics
    "PerformanceAnalyticsService",
    "ExportOptions",
    "TimePeriod",
    # Tax
    "TaxSettings",
    "calculate_tax_exposure",
    "detect_aging_lots",
]
