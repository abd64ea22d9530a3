# portfolio_performance/services/exceptions.py
"""
Service layer exceptions.

These exceptions represent programmer errors and upstream failures. Absent
data (no transactions, no snapshots, no price) is never an exception: it is
represented as empty results, None summaries or skipped items.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   ├── InvalidTriggerError
    │   └── InvalidPeriodError
    └── SnapshotComputationError
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_performance.services.snapshots.types import SnapshotBatchResult


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when a service is called with malformed arguments.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidTriggerError(ValidationError):
    """
    Raised when a snapshot trigger is missing the date(s) its kind requires.

    Attributes:
        trigger_type: The trigger kind that was malformed
    """

    def __init__(self, trigger_type: str, field: str) -> None:
        self.trigger_type = trigger_type
        super().__init__(
            f"Trigger '{trigger_type}' requires '{field}'",
            field=field,
        )


class InvalidPeriodError(ValidationError):
    """
    Raised when an unknown analytics period is requested.

    Valid periods are: TODAY, WEEK, MONTH, QUARTER, YEAR, ALL
    """

    def __init__(self, period: str) -> None:
        self.period = period
        super().__init__(
            f"Invalid period: '{period}'. "
            f"Valid options: TODAY, WEEK, MONTH, QUARTER, YEAR, ALL",
            field="period",
        )


# =============================================================================
# UPSTREAM FAILURES
# =============================================================================


@dataclass
class SnapshotFailure:
    """
    A single failure recorded while computing a snapshot batch.

    Attributes:
        date: Day the failure affected
        stage: "price" for a price lookup failure, "persist" for a write failure
        error: String form of the underlying exception
        asset_id: Asset whose price lookup failed (price failures only)
    """
    date: date
    stage: str
    error: str
    asset_id: str | None = None


class SnapshotComputationError(ServiceError):
    """
    Raised after a snapshot batch completed with upstream failures.

    Every unaffected day has been attempted before this is raised, so
    `result` holds the snapshots that were computed.

    Attributes:
        portfolio_id: Portfolio whose batch failed
        failures: Failures in the order they were recorded
        result: Partial batch result
    """

    def __init__(
            self,
            portfolio_id: str,
            failures: list[SnapshotFailure],
            result: SnapshotBatchResult | None = None,
    ) -> None:
        self.portfolio_id = portfolio_id
        self.failures = failures
        self.result = result
        days = sorted({f.date for f in failures})
        span = f"{days[0]} to {days[-1]}" if days else "no days"
        super().__init__(
            f"Snapshot computation for portfolio {portfolio_id} finished with "
            f"{len(failures)} failure(s) ({span})"
        )
