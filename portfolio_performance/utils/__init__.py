# portfolio_performance/utils/__init__.py
"""
Utility modules for the portfolio performance engine.

This package contains cross-cutting utilities used throughout the package:
- logging: Logging configuration and setup with correlation ID support
- context: Correlation ID and batch context for snapshot batches
- date_utils: Calendar day iteration and week/month grouping keys
- decimal_serialization: Decimal <-> string at the persistence boundary

Usage:
    from portfolio_performance.utils import setup_logging, get_logger
    from portfolio_performance.utils import correlation_scope
    from portfolio_performance.utils.date_utils import each_day
"""

from portfolio_performance.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    new_correlation_id,
    correlation_scope,
    get_batch_context,
    set_batch_context,
    clear_batch_context,
)
from portfolio_performance.utils.decimal_serialization import (
    serialize_decimal,
    deserialize_decimal,
    serialize_decimal_fields,
    deserialize_decimal_fields,
)
from portfolio_performance.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "correlation_scope",
    "get_batch_context",
    "set_batch_context",
    "clear_batch_context",
    # Decimal serialization
    "serialize_decimal",
    "deserialize_decimal",
    "serialize_decimal_fields",
    "deserialize_decimal_fields",
]
