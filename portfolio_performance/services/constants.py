# portfolio_performance/services/constants.py
"""
Centralized constants for the portfolio performance services.

This module provides a single source of truth for the business constants
used by the TWR calculator, snapshot service, analytics and tax calculator.
Values that users may want to tune at runtime (tax rates, lookback window,
staleness threshold) also appear as defaults in `portfolio_performance.config`.

Usage:
    from portfolio_performance.services.constants import (
        TRADING_DAYS_PER_YEAR,
        LONG_TERM_HOLDING_DAYS,
        ZERO,
    )
"""

from decimal import Decimal


# =============================================================================
# FINANCIAL CALENDAR CONSTANTS
# =============================================================================

# Standard number of trading days in a year (excludes weekends and holidays)
# Used for annualizing volatility
TRADING_DAYS_PER_YEAR: int = 252

# Standard number of calendar days in a year
# Used for annualizing returns
CALENDAR_DAYS_PER_YEAR: int = 365

# Periods shorter than this are reported as raw returns, not annualized
MIN_DAYS_FOR_ANNUALIZATION: int = 30


# =============================================================================
# DECIMAL HELPERS
# =============================================================================

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")
HUNDRED: Decimal = Decimal("100")

# Quantum used when rendering money and percentages in exports
CENTS: Decimal = Decimal("0.01")

# Quantum used when rendering share quantities in exports
QUANTITY_QUANTUM: Decimal = Decimal("0.0001")


# =============================================================================
# SNAPSHOT SETTINGS
# =============================================================================

# Snapshot ids are deterministic: re-running a batch overwrites rows
SNAPSHOT_ID_PREFIX: str = "perf-snap"


# =============================================================================
# CHART AGGREGATION
# =============================================================================

# Ranges up to this many days are charted at daily resolution
DAILY_RESOLUTION_MAX_DAYS: int = 90

# Ranges up to this many days are charted weekly, longer ranges monthly
WEEKLY_RESOLUTION_MAX_DAYS: int = 365


# =============================================================================
# TAX SETTINGS
# =============================================================================

# Exactly 365 elapsed days makes a lot long-term
LONG_TERM_HOLDING_DAYS: int = 365

# Default window for flagging lots about to become long-term
DEFAULT_AGING_LOOKBACK_DAYS: int = 30

# Default federal rates and state rate (state is added to both terms)
DEFAULT_SHORT_TERM_TAX_RATE: Decimal = Decimal("0.24")
DEFAULT_LONG_TERM_TAX_RATE: Decimal = Decimal("0.15")
DEFAULT_STATE_TAX_RATE: Decimal = Decimal("0.05")


# =============================================================================
# RISK-FREE RATE
# =============================================================================

# Risk-free rate used for the Sharpe ratio, as a percentage (2.0 = 2%)
DEFAULT_RISK_FREE_RATE_PCT: Decimal = Decimal("0")

