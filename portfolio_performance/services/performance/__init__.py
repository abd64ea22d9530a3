# portfolio_performance/services/performance/__init__.py
"""
TWR Calculator.

Pure functions for Modified Dietz returns, compounding, annualization,
volatility and the Sharpe ratio.

Usage:
    from portfolio_performance.services.performance import (
        calculate_period_return,
        calculate_twr_from_daily_values,
        calculate_volatility,
    )
"""

from portfolio_performance.services.performance.risk import (
    calculate_sharpe_ratio,
    calculate_volatility,
)
from portfolio_performance.services.performance.twr import (
    annualize_return,
    calculate_day_change,
    calculate_period_return,
    calculate_simple_return,
    calculate_twr_from_daily_values,
    compound_returns,
    create_sub_periods,
)
from portfolio_performance.services.performance.types import (
    CashFlowEvent,
    DailyValuePoint,
    TWRResult,
    TWRSubPeriod,
)

__all__ = [
    # Types
    "CashFlowEvent",
    "DailyValuePoint",
    "TWRResult",
    "TWRSubPeriod",
    # Returns
    "calculate_period_return",
    "compound_returns",
    "annualize_return",
    "create_sub_periods",
    "calculate_twr_from_daily_values",
    "calculate_simple_return",
    "calculate_day_change",
    # Risk
    "calculate_volatility",
    "calculate_sharpe_ratio",
]
