# portfolio_performance/services/performance/risk.py
"""
Risk calculation functions: volatility and Sharpe ratio.

All functions are stateless and operate on Decimal values for precision.
No external dependencies (numpy, scipy): the standard deviation is computed
in pure Decimal arithmetic.

Formulas:
    Volatility (annualized, %) = stdev(daily_returns) × √252 × 100
        stdev uses the sample denominator (n - 1)

    Sharpe Ratio = (R_p - R_f) / σ_p
        R_p = annualized return (%), R_f = risk-free rate (%),
        σ_p = annualized volatility (%)
"""

import logging
from collections.abc import Iterable
from decimal import Decimal

from portfolio_performance.services.constants import (
    DEFAULT_RISK_FREE_RATE_PCT,
    HUNDRED,
    TRADING_DAYS_PER_YEAR,
    ZERO,
)

logger = logging.getLogger(__name__)


def _to_decimal(value: Decimal | float | int) -> Decimal:
    """Convert via str() so floats don't carry their binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _decimal_stdev(values: list[Decimal]) -> Decimal:
    """
    Sample standard deviation in pure Decimal arithmetic.

    Formula: σ = sqrt(Σ(x - μ)² / (n - 1))

    Returns 0 for fewer than 2 values.
    """
    if len(values) < 2:
        return ZERO

    n = Decimal(len(values))
    mean_val = sum(values, ZERO) / n

    sum_squared_diffs = sum(((x - mean_val) ** 2 for x in values), ZERO)
    variance = sum_squared_diffs / (n - 1)

    if variance <= ZERO:
        return ZERO

    return variance.sqrt()


def calculate_volatility(daily_returns: Iterable[Decimal | float | int]) -> Decimal:
    """
    Annualized volatility of daily returns, as a percentage.

    Args:
        daily_returns: Daily returns as fractions (0.01 = 1%)

    Returns:
        Annualized volatility in percent (always >= 0); 0 when fewer than
        2 returns are given
    """
    values = [_to_decimal(r) for r in daily_returns]
    if len(values) < 2:
        return ZERO

    daily_vol = _decimal_stdev(values)
    return daily_vol * Decimal(TRADING_DAYS_PER_YEAR).sqrt() * HUNDRED


def calculate_sharpe_ratio(
        annualized_return_pct: Decimal | float | int,
        volatility_pct: Decimal | float | int,
        risk_free_rate_pct: Decimal | float | int = DEFAULT_RISK_FREE_RATE_PCT,
) -> Decimal:
    """
    Sharpe ratio from percentages.

    Args:
        annualized_return_pct: Annualized return (12 = 12%)
        volatility_pct: Annualized volatility (15 = 15%)
        risk_free_rate_pct: Annual risk-free rate (2 = 2%)

    Returns:
        Sharpe ratio; 0 when volatility is 0
    """
    volatility = _to_decimal(volatility_pct)
    if volatility == ZERO:
        return ZERO

    excess_return = _to_decimal(annualized_return_pct) - _to_decimal(risk_free_rate_pct)
    return excess_return / volatility
