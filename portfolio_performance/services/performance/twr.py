# portfolio_performance/services/performance/twr.py
"""
Time-Weighted Return calculation using the Modified Dietz method.

This module contains pure functions only: Decimal in, Decimal out, no I/O.

Formulas:
    Sub-period return (Modified Dietz):
        R = (EMV - BMV - ΣCF) / (BMV + Σ(CF_i × W_i))
        W_i = (end_date - CF_i.date) / (end_date - start_date)   [days]

    Where:
        EMV = End market value
        BMV = Beginning market value
        CF  = External cash flows (buys positive, sells negative)

    TWR = ∏(1 + R_i) - 1

    Annualized (percent) = ((1 + R)^(365/days) - 1) × 100

Modified Dietz approximates true TWR without revaluing the portfolio at
every cash flow: each flow is weighted by the fraction of the period it
was invested for.

Edge cases (checked in this order):
    1. start_date == end_date  -> simple return, or 0 if BMV is 0
    2. BMV == 0 and ΣCF != 0   -> (EMV - ΣCF) / ΣCF
    3. denominator == 0        -> 0
"""

import decimal
import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from portfolio_performance.services.constants import (
    CALENDAR_DAYS_PER_YEAR,
    HUNDRED,
    MIN_DAYS_FOR_ANNUALIZATION,
    ONE,
    ZERO,
)
from portfolio_performance.services.performance.types import (
    CashFlowEvent,
    DailyValuePoint,
    TWRResult,
    TWRSubPeriod,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SUB-PERIOD RETURN
# =============================================================================

def calculate_period_return(
        start_value: Decimal,
        end_value: Decimal,
        cash_flows: list[CashFlowEvent],
        start_date: date,
        end_date: date,
) -> Decimal:
    """
    Calculate the Modified Dietz return for one sub-period.

    Args:
        start_value: Beginning market value (BMV)
        end_value: End market value (EMV)
        cash_flows: Cash flows inside the sub-period
        start_date: First day of the sub-period
        end_date: Last day of the sub-period

    Returns:
        Period return as a fraction (0.10 = 10%); never raises on zeros
    """
    total_days = (end_date - start_date).days

    if total_days == 0:
        if start_value == ZERO:
            return ZERO
        return (end_value - start_value) / start_value

    total_cash_flow = sum((cf.amount for cf in cash_flows), ZERO)

    if start_value == ZERO and total_cash_flow != ZERO:
        return (end_value - total_cash_flow) / total_cash_flow

    total_days_dec = Decimal(total_days)
    weighted_cash_flow = ZERO
    for cf in cash_flows:
        days_remaining = Decimal((end_date - cf.date).days)
        weighted_cash_flow += cf.amount * (days_remaining / total_days_dec)

    denominator = start_value + weighted_cash_flow
    if denominator == ZERO:
        return ZERO

    return (end_value - start_value - total_cash_flow) / denominator


# =============================================================================
# COMPOUNDING & ANNUALIZATION
# =============================================================================

def compound_returns(returns: Iterable[Decimal]) -> Decimal:
    """
    Chain-link sub-period returns: ∏(1 + R_i) - 1.

    An empty input returns 0 (the identity).
    """
    growth = ONE
    for r in returns:
        growth *= ONE + r
    return growth - ONE


def annualize_return(total_return: Decimal, days: int) -> Decimal:
    """
    Annualize a period return.

    Periods shorter than 30 days are not extrapolated: the raw period
    return is reported instead.

    Uses Python's Decimal.__pow__() which supports non-integer exponents.

    Args:
        total_return: Period return as a fraction (0.10 = 10%)
        days: Calendar days in the period

    Returns:
        Annualized return as a percentage (10 = 10%). 0 for days <= 0,
        -100 when the period lost everything.
    """
    if days <= 0:
        return ZERO

    if days < MIN_DAYS_FOR_ANNUALIZATION:
        return total_return * HUNDRED

    base = ONE + total_return
    if base <= ZERO:
        return -HUNDRED  # Total loss

    exponent = Decimal(CALENDAR_DAYS_PER_YEAR) / Decimal(days)

    try:
        annualized = base ** exponent - ONE
    except decimal.InvalidOperation:
        # Fallback to float for extreme magnitudes
        annualized = Decimal(str(float(base) ** float(exponent))) - ONE

    return annualized * HUNDRED


# =============================================================================
# SUB-PERIOD CONSTRUCTION
# =============================================================================

def create_sub_periods(
        start_date: date,
        end_date: date,
        cash_flows: list[CashFlowEvent],
        start_value: Decimal = ZERO,
        end_value: Decimal = ZERO,
) -> list[TWRSubPeriod]:
    """
    Split [start_date, end_date] at every cash-flow day strictly inside it.

    Each sub-period carries the flows in [period_start, period_end); the
    final sub-period carries [period_start, end_date]. Boundary values are
    left for the caller to fill in, except start_value/end_value of a
    single-period split.

    Args:
        start_date: First day of the range
        end_date: Last day of the range
        cash_flows: Cash flows, in any order
        start_value: Value at start_date (used when there is one sub-period)
        end_value: Value at end_date (used when there is one sub-period)

    Returns:
        Sub-periods in chronological order
    """
    if not cash_flows:
        return [TWRSubPeriod(
            start_date=start_date,
            end_date=end_date,
            start_value=start_value,
            end_value=end_value,
        )]

    sorted_flows = sorted(cash_flows, key=lambda cf: cf.date)
    breaks = sorted({
        cf.date for cf in sorted_flows
        if start_date < cf.date < end_date
    })

    sub_periods: list[TWRSubPeriod] = []
    period_start = start_date

    for break_date in breaks:
        sub_periods.append(TWRSubPeriod(
            start_date=period_start,
            end_date=break_date,
            cash_flows=[cf for cf in sorted_flows if period_start <= cf.date < break_date],
        ))
        period_start = break_date

    sub_periods.append(TWRSubPeriod(
        start_date=period_start,
        end_date=end_date,
        cash_flows=[cf for cf in sorted_flows if period_start <= cf.date <= end_date],
    ))

    return sub_periods


# =============================================================================
# TWR FROM DAILY VALUES
# =============================================================================

def calculate_twr_from_daily_values(
        daily_values: list[DailyValuePoint],
        cash_flows: list[CashFlowEvent],
) -> TWRResult:
    """
    Calculate TWR over a series of daily values with cash flows.

    Sub-period boundary values are resolved by exact date or the nearest
    earlier value (never a later one), falling back to the first value.

    Args:
        daily_values: Observed portfolio values, in any order
        cash_flows: Cash flows, in any order (flows outside the observed
                    range are ignored)

    Returns:
        TWRResult; zero return when fewer than 2 values are given
    """
    if len(daily_values) < 2:
        only = daily_values[0].date if daily_values else None
        return TWRResult(start_date=only, end_date=only)

    ordered = sorted(daily_values, key=lambda v: v.date)
    start_date, start_value = ordered[0].date, ordered[0].value
    end_date, end_value = ordered[-1].date, ordered[-1].value
    days = (end_date - start_date).days

    relevant_flows = [cf for cf in cash_flows if start_date <= cf.date <= end_date]

    if not relevant_flows:
        period_return = calculate_period_return(start_value, end_value, [], start_date, end_date)
        return TWRResult(
            total_return=period_return,
            annualized_return=annualize_return(period_return, days),
            start_date=start_date,
            end_date=end_date,
            sub_periods=[TWRSubPeriod(
                start_date=start_date,
                end_date=end_date,
                start_value=start_value,
                end_value=end_value,
                period_return=period_return,
            )],
        )

    by_date = {v.date: v.value for v in ordered}

    def value_at(target: date) -> Decimal:
        if target in by_date:
            return by_date[target]
        earlier = [v for v in ordered if v.date <= target]
        if earlier:
            return earlier[-1].value
        return start_value

    sub_periods = create_sub_periods(start_date, end_date, relevant_flows)
    last = len(sub_periods) - 1

    for i, period in enumerate(sub_periods):
        period.start_value = start_value if i == 0 else value_at(period.start_date)
        period.end_value = end_value if i == last else value_at(period.end_date)
        period.period_return = calculate_period_return(
            period.start_value,
            period.end_value,
            period.cash_flows,
            period.start_date,
            period.end_date,
        )

    total_return = compound_returns(p.period_return for p in sub_periods)

    logger.debug(
        f"TWR over {start_date}..{end_date}: {len(sub_periods)} sub-periods, "
        f"total_return={total_return}"
    )

    return TWRResult(
        total_return=total_return,
        annualized_return=annualize_return(total_return, days),
        start_date=start_date,
        end_date=end_date,
        sub_periods=sub_periods,
    )


# =============================================================================
# SIMPLE HELPERS
# =============================================================================

def calculate_simple_return(start_value: Decimal, end_value: Decimal) -> Decimal:
    """
    Simple return (End - Start) / Start, with NO cash flow adjustment.

    Returns 0 when start_value is 0.
    """
    if start_value == ZERO:
        return ZERO
    return (end_value - start_value) / start_value


def calculate_day_change(
        previous_value: Decimal | None,
        current_value: Decimal,
) -> tuple[Decimal, Decimal]:
    """
    Day-over-day change.

    Returns:
        (absolute change, change in percent). Both 0 when there is no
        previous value or the previous value is 0.
    """
    if previous_value is None or previous_value == ZERO:
        return ZERO, ZERO
    change = current_value - previous_value
    return change, change / previous_value * HUNDRED
