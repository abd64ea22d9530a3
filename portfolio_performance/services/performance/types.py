# portfolio_performance/services/performance/types.py
"""
Data types for the TWR calculator.

All types use Decimal for financial precision.

Architecture:
    - CashFlowEvent: Money in (buy) or out (sell) of the portfolio
    - DailyValuePoint: One day's portfolio value
    - TWRSubPeriod: A slice of a range between cash-flow days
    - TWRResult: Compounded return over a whole range
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass
class CashFlowEvent:
    """
    External cash flow for Modified Dietz weighting.

    Attributes:
        date: Day the cash flow happened
        amount: Positive = capital in (buy), Negative = capital out (sell)
    """
    date: date
    amount: Decimal


@dataclass
class DailyValuePoint:
    """A single day's portfolio value."""
    date: date
    value: Decimal


@dataclass
class TWRSubPeriod:
    """
    One sub-period of a TWR calculation.

    Sub-periods are split at every cash-flow day. Each carries the cash
    flows in its own half-open interval [start_date, end_date), except
    the last sub-period of a range which is closed on both ends.

    Attributes:
        start_date: First day of the sub-period
        end_date: Last day of the sub-period
        start_value: Portfolio value at start_date
        end_value: Portfolio value at end_date
        cash_flows: Cash flows falling in this sub-period
        period_return: Modified Dietz return (0.05 = 5%)
    """
    start_date: date
    end_date: date
    start_value: Decimal = field(default_factory=lambda: Decimal("0"))
    end_value: Decimal = field(default_factory=lambda: Decimal("0"))
    cash_flows: list[CashFlowEvent] = field(default_factory=list)
    period_return: Decimal = field(default_factory=lambda: Decimal("0"))


@dataclass
class TWRResult:
    """
    Time-weighted return over a range.

    Attributes:
        total_return: Compounded return as a fraction (0.10 = 10%)
        annualized_return: Annualized return as a percentage (10 = 10%)
        start_date: First observed day (None when there was no data)
        end_date: Last observed day (None when there was no data)
        sub_periods: Sub-periods that were compounded
    """
    total_return: Decimal = field(default_factory=lambda: Decimal("0"))
    annualized_return: Decimal = field(default_factory=lambda: Decimal("0"))
    start_date: date | None = None
    end_date: date | None = None
    sub_periods: list[TWRSubPeriod] = field(default_factory=list)
