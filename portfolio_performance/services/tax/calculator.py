# portfolio_performance/services/tax/calculator.py
"""
Tax lot classification, aging detection and liability estimation.

Holding period rule:
    days_held = (as_of - purchase_date).days
    short-term  days_held <  365
    long-term   days_held >= 365

Liability model:
    liability = max(net_st, 0) × (st_rate + state + supplemental)
              + max(net_lt, 0) × (lt_rate + state + supplemental)

Losses offset gains within their own bucket only; no cross-bucket netting
and no carryforward.

asset_prices maps asset_id -> current price. A missing key or None means
the price is unknown and the asset's lots are skipped. A price of 0 is a
real quote and is valued as such.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from datetime import date
from decimal import Decimal

from portfolio_performance.services.constants import (
    DEFAULT_AGING_LOOKBACK_DAYS,
    HUNDRED,
    LONG_TERM_HOLDING_DAYS,
    ZERO,
)
from portfolio_performance.services.tax.types import (
    AgingLot,
    HoldingPeriod,
    TaxExposureMetrics,
    TaxHolding,
    TaxLot,
    TaxLotAnalysis,
    TaxSettings,
)

logger = logging.getLogger(__name__)


# =============================================================================
# HOLDING PERIOD
# =============================================================================

def calculate_holding_days(purchase_date: date, as_of: date | None = None) -> int:
    """Whole calendar days elapsed since purchase."""
    as_of = as_of or date.today()
    return (as_of - purchase_date).days


def calculate_holding_period(purchase_date: date, as_of: date | None = None) -> HoldingPeriod:
    if calculate_holding_days(purchase_date, as_of) >= LONG_TERM_HOLDING_DAYS:
        return HoldingPeriod.LONG
    return HoldingPeriod.SHORT


def classify_holding(lots: Iterable[TaxLot], as_of: date | None = None) -> HoldingPeriod | None:
    """
    Holding period of a whole position.

    Returns MIXED when the open lots span both periods, None when no lot
    is open.
    """
    periods = {
        calculate_holding_period(lot.purchase_date, as_of)
        for lot in lots
        if lot.is_open
    }
    if not periods:
        return None
    if len(periods) > 1:
        return HoldingPeriod.MIXED
    return periods.pop()


# =============================================================================
# LOT VALUATION
# =============================================================================

def _lot_cost_basis(lot: TaxLot) -> Decimal:
    # Granted shares (RSU, zero-price transfers) have no cost
    if lot.purchase_price <= ZERO:
        return ZERO
    return lot.remaining_quantity * lot.purchase_price


def _gain_percent(gain: Decimal, cost_basis: Decimal) -> Decimal:
    if cost_basis <= ZERO:
        return ZERO
    return gain / cost_basis * HUNDRED


def _priced_open_lots(
        holdings: Iterable[TaxHolding],
        asset_prices: Mapping[str, Decimal | None],
) -> Iterator[tuple[TaxHolding, TaxLot, Decimal]]:
    """Yield (holding, lot, price) for every open lot whose asset has a price."""
    for holding in holdings:
        price = asset_prices.get(holding.asset_id)
        if price is None:
            logger.debug(f"No price for asset {holding.asset_id}, skipping {len(holding.lots)} lots")
            continue
        for lot in holding.lots:
            if lot.remaining_quantity is None or lot.remaining_quantity <= ZERO:
                if lot.remaining_quantity is not None and lot.remaining_quantity < ZERO:
                    logger.warning(
                        f"Lot {lot.id} of asset {holding.asset_id} has negative "
                        f"remaining quantity ({lot.remaining_quantity}); skipped"
                    )
                continue
            yield holding, lot, price


def analyze_lots(
        holdings: Iterable[TaxHolding],
        asset_prices: Mapping[str, Decimal | None],
        as_of: date | None = None,
) -> list[TaxLotAnalysis]:
    """
    Per-lot gain breakdown of every open, priced lot.

    Ordered by holding then purchase date.
    """
    as_of = as_of or date.today()
    analyses: list[TaxLotAnalysis] = []

    for holding, lot, price in _priced_open_lots(holdings, asset_prices):
        cost_basis = _lot_cost_basis(lot)
        current_value = lot.remaining_quantity * price
        days_held = calculate_holding_days(lot.purchase_date, as_of)

        analyses.append(TaxLotAnalysis(
            lot_id=lot.id,
            holding_id=holding.id,
            asset_id=holding.asset_id,
            asset_symbol=holding.symbol or holding.asset_id,
            purchase_date=lot.purchase_date,
            quantity=lot.remaining_quantity,
            purchase_price=lot.purchase_price,
            current_price=price,
            cost_basis=cost_basis,
            current_value=current_value,
            unrealized_gain=current_value - cost_basis,
            holding_period=calculate_holding_period(lot.purchase_date, as_of),
            days_held=days_held,
        ))

    analyses.sort(key=lambda a: (a.holding_id, a.purchase_date))
    return analyses


# =============================================================================
# AGING LOTS
# =============================================================================

def detect_aging_lots(
        holdings: Iterable[TaxHolding],
        asset_prices: Mapping[str, Decimal | None],
        lookback_days: int = DEFAULT_AGING_LOOKBACK_DAYS,
        as_of: date | None = None,
) -> list[AgingLot]:
    """
    Find short-term lots that become long-term within `lookback_days`.

    A lot qualifies when 0 < 365 - days_held <= lookback_days. Lots already
    long-term never qualify.

    Returns:
        Aging lots sorted by days until long-term (soonest first)
    """
    as_of = as_of or date.today()
    aging: list[AgingLot] = []

    for holding, lot, price in _priced_open_lots(holdings, asset_prices):
        days_held = calculate_holding_days(lot.purchase_date, as_of)
        days_until_long_term = LONG_TERM_HOLDING_DAYS - days_held
        if not 0 < days_until_long_term <= lookback_days:
            continue

        cost_basis = _lot_cost_basis(lot)
        current_value = lot.remaining_quantity * price
        gain = current_value - cost_basis

        aging.append(AgingLot(
            holding_id=holding.id,
            asset_id=holding.asset_id,
            asset_symbol=holding.symbol or holding.asset_id,
            lot_id=lot.id,
            remaining_quantity=lot.remaining_quantity,
            purchase_date=lot.purchase_date,
            days_until_long_term=days_until_long_term,
            current_price=price,
            current_value=current_value,
            unrealized_gain=gain,
            unrealized_gain_percent=_gain_percent(gain, cost_basis),
        ))

    aging.sort(key=lambda a: a.days_until_long_term)
    return aging


# =============================================================================
# EXPOSURE
# =============================================================================

def calculate_tax_exposure(
        holdings: Iterable[TaxHolding],
        asset_prices: Mapping[str, Decimal | None],
        tax_settings: TaxSettings | None = None,
        as_of: date | None = None,
) -> TaxExposureMetrics:
    """
    Aggregate unrealized gains and losses by holding period and estimate
    the tax owed if every open lot were sold at the given prices.

    Args:
        holdings: Holdings with their lots
        asset_prices: Current price per asset_id (None = unknown)
        tax_settings: Rates; configuration defaults when omitted
        as_of: Valuation day (default: today)
    """
    as_of = as_of or date.today()
    tax_settings = tax_settings or TaxSettings.from_settings()
    holdings = list(holdings)

    metrics = TaxExposureMetrics()

    for analysis in analyze_lots(holdings, asset_prices, as_of):
        gain = analysis.unrealized_gain
        if analysis.holding_period == HoldingPeriod.LONG:
            if gain >= ZERO:
                metrics.long_term_gains += gain
            else:
                metrics.long_term_losses += -gain
        else:
            if gain >= ZERO:
                metrics.short_term_gains += gain
            else:
                metrics.short_term_losses += -gain

    metrics.net_short_term = metrics.short_term_gains - metrics.short_term_losses
    metrics.net_long_term = metrics.long_term_gains - metrics.long_term_losses
    metrics.total_unrealized_gain = metrics.net_short_term + metrics.net_long_term

    metrics.estimated_tax_liability = (
        max(metrics.net_short_term, ZERO) * tax_settings.combined_short_term_rate
        + max(metrics.net_long_term, ZERO) * tax_settings.combined_long_term_rate
    )

    total_gains = metrics.short_term_gains + metrics.long_term_gains
    if total_gains > ZERO:
        metrics.effective_tax_rate = metrics.estimated_tax_liability / total_gains

    metrics.aging_lots_count = len(
        detect_aging_lots(holdings, asset_prices, tax_settings.lookback_days, as_of)
    )

    logger.debug(
        f"Tax exposure: net ST {metrics.net_short_term}, net LT {metrics.net_long_term}, "
        f"liability {metrics.estimated_tax_liability}"
    )
    return metrics
