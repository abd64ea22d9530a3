# portfolio_performance/services/tax/__init__.py
"""
Tax Calculator package.

Usage:
    from portfolio_performance.services.tax import (
        TaxSettings,
        calculate_tax_exposure,
        detect_aging_lots,
    )

    metrics = calculate_tax_exposure(holdings, {"asset-1": Decimal("150")}, TaxSettings())
"""

from portfolio_performance.services.tax.calculator import (
    analyze_lots,
    calculate_holding_days,
    calculate_holding_period,
    calculate_tax_exposure,
    classify_holding,
    detect_aging_lots,
)
from portfolio_performance.services.tax.types import (
    AgingLot,
    HoldingPeriod,
    LotType,
    TaxExposureMetrics,
    TaxHolding,
    TaxLot,
    TaxLotAnalysis,
    TaxSettings,
)

__all__ = [
    "analyze_lots",
    "calculate_holding_days",
    "calculate_holding_period",
    "calculate_tax_exposure",
    "classify_holding",
    "detect_aging_lots",
    "AgingLot",
    "HoldingPeriod",
    "LotType",
    "TaxExposureMetrics",
    "TaxHolding",
    "TaxLot",
    "TaxLotAnalysis",
    "TaxSettings",
]
