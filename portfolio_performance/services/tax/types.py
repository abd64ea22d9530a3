# portfolio_performance/services/tax/types.py
"""
Data types for the Tax Calculator.

Lots and holdings are plain dataclasses. TaxSettings is a pydantic model
holding user-entered rates, validated on construction.

Architecture:
    - HoldingPeriod: short / long (mixed for a holding with both)
    - TaxLot: one purchase, partially closed by sells
    - TaxHolding: an asset's lots
    - AgingLot: a short-term lot about to turn long-term
    - TaxLotAnalysis: per-lot gain breakdown
    - TaxExposureMetrics: portfolio-wide aggregate
    - TaxSettings: rates and lookback window
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from portfolio_performance.config import settings
from portfolio_performance.services.constants import (
    DEFAULT_AGING_LOOKBACK_DAYS,
    DEFAULT_LONG_TERM_TAX_RATE,
    DEFAULT_SHORT_TERM_TAX_RATE,
    DEFAULT_STATE_TAX_RATE,
)


class HoldingPeriod(str, Enum):
    SHORT = "short"
    LONG = "long"
    MIXED = "mixed"


class LotType(str, Enum):
    STANDARD = "standard"
    ESPP = "espp"
    RSU = "rsu"


@dataclass
class TaxLot:
    """
    A discrete purchase of an asset.

    remaining_quantity is derived from quantity - sold_quantity when not
    given. A negative remaining quantity is an upstream lot-matching
    defect; such lots are treated as closed.

    Attributes:
        id: Lot identifier
        quantity: Shares acquired
        purchase_price: Price per share paid (0 or negative for granted shares)
        purchase_date: Acquisition day
        sold_quantity: Shares already closed against this lot
        remaining_quantity: Shares still open
    """
    id: str
    quantity: Decimal
    purchase_price: Decimal
    purchase_date: date
    sold_quantity: Decimal = field(default_factory=lambda: Decimal("0"))
    remaining_quantity: Decimal | None = None
    lot_type: LotType = LotType.STANDARD
    notes: str | None = None

    def __post_init__(self) -> None:
        if self.remaining_quantity is None:
            self.remaining_quantity = self.quantity - self.sold_quantity

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity is not None and self.remaining_quantity > 0


@dataclass
class TaxHolding:
    """An asset's tax lots."""
    id: str
    asset_id: str
    lots: list[TaxLot] = field(default_factory=list)
    symbol: str | None = None


@dataclass
class AgingLot:
    """
    A short-term lot that turns long-term within the lookback window.

    Attributes:
        days_until_long_term: 365 - days held (always > 0)
        unrealized_gain_percent: Gain in percent of cost (0 when cost <= 0)
    """
    holding_id: str
    asset_id: str
    asset_symbol: str
    lot_id: str
    remaining_quantity: Decimal
    purchase_date: date
    days_until_long_term: int
    current_price: Decimal
    current_value: Decimal
    unrealized_gain: Decimal
    unrealized_gain_percent: Decimal
    holding_period: HoldingPeriod = HoldingPeriod.SHORT


@dataclass
class TaxLotAnalysis:
    """Gain breakdown of one open lot."""
    lot_id: str
    holding_id: str
    asset_id: str
    asset_symbol: str
    purchase_date: date
    quantity: Decimal
    purchase_price: Decimal
    current_price: Decimal
    cost_basis: Decimal
    current_value: Decimal
    unrealized_gain: Decimal
    holding_period: HoldingPeriod
    days_held: int


@dataclass
class TaxExposureMetrics:
    """
    Portfolio-wide unrealized gain/loss and estimated liability.

    Gains and losses are non-negative magnitudes, never netted per lot.
    Never persisted: recomputed on demand.
    """
    short_term_gains: Decimal = field(default_factory=lambda: Decimal("0"))
    short_term_losses: Decimal = field(default_factory=lambda: Decimal("0"))
    long_term_gains: Decimal = field(default_factory=lambda: Decimal("0"))
    long_term_losses: Decimal = field(default_factory=lambda: Decimal("0"))
    net_short_term: Decimal = field(default_factory=lambda: Decimal("0"))
    net_long_term: Decimal = field(default_factory=lambda: Decimal("0"))
    total_unrealized_gain: Decimal = field(default_factory=lambda: Decimal("0"))
    estimated_tax_liability: Decimal = field(default_factory=lambda: Decimal("0"))
    effective_tax_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    aging_lots_count: int = 0


class TaxSettings(BaseModel):
    """
    User tax configuration.

    Rates are fractions (0.24 = 24%). The state and supplemental rates
    are added on top of both the short- and long-term federal rates.
    """
    model_config = ConfigDict(frozen=True)

    short_term_rate: Decimal = Field(default=DEFAULT_SHORT_TERM_TAX_RATE, ge=0, le=1)
    long_term_rate: Decimal = Field(default=DEFAULT_LONG_TERM_TAX_RATE, ge=0, le=1)
    state_rate: Decimal = Field(default=DEFAULT_STATE_TAX_RATE, ge=0, le=1)
    supplemental_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    lookback_days: int = Field(default=DEFAULT_AGING_LOOKBACK_DAYS, ge=1, le=365)

    @property
    def combined_short_term_rate(self) -> Decimal:
        return self.short_term_rate + self.state_rate + self.supplemental_rate

    @property
    def combined_long_term_rate(self) -> Decimal:
        return self.long_term_rate + self.state_rate + self.supplemental_rate

    @classmethod
    def from_settings(cls) -> "TaxSettings":
        """Defaults taken from application configuration."""
        return cls(
            short_term_rate=settings.default_short_term_rate,
            long_term_rate=settings.default_long_term_rate,
            state_rate=settings.default_state_rate,
            supplemental_rate=settings.default_supplemental_rate,
            lookback_days=settings.aging_lookback_days,
        )
