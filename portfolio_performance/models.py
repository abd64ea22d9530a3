# portfolio_performance/models.py
import enum
import datetime
from decimal import Decimal

from sqlalchemy import String, Date, Enum, Integer, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from portfolio_performance.utils.decimal_serialization import serialize_decimal, deserialize_decimal


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class DecimalString(TypeDecorator):
    """
    Decimal stored as its exact string form.

    Keeps full precision on every backend (SQLite has no native DECIMAL),
    and reads back exactly what was written, so re-running a snapshot batch
    produces byte-identical rows.
    """
    impl = String
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return serialize_decimal(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return deserialize_decimal(value)


class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"
    DIVIDEND = "dividend"
    INTEREST = "interest"
    SPLIT = "split"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    FEE = "fee"
    TAX = "tax"
    SPINOFF = "spinoff"
    MERGER = "merger"
    REINVESTMENT = "reinvestment"


class Asset(Base):
    """
    Asset directory entry.

    Benchmarks (e.g. "^GSPC") are stored as assets too, so their price
    history can be read through the same price lookup.
    """
    __tablename__ = "assets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    symbol: Mapped[str] = mapped_column(String, index=True)  # e.g. "AAPL"
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    asset_type: Mapped[str | None] = mapped_column(String, nullable=True)  # e.g. "stock", "etf"


class Transaction(Base):
    """
    Ledger entry. Append-only except for explicit edit/delete, each of
    which must be followed by a snapshot trigger.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        # "Get all transactions for portfolio X" ordered for replay
        Index('ix_transaction_portfolio_date', 'portfolio_id', 'date'),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    portfolio_id: Mapped[str] = mapped_column(String, index=True)
    asset_id: Mapped[str] = mapped_column(String, index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    date: Mapped[datetime.date] = mapped_column(Date)

    # For SPLIT, quantity holds the split ratio (2 = 2-for-1)
    quantity: Mapped[Decimal] = mapped_column(DecimalString, default=Decimal("0"))
    price: Mapped[Decimal] = mapped_column(DecimalString, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(DecimalString, default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(DecimalString, default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String, default="USD")


class PriceHistory(Base):
    """
    Daily closing prices per asset. One row per trading day; gaps
    (weekends, holidays) are filled by the price lookup's fallback.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        UniqueConstraint('asset_id', 'date', name='uq_price_asset_date'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asset_id: Mapped[str] = mapped_column(String, index=True)
    date: Mapped[datetime.date] = mapped_column(Date)
    price: Mapped[Decimal] = mapped_column(DecimalString)


class PortfolioSnapshot(Base):
    """
    Persisted daily performance snapshot.

    Written only by the snapshot service. The id is derived from
    (portfolio_id, date) so an upsert by primary key is an upsert by the
    uniqueness pair. No audit timestamps: a recompute over an unchanged
    ledger must leave rows identical.
    """
    __tablename__ = "performance_snapshots"
    __table_args__ = (
        UniqueConstraint('portfolio_id', 'date', name='uq_snapshot_portfolio_date'),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)  # perf-snap-{portfolio_id}-{date}
    portfolio_id: Mapped[str] = mapped_column(String, index=True)
    date: Mapped[datetime.date] = mapped_column(Date)

    total_value: Mapped[Decimal] = mapped_column(DecimalString)
    total_cost: Mapped[Decimal] = mapped_column(DecimalString)
    day_change: Mapped[Decimal] = mapped_column(DecimalString)
    day_change_percent: Mapped[Decimal] = mapped_column(DecimalString)
    cumulative_return: Mapped[Decimal] = mapped_column(DecimalString)
    twr_return: Mapped[Decimal] = mapped_column(DecimalString)
    holding_count: Mapped[int] = mapped_column(Integer, default=0)
    has_interpolated_prices: Mapped[bool] = mapped_column(Boolean, default=False)
