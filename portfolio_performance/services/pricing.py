# portfolio_performance/services/pricing.py
"""
Historical price lookup for snapshot valuation.

Provides:
- PriceLookupResult: a price plus whether it had to be interpolated
- PriceCache: per-batch memo keyed by (asset_id, date)
- SqlPriceLookup: price lookup backed by the `price_history` table

Lookup rules (SqlPriceLookup):
    1. Exact price on the requested day -> not interpolated
    2. Otherwise the latest price on or before the day, within
       `fallback_days` -> interpolated when older than
       `interpolation_threshold_days` (weekends stay "real" prices)
    3. Nothing in the window -> None (caller decides the substitute)

Prices are never taken from after the requested day.

The cache is scoped to one batch: create it with `create_price_cache()`,
pass it to every call of that batch, drop it afterwards.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portfolio_performance.config import settings
from portfolio_performance.models import PriceHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceLookupResult:
    """
    Price for an asset on a given day.

    Attributes:
        price: Price used for valuation
        is_interpolated: True when the price is a stale fallback or a
                         substitute for a missing one
        price_date: Day the price was actually recorded, if known
    """
    price: Decimal
    is_interpolated: bool = False
    price_date: date | None = None


class PriceCache:
    """
    Memo of price lookups for a single batch.

    Misses (None results) are cached too, so an asset without history is
    queried once per day per batch, not once per call.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, date], PriceLookupResult | None] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: tuple[str, date]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, asset_id: str, on_date: date) -> PriceLookupResult | None:
        self.hits += 1
        return self._entries[(asset_id, on_date)]

    def put(self, asset_id: str, on_date: date, result: PriceLookupResult | None) -> None:
        self.misses += 1
        self._entries[(asset_id, on_date)] = result


def create_price_cache() -> PriceCache:
    """Create an empty cache for one batch of lookups."""
    return PriceCache()


class SqlPriceLookup:
    """
    Price lookup reading the `price_history` table.

    Attributes:
        fallback_days: How far back to search for a missing price
        interpolation_threshold_days: Fallback prices older than this
                                      are flagged as interpolated
    """

    def __init__(
            self,
            session_factory: async_sessionmaker[AsyncSession],
            fallback_days: int | None = None,
            interpolation_threshold_days: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.fallback_days = (
            settings.price_fallback_days if fallback_days is None else fallback_days
        )
        self.interpolation_threshold_days = (
            settings.price_interpolation_threshold_days
            if interpolation_threshold_days is None
            else interpolation_threshold_days
        )

    def create_price_cache(self) -> PriceCache:
        return create_price_cache()

    async def get_price_at_date(
            self,
            asset_id: str,
            on_date: date,
            cache: PriceCache | None = None,
    ) -> PriceLookupResult | None:
        """
        Get the price of an asset on a day.

        Args:
            asset_id: Asset to price
            on_date: Valuation day
            cache: Batch cache to read from and fill (optional)

        Returns:
            PriceLookupResult, or None if no price exists in the window
        """
        if cache is not None and (asset_id, on_date) in cache:
            return cache.get(asset_id, on_date)

        result = await self._query_price(asset_id, on_date)

        if cache is not None:
            cache.put(asset_id, on_date, result)

        return result

    async def _query_price(self, asset_id: str, on_date: date) -> PriceLookupResult | None:
        earliest = on_date - timedelta(days=self.fallback_days)
        stmt = (
            select(PriceHistory.date, PriceHistory.price)
            .where(
                PriceHistory.asset_id == asset_id,
                PriceHistory.date <= on_date,
                PriceHistory.date >= earliest,
            )
            .order_by(PriceHistory.date.desc())
            .limit(1)
        )

        async with self._session_factory() as session:
            row = (await session.execute(stmt)).first()

        if row is None:
            logger.debug(f"No price for {asset_id} on or before {on_date}")
            return None

        price_date, price = row
        gap_days = (on_date - price_date).days
        return PriceLookupResult(
            price=price,
            is_interpolated=gap_days > self.interpolation_threshold_days,
            price_date=price_date,
        )
