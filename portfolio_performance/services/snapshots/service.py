# portfolio_performance/services/snapshots/service.py
"""
Snapshot Service - maintains the daily performance snapshot series.

Turns a portfolio's transaction ledger into one persisted
`PerformanceSnapshot` per calendar day, and recomputes the affected
range whenever the ledger changes.

Algorithm (Rolling State, O(D + T)):
    1. Load and sort the whole ledger (date, then id)
    2. Walk every day from the first transaction to the end of the range,
       applying each transaction on its day to a rolling holdings state
    3. Value the holdings through the price lookup (memoized per batch)
    4. Derive day change, cumulative return and TWR from the replay itself
    5. Upsert the days inside the requested range

Every row is a function of the ledger and prices only, never of other
stored rows. Recomputing the same range twice therefore writes identical
rows, and overlapping recomputes converge regardless of completion order.

Trigger handling:
    TRANSACTION_ADDED(date)            compute [date, today]
    TRANSACTION_MODIFIED(old, new)     delete from min(old, new), compute
    TRANSACTION_DELETED(date)          delete from date, compute
    MANUAL_REFRESH                     delete all, compute full history

Failure semantics:
    - Missing price: substitute the asset's last price seen in this batch
      (or 0), mark the day interpolated. Not a failure.
    - Price lookup error: same substitution, recorded as a failure.
    - Persistence error: the batch write falls back to per-day upserts;
      failed days are recorded and the rest are still attempted.
    Recorded failures raise SnapshotComputationError once the batch is done.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal

from portfolio_performance.config import settings
from portfolio_performance.services.constants import ZERO
from portfolio_performance.services.exceptions import (
    InvalidTriggerError,
    SnapshotComputationError,
    SnapshotFailure,
    ValidationError,
)
from portfolio_performance.services.performance.twr import (
    calculate_day_change,
    calculate_period_return,
    calculate_simple_return,
    compound_returns,
)
from portfolio_performance.services.performance.types import CashFlowEvent
from portfolio_performance.services.pricing import PriceCache
from portfolio_performance.services.protocols import (
    LedgerTransaction,
    PriceLookupProtocol,
    SnapshotStoreProtocol,
    TransactionReaderProtocol,
)
from portfolio_performance.services.snapshots.holdings import (
    HeldPosition,
    HoldingsCalculator,
    get_cash_flow_events,
    sort_transactions,
)
from portfolio_performance.services.snapshots.types import (
    PerformanceSnapshot,
    SnapshotBatchResult,
    SnapshotTrigger,
    SnapshotTriggerType,
)
from portfolio_performance.utils.context import correlation_scope
from portfolio_performance.utils.date_utils import each_day, to_date

logger = logging.getLogger(__name__)


class SnapshotService:
    """
    Computes and persists daily performance snapshots.

    Collaborators are injected; the service holds no portfolio state
    between calls.

    Attributes:
        _transactions: Ledger reader
        _snapshots: Snapshot store
        _price_lookup: Historical price lookup
        _today: Callable returning the reference "today"
        _staleness_days: Age after which the latest snapshot is stale
    """

    def __init__(
            self,
            transactions: TransactionReaderProtocol,
            snapshots: SnapshotStoreProtocol,
            price_lookup: PriceLookupProtocol,
            today: Callable[[], date] = date.today,
            holdings_calc: HoldingsCalculator | None = None,
            staleness_days: int | None = None,
    ) -> None:
        self._transactions = transactions
        self._snapshots = snapshots
        self._price_lookup = price_lookup
        self._today = today
        self._holdings_calc = holdings_calc or HoldingsCalculator()
        self._staleness_days = (
            settings.snapshot_staleness_days if staleness_days is None else staleness_days
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def get_snapshots(
            self,
            portfolio_id: str,
            start_date: date | None = None,
            end_date: date | None = None,
    ) -> list[PerformanceSnapshot]:
        return await self._snapshots.get_by_portfolio(portfolio_id, start_date, end_date)

    async def get_latest_snapshot(self, portfolio_id: str) -> PerformanceSnapshot | None:
        return await self._snapshots.get_latest(portfolio_id)

    async def needs_computation(self, portfolio_id: str, as_of: date | None = None) -> bool:
        """
        Check whether the snapshot series should be recomputed.

        Returns:
            False without transactions; True with transactions but no
            snapshot, or when the latest snapshot is more than
            `staleness_days` old; False otherwise.
        """
        transactions = await self._transactions.get_by_portfolio(portfolio_id)
        if not transactions:
            return False

        latest = await self._snapshots.get_latest(portfolio_id)
        if latest is None:
            return True

        as_of = as_of or self._today()
        return (as_of - latest.date).days > self._staleness_days

    # =========================================================================
    # WRITES
    # =========================================================================

    async def delete_snapshots(self, portfolio_id: str) -> int:
        """Delete a portfolio's whole snapshot series (e.g. portfolio removed)."""
        deleted = await self._snapshots.delete_by_portfolio(portfolio_id)
        logger.info(f"Deleted {deleted} snapshots for portfolio {portfolio_id}")
        return deleted

    async def handle_snapshot_trigger(self, event: SnapshotTrigger) -> SnapshotBatchResult:
        """
        Recompute the part of the series a ledger change invalidated.

        Raises:
            InvalidTriggerError: If the trigger lacks its required date(s)
            ValidationError: If the trigger type is unknown
            SnapshotComputationError: If the recompute hit upstream failures
        """
        try:
            trigger_type = SnapshotTriggerType(event.trigger_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown snapshot trigger: {event.trigger_type!r}", field="trigger_type"
            ) from e

        event_date = to_date(event.date) if event.date is not None else None
        old_date = to_date(event.old_date) if event.old_date is not None else None
        new_date = to_date(event.new_date) if event.new_date is not None else None
        portfolio_id = event.portfolio_id
        logger.info(
            f"Snapshot trigger {trigger_type.value} for portfolio {portfolio_id}"
            + (f" (transaction {event.transaction_id})" if event.transaction_id else "")
        )

        if trigger_type == SnapshotTriggerType.MANUAL_REFRESH:
            return await self.recompute_all(portfolio_id)

        if trigger_type == SnapshotTriggerType.TRANSACTION_ADDED:
            if event_date is None:
                raise InvalidTriggerError(trigger_type.value, "date")
            return await self.compute_snapshots(portfolio_id, event_date)

        if trigger_type == SnapshotTriggerType.TRANSACTION_MODIFIED:
            if old_date is None:
                raise InvalidTriggerError(trigger_type.value, "old_date")
            if new_date is None:
                raise InvalidTriggerError(trigger_type.value, "new_date")
            from_date = min(old_date, new_date)
        else:
            if event_date is None:
                raise InvalidTriggerError(trigger_type.value, "date")
            from_date = event_date

        # Rows from the affected day on may no longer have a ledger behind them
        await self._snapshots.delete_from_date(portfolio_id, from_date)
        return await self.compute_snapshots(portfolio_id, from_date)

    async def recompute_all(self, portfolio_id: str) -> SnapshotBatchResult:
        """Delete the whole series and rebuild it from the first transaction."""
        await self._snapshots.delete_by_portfolio(portfolio_id)

        transactions = await self._transactions.get_by_portfolio(portfolio_id)
        if not transactions:
            logger.info(f"Portfolio {portfolio_id} has no transactions; nothing to recompute")
            return SnapshotBatchResult(portfolio_id=portfolio_id)

        earliest = min(txn.date for txn in transactions)
        return await self.compute_snapshots(portfolio_id, earliest, self._today())

    async def compute_snapshots(
            self,
            portfolio_id: str,
            start_date: date,
            end_date: date | None = None,
    ) -> SnapshotBatchResult:
        """
        Compute and upsert one snapshot per day in [start_date, end_date].

        Days before the first transaction are not written. Without any
        transaction, the portfolio's whole series is deleted.

        Args:
            portfolio_id: Portfolio to compute
            start_date: First day to write
            end_date: Last day to write (default: today)

        Returns:
            SnapshotBatchResult with the written snapshots

        Raises:
            SnapshotComputationError: After the batch, if any price lookup
                                      or write failed
        """
        end_date = end_date or self._today()

        with correlation_scope(portfolio_id=portfolio_id):
            transactions = await self._transactions.get_by_portfolio(portfolio_id)
            if not transactions:
                deleted = await self._snapshots.delete_by_portfolio(portfolio_id)
                logger.info(
                    f"Portfolio {portfolio_id} has no transactions; "
                    f"deleted {deleted} snapshots"
                )
                return SnapshotBatchResult(portfolio_id=portfolio_id)

            ordered = sort_transactions(transactions)
            earliest = ordered[0].date
            write_from = max(start_date, earliest)

            if write_from > end_date:
                logger.debug(f"Empty snapshot range {write_from}..{end_date} for {portfolio_id}")
                return SnapshotBatchResult(portfolio_id=portfolio_id)

            logger.info(
                f"Computing snapshots for portfolio {portfolio_id}: "
                f"{write_from}..{end_date} (replay from {earliest})"
            )

            failures: list[SnapshotFailure] = []
            snapshots = await self._replay(
                portfolio_id, ordered, earliest, write_from, end_date, failures
            )
            await self._persist(snapshots, failures)

            result = SnapshotBatchResult(
                portfolio_id=portfolio_id,
                start_date=write_from,
                end_date=end_date,
                snapshots=snapshots,
                failures=failures,
            )

            if failures:
                logger.error(
                    f"Snapshot batch for portfolio {portfolio_id} finished with "
                    f"{len(failures)} failure(s)"
                )
                raise SnapshotComputationError(portfolio_id, failures, result)

            logger.info(
                f"Computed {len(snapshots)} snapshots for portfolio {portfolio_id} "
                f"({result.interpolated_days} with interpolated prices)"
            )
            return result

    # =========================================================================
    # REPLAY
    # =========================================================================

    async def _replay(
            self,
            portfolio_id: str,
            ordered: Sequence[LedgerTransaction],
            replay_from: date,
            write_from: date,
            end_date: date,
            failures: list[SnapshotFailure],
    ) -> list[PerformanceSnapshot]:
        """
        Walk the ledger day by day and build the snapshots to write.

        The replay always starts at the first transaction so derived
        fields don't depend on where the requested range starts.
        """
        flows_by_day: dict[date, list[CashFlowEvent]] = defaultdict(list)
        for flow in get_cash_flow_events(ordered):
            flows_by_day[flow.date].append(flow)

        cache = self._price_lookup.create_price_cache()
        last_known_prices: dict[str, Decimal] = {}
        holdings_state: dict[str, dict] = {}
        txn_index = 0
        num_txns = len(ordered)

        previous_value: Decimal | None = None
        previous_day: date | None = None
        inception_value: Decimal | None = None
        twr_return = ZERO
        snapshots: list[PerformanceSnapshot] = []

        for day in each_day(replay_from, end_date):
            # === PHASE 1: Apply all transactions up to and including day ===
            while txn_index < num_txns and ordered[txn_index].date <= day:
                self._holdings_calc.apply_transaction(holdings_state, ordered[txn_index])
                txn_index += 1

            # === PHASE 2: Value the holdings ===
            positions = self._holdings_calc.state_to_positions(holdings_state)
            total_value, interpolated = await self._value_positions(
                positions, day, cache, last_known_prices, failures
            )
            total_cost = sum((p.cost_basis for p in positions), ZERO)

            # === PHASE 3: Derived returns ===
            day_change, day_change_percent = calculate_day_change(previous_value, total_value)

            if inception_value is None and total_value != ZERO:
                inception_value = total_value
            cumulative_return = calculate_simple_return(inception_value or ZERO, total_value)

            if previous_value is not None and previous_day is not None:
                period_return = calculate_period_return(
                    previous_value, total_value, flows_by_day.get(day, []), previous_day, day
                )
                twr_return = compound_returns([twr_return, period_return])

            if day >= write_from:
                snapshots.append(PerformanceSnapshot(
                    portfolio_id=portfolio_id,
                    date=day,
                    total_value=total_value,
                    total_cost=total_cost,
                    day_change=day_change,
                    day_change_percent=day_change_percent,
                    cumulative_return=cumulative_return,
                    twr_return=twr_return,
                    holding_count=len(positions),
                    has_interpolated_prices=interpolated,
                ))
                logger.debug(
                    f"{day}: value={total_value} cost={total_cost} "
                    f"holdings={len(positions)} interpolated={interpolated}"
                )

            previous_value = total_value
            previous_day = day

        logger.debug(f"Price cache: {cache.hits} hits, {cache.misses} lookups")
        return snapshots

    async def _value_positions(
            self,
            positions: list[HeldPosition],
            day: date,
            cache: PriceCache,
            last_known_prices: dict[str, Decimal],
            failures: list[SnapshotFailure],
    ) -> tuple[Decimal, bool]:
        """
        Σ quantity × price over positions, and whether any price was interpolated.
        """
        total_value = ZERO
        interpolated = False

        for position in positions:
            asset_id = position.asset_id
            try:
                result = await self._price_lookup.get_price_at_date(asset_id, day, cache)
            except Exception as e:
                logger.error(f"Price lookup failed for {asset_id} on {day}: {e}")
                failures.append(SnapshotFailure(
                    date=day, stage="price", error=str(e), asset_id=asset_id
                ))
                result = None

            if result is None:
                price = last_known_prices.get(asset_id, ZERO)
                interpolated = True
                logger.warning(
                    f"No price for {asset_id} on {day}; substituting {price}"
                )
            else:
                price = result.price
                last_known_prices[asset_id] = price
                interpolated = interpolated or result.is_interpolated

            total_value += position.quantity * price

        return total_value, interpolated

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _persist(
            self,
            snapshots: list[PerformanceSnapshot],
            failures: list[SnapshotFailure],
    ) -> None:
        """
        Write the batch atomically; fall back to per-day upserts on failure.
        """
        if not snapshots:
            return

        try:
            await self._snapshots.upsert_many(snapshots)
            return
        except Exception as e:
            logger.warning(
                f"Batch upsert of {len(snapshots)} snapshots failed ({e}); "
                f"retrying day by day"
            )

        for snapshot in snapshots:
            try:
                await self._snapshots.upsert(snapshot)
            except Exception as e:
                logger.error(f"Failed to persist snapshot {snapshot.id}: {e}")
                failures.append(SnapshotFailure(
                    date=snapshot.date, stage="persist", error=str(e)
                ))
