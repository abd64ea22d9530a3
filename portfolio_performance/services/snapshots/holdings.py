# portfolio_performance/services/snapshots/holdings.py
"""
Point-in-time holdings reconstruction from the transaction ledger.

Holdings are rebuilt by replaying transactions in (date, id) order into a
rolling state dict, so a whole date range is processed in O(D + T)
instead of re-filtering the ledger for every day.

Quantity and cost effects:
    buy, transfer_in, reinvestment   qty += quantity    cost += total_amount
    sell, transfer_out               qty -= quantity    cost -= avg_cost × quantity
    split                            qty *= quantity    cost unchanged
    dividend, interest, fee, tax,
    spinoff, merger                  no effect

A position whose quantity drops to zero or below is closed and its
remaining cost dropped. Cost never goes below zero.

Cash flows for TWR come from buys (+total_amount) and sells
(-total_amount) only; reinvested dividends are not external capital.

Usage:
    calc = HoldingsCalculator()
    state: dict[str, dict] = {}
    for txn in sort_transactions(transactions):
        calc.apply_transaction(state, txn)
    positions = calc.state_to_positions(state)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_performance.models import TransactionType
from portfolio_performance.services.constants import ZERO
from portfolio_performance.services.performance.types import CashFlowEvent
from portfolio_performance.services.protocols import LedgerTransaction

logger = logging.getLogger(__name__)


ACQUIRE_TYPES = frozenset({
    TransactionType.BUY,
    TransactionType.TRANSFER_IN,
    TransactionType.REINVESTMENT,
})

DISPOSE_TYPES = frozenset({
    TransactionType.SELL,
    TransactionType.TRANSFER_OUT,
})


@dataclass
class HeldPosition:
    """Open position in one asset."""
    asset_id: str
    quantity: Decimal
    cost_basis: Decimal

    @property
    def average_cost(self) -> Decimal:
        if self.quantity == ZERO:
            return ZERO
        return self.cost_basis / self.quantity


def sort_transactions(transactions: Iterable[LedgerTransaction]) -> list[LedgerTransaction]:
    """Replay order: by date, then id so same-day order is stable."""
    return sorted(transactions, key=lambda t: (t.date, str(t.id)))


def get_cash_flow_events(transactions: Iterable[LedgerTransaction]) -> list[CashFlowEvent]:
    """External cash flows: buys in (+total_amount), sells out (-total_amount)."""
    flows: list[CashFlowEvent] = []
    for txn in transactions:
        if txn.transaction_type == TransactionType.BUY:
            flows.append(CashFlowEvent(date=txn.date, amount=txn.total_amount))
        elif txn.transaction_type == TransactionType.SELL:
            flows.append(CashFlowEvent(date=txn.date, amount=-txn.total_amount))
    return flows


class HoldingsCalculator:
    """
    Applies ledger transactions to a rolling holdings state.

    Stateless: all state lives in the dict passed to apply_transaction,
    keyed by asset_id with {'quantity': Decimal, 'cost_basis': Decimal}.
    """

    def apply_transaction(
            self,
            holdings_state: dict[str, dict],
            transaction: LedgerTransaction,
    ) -> None:
        """
        Apply a single transaction to holdings state (mutates holdings_state).

        Args:
            holdings_state: Current state keyed by asset_id
            transaction: Transaction to apply
        """
        txn_type = transaction.transaction_type
        asset_id = transaction.asset_id

        if asset_id not in holdings_state:
            holdings_state[asset_id] = {
                'quantity': ZERO,
                'cost_basis': ZERO,
            }
        state = holdings_state[asset_id]
        current_qty = state['quantity']

        if txn_type in ACQUIRE_TYPES:
            state['quantity'] = current_qty + transaction.quantity
            state['cost_basis'] += transaction.total_amount

        elif txn_type in DISPOSE_TYPES:
            if current_qty > ZERO:
                cost_per_share = state['cost_basis'] / current_qty
                state['cost_basis'] -= cost_per_share * transaction.quantity
            state['quantity'] = current_qty - transaction.quantity

        elif txn_type == TransactionType.SPLIT:
            state['quantity'] = current_qty * transaction.quantity

        else:
            # Income and corporate-action types don't change quantity
            return

        if state['quantity'] <= ZERO:
            if state['quantity'] < ZERO:
                logger.warning(
                    f"Asset {asset_id} quantity went negative ({state['quantity']}) "
                    f"after transaction {transaction.id}; treating position as closed"
                )
            state['quantity'] = ZERO
            state['cost_basis'] = ZERO
        elif state['cost_basis'] < ZERO:
            state['cost_basis'] = ZERO

    def state_to_positions(self, holdings_state: dict[str, dict]) -> list[HeldPosition]:
        """
        Convert holdings state to positions with quantity > 0, sorted by asset_id.
        """
        return [
            HeldPosition(
                asset_id=asset_id,
                quantity=state['quantity'],
                cost_basis=state['cost_basis'],
            )
            for asset_id, state in sorted(holdings_state.items())
            if state['quantity'] > ZERO
        ]


def calculate_holdings_at_date(
        transactions: Sequence[LedgerTransaction],
        as_of: date,
        calculator: HoldingsCalculator | None = None,
) -> list[HeldPosition]:
    """
    Positions held at the end of `as_of` (transactions on that day included).
    """
    calculator = calculator or HoldingsCalculator()
    state: dict[str, dict] = {}
    for txn in sort_transactions(transactions):
        if txn.date > as_of:
            break
        calculator.apply_transaction(state, txn)
    return calculator.state_to_positions(state)
