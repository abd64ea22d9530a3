# tests/services/snapshots/test_holdings.py
"""
Unit tests for ledger replay into holdings.

Key Properties Tested:
1. Acquisitions add quantity and cost; disposals remove average cost
2. Splits multiply quantity and keep cost
3. Income and corporate-action types leave holdings untouched
4. Closed or oversold positions drop out with zero cost
5. Replay order is (date, id) regardless of input order
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_performance.models import TransactionType
from portfolio_performance.services.snapshots.holdings import (
    HeldPosition,
    HoldingsCalculator,
    calculate_holdings_at_date,
    get_cash_flow_events,
    sort_transactions,
)
from tests.conftest import MockTransaction, buy, sell

D = Decimal


@pytest.fixture
def holdings_calc():
    """Create HoldingsCalculator for testing."""
    return HoldingsCalculator()


def _replay(calc, transactions):
    state: dict[str, dict] = {}
    for txn in sort_transactions(transactions):
        calc.apply_transaction(state, txn)
    return state


class TestApplyTransaction:
    """Tests for HoldingsCalculator.apply_transaction."""

    def test_buy_adds_quantity_and_cost(self, holdings_calc):
        state = _replay(holdings_calc, [buy("t1", "AAPL", date(2024, 1, 1), "10", "100")])
        assert state["AAPL"] == {"quantity": D("10"), "cost_basis": D("1000")}

    def test_sell_removes_average_cost(self, holdings_calc):
        state = _replay(holdings_calc, [
            buy("t1", "AAPL", date(2024, 1, 1), "10", "100"),
            buy("t2", "AAPL", date(2024, 1, 2), "10", "200"),
            sell("t3", "AAPL", date(2024, 1, 3), "5", "500"),
        ])
        # Average cost 150; selling 5 removes 750 regardless of sale price
        assert state["AAPL"]["quantity"] == D("15")
        assert state["AAPL"]["cost_basis"] == D("2250")

    def test_transfer_and_reinvestment_count_as_holdings(self, holdings_calc):
        state = _replay(holdings_calc, [
            MockTransaction(
                id="t1", asset_id="VTI", transaction_type=TransactionType.TRANSFER_IN,
                date=date(2024, 1, 1), quantity=D("4"), total_amount=D("800"),
            ),
            MockTransaction(
                id="t2", asset_id="VTI", transaction_type=TransactionType.REINVESTMENT,
                date=date(2024, 1, 2), quantity=D("1"), total_amount=D("210"),
            ),
            MockTransaction(
                id="t3", asset_id="VTI", transaction_type=TransactionType.TRANSFER_OUT,
                date=date(2024, 1, 3), quantity=D("1"), total_amount=D("0"),
            ),
        ])
        assert state["VTI"]["quantity"] == D("4")
        assert state["VTI"]["cost_basis"] == D("808")

    def test_split_multiplies_quantity_keeps_cost(self, holdings_calc):
        state = _replay(holdings_calc, [
            buy("t1", "NVDA", date(2024, 1, 1), "5", "1000"),
            MockTransaction(
                id="t2", asset_id="NVDA", transaction_type=TransactionType.SPLIT,
                date=date(2024, 6, 10), quantity=D("10"),
            ),
        ])
        assert state["NVDA"]["quantity"] == D("50")
        assert state["NVDA"]["cost_basis"] == D("5000")

    @pytest.mark.parametrize("txn_type", [
        TransactionType.DIVIDEND,
        TransactionType.INTEREST,
        TransactionType.FEE,
        TransactionType.TAX,
        TransactionType.SPINOFF,
        TransactionType.MERGER,
    ])
    def test_non_holding_types_ignored(self, holdings_calc, txn_type):
        state = _replay(holdings_calc, [
            buy("t1", "AAPL", date(2024, 1, 1), "10", "100"),
            MockTransaction(
                id="t2", asset_id="AAPL", transaction_type=txn_type,
                date=date(2024, 1, 2), quantity=D("3"), total_amount=D("25"),
            ),
        ])
        assert state["AAPL"] == {"quantity": D("10"), "cost_basis": D("1000")}

    def test_full_sell_closes_position(self, holdings_calc):
        state = _replay(holdings_calc, [
            buy("t1", "AAPL", date(2024, 1, 1), "10", "100"),
            sell("t2", "AAPL", date(2024, 1, 2), "10", "120"),
        ])
        assert state["AAPL"] == {"quantity": D("0"), "cost_basis": D("0")}
        assert holdings_calc.state_to_positions(state) == []

    def test_oversell_treated_as_closed(self, holdings_calc):
        state = _replay(holdings_calc, [
            buy("t1", "AAPL", date(2024, 1, 1), "10", "100"),
            sell("t2", "AAPL", date(2024, 1, 2), "15", "120"),
        ])
        assert state["AAPL"]["quantity"] == D("0")
        assert state["AAPL"]["cost_basis"] == D("0")

    def test_sell_without_position_does_not_crash(self, holdings_calc):
        state = _replay(holdings_calc, [sell("t1", "AAPL", date(2024, 1, 2), "1", "120")])
        assert holdings_calc.state_to_positions(state) == []


class TestReplayHelpers:
    """Tests for ordering, cash flows and point-in-time holdings."""

    def test_sort_by_date_then_id(self):
        txns = [
            buy("b", "AAPL", date(2024, 1, 2), "1", "1"),
            buy("c", "AAPL", date(2024, 1, 1), "1", "1"),
            buy("a", "AAPL", date(2024, 1, 2), "1", "1"),
        ]
        assert [t.id for t in sort_transactions(txns)] == ["c", "a", "b"]

    def test_cash_flows_from_buys_and_sells_only(self):
        txns = [
            buy("t1", "AAPL", date(2024, 1, 1), "10", "100"),
            sell("t2", "AAPL", date(2024, 1, 5), "2", "150"),
            MockTransaction(
                id="t3", asset_id="AAPL", transaction_type=TransactionType.DIVIDEND,
                date=date(2024, 1, 6), quantity=D("0"), total_amount=D("12"),
            ),
        ]
        flows = get_cash_flow_events(txns)
        assert [(f.date, f.amount) for f in flows] == [
            (date(2024, 1, 1), D("1000")),
            (date(2024, 1, 5), D("-300")),
        ]

    def test_holdings_at_date_includes_that_day(self):
        txns = [
            buy("t1", "MSFT", date(2024, 1, 1), "2", "300"),
            buy("t2", "AAPL", date(2024, 1, 1), "10", "100"),
            buy("t3", "AAPL", date(2024, 2, 1), "10", "120"),
        ]
        assert calculate_holdings_at_date(txns, date(2024, 1, 31)) == [
            HeldPosition(asset_id="AAPL", quantity=D("10"), cost_basis=D("1000")),
            HeldPosition(asset_id="MSFT", quantity=D("2"), cost_basis=D("600")),
        ]
        positions = calculate_holdings_at_date(txns, date(2024, 2, 1))
        assert positions[0].quantity == D("20")
        assert positions[0].average_cost == D("110")

    def test_holdings_before_first_transaction_empty(self):
        txns = [buy("t1", "AAPL", date(2024, 1, 1), "10", "100")]
        assert calculate_holdings_at_date(txns, date(2023, 12, 31)) == []
