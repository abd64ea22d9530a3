# tests/services/analytics/test_export.py
"""
Unit tests for CSV rendering.

The column layout is consumed by report tooling, so the expected output
is spelled out line by line.
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_performance.services.analytics import (
    ExportOptions,
    HoldingPerformance,
    build_holdings_section,
    build_performance_csv,
    export_cumulative_return_pct,
    format_decimal,
)
from portfolio_performance.services.constants import QUANTITY_QUANTUM
from portfolio_performance.services.snapshots.types import PerformanceSnapshot

D = Decimal

HEADER = "Date,Portfolio Value,Daily Change,Daily Change %,Cumulative Return %"


def snap(d: date, value: str, change: str = "0", pct: str = "0") -> PerformanceSnapshot:
    return PerformanceSnapshot(
        portfolio_id="p1",
        date=d,
        total_value=D(value),
        day_change=D(change),
        day_change_percent=D(pct),
    )


def holding(symbol: str, name: str, quantity: str, cost: str, value: str,
            gain: str, pct: str, weight: str) -> HoldingPerformance:
    return HoldingPerformance(
        asset_id=symbol,
        symbol=symbol,
        name=name,
        quantity=D(quantity),
        cost_basis=D(cost),
        current_value=D(value),
        period_start_value=D("0"),
        absolute_gain=D(gain),
        percent_gain=D(pct),
        period_gain=D(value),
        weight=D(weight),
    )


class TestFormatDecimal:
    """Tests for format_decimal."""

    @pytest.mark.parametrize("value,expected", [
        (D("2"), "2.00"),
        (D("1.005"), "1.01"),
        (D("-1.005"), "-1.01"),
        (D("1234567.891"), "1234567.89"),
        (D("-0.001"), "0.00"),
        (D("-0"), "0.00"),
        (D("1E+3"), "1000.00"),
    ])
    def test_cents(self, value, expected):
        assert format_decimal(value) == expected

    def test_quantity_quantum(self):
        assert format_decimal(D("3.14159"), QUANTITY_QUANTUM) == "3.1416"


class TestExportCumulativeReturn:
    """Tests for export_cumulative_return_pct."""

    def test_relative_to_first_value(self):
        assert export_cumulative_return_pct(D("1250"), D("1000")) == D("25")

    def test_zero_first_value(self):
        assert export_cumulative_return_pct(D("1250"), D("0")) == D("0")


class TestBuildPerformanceCSV:
    """Tests for build_performance_csv."""

    def test_no_snapshots_is_empty(self):
        assert build_performance_csv([]) == ""

    def test_performance_rows(self):
        csv_text = build_performance_csv([
            snap(date(2024, 1, 1), "1000"),
            snap(date(2024, 1, 2), "1100", "100", "10"),
            snap(date(2024, 1, 3), "1045.555", "-54.445", "-4.9495"),
        ])

        assert csv_text == "\n".join([
            HEADER,
            "2024-01-01,1000.00,0.00,0.00,0.00",
            "2024-01-02,1100.00,100.00,10.00,10.00",
            "2024-01-03,1045.56,-54.45,-4.95,4.56",
        ])
        assert not csv_text.endswith("\n")

    def test_cumulative_is_relative_to_first_exported_row(self):
        csv_text = build_performance_csv([
            snap(date(2024, 3, 1), "2000"),
            snap(date(2024, 3, 2), "2500", "500", "25"),
        ])
        assert csv_text.splitlines()[2].endswith(",25.00")

    def test_zero_first_value_has_zero_cumulative(self):
        csv_text = build_performance_csv([
            snap(date(2024, 1, 1), "0"),
            snap(date(2024, 1, 2), "100", "100", "0"),
        ])
        assert csv_text.splitlines()[2] == "2024-01-02,100.00,100.00,0.00,0.00"

    def test_custom_date_format(self):
        csv_text = build_performance_csv(
            [snap(date(2024, 1, 5), "10")],
            ExportOptions(date_format="%m/%d/%Y"),
        )
        assert csv_text.splitlines()[1].startswith("01/05/2024,")

    def test_benchmark_columns(self):
        snapshots = [
            snap(date(2024, 1, 1), "1000"),
            snap(date(2024, 1, 2), "1010", "10", "1"),
            snap(date(2024, 1, 3), "1020", "10", "0.99"),
        ]
        prices = {
            date(2024, 1, 1): None,
            date(2024, 1, 2): D("4000"),
            date(2024, 1, 3): D("4100"),
        }

        csv_text = build_performance_csv(snapshots, ExportOptions(include_benchmark=True), prices)

        assert csv_text == "\n".join([
            HEADER + ",Benchmark Value,Benchmark Change %",
            "2024-01-01,1000.00,0.00,0.00,0.00,,",
            "2024-01-02,1010.00,10.00,1.00,1.00,4000.00,0.00",
            "2024-01-03,1020.00,10.00,0.99,2.00,4100.00,2.50",
        ])

    def test_benchmark_prices_ignored_unless_requested(self):
        csv_text = build_performance_csv(
            [snap(date(2024, 1, 1), "1000")],
            ExportOptions(),
            {date(2024, 1, 1): D("4000")},
        )
        assert csv_text.splitlines()[0] == HEADER

    def test_holdings_section(self):
        holdings = [
            holding("AAPL", 'Apple "Cupertino" Inc.', "10.123456", "1000", "1500",
                    "500", "50", "68.181818"),
            holding("MSFT", "Microsoft, Corp", "2", "600", "700", "100", "16.666666", "31.818181"),
        ]
        csv_text = build_performance_csv(
            [snap(date(2024, 1, 1), "2200")],
            ExportOptions(include_holdings=True),
            holdings=holdings,
        )

        assert csv_text == "\n".join([
            HEADER,
            "2024-01-01,2200.00,0.00,0.00,0.00",
            "",
            "Holdings Performance",
            "Symbol,Name,Quantity,Cost Basis,Current Value,Gain/Loss,Gain %,Weight %",
            'AAPL,"Apple ""Cupertino"" Inc.",10.1235,1000.00,1500.00,500.00,50.00,68.18',
            'MSFT,"Microsoft, Corp",2.0000,600.00,700.00,100.00,16.67,31.82',
        ])

    def test_holdings_omitted_unless_requested(self):
        csv_text = build_performance_csv(
            [snap(date(2024, 1, 1), "2200")],
            ExportOptions(include_holdings=False),
            holdings=[holding("AAPL", "Apple", "1", "1", "1", "0", "0", "100")],
        )
        assert "Holdings Performance" not in csv_text

    def test_empty_holdings_section(self):
        assert build_holdings_section([]) == ""
