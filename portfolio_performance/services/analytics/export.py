# portfolio_performance/services/analytics/export.py
"""
CSV rendering of performance data.

The column layout is relied upon by downstream report generation and must
stay stable:

    Date,Portfolio Value,Daily Change,Daily Change %,Cumulative Return %
    [,Benchmark Value,Benchmark Change %]

optionally followed by a holdings section:

    <blank line>
    Holdings Performance
    Symbol,Name,Quantity,Cost Basis,Current Value,Gain/Loss,Gain %,Weight %

Numbers are rounded half-up to 2 decimals (quantities to 4). Lines are
joined with "\\n" and there is no trailing newline.

The "Cumulative Return %" column is relative to the first exported row,
not to portfolio inception like the stored `cumulative_return`.
"""

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from portfolio_performance.services.analytics.types import ExportOptions, HoldingPerformance
from portfolio_performance.services.constants import CENTS, HUNDRED, QUANTITY_QUANTUM, ZERO
from portfolio_performance.services.snapshots.types import PerformanceSnapshot

PERFORMANCE_HEADERS = [
    "Date",
    "Portfolio Value",
    "Daily Change",
    "Daily Change %",
    "Cumulative Return %",
]

BENCHMARK_HEADERS = ["Benchmark Value", "Benchmark Change %"]

HOLDINGS_TITLE = "Holdings Performance"

HOLDINGS_HEADERS = [
    "Symbol",
    "Name",
    "Quantity",
    "Cost Basis",
    "Current Value",
    "Gain/Loss",
    "Gain %",
    "Weight %",
]


def format_decimal(value: Decimal, quantum: Decimal = CENTS) -> str:
    """Fixed-point string rounded half-up; negative zero renders as zero."""
    rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    if rounded == ZERO:
        rounded = abs(rounded)
    return f"{rounded:f}"


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def export_cumulative_return_pct(value: Decimal, first_value: Decimal) -> Decimal:
    """Return since the first exported row, in percent (0 when it was 0)."""
    if first_value == ZERO:
        return ZERO
    return (value - first_value) / first_value * HUNDRED


def _benchmark_cells(
        snapshot_date: date,
        benchmark_prices: Mapping[date, Decimal | None],
        base_price: Decimal | None,
) -> list[str]:
    price = benchmark_prices.get(snapshot_date)
    if price is None:
        return ["", ""]
    change = export_cumulative_return_pct(price, base_price) if base_price is not None else ZERO
    return [format_decimal(price), format_decimal(change)]


def build_holdings_section(holdings: Sequence[HoldingPerformance]) -> str:
    """Holdings block including its leading blank line; empty without holdings."""
    if not holdings:
        return ""

    lines = [",".join(HOLDINGS_HEADERS)]
    for h in holdings:
        lines.append(",".join([
            h.symbol,
            _quote(h.name),
            format_decimal(h.quantity, QUANTITY_QUANTUM),
            format_decimal(h.cost_basis),
            format_decimal(h.current_value),
            format_decimal(h.absolute_gain),
            format_decimal(h.percent_gain),
            format_decimal(h.weight),
        ]))
    return f"\n\n{HOLDINGS_TITLE}\n" + "\n".join(lines)


def build_performance_csv(
        snapshots: Sequence[PerformanceSnapshot],
        options: ExportOptions | None = None,
        benchmark_prices: Mapping[date, Decimal | None] | None = None,
        holdings: Sequence[HoldingPerformance] | None = None,
) -> str:
    """
    Render snapshots (and optionally benchmark and holdings) as CSV.

    Args:
        snapshots: Rows to export, in date order
        options: Column switches (defaults: no benchmark, no holdings)
        benchmark_prices: Benchmark price per snapshot date; missing or
                          None prices leave the benchmark cells empty
        holdings: Holdings rows for the trailing section

    Returns:
        CSV text, or "" when there are no snapshots
    """
    if not snapshots:
        return ""

    options = options or ExportOptions()
    benchmark_prices = benchmark_prices or {}

    headers = list(PERFORMANCE_HEADERS)
    if options.include_benchmark:
        headers.extend(BENCHMARK_HEADERS)

    first_value = snapshots[0].total_value
    base_price = next(
        (benchmark_prices[s.date] for s in snapshots if benchmark_prices.get(s.date) is not None),
        None,
    )

    rows = []
    for snap in snapshots:
        row = [
            snap.date.strftime(options.date_format),
            format_decimal(snap.total_value),
            format_decimal(snap.day_change),
            format_decimal(snap.day_change_percent),
            format_decimal(export_cumulative_return_pct(snap.total_value, first_value)),
        ]
        if options.include_benchmark:
            row.extend(_benchmark_cells(snap.date, benchmark_prices, base_price))
        rows.append(",".join(row))

    holdings_section = ""
    if options.include_holdings and holdings:
        holdings_section = build_holdings_section(holdings)

    return ",".join(headers) + "\n" + "\n".join(rows) + holdings_section
