"""Terminal tables for a computed portfolio."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from portfolio.portfolio import Portfolio
from reporting.summary import account_rows, asset_class_rows, holding_rows, totals_rows, trade_rows

Column = Tuple[str, str, Optional[Callable[[Any], str]]]  # header, row key, formatter


def dollar(value: float) -> str:
    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


def percent(fraction: float) -> str:
    """Format a 0-1 fraction; whole percentages drop the decimals."""
    value = round(fraction * 100, 9)
    if value == int(value):
        return f"{int(value)}%"
    return f"{value:.2f}%"


def dollar_diff(value: float) -> str:
    sign = "+" if value > 0 else "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def render_table(rows: Sequence[Dict[str, Any]], columns: Sequence[Column]) -> str:
    data = {
        header: [fmt(r[key]) if fmt else r[key] for r in rows]
        for header, key, fmt in columns
    }
    frame = pd.DataFrame(data, columns=[header for header, _, _ in columns])
    if frame.empty:
        return "(none)"
    return frame.to_string(index=False)


TOTAL_COLUMNS: List[Column] = [
    ("Investment", "investment", None),
    ("Amount", "amount", dollar),
]

ACCOUNT_COLUMNS: List[Column] = [
    ("Account", "account", None),
    ("Cash", "cash", dollar),
    ("Holdings", "holdings", dollar),
    ("Total", "total", dollar),
]

ASSET_CLASS_COLUMNS: List[Column] = [
    ("Asset Class", "name", None),
    ("Target Allocation", "target_allocation", percent),
    ("Current Allocation", "current_allocation", percent),
    ("Current Value", "current_value", dollar),
    ("Difference", "difference", dollar_diff),
]

HOLDING_COLUMNS: List[Column] = [
    ("Account", "account", None),
    ("Holding", "holding", None),
    ("Asset Class", "asset_class", None),
    ("Quantity", "quantity", None),
    ("Value", "value", dollar),
    ("Current Allocation", "current_allocation", percent),
]

TRADE_COLUMNS: List[Column] = [
    ("Account", "account", None),
    ("Action", "action", None),
    ("Symbol", "symbol", None),
    ("Quantity", "quantity", None),
    ("Price", "price", dollar),
    ("Value", "value", dollar),
    ("Fee", "fee", dollar),
]


def _section(title: str, body: str) -> str:
    return f"{title}\n{'=' * len(title)}\n{body}"


def render_portfolio(portfolio: Portfolio) -> str:
    sections = []
    if portfolio.trades:
        sections.append(_section("Simulated Trades", render_table(trade_rows(portfolio), TRADE_COLUMNS)))
    sections += [
        _section("Totals", render_table(totals_rows(portfolio), TOTAL_COLUMNS)),
        _section("Accounts", render_table(account_rows(portfolio), ACCOUNT_COLUMNS)),
        _section("Asset Classes", render_table(asset_class_rows(portfolio), ASSET_CLASS_COLUMNS)),
        _section("Holdings", render_table(holding_rows(portfolio), HOLDING_COLUMNS)),
    ]
    return "\n\n".join(sections)
