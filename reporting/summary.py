from __future__ import annotations
from typing import Any, Dict, List
from portfolio.portfolio import Portfolio

def _share(value: float, whole: float) -> float:
    return value / whole if whole > 0 else 0.0

def totals_rows(portfolio: Portfolio) -> List[Dict[str, Any]]:
    return [
        {"investment": "Cash", "amount": portfolio.cash_value()},
        {"investment": "Holdings", "amount": portfolio.holdings_value()},
        {"investment": "Total", "amount": portfolio.total_value()},
    ]

def account_rows(portfolio: Portfolio) -> List[Dict[str, Any]]:
    return [
        {
            "account": a.name,
            "cash": a.cash,
            "holdings": a.holdings_value(),
            "total": a.total_value(),
        }
        for a in portfolio.accounts
    ]

def asset_class_rows(portfolio: Portfolio) -> List[Dict[str, Any]]:
    """Current vs target per asset class, measured against the holdings value."""
    holdings_value = portfolio.holdings_value()
    rows = []
    for ac in portfolio.asset_classes:
        current = portfolio.asset_class_value(ac)
        target = ac.target_allocation * holdings_value
        rows.append({
            "name": ac.name,
            "target_allocation": ac.target_allocation,
            "current_allocation": _share(current, holdings_value),
            "current_value": current,
            "target_value": target,
            "difference": target - current,
        })
    return rows

def holding_rows(portfolio: Portfolio) -> List[Dict[str, Any]]:
    """One row per holding, ordered by the position of its first asset class."""
    holdings_value = portfolio.holdings_value()
    order = {id(ac): i for i, ac in enumerate(portfolio.asset_classes)}
    rows = []
    for a in portfolio.accounts:
        for h in a.holdings:
            classes = h.asset_classes.asset_classes()
            rows.append({
                "account": a.name,
                "holding": h.name,
                "symbol": h.symbol,
                "asset_class": ", ".join(ac.name for ac in classes),
                "quantity": h.quantity,
                "price": h.price,
                "value": h.value,
                "current_allocation": _share(h.value, holdings_value),
                "_order": order.get(id(classes[0]), len(order)) if classes else len(order),
            })
    rows.sort(key=lambda r: r["_order"])
    for r in rows:
        del r["_order"]
    return rows

def trade_rows(portfolio: Portfolio) -> List[Dict[str, Any]]:
    return [
        {
            "account": t.account,
            "action": t.action,
            "symbol": t.symbol,
            "quantity": t.quantity,
            "price": t.price,
            "value": t.value,
            "fee": t.fee,
        }
        for t in portfolio.trades
    ]
