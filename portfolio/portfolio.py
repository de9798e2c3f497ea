from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from accounts.account import Account
from engine.trade import Trade
from portfolio.asset_class import AssetClass
from portfolio.holding import Holding


@dataclass(frozen=True)
class Portfolio:
    """Accounts and asset classes with rolled-up totals.

    ``trades`` holds the simulated trades when the portfolio is the result of
    a rebalance run, and is empty otherwise.
    """

    asset_classes: Sequence[AssetClass]
    accounts: Sequence[Account]
    trades: Sequence[Trade] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_classes", tuple(self.asset_classes))
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "trades", tuple(self.trades))

    def cash_value(self) -> float:
        return sum(a.cash for a in self.accounts)

    def holdings_value(self) -> float:
        return sum(a.holdings_value() for a in self.accounts)

    def total_value(self) -> float:
        return sum(a.total_value() for a in self.accounts)

    def all_holdings(self) -> List[Holding]:
        holdings: List[Holding] = []
        for a in self.accounts:
            holdings.extend(a.holdings)
        return holdings

    def asset_class_value(self, asset_class: AssetClass) -> float:
        return sum(h.asset_class_value(asset_class) for h in self.all_holdings())

    def unallocated_target(self) -> float:
        """Share of the portfolio not claimed by any asset class target."""
        return max(0.0, 1.0 - sum(ac.target_allocation for ac in self.asset_classes))
