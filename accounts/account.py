from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from common.errors import InvalidConfiguration
from portfolio.holding import Holding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
    """A named cash balance plus holdings deduplicated by symbol."""

    name: str
    cash: float = 0.0
    holdings: Sequence[Holding] = ()
    trading_fee: float = 0.0
    _by_symbol: Dict[str, Holding] = field(init=False, repr=False, compare=False, default_factory=dict)
    _holdings_value: float = field(init=False, repr=False, compare=False, default=0.0)

    def __post_init__(self) -> None:
        if not (math.isfinite(self.cash) and self.cash >= 0):
            raise InvalidConfiguration(
                f"Cash for account {self.name} must be a finite non-negative number, got {self.cash}"
            )
        if not (math.isfinite(self.trading_fee) and self.trading_fee >= 0):
            raise InvalidConfiguration(
                f"Trading fee for account {self.name} must be a finite non-negative number, got {self.trading_fee}"
            )

        by_symbol: Dict[str, Holding] = {}
        holdings_value = 0.0
        for holding in self.holdings:
            existing = by_symbol.get(holding.symbol)
            if existing is None:
                by_symbol[holding.symbol] = holding
            else:
                if existing.price != holding.price:
                    # holdings_value keeps the added value; the merged holding keeps the first price
                    logger.warning(
                        "Account %s: %s added at %.4f and %.4f; holdings value and merged value differ",
                        self.name, holding.symbol, existing.price, holding.price,
                    )
                by_symbol[holding.symbol] = existing.merge(holding)
            holdings_value += holding.value

        object.__setattr__(self, "_by_symbol", by_symbol)
        object.__setattr__(self, "_holdings_value", holdings_value)
        object.__setattr__(self, "holdings", tuple(by_symbol.values()))

    def holding(self, symbol: str) -> Optional[Holding]:
        return self._by_symbol.get(symbol)

    def holdings_value(self) -> float:
        return self._holdings_value

    def total_value(self) -> float:
        return self.cash + self._holdings_value
