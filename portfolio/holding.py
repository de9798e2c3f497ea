from __future__ import annotations

import math
from dataclasses import dataclass, replace

from common.errors import InvalidConfiguration
from portfolio.asset_class import AssetClass, AssetClassGroup


@dataclass(frozen=True)
class Holding:
    """A quantity of one symbol valued at a resolved price."""

    asset_classes: AssetClassGroup  # shared with other holdings of the same share
    name: str
    symbol: str
    quantity: int
    price: float

    def __post_init__(self) -> None:
        if not self.quantity >= 0:
            raise InvalidConfiguration(
                f"Quantity for {self.symbol} must not be negative, got {self.quantity}"
            )
        if not (math.isfinite(self.price) and self.price >= 0):
            raise InvalidConfiguration(
                f"Price for {self.symbol} must be a finite non-negative number, got {self.price}"
            )

    @property
    def value(self) -> float:
        return self.quantity * self.price

    def asset_class_value(self, asset_class: AssetClass) -> float:
        """Portion of this holding's value attributed to one asset class."""
        return self.value * self.asset_classes.percentage(asset_class)

    def merge(self, other: "Holding") -> "Holding":
        """Return a new holding with both quantities, keeping this price."""
        if other.symbol != self.symbol:
            raise InvalidConfiguration(
                f"Cannot merge holdings of {self.symbol} and {other.symbol}"
            )
        return replace(self, quantity=self.quantity + other.quantity)
