from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Trade:
    """One simulated buy or sell line."""

    account: str
    share_id: str
    symbol: str
    action: str  # BUY/SELL
    quantity: int
    price: float
    fee: float

    @property
    def value(self) -> float:
        return self.quantity * self.price

    def __str__(self) -> str:
        """Format trade for display."""
        return (
            f"{self.account}: {self.action} {self.quantity} {self.symbol} "
            f"@ ${self.price:,.2f} (${self.value:,.2f} + ${self.fee:,.2f} fee)"
        )
