"""Error hierarchy shared by the engine, config and pricing layers."""
from __future__ import annotations


class PortfolioError(Exception):
    """Base class for every error raised while building a portfolio."""

    pass


class InvalidConfiguration(PortfolioError, ValueError):
    """A value is structurally invalid (out of range, duplicated, negative)."""

    pass


class BadConfiguration(PortfolioError):
    """A configuration references something that does not exist."""

    pass


class NotEnoughFunds(PortfolioError):
    """A rebalance costs more than the account has available."""

    def __init__(self, account: str, cost: float, available: float):
        self.account = account
        self.cost = cost
        self.available = available
        super().__init__(
            f'The cost of ${cost:.2f} exceeds the available cash of '
            f'${available:.2f} in the "{account}" account'
        )


class UpstreamPriceError(PortfolioError):
    """The price source failed or returned incomplete data."""

    pass
