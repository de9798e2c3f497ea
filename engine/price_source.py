"""Price sources: resolve ticker symbols to last-trade prices."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Protocol

import pandas as pd
import yfinance as yf

from common.errors import UpstreamPriceError

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    def resolve(self, symbols: Iterable[str]) -> Dict[str, float]:
        """Return a price for every symbol, or raise UpstreamPriceError."""
        ...


class StaticPriceSource:
    """Answers from a fixed symbol -> price map."""

    def __init__(self, prices: Mapping[str, float]):
        self.prices = {s: float(p) for s, p in prices.items()}

    def resolve(self, symbols: Iterable[str]) -> Dict[str, float]:
        wanted = sorted(set(symbols))
        missing = [s for s in wanted if s not in self.prices]
        if missing:
            raise UpstreamPriceError(f"No price available for: {', '.join(missing)}")
        return {s: self.prices[s] for s in wanted}


def _close_frame(data: pd.DataFrame | pd.Series, symbols: list[str]) -> pd.DataFrame:
    """Normalize a yfinance download to one close column per symbol.

    Multi-symbol downloads come back with a (field, symbol) column index.
    A single symbol may come back as a Series, a flat OHLC frame, or the
    same two-level frame depending on the yfinance version.
    """
    if isinstance(data, pd.Series):
        return data.to_frame(name=symbols[0])

    if isinstance(data.columns, pd.MultiIndex):
        close = data["Close"]
    elif "Close" in data.columns:
        close = data["Close"]
    else:
        close = data

    if isinstance(close, pd.Series):
        return close.to_frame(name=symbols[0])
    if len(symbols) == 1 and symbols[0] not in close.columns and len(close.columns) == 1:
        close.columns = [symbols[0]]
    return close


class YahooPriceSource:
    """Last close prices from Yahoo Finance via yfinance."""

    def __init__(self, period: str = "5d"):
        self.period = period

    def resolve(self, symbols: Iterable[str]) -> Dict[str, float]:
        wanted = sorted(set(symbols))
        if not wanted:
            return {}

        logger.info("Querying prices for %d symbol(s): %s", len(wanted), ", ".join(wanted))
        try:
            data = yf.download(wanted, period=self.period, progress=False, auto_adjust=True)
        except Exception as e:
            raise UpstreamPriceError(f"Price lookup failed for {', '.join(wanted)}: {e}") from e

        if data is None or data.empty:
            raise UpstreamPriceError(f"No price data returned for {', '.join(wanted)}")

        close = _close_frame(data, wanted)
        prices: Dict[str, float] = {}
        for symbol in wanted:
            if symbol not in close.columns:
                continue
            series = close[symbol].dropna()
            if not series.empty:
                prices[symbol] = float(series.iloc[-1])

        missing = [s for s in wanted if s not in prices]
        if missing:
            raise UpstreamPriceError(f"No price returned for: {', '.join(missing)}")
        return prices
