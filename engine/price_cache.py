"""File-backed price cache with a fixed time-to-live."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Iterable

import yaml

from engine.price_source import PriceSource

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


class PriceCache:
    """One cache entry on disk: ``{expires_at: <epoch seconds>, prices: {...}}``."""

    def __init__(
        self,
        path: str | Path,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.ttl = ttl
        self.clock = clock

    def load(self) -> Dict[str, float]:
        """Cached prices, or {} when the entry is missing, expired or unreadable."""
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                entry = yaml.safe_load(f) or {}
            expires_at = float(entry.get("expires_at", 0))
            prices = {str(s): float(p) for s, p in (entry.get("prices") or {}).items()}
        except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable price cache %s: %s", self.path, e)
            return {}

        if expires_at <= self.clock():
            logger.debug("Price cache %s expired", self.path)
            return {}
        return prices

    def save(self, prices: Dict[str, float]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        entry = {"expires_at": self.clock() + self.ttl, "prices": dict(sorted(prices.items()))}
        with self.path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(entry, f, sort_keys=False)


class CachedPriceSource:
    """Serves prices from a PriceCache and asks upstream only for the rest."""

    def __init__(self, upstream: PriceSource, cache: PriceCache):
        self.upstream = upstream
        self.cache = cache

    def resolve(self, symbols: Iterable[str]) -> Dict[str, float]:
        wanted = set(symbols)
        prices = self.cache.load()
        missing = wanted - prices.keys()

        if missing:
            logger.debug("Price cache miss for %s", ", ".join(sorted(missing)))
            prices.update(self.upstream.resolve(missing))
            self.cache.save(prices)

        return {s: prices[s] for s in sorted(wanted) if s in prices}
