"""Tests for price sources and the price cache.

Covers:
- yfinance single vs multi symbol result shapes
- Upstream failures and incomplete data
- Cache expiry and partial refresh
"""
from __future__ import annotations

import pandas as pd
import pytest
import yaml

from common.errors import UpstreamPriceError
from engine import price_source
from engine.price_cache import CachedPriceSource, PriceCache
from engine.price_source import StaticPriceSource, YahooPriceSource


DATES = pd.date_range("2024-01-02", periods=2, freq="D")


def multi_symbol_frame(closes: dict) -> pd.DataFrame:
    """Download result for several symbols: (field, symbol) columns."""
    columns = pd.MultiIndex.from_product([["Close", "Open"], list(closes)])
    data = {}
    for field in ("Close", "Open"):
        for symbol, values in closes.items():
            data[(field, symbol)] = values
    return pd.DataFrame(data, index=DATES, columns=columns)


class FakeDownload:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def __call__(self, tickers, **kwargs):
        self.calls.append(list(tickers))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestYahooPriceSource:
    """Tests for normalizing yfinance results."""

    def test_multi_symbol_frame(self, monkeypatch):
        fake = FakeDownload(multi_symbol_frame({"BND": [71.0, 72.5], "VTI": [240.0, 245.25]}))
        monkeypatch.setattr(price_source.yf, "download", fake)

        prices = YahooPriceSource().resolve(["VTI", "BND", "VTI"])

        assert prices == {"BND": 72.5, "VTI": 245.25}
        assert fake.calls == [["BND", "VTI"]]

    def test_single_symbol_flat_frame(self, monkeypatch):
        """Older yfinance returns plain OHLC columns for one symbol."""
        frame = pd.DataFrame({"Open": [1.0, 2.0], "Close": [10.0, 11.5]}, index=DATES)
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(frame))

        assert YahooPriceSource().resolve({"VTI"}) == {"VTI": 11.5}

    def test_single_symbol_multiindex_frame(self, monkeypatch):
        frame = multi_symbol_frame({"VTI": [10.0, 12.0]})
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(frame))

        assert YahooPriceSource().resolve(["VTI"]) == {"VTI": 12.0}

    def test_single_symbol_series(self, monkeypatch):
        series = pd.Series([10.0, 13.0], index=DATES, name="Close")
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(series))

        assert YahooPriceSource().resolve(["VTI"]) == {"VTI": 13.0}

    def test_last_nan_uses_previous_close(self, monkeypatch):
        frame = multi_symbol_frame({"BND": [71.0, float("nan")], "VTI": [240.0, 245.0]})
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(frame))

        assert YahooPriceSource().resolve(["VTI", "BND"])["BND"] == 71.0

    def test_missing_symbol_fails(self, monkeypatch):
        frame = multi_symbol_frame({"BND": [71.0, 72.0], "XYZ": [float("nan"), float("nan")]})
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(frame))

        with pytest.raises(UpstreamPriceError, match="XYZ"):
            YahooPriceSource().resolve(["BND", "XYZ"])

    def test_download_error_propagates(self, monkeypatch):
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(RuntimeError("rate limited")))

        with pytest.raises(UpstreamPriceError, match="rate limited"):
            YahooPriceSource().resolve(["VTI"])

    def test_empty_download_fails(self, monkeypatch):
        monkeypatch.setattr(price_source.yf, "download", FakeDownload(pd.DataFrame()))

        with pytest.raises(UpstreamPriceError):
            YahooPriceSource().resolve(["VTI"])

    def test_no_symbols_no_query(self, monkeypatch):
        fake = FakeDownload(pd.DataFrame())
        monkeypatch.setattr(price_source.yf, "download", fake)

        assert YahooPriceSource().resolve([]) == {}
        assert fake.calls == []


class TestStaticPriceSource:
    def test_resolves_subset(self):
        source = StaticPriceSource({"VTI": 1, "BND": 2.5})
        assert source.resolve(["BND", "BND"]) == {"BND": 2.5}

    def test_unknown_symbol_fails(self):
        with pytest.raises(UpstreamPriceError, match="XYZ"):
            StaticPriceSource({"VTI": 1}).resolve(["VTI", "XYZ"])


class CountingSource(StaticPriceSource):
    def __init__(self, prices):
        super().__init__(prices)
        self.calls = []

    def resolve(self, symbols):
        symbols = sorted(symbols)
        self.calls.append(symbols)
        return super().resolve(symbols)


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestPriceCache:
    """Tests for the TTL price cache."""

    def test_missing_file_is_empty(self, tmp_path):
        assert PriceCache(tmp_path / "prices.yml").load() == {}

    def test_save_then_load(self, tmp_path):
        clock = Clock()
        cache = PriceCache(tmp_path / "nested" / "prices.yml", ttl=3600, clock=clock)

        cache.save({"VTI": 245.0})

        assert cache.load() == {"VTI": 245.0}
        entry = yaml.safe_load((tmp_path / "nested" / "prices.yml").read_text())
        assert entry["expires_at"] == clock.now + 3600

    def test_expired_entry_is_empty(self, tmp_path):
        clock = Clock()
        cache = PriceCache(tmp_path / "prices.yml", ttl=3600, clock=clock)
        cache.save({"VTI": 245.0})

        clock.now += 3600

        assert cache.load() == {}

    def test_unreadable_entry_is_empty(self, tmp_path):
        path = tmp_path / "prices.yml"
        path.write_text("expires_at: [not, a, number\n")

        assert PriceCache(path).load() == {}


class TestCachedPriceSource:
    """Tests for serving prices through the cache."""

    def test_only_missing_symbols_queried(self, tmp_path):
        clock = Clock()
        cache = PriceCache(tmp_path / "prices.yml", clock=clock)
        cache.save({"VTI": 245.0})
        upstream = CountingSource({"VTI": 999.0, "BND": 72.0})

        prices = CachedPriceSource(upstream, cache).resolve(["VTI", "BND"])

        assert prices == {"BND": 72.0, "VTI": 245.0}
        assert upstream.calls == [["BND"]]
        assert cache.load() == {"BND": 72.0, "VTI": 245.0}

    def test_fully_cached_makes_no_query(self, tmp_path):
        cache = PriceCache(tmp_path / "prices.yml", clock=Clock())
        cache.save({"VTI": 245.0, "BND": 72.0})
        upstream = CountingSource({})

        assert CachedPriceSource(upstream, cache).resolve(["BND"]) == {"BND": 72.0}
        assert upstream.calls == []

    def test_expired_cache_requeries(self, tmp_path):
        clock = Clock()
        cache = PriceCache(tmp_path / "prices.yml", ttl=60, clock=clock)
        cache.save({"VTI": 1.0})
        clock.now += 61
        upstream = CountingSource({"VTI": 2.0})

        assert CachedPriceSource(upstream, cache).resolve(["VTI"]) == {"VTI": 2.0}
        assert upstream.calls == [["VTI"]]

    def test_results_match_uncached(self, tmp_path):
        prices = {"VTI": 245.0, "BND": 72.0}
        cache = PriceCache(tmp_path / "prices.yml", clock=Clock())
        cached = CachedPriceSource(StaticPriceSource(prices), cache)

        first = cached.resolve(["VTI", "BND"])
        second = cached.resolve(["VTI", "BND"])

        assert first == second == StaticPriceSource(prices).resolve(["VTI", "BND"])

    def test_upstream_error_propagates(self, tmp_path):
        cache = PriceCache(tmp_path / "prices.yml", clock=Clock())

        with pytest.raises(UpstreamPriceError):
            CachedPriceSource(StaticPriceSource({}), cache).resolve(["VTI"])
        assert cache.load() == {}
