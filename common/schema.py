"""Normalized configuration types and the validators that build them.

Config files keep their camelCase keys (``assetClasses``, ``tradingFee``,
``buyHoldings``...). Everything past this module sees only the normalized
dataclasses: a share's asset class is always a tuple of (name, percentage)
pairs, even when the file used the single-name shorthand.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from common.errors import InvalidConfiguration


@dataclass(frozen=True)
class ShareSpec:
    name: str
    symbol: str
    asset_classes: Tuple[Tuple[str, float], ...]


@dataclass(frozen=True)
class AccountSpec:
    cash: float = 0.0
    holdings: Mapping[str, int] = field(default_factory=dict)  # share id -> quantity


@dataclass(frozen=True)
class PortfolioConfig:
    asset_classes: Mapping[str, float]
    shares: Mapping[str, ShareSpec]
    accounts: Mapping[str, AccountSpec]
    trading_fee: float = 0.0


@dataclass(frozen=True)
class RebalanceInstruction:
    contribution: float = 0.0
    buy_holdings: Mapping[str, int] = field(default_factory=dict)
    sell_holdings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RebalanceConfig:
    accounts: Mapping[str, RebalanceInstruction]
    shares: Mapping[str, ShareSpec] = field(default_factory=dict)


def _mapping(value: Any, path: str, required: bool = False) -> Dict[str, Any]:
    if value is None:
        if required:
            raise InvalidConfiguration(f"{path} is required")
        return {}
    if not isinstance(value, Mapping):
        raise InvalidConfiguration(f"{path} must be a mapping, got {type(value).__name__}")
    return {str(k): v for k, v in value.items()}


def _number(value: Any, path: str, lo: Optional[float] = None, hi: Optional[float] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise InvalidConfiguration(f"{path} must be a number, got {value!r}")
    try:
        number = float(value)
    except ValueError:
        raise InvalidConfiguration(f"{path} must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise InvalidConfiguration(f"{path} must be a finite number, got {value!r}")
    if lo is not None and number < lo:
        raise InvalidConfiguration(f"{path} must be >= {lo:g}, got {number:g}")
    if hi is not None and number > hi:
        raise InvalidConfiguration(f"{path} must be <= {hi:g}, got {number:g}")
    return number


def _quantity(value: Any, path: str) -> int:
    number = _number(value, path, lo=0)
    if number != int(number):
        raise InvalidConfiguration(f"{path} must be a whole number of shares, got {value!r}")
    return int(number)


def _text(value: Any, path: str) -> str:
    if value is None or str(value).strip() == "":
        raise InvalidConfiguration(f"{path} is required and cannot be empty")
    return str(value)


def parse_shares(raw: Any, path: str = "shares") -> Dict[str, ShareSpec]:
    """Normalize a share catalog: id -> {name, symbol, assetClass}."""
    shares: Dict[str, ShareSpec] = {}
    for share_id, info in _mapping(raw, path).items():
        share_path = f"{path}.{share_id}"
        info = _mapping(info, share_path, required=True)

        asset_class = info.get("assetClass")
        if isinstance(asset_class, str):
            asset_class = {asset_class: 1.0}
        splits = _mapping(asset_class, f"{share_path}.assetClass", required=True)
        if not splits:
            raise InvalidConfiguration(f"{share_path}.assetClass cannot be empty")

        shares[share_id] = ShareSpec(
            name=_text(info.get("name"), f"{share_path}.name"),
            symbol=_text(info.get("symbol"), f"{share_path}.symbol"),
            asset_classes=tuple(
                (name, _number(pct, f"{share_path}.assetClass.{name}", lo=0, hi=1))
                for name, pct in splits.items()
            ),
        )
    return shares


def parse_portfolio_config(raw: Any, shares: Optional[Mapping[str, ShareSpec]] = None) -> PortfolioConfig:
    """Normalize a portfolio file, merging its ``shares`` over ``shares``."""
    raw = _mapping(raw, "portfolio", required=True)

    asset_classes = _mapping(raw.get("assetClasses"), "assetClasses", required=True)
    if not asset_classes:
        raise InvalidConfiguration("assetClasses must contain at least one asset class")

    accounts_raw = _mapping(raw.get("accounts"), "accounts", required=True)
    if not accounts_raw:
        raise InvalidConfiguration("accounts must contain at least one account")

    accounts: Dict[str, AccountSpec] = {}
    for name, acct in accounts_raw.items():
        acct = _mapping(acct, f"accounts.{name}")
        holdings = _mapping(acct.get("holdings"), f"accounts.{name}.holdings")
        accounts[name] = AccountSpec(
            cash=_number(acct.get("cash", 0.0), f"accounts.{name}.cash", lo=0),
            holdings={
                share_id: _quantity(qty, f"accounts.{name}.holdings.{share_id}")
                for share_id, qty in holdings.items()
            },
        )

    catalog = dict(shares or {})
    catalog.update(parse_shares(raw.get("shares")))

    return PortfolioConfig(
        asset_classes={
            name: _number(target, f"assetClasses.{name}", lo=0, hi=1)
            for name, target in asset_classes.items()
        },
        shares=catalog,
        accounts=accounts,
        trading_fee=_number(raw.get("tradingFee", 0.0), "tradingFee", lo=0),
    )


def parse_rebalance_config(raw: Any) -> RebalanceConfig:
    raw = _mapping(raw, "rebalance", required=True)

    instructions: Dict[str, RebalanceInstruction] = {}
    for name, acct in _mapping(raw.get("accounts"), "accounts").items():
        acct = _mapping(acct, f"accounts.{name}")
        buys = _mapping(acct.get("buyHoldings"), f"accounts.{name}.buyHoldings")

        sells = acct.get("sellHoldings") or []
        if isinstance(sells, (str, Mapping)) or not isinstance(sells, (list, tuple)):
            raise InvalidConfiguration(f"accounts.{name}.sellHoldings must be a list of share ids")

        instructions[name] = RebalanceInstruction(
            contribution=_number(acct.get("contribution", 0.0), f"accounts.{name}.contribution", lo=0),
            buy_holdings={
                share_id: _quantity(qty, f"accounts.{name}.buyHoldings.{share_id}")
                for share_id, qty in buys.items()
            },
            sell_holdings=tuple(str(s) for s in sells),
        )

    return RebalanceConfig(accounts=instructions, shares=parse_shares(raw.get("shares")))


def parse_prices(raw: Any) -> Dict[str, float]:
    """Normalize an extra config holding fixed prices: {prices: symbol -> price}."""
    raw = _mapping(raw, "extra")
    return {
        symbol: _number(price, f"prices.{symbol}", lo=0)
        for symbol, price in _mapping(raw.get("prices"), "prices").items()
    }
