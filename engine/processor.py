"""Builds a Portfolio from normalized configuration and resolved prices.

Stages, in order:
- asset classes are built and their targets checked,
- every share id referenced by accounts or rebalance instructions is checked
  against the share catalog,
- prices are resolved once for all referenced symbols,
- the optional rebalance is simulated on a copy of the account state,
- holdings, accounts and the portfolio are constructed.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from accounts.account import Account
from common.errors import BadConfiguration, InvalidConfiguration, UpstreamPriceError
from common.schema import AccountSpec, PortfolioConfig, RebalanceConfig, ShareSpec
from engine.price_source import PriceSource
from engine.rebalance_engine import rebalance_accounts
from engine.trade import Trade
from portfolio.asset_class import ALLOCATION_TOLERANCE, AssetClass, AssetClassGroup
from portfolio.holding import Holding
from portfolio.portfolio import Portfolio

logger = logging.getLogger(__name__)


def build_asset_classes(targets: Mapping[str, float]) -> Dict[str, AssetClass]:
    """Build asset classes in config order; targets may not exceed 100%."""
    asset_classes = {name: AssetClass(name, float(target)) for name, target in targets.items()}
    total = sum(ac.target_allocation for ac in asset_classes.values())
    if total > 1.0 + ALLOCATION_TOLERANCE:
        raise InvalidConfiguration(f"Total target allocation is greater than 100%: {total:.2%}")
    return asset_classes


def _referenced_share_ids(
    accounts: Mapping[str, AccountSpec],
    rebalance: Optional[RebalanceConfig],
) -> List[str]:
    ids: List[str] = []
    for account in accounts.values():
        ids.extend(account.holdings)
    if rebalance is not None:
        for instruction in rebalance.accounts.values():
            ids.extend(instruction.buy_holdings)
            ids.extend(instruction.sell_holdings)
    return list(dict.fromkeys(ids))


class Processor:
    """Validates config, simulates an optional rebalance, and builds the Portfolio."""

    def __init__(self, price_source: PriceSource):
        self.price_source = price_source

    def process(
        self,
        config: PortfolioConfig,
        rebalance: Optional[RebalanceConfig] = None,
        prices: Optional[Mapping[str, float]] = None,
    ) -> Portfolio:
        """Compute the portfolio, optionally after simulating a rebalance.

        Args:
            config: Normalized portfolio config with the share catalog.
            rebalance: Optional contributions, buys and sells per account.
            prices: Optional symbol -> price map used instead of the price source.

        Returns:
            A read-only Portfolio; ``trades`` lists the simulated rebalance trades.
        """
        asset_classes = build_asset_classes(config.asset_classes)

        shares: Dict[str, ShareSpec] = dict(config.shares)
        if rebalance is not None:
            shares.update(rebalance.shares)

        share_ids = _referenced_share_ids(config.accounts, rebalance)
        missing_ids = [i for i in share_ids if i not in shares]
        if missing_ids:
            raise BadConfiguration(f"Missing data for shares: {', '.join(missing_ids)}")

        symbols = list(dict.fromkeys(shares[i].symbol for i in share_ids))
        resolved = self._resolve_prices(symbols, prices)

        accounts: Mapping[str, AccountSpec] = config.accounts
        trades: List[Trade] = []
        if rebalance is not None:
            outcome = rebalance_accounts(
                accounts, rebalance.accounts, shares, resolved, config.trading_fee
            )
            accounts, trades = outcome.accounts, outcome.trades

        groups: Dict[str, AssetClassGroup] = {}
        built_accounts: List[Account] = []
        for name, account in accounts.items():
            holdings = []
            for share_id, quantity in account.holdings.items():
                share = shares[share_id]
                if share_id not in groups:
                    groups[share_id] = self._asset_class_group(share_id, share, asset_classes)
                holdings.append(
                    Holding(groups[share_id], share.name, share.symbol, quantity, resolved[share.symbol])
                )
            built_accounts.append(Account(name, account.cash, holdings, config.trading_fee))

        portfolio = Portfolio(list(asset_classes.values()), built_accounts, trades)
        logger.info(
            "Built portfolio: %d account(s), %d holding(s), total $%.2f",
            len(portfolio.accounts), len(portfolio.all_holdings()), portfolio.total_value(),
        )
        return portfolio

    def _resolve_prices(
        self,
        symbols: List[str],
        prices: Optional[Mapping[str, float]],
    ) -> Dict[str, float]:
        if prices is not None:
            missing = [s for s in symbols if s not in prices]
            if missing:
                raise BadConfiguration(f"Missing prices for symbols: {', '.join(missing)}")
            return {s: prices[s] for s in symbols}

        if not symbols:
            return {}

        resolved = self.price_source.resolve(symbols)
        missing = [s for s in symbols if s not in resolved]
        if missing:
            raise UpstreamPriceError(f"Price source returned no price for: {', '.join(missing)}")
        return {s: float(resolved[s]) for s in symbols}

    @staticmethod
    def _asset_class_group(
        share_id: str,
        share: ShareSpec,
        asset_classes: Mapping[str, AssetClass],
    ) -> AssetClassGroup:
        entries = []
        for name, percentage in share.asset_classes:
            if name not in asset_classes:
                raise BadConfiguration(f"Unknown asset class {name} for share {share_id}")
            entries.append((asset_classes[name], percentage))
        return AssetClassGroup(entries)
