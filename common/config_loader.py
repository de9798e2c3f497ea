from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from common.errors import InvalidConfiguration
from common.schema import (
    PortfolioConfig,
    RebalanceConfig,
    parse_portfolio_config,
    parse_prices,
    parse_rebalance_config,
    parse_shares,
)

def load_yaml(path: str | Path) -> Dict[str, Any]:
    """Load a YAML (or JSON) file; an empty file loads as {}."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Cannot load {p}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfiguration(f"Cannot load {p}: top level must be a mapping")
    return data

@dataclass(frozen=True)
class LoadedConfig:
    main: Dict[str, Any]
    portfolio: Dict[str, Any]
    rebalance: Optional[Dict[str, Any]] = None
    extra: Optional[Dict[str, Any]] = None

    def portfolio_config(self) -> PortfolioConfig:
        shares = parse_shares(self.main.get("shares", self.main.get("stocks")))
        return parse_portfolio_config(self.portfolio, shares)

    def rebalance_config(self) -> Optional[RebalanceConfig]:
        if self.rebalance is None:
            return None
        return parse_rebalance_config(self.rebalance)

    def prices(self) -> Optional[Dict[str, float]]:
        if self.extra is None:
            return None
        return parse_prices(self.extra)

def load_all(
    config_path: str = "config/config.yml",
    portfolio_path: str = "config/portfolio.yml",
    rebalance_path: Optional[str] = None,
    prices_path: Optional[str] = None,
) -> LoadedConfig:
    return LoadedConfig(
        main=load_yaml(config_path),
        portfolio=load_yaml(portfolio_path),
        rebalance=load_yaml(rebalance_path) if rebalance_path else None,
        extra=load_yaml(prices_path) if prices_path else None,
    )
