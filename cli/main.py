"""Portfolio CLI.

Provides commands for:
- show: Current portfolio totals, asset classes and holdings
- rebalance: Simulate contributions, sells and buys, then show the result
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from common.config_loader import load_all
from common.errors import PortfolioError
from engine.price_cache import PriceCache, CachedPriceSource
from engine.price_source import PriceSource, YahooPriceSource
from engine.processor import Processor
from portfolio.portfolio import Portfolio
from reporting.tables import render_portfolio


def build_price_source(args) -> PriceSource:
    """Yahoo prices, behind the on-disk cache unless disabled."""
    source: PriceSource = YahooPriceSource()
    if not args.no_cache:
        source = CachedPriceSource(source, PriceCache(args.cache))
    return source


def build_portfolio(args, rebalance_path: Optional[str] = None) -> Portfolio:
    """Load configuration and run the processor."""
    cfg = load_all(args.config, args.portfolio, rebalance_path, args.prices)
    processor = Processor(build_price_source(args))
    return processor.process(
        cfg.portfolio_config(),
        rebalance=cfg.rebalance_config(),
        prices=cfg.prices(),
    )


def cmd_show(args) -> int:
    """Handle show command: current portfolio state."""
    print(render_portfolio(build_portfolio(args)))
    return 0


def cmd_rebalance(args) -> int:
    """Handle rebalance command: simulated portfolio after the rebalance."""
    portfolio = build_portfolio(args, rebalance_path=args.rebalance)
    print(f"Rebalance Simulation ({len(portfolio.trades)} trades)")
    print()
    print(render_portfolio(portfolio))
    return 0


def run(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, dispatch, and map errors to an exit code."""
    p = argparse.ArgumentParser(
        prog="cli.main",
        description="Portfolio CLI: multi-account allocation and rebalance simulation",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Common arguments for all commands
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default="config/config.yml", help="Share catalog config file")
    common.add_argument("--portfolio", default="config/portfolio.yml", help="Portfolio config file")
    common.add_argument("--prices", default=None, help="Extra config with fixed prices (skips price lookup)")
    common.add_argument("--cache", default=".cache/prices.yml", help="Price cache file")
    common.add_argument("--no-cache", action="store_true", help="Always query prices upstream")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    show = sub.add_parser("show", parents=[common], help="Show current portfolio")
    show.set_defaults(func=cmd_show)

    rb = sub.add_parser("rebalance", parents=[common], help="Simulate a rebalance")
    rb.add_argument("--rebalance", default="config/rebalance.yml", help="Rebalance config file")
    rb.set_defaults(func=cmd_rebalance)

    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except PortfolioError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e.strerror}: {e.filename}", file=sys.stderr)
        return 1


def main():
    """Main entry point."""
    raise SystemExit(run())


if __name__ == "__main__":
    main()
