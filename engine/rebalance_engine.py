"""Rebalance simulation for proposed account changes.

Applies contributions, sells and buys to the configured accounts and returns
the adjusted account state. Each account is funded only by its own cash,
contribution and sale proceeds. Sells run before buys so that proceeds can
pay for purchases in the same account. Inputs are never mutated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping

from common.errors import BadConfiguration, NotEnoughFunds
from common.schema import AccountSpec, RebalanceInstruction, ShareSpec
from engine.trade import Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebalanceOutcome:
    """Adjusted accounts plus the trades that produced them."""

    accounts: Dict[str, AccountSpec]
    trades: List[Trade]


def _rebalance_account(
    name: str,
    account: AccountSpec,
    instruction: RebalanceInstruction,
    shares: Mapping[str, ShareSpec],
    prices: Mapping[str, float],
    trading_fee: float,
) -> tuple[AccountSpec, List[Trade]]:
    holdings = dict(account.holdings)
    trades: List[Trade] = []
    balance = account.cash + instruction.contribution
    fees = 0.0

    # Sell phase: whole positions only.
    proceeds = 0.0
    for share_id in instruction.sell_holdings:
        if share_id not in holdings:
            raise BadConfiguration(f"{share_id} does not exist in account {name}")
        symbol = shares[share_id].symbol
        quantity = holdings.pop(share_id)
        proceeds += quantity * prices[symbol]
        fees += trading_fee
        trades.append(Trade(name, share_id, symbol, "SELL", quantity, prices[symbol], trading_fee))
    balance += proceeds

    # Buy phase: one flat fee per line regardless of size.
    cost = 0.0
    for share_id, quantity in instruction.buy_holdings.items():
        symbol = shares[share_id].symbol
        cost += quantity * prices[symbol]
        fees += trading_fee
        trades.append(Trade(name, share_id, symbol, "BUY", quantity, prices[symbol], trading_fee))

    total_cost = cost + fees
    if total_cost > balance:
        raise NotEnoughFunds(name, total_cost, balance)

    for share_id, quantity in instruction.buy_holdings.items():
        holdings[share_id] = holdings.get(share_id, 0) + quantity

    logger.info(
        "Rebalanced %s: proceeds $%.2f, cost $%.2f, fees $%.2f, cash $%.2f -> $%.2f",
        name, proceeds, cost, fees, account.cash, balance - total_cost,
    )
    return AccountSpec(cash=balance - total_cost, holdings=holdings), trades


def rebalance_accounts(
    accounts: Mapping[str, AccountSpec],
    instructions: Mapping[str, RebalanceInstruction],
    shares: Mapping[str, ShareSpec],
    prices: Mapping[str, float],
    trading_fee: float = 0.0,
) -> RebalanceOutcome:
    """Simulate rebalance instructions against the current accounts.

    Args:
        accounts: Current account state keyed by account name.
        instructions: Contribution, buys and sells keyed by account name.
        shares: Share catalog used to map share ids to symbols.
        prices: Resolved price for every symbol referenced by either side.
        trading_fee: Flat fee charged once per buy line and once per sell line.

    Returns:
        RebalanceOutcome with a new account mapping (same order as
        ``accounts``) and the simulated trades.

    Raises:
        BadConfiguration: An instruction sells a share the account does not hold.
        NotEnoughFunds: Buys plus fees exceed cash, contribution and proceeds.
    """
    adjusted: Dict[str, AccountSpec] = dict(accounts)
    trades: List[Trade] = []

    for name, instruction in instructions.items():
        if name not in accounts:
            logger.debug("Skipping rebalance for unknown account %s", name)
            continue
        adjusted[name], account_trades = _rebalance_account(
            name, accounts[name], instruction, shares, prices, trading_fee
        )
        trades.extend(account_trades)

    return RebalanceOutcome(accounts=adjusted, trades=trades)
