"""Market collaborators — last-price lookup and order submission.

The engine only needs :class:`MarketGateway`. :class:`StaticGateway` serves
a fixed portfolio file and records submitted orders instead of sending them;
the CLI and the tests run against it.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

import structlog
import yaml

from rebalancer_core.models.order import PlannedOrder
from rebalancer_core.models.position import Position, Wallet

log = structlog.get_logger("gateway")


class MarketGateway(Protocol):
    def get_last_price(self, figi: str) -> float | None: ...

    def generate_orders(self, orders: Sequence[PlannedOrder]) -> None: ...


class PortfolioGateway(MarketGateway, Protocol):
    """A MarketGateway that can also report an account's current holdings."""

    def wallet(self, account_id: str) -> Wallet: ...


class StaticGateway:
    """Prices from a mapping keyed by figi, orders kept in memory."""

    def __init__(
        self,
        prices: Mapping[str, float] | None = None,
        wallets: Mapping[str, Wallet] | None = None,
    ) -> None:
        self.prices: dict[str, float] = dict(prices or {})
        self.wallets: dict[str, Wallet] = {k: list(v) for k, v in (wallets or {}).items()}
        self.submitted: list[list[PlannedOrder]] = []

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticGateway":
        """Load a portfolio YAML file.

        Layout::

            prices: {<figi>: <last price>}
            accounts:
              <account id>:
                - {ticker: TGLD, figi: ..., quantity: 100, lot_size: 1, price: 120}
        """
        raw = yaml.safe_load(Path(path).read_text()) or {}
        prices = {str(k): float(v) for k, v in (raw.get("prices") or {}).items()}
        wallets: dict[str, Wallet] = {}
        for account_id, entries in (raw.get("accounts") or {}).items():
            wallets[str(account_id)] = [Position.model_validate(e) for e in entries or []]
        log.info("portfolio_loaded", path=str(path), accounts=sorted(wallets), prices=len(prices))
        return cls(prices=prices, wallets=wallets)

    def wallet(self, account_id: str) -> Wallet:
        """Fresh copies of the account's positions, repriced from the price table."""
        wallet: Wallet = []
        for position in self.wallets.get(account_id, []):
            copy = position.model_copy()
            price = self.get_last_price(copy.figi) if copy.figi else None
            if price is not None:
                copy.reprice(price)
            wallet.append(copy)
        return wallet

    def get_last_price(self, figi: str) -> float | None:
        price = self.prices.get(figi)
        if price is None or not math.isfinite(price):
            return None
        return price

    def generate_orders(self, orders: Sequence[PlannedOrder]) -> None:
        self.submitted.append(list(orders))
        for order in orders:
            log.info(
                "order_generated",
                ticker=order.ticker,
                figi=order.figi,
                direction=order.direction,
                lots=order.lots,
                lot_price=order.lot_price,
            )
