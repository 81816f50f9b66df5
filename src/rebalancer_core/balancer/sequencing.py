"""Order sequencing and post-trade projection."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import structlog

from rebalancer_core.models.order import PlannedOrder
from rebalancer_core.models.position import Position

log = structlog.get_logger("sequencing")


def _planned_lots(lots_delta: float) -> int:
    """Whole lots of a delta, truncated toward zero."""
    if not math.isfinite(lots_delta):
        return 0
    return int(math.copysign(math.floor(abs(lots_delta)), lots_delta))


def sequence_orders(wallet: Sequence[Position]) -> list[PlannedOrder]:
    """Sells first by ascending value delta, then buys by descending lot price.

    Currency balances and deltas smaller than one lot never become orders.
    """
    tradable = [p for p in wallet if not p.is_currency and p.lot_price]
    sells = sorted(
        (p for p in tradable if p.lots_delta <= -1),
        key=lambda p: p.value_delta,
    )
    buys = sorted(
        (p for p in tradable if p.lots_delta >= 1),
        key=lambda p: p.lot_price or 0.0,
        reverse=True,
    )

    orders: list[PlannedOrder] = []
    for position in [*sells, *buys]:
        lots = abs(_planned_lots(position.lots_delta))
        orders.append(
            PlannedOrder(
                ticker=position.ticker,
                figi=position.figi,
                direction="SELL" if position.lots_delta < 0 else "BUY",
                lots=lots,
                lot_price=position.lot_price or 0.0,
                value_delta=position.value_delta,
            )
        )
    log.debug(
        "orders_sequenced",
        sells=len(sells),
        buys=len(buys),
        plan=[(o.ticker, o.lots_delta) for o in orders],
    )
    return orders


def current_percents(wallet: Sequence[Position]) -> dict[str, float]:
    """Share of each security in the securities-only value, before any trade."""
    securities = [p for p in wallet if not p.is_currency]
    total = sum(p.value for p in securities)
    if total <= 0:
        return {}
    shares: dict[str, float] = {}
    for position in securities:
        shares[position.ticker] = shares.get(position.ticker, 0.0) + position.value / total * 100
    return shares


def simulate_final_percents(wallet: Sequence[Position]) -> dict[str, float]:
    """Project each security's share after the planned whole-lot deltas execute.

    Currency balances are left out of both numerator and denominator.
    """
    final_values: dict[str, float] = {}
    for position in wallet:
        if position.is_currency:
            continue
        price = position.price or 0.0
        lot_size = position.lot_size or 1
        final_lots = position.current_lots + _planned_lots(position.lots_delta)
        value = max(0.0, price * final_lots * lot_size)
        final_values[position.ticker] = final_values.get(position.ticker, 0.0) + value

    total = sum(final_values.values())
    if total <= 0:
        return {}
    return {ticker: value / total * 100 for ticker, value in final_values.items()}


def share_changes(
    before: Mapping[str, float],
    after: Mapping[str, float],
) -> dict[str, tuple[float, float]]:
    """Pair before/after shares per instrument; absent sides count as 0."""
    tickers = sorted(set(before) | set(after))
    return {t: (before.get(t, 0.0), after.get(t, 0.0)) for t in tickers}
