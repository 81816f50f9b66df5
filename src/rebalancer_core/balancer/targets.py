"""Target resolution — weights to whole-lot deltas."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, MutableSequence, Sequence

import structlog

from rebalancer_core.balancer.margin import TargetSize
from rebalancer_core.instruments.registry import InstrumentRegistry
from rebalancer_core.models.position import Position

log = structlog.get_logger("targets")

PriceLookup = Callable[[str], "float | None"]


def find_position(wallet: Sequence[Position], ticker: str) -> Position | None:
    for position in wallet:
        if position.ticker == ticker:
            return position
    return None


def reconcile_desired(
    wallet: Sequence[Position],
    desired: Mapping[str, float],
) -> dict[str, float]:
    """Desired map plus a zero weight for every held instrument it does not mention."""
    reconciled = dict(desired)
    for position in wallet:
        if position.ticker not in reconciled:
            log.debug("held_not_desired", ticker=position.ticker)
            reconciled[position.ticker] = 0.0
    return reconciled


def add_missing_positions(
    wallet: MutableSequence[Position],
    desired: Mapping[str, float],
    registry: InstrumentRegistry,
    get_last_price: PriceLookup,
) -> list[str]:
    """Append an empty position for each desired instrument not yet held.

    Instruments unknown to the registry, or without a live price, are left
    out for this pass. Returns the tickers that were skipped.
    """
    skipped: list[str] = []
    for ticker in desired:
        if find_position(wallet, ticker) is not None:
            continue

        instrument = registry.get(ticker)
        if instrument is None:
            log.debug("instrument_not_in_registry", ticker=ticker)
            skipped.append(ticker)
            continue

        price = get_last_price(instrument.figi)
        if price is None or not math.isfinite(price) or price <= 0:
            log.debug("no_last_price", ticker=ticker, figi=instrument.figi)
            skipped.append(ticker)
            continue

        wallet.append(
            Position(
                ticker=ticker,
                quote=instrument.currency,
                figi=instrument.figi,
                quantity=0,
                lot_size=instrument.lot,
                price=price,
            )
        )
        log.debug("position_added", ticker=ticker, price=price, lot=instrument.lot)
    return skipped


def resolve_position(position: Position, weight: float, target_value: float) -> bool:
    """Fill target and delta fields on *position*. Returns False if it cannot be sized."""
    lot_price = position.lot_price
    if lot_price is None or not math.isfinite(lot_price) or lot_price <= 0:
        log.debug("no_lot_price", ticker=position.ticker)
        return False
    if not math.isfinite(target_value):
        log.debug("non_finite_target", ticker=position.ticker, target_value=target_value)
        return False

    target_lots = max(0, math.floor(target_value / lot_price))
    target_lots_value = target_lots * lot_price

    position.target_value = target_value
    position.target_lots = target_lots
    position.target_lots_value = target_lots_value
    position.unallocated = abs(target_value - target_lots_value)
    position.value_delta = target_lots_value - position.value
    position.lots_delta = target_lots - position.current_lots

    # A desired instrument is never left below one lot
    if weight > 0 and position.current_lots < 1 and position.lots_delta < 1:
        log.debug("minimum_lot_forced", ticker=position.ticker)
        position.lots_delta = 1
        position.value_delta = lot_price - position.value
    return True


def resolve_targets(
    wallet: Sequence[Position],
    desired: Mapping[str, float],
    sizes: Mapping[str, TargetSize],
) -> float:
    """Resolve every desired instrument present in *wallet*.

    Returns the total value left unallocated by lot truncation.
    """
    unallocated = 0.0
    for ticker, weight in desired.items():
        position = find_position(wallet, ticker)
        if position is None:
            log.debug("target_skipped_not_in_wallet", ticker=ticker)
            continue
        size = sizes.get(ticker)
        if size is None:
            continue
        if resolve_position(position, weight, size.total_size):
            unallocated += position.unallocated or 0.0
    return unallocated
