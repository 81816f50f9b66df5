"""Priority funding — buys of required instruments are paid for by selling others.

When ``buy_requires_total_marginal_sell`` is enabled, purchases of the
configured instruments must not add leverage. The reallocator raises the
cash by selling other holdings and overrides their lot deltas with the
forced sells. Running short of candidates is not an error: it sells what
it can and reports the shortfall.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import structlog

from rebalancer_core.balancer.profit import profit_percent
from rebalancer_core.config.schema import PriorityFundingConfig, SellingMode
from rebalancer_core.instruments.aliases import canonical_key
from rebalancer_core.models.position import Position
from rebalancer_core.models.result import FundingReport

log = structlog.get_logger("funding")


def _required_keys(config: PriorityFundingConfig) -> set[str]:
    return {canonical_key(t) for t in config.instruments}


def required_purchases(
    wallet: Sequence[Position],
    config: PriorityFundingConfig,
    portfolio_value: float,
) -> dict[str, float]:
    """Buy values on required instruments that reach the noise threshold."""
    threshold = portfolio_value * config.min_buy_rebalance_percent / 100
    required = _required_keys(config)
    purchases: dict[str, float] = {}
    for position in wallet:
        if position.ticker not in required:
            continue
        if position.lots_delta < 1 or position.value_delta <= 0:
            continue
        if position.value_delta >= threshold:
            purchases[position.ticker] = position.value_delta
        else:
            log.debug(
                "required_buy_below_threshold",
                ticker=position.ticker,
                value=round(position.value_delta, 2),
                threshold=round(threshold, 2),
            )
    return purchases


def selling_candidates(
    wallet: Sequence[Position],
    config: PriorityFundingConfig,
    mode: SellingMode,
) -> list[Position]:
    """Holdings that may be sold to fund required purchases, in selling order."""
    required = _required_keys(config)
    eligible = [
        p for p in wallet
        if not p.is_currency and p.ticker not in required and p.quantity > 0 and p.value > 0
    ]
    if mode == "only_positive_positions_sell":
        ranked: list[tuple[float, Position]] = []
        for position in eligible:
            pct = profit_percent(position)
            if pct is not None and pct > 0:
                ranked.append((pct, position))
        ranked.sort(key=lambda item: item[0], reverse=True)
        return [p for _, p in ranked]
    if mode == "equal_in_percents":
        return eligible
    return []


def funds_to_raise(funds_required: float, cash_balance: float) -> float:
    """Cash to raise: the purchases net of free cash, plus any cash deficit."""
    if cash_balance < 0:
        return abs(cash_balance) + funds_required
    return max(0.0, funds_required - cash_balance)


def plan_sells(
    candidates: Sequence[Position],
    amount: float,
    mode: SellingMode,
) -> dict[str, int]:
    """Whole-lot sells per candidate covering *amount* as far as holdings allow."""
    plan: dict[str, int] = {}
    remaining = amount
    if amount <= 0:
        return plan

    if mode == "only_positive_positions_sell":
        for position in candidates:
            if remaining <= 0:
                break
            lot_price = position.lot_price
            if not lot_price or lot_price <= 0:
                continue
            needed = math.ceil(remaining / lot_price)
            available = math.floor(position.value / lot_price)
            lots = min(needed, available)
            if lots > 0:
                plan[position.ticker] = lots
                remaining -= lots * lot_price

    elif mode == "equal_in_percents":
        pool = sum(p.value for p in candidates)
        if pool <= 0:
            return plan
        for position in candidates:
            if remaining <= 0:
                break
            lot_price = position.lot_price
            if not lot_price or lot_price <= 0:
                continue
            share = position.value / pool
            target = min(share * amount, position.value, remaining)
            lots = math.floor(target / lot_price)
            if lots > 0:
                plan[position.ticker] = lots
                remaining -= lots * lot_price

    return plan


def reallocate_for_priority_buys(
    wallet: Sequence[Position],
    config: PriorityFundingConfig,
    portfolio_value: float,
) -> FundingReport:
    """Force sells of other holdings to pay for required purchases."""
    if not config.enabled:
        return FundingReport(applied=False, reason="disabled")

    purchases = required_purchases(wallet, config, portfolio_value)
    if not purchases:
        log.debug("no_significant_buy_orders")
        return FundingReport(applied=False, reason="no significant buy orders")

    funds_required = sum(purchases.values())
    cash = sum(p.value for p in wallet if p.is_currency)
    amount = funds_to_raise(funds_required, cash)
    if amount <= 0:
        log.info("priority_buys_covered_by_cash", required=round(funds_required, 2), cash=round(cash, 2))
        return FundingReport(
            applied=False,
            reason="covered by cash",
            funds_required=funds_required,
        )

    mode = config.selling_mode
    candidates = selling_candidates(wallet, config, mode)
    sells = plan_sells(candidates, amount, mode)

    raised = 0.0
    by_ticker = {p.ticker: p for p in candidates}
    for ticker, lots in sells.items():
        position = by_ticker[ticker]
        value = lots * (position.lot_price or 0.0)
        position.lots_delta = -lots
        position.value_delta = -value
        raised += value

    shortfall = max(0.0, amount - raised)
    if shortfall > 0:
        log.warning(
            "priority_funding_shortfall",
            needed=round(amount, 2),
            raised=round(raised, 2),
            shortfall=round(shortfall, 2),
            candidates=len(candidates),
            mode=mode,
        )
    log.info(
        "priority_funding_applied",
        purchases={k: round(v, 2) for k, v in purchases.items()},
        sells=sells,
        raised=round(raised, 2),
    )
    return FundingReport(
        applied=True,
        reason="funded" if shortfall == 0 else "partially funded",
        funds_required=funds_required,
        funds_to_raise=amount,
        funds_raised=raised,
        shortfall=shortfall,
        sells=sells,
    )
