"""Profit calculations and the sell-side profit gate."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from rebalancer_core.models.position import Position

log = structlog.get_logger("profit")


@dataclass
class ProfitGateVerdict:
    """Whether a sell may go ahead, with the reason when it may not."""

    allowed: bool
    reason: str = ""
    profit_percent: float | None = None


@dataclass
class ProfitLossRecord:
    ticker: str
    current_value: float
    original_cost: float
    profit_amount: float
    profit_percent: float


@dataclass
class IterationProfitSummary:
    total_profit: float = 0.0
    total_profit_percent: float = 0.0
    profit_positions: int = 0
    loss_positions: int = 0
    records: list[ProfitLossRecord] = field(default_factory=list)


def profit_percent(position: Position) -> float | None:
    """Unrealised profit of *position* in percent of its acquisition price.

    (price - acquisition) / acquisition * 100, using the FIFO average when
    available. None when price or acquisition price is unknown.
    """
    acquisition = position.acquisition_price
    if acquisition is None or acquisition <= 0 or position.price is None:
        return None
    return (position.price - acquisition) / acquisition * 100


def check_sell_allowed(position: Position, threshold: float | None) -> ProfitGateVerdict:
    """A sell passes when no threshold is set or profit reaches it.

    Reaching the threshold exactly is enough. Missing acquisition data fails
    closed whenever a threshold is configured.
    """
    if threshold is None:
        return ProfitGateVerdict(allowed=True)
    pct = profit_percent(position)
    if pct is None:
        return ProfitGateVerdict(allowed=False, reason="no_acquisition_price")
    if pct < threshold:
        return ProfitGateVerdict(
            allowed=False,
            reason=f"profit {pct:.2f}% below threshold {threshold:.2f}%",
            profit_percent=pct,
        )
    return ProfitGateVerdict(allowed=True, profit_percent=pct)


def apply_profit_gate(wallet: Sequence[Position], threshold: float | None) -> dict[str, str]:
    """Zero out sells that fail the gate. Returns ticker → reason for each blocked sell."""
    blocked: dict[str, str] = {}
    if threshold is None:
        return blocked
    for position in wallet:
        if position.is_currency or position.lots_delta >= 0:
            continue
        verdict = check_sell_allowed(position, threshold)
        if verdict.allowed:
            continue
        log.info(
            "sell_blocked_by_profit_gate",
            ticker=position.ticker,
            lots=position.lots_delta,
            reason=verdict.reason,
        )
        position.lots_delta = 0
        position.value_delta = 0.0
        blocked[position.ticker] = verdict.reason
    return blocked


def position_profit_loss(position: Position) -> ProfitLossRecord | None:
    if position.is_currency or position.quantity <= 0 or position.value <= 0:
        return None
    acquisition = position.acquisition_price
    if acquisition is None:
        return None
    original_cost = acquisition * position.quantity
    profit = position.value - original_cost
    return ProfitLossRecord(
        ticker=position.ticker,
        current_value=position.value,
        original_cost=original_cost,
        profit_amount=profit,
        profit_percent=profit / original_cost * 100 if original_cost > 0 else 0.0,
    )


def iteration_profit_summary(wallet: Sequence[Position]) -> IterationProfitSummary:
    summary = IterationProfitSummary()
    total_cost = 0.0
    for position in wallet:
        record = position_profit_loss(position)
        if record is None:
            continue
        summary.records.append(record)
        summary.total_profit += record.profit_amount
        total_cost += record.original_cost
        if record.profit_amount > 0:
            summary.profit_positions += 1
        elif record.profit_amount < 0:
            summary.loss_positions += 1
    if total_cost > 0:
        summary.total_profit_percent = summary.total_profit / total_cost * 100
    return summary
