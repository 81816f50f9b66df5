"""Margin sizing — which holdings are leveraged and whether to unwind them.

Pure functions over a wallet plus the account's MarginConfig. Time-based
deferral is opt-in through a MarketSchedule; without one the configured
strategy applies on every pass.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Literal
from zoneinfo import ZoneInfo

import structlog

from rebalancer_core.config.schema import MarginConfig, ScheduleConfig
from rebalancer_core.models.position import MarginPosition, Position

log = structlog.get_logger("margin")

TRANSFER_FEE_RATE = 0.01
LAST_PASS_WINDOW_MINUTES = 15


def _parse_hhmm(value: str) -> time:
    hours, _, minutes = value.partition(":")
    return time(int(hours), int(minutes))


@dataclass(frozen=True)
class MarketSchedule:
    """Clock, session close and rebalance cadence for one account."""

    now: datetime
    market_close: time
    balance_interval: timedelta
    market_open: time = time(0, 0)

    @classmethod
    def from_config(
        cls,
        config: ScheduleConfig,
        balance_interval_s: int,
        now: datetime | None = None,
    ) -> "MarketSchedule":
        tz = ZoneInfo(config.timezone)
        if now is None:
            now = datetime.now(tz)
        elif now.tzinfo is not None:
            now = now.astimezone(tz)
        return cls(
            now=now,
            market_close=_parse_hhmm(config.market_close_time),
            balance_interval=timedelta(seconds=balance_interval_s),
            market_open=_parse_hhmm(config.market_open_time),
        )

    def minutes_to_close(self) -> float:
        close = self.now.replace(
            hour=self.market_close.hour,
            minute=self.market_close.minute,
            second=0,
            microsecond=0,
        )
        return (close - self.now).total_seconds() / 60

    def is_last_pass(self) -> bool:
        """True when no further pass fits before the close (or it already closed)."""
        remaining = self.minutes_to_close()
        if remaining <= 0:
            return True
        interval_minutes = self.balance_interval.total_seconds() / 60
        return remaining < interval_minutes or remaining < LAST_PASS_WINDOW_MINUTES

    def is_market_open(self) -> bool:
        current = self.now.time().replace(tzinfo=None)
        return self.market_open <= current < self.market_close


@dataclass(frozen=True)
class TargetSize:
    base_size: float
    margin_size: float
    total_size: float


@dataclass
class TransferCost:
    total_cost: float = 0.0
    free_transfers: int = 0
    paid_transfers: int = 0
    breakdown: dict[str, float] = field(default_factory=dict)


@dataclass
class MarginLimits:
    is_valid: bool
    total_margin_used: float
    max_margin_allowed: float
    exceeded_amount: float | None = None


@dataclass
class MarginUsage:
    is_valid: bool
    available_margin: float
    used_margin: float
    remaining_margin: float
    risk_level: Literal["low", "medium", "high"]


@dataclass
class MarginStrategyDecision:
    should_remove_margin: bool
    reason: str
    transfer_cost: float = 0.0
    margin_positions: list[MarginPosition] = field(default_factory=list)
    minutes_to_close: float | None = None
    is_last_pass: bool | None = None


def total_portfolio_value(wallet: Sequence[Position]) -> float:
    return sum(p.value for p in wallet)


class MarginCalculator:
    """Margin arithmetic for one account's MarginConfig."""

    def __init__(self, config: MarginConfig) -> None:
        self.config = config

    def margin_portion(self, total_value: float) -> float:
        return total_value - total_value / self.config.multiplier

    def available_margin(self, wallet: Sequence[Position]) -> float:
        return total_portfolio_value(wallet) * (self.config.multiplier - 1)

    def validate_limits(self, margin_positions: Sequence[MarginPosition]) -> MarginLimits:
        used = sum(p.margin_value for p in margin_positions)
        allowed = self.config.max_margin_size
        if used <= allowed:
            return MarginLimits(True, used, allowed)
        return MarginLimits(False, used, allowed, exceeded_amount=used - allowed)

    def check_usage(
        self,
        wallet: Sequence[Position],
        margin_positions: Sequence[MarginPosition],
    ) -> MarginUsage:
        available = self.available_margin(wallet)
        used = sum(p.margin_value for p in margin_positions)
        ratio = used / available if available > 0 else (0.0 if used == 0 else math.inf)
        if ratio > 0.8:
            risk = "high"
        elif ratio > 0.6:
            risk = "medium"
        else:
            risk = "low"
        return MarginUsage(
            is_valid=available - used >= 0,
            available_margin=available,
            used_margin=used,
            remaining_margin=available - used,
            risk_level=risk,
        )

    def transfer_cost(self, margin_positions: Sequence[MarginPosition]) -> TransferCost:
        """Positions at or under the free threshold move for free, others pay the fee on their value."""
        cost = TransferCost()
        for position in margin_positions:
            if position.value <= self.config.free_threshold:
                cost.free_transfers += 1
                cost.breakdown[position.ticker] = 0.0
                continue
            fee = position.value * TRANSFER_FEE_RATE
            cost.paid_transfers += 1
            cost.total_cost += fee
            cost.breakdown[position.ticker] = fee
        return cost

    def optimal_sizes(
        self,
        wallet: Sequence[Position],
        desired: Mapping[str, float],
        leverage: bool = True,
    ) -> dict[str, TargetSize]:
        """Split each weight-proportional target into its cash and margin parts."""
        portfolio_value = total_portfolio_value(wallet)
        multiplier = self.config.multiplier if leverage else 1.0
        sizes: dict[str, TargetSize] = {}
        for ticker, weight in desired.items():
            base = portfolio_value * weight / 100
            total = portfolio_value * multiplier * weight / 100
            sizes[ticker] = TargetSize(
                base_size=base,
                margin_size=max(0.0, total - base),
                total_size=total,
            )
        return sizes


def identify_margin_positions(
    wallet: Sequence[Position],
    config: MarginConfig,
) -> list[MarginPosition]:
    """Return the leveraged holdings; always empty when margin trading is off."""
    if not config.enabled:
        return []

    calculator = MarginCalculator(config)
    found: list[MarginPosition] = []
    for position in wallet:
        if position.is_currency:
            continue
        total = position.total_value
        if total is None or not math.isfinite(total) or total <= 0:
            continue
        margin_value = calculator.margin_portion(total)
        if margin_value <= 0:
            continue
        found.append(
            MarginPosition(
                **position.model_dump(include=set(Position.model_fields)),
                is_margin=True,
                margin_value=margin_value,
                leverage=total / (total - margin_value),
                margin_call=0 < config.max_margin_size < margin_value,
            )
        )
    return found


def apply_margin_strategy(
    wallet: Sequence[Position],
    config: MarginConfig,
    schedule: MarketSchedule | None = None,
) -> MarginStrategyDecision:
    """Decide whether margin should be unwound on this pass."""
    if not config.enabled:
        return MarginStrategyDecision(False, "Margin trading disabled")

    margin_positions = identify_margin_positions(wallet, config)
    if not margin_positions:
        return MarginStrategyDecision(False, "No margin positions")

    minutes_to_close: float | None = None
    last_pass: bool | None = None
    if schedule is not None:
        minutes_to_close = schedule.minutes_to_close()
        last_pass = schedule.is_last_pass()
        if not last_pass:
            return MarginStrategyDecision(
                False,
                "Not time to apply margin strategy yet",
                margin_positions=margin_positions,
                minutes_to_close=minutes_to_close,
                is_last_pass=False,
            )

    calculator = MarginCalculator(config)
    strategy = config.balancing_strategy

    if strategy == "remove":
        decision = MarginStrategyDecision(
            True,
            "Strategy: remove margin",
            transfer_cost=calculator.transfer_cost(margin_positions).total_cost,
        )
    elif strategy == "keep":
        decision = MarginStrategyDecision(False, "Strategy: keep margin")
    else:
        aggregate = sum(p.value for p in margin_positions)
        limit = config.max_margin_size
        if aggregate > limit:
            decision = MarginStrategyDecision(
                True,
                f"Strategy: remove margin (sum {aggregate:.2f} > max {limit:.2f})",
                transfer_cost=calculator.transfer_cost(margin_positions).total_cost,
            )
        else:
            decision = MarginStrategyDecision(
                False,
                f"Strategy: keep margin (sum {aggregate:.2f} <= max {limit:.2f})",
            )

    decision.margin_positions = margin_positions
    decision.minutes_to_close = minutes_to_close
    decision.is_last_pass = last_pass
    log.info(
        "margin_strategy_decided",
        strategy=strategy,
        remove=decision.should_remove_margin,
        transfer_cost=round(decision.transfer_cost, 2),
        positions=len(margin_positions),
    )
    return decision


def calculate_optimal_sizes(
    wallet: Sequence[Position],
    desired: Mapping[str, float],
    config: MarginConfig,
    remove_margin: bool = False,
) -> dict[str, TargetSize]:
    """Target value per instrument; cash-only when margin is off or being unwound."""
    leverage = config.enabled and not remove_margin
    return MarginCalculator(config).optimal_sizes(wallet, desired, leverage=leverage)
