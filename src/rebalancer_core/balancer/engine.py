"""Balancer — one rebalancing pass for one account.

normalize → drift → reconcile → margin → targets → profit gate →
priority funding → sequence → submit → report.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping, Sequence

import structlog

from rebalancer_core.balancer.drift import DriftDampener
from rebalancer_core.balancer.funding import reallocate_for_priority_buys
from rebalancer_core.balancer.margin import (
    MarginCalculator,
    MarketSchedule,
    apply_margin_strategy,
    calculate_optimal_sizes,
    total_portfolio_value,
)
from rebalancer_core.balancer.normalize import normalize_weights
from rebalancer_core.balancer.profit import apply_profit_gate, iteration_profit_summary
from rebalancer_core.balancer.sequencing import (
    current_percents,
    sequence_orders,
    share_changes,
    simulate_final_percents,
)
from rebalancer_core.balancer.targets import (
    add_missing_positions,
    reconcile_desired,
    resolve_targets,
)
from rebalancer_core.config.schema import AccountPolicy
from rebalancer_core.gateway import MarketGateway
from rebalancer_core.instruments.aliases import canonical_key, canonicalize_weights
from rebalancer_core.instruments.registry import InstrumentRegistry
from rebalancer_core.models.position import Position, Wallet
from rebalancer_core.models.result import EnhancedBalancerResult, MarginInfo, PositionMetric

log = structlog.get_logger("balancer")


def ingest_wallet(wallet: Iterable[Position]) -> Wallet:
    """Copy positions with canonical tickers and upper-case quotes."""
    return [
        p.model_copy(update={"ticker": canonical_key(p.ticker), "quote": p.quote.upper()})
        for p in wallet
    ]


class Balancer:
    """Runs rebalancing passes for a single AccountPolicy."""

    def __init__(
        self,
        policy: AccountPolicy,
        registry: InstrumentRegistry,
        gateway: MarketGateway,
        dampener: DriftDampener | None = None,
        schedule: MarketSchedule | None = None,
    ) -> None:
        self.policy = policy
        self.registry = registry
        self.gateway = gateway
        self.dampener = dampener
        self.schedule = schedule

    # ── Weights ───────────────────────────────────────────────

    def prepare_desired(
        self,
        desired: Mapping[str, float],
        today: dt.date | None = None,
    ) -> dict[str, float]:
        """Canonical keys, normalized to 100, then drift-dampened if configured."""
        weights = normalize_weights(canonicalize_weights(desired))
        if self.dampener is not None and self.policy.diff.mode != "off":
            weights = self.dampener.apply(self.policy.id, weights, self.policy.diff, today=today)
        return weights

    # ── Pass ──────────────────────────────────────────────────

    def run(
        self,
        wallet: Iterable[Position],
        desired: Mapping[str, float] | None = None,
        *,
        mode_used: str | None = None,
        position_metrics: Sequence[PositionMetric] = (),
        dry_run: bool = False,
        today: dt.date | None = None,
    ) -> EnhancedBalancerResult:
        """Compute deltas for *wallet*, submit the plan unless *dry_run*, and report."""
        policy = self.policy
        positions = ingest_wallet(wallet)
        weights = self.prepare_desired(
            policy.desired_wallet if desired is None else desired,
            today=today,
        )
        shares_before = current_percents(positions)

        skipped = add_missing_positions(positions, weights, self.registry, self.gateway.get_last_price)
        if skipped:
            log.info("instruments_skipped", tickers=skipped)
        reconciled = reconcile_desired(positions, weights)

        # Thresholds below are measured against the pre-pass value
        portfolio_value = total_portfolio_value(positions)

        decision = apply_margin_strategy(positions, policy.margin_trading, self.schedule)
        sizes = calculate_optimal_sizes(
            positions,
            reconciled,
            policy.margin_trading,
            remove_margin=decision.should_remove_margin,
        )
        unallocated = resolve_targets(positions, reconciled, sizes)

        blocked = apply_profit_gate(positions, policy.min_profit_percent_for_close_position)
        funding = reallocate_for_priority_buys(
            positions,
            policy.buy_requires_total_marginal_sell,
            portfolio_value,
        )

        orders = sequence_orders(positions)
        if dry_run:
            log.info("dry_run_orders_not_submitted", orders=len(orders))
        else:
            self.gateway.generate_orders(orders)

        final_percents = simulate_final_percents(positions)

        margin_info: MarginInfo | None = None
        if policy.margin_trading.enabled:
            calculator = MarginCalculator(policy.margin_trading)
            limits = calculator.validate_limits(decision.margin_positions)
            usage = calculator.check_usage(positions, decision.margin_positions)
            margin_info = MarginInfo(
                total_margin_used=limits.total_margin_used,
                within_limits=limits.is_valid,
                margin_positions=decision.margin_positions,
            )
            log.info(
                "margin_usage",
                used=round(usage.used_margin, 2),
                available=round(usage.available_margin, 2),
                risk=usage.risk_level,
                exceeded=limits.exceeded_amount,
            )

        summary = iteration_profit_summary(positions)
        log.info(
            "profit_summary",
            total_profit=round(summary.total_profit, 2),
            total_profit_percent=round(summary.total_profit_percent, 2),
            profit_positions=summary.profit_positions,
            loss_positions=summary.loss_positions,
        )
        log.info(
            "pass_complete",
            portfolio_value=round(portfolio_value, 2),
            orders=len(orders),
            unallocated=round(unallocated, 2),
            margin_reason=decision.reason,
            blocked=sorted(blocked),
            funding=funding.reason,
            shares={
                t: [round(b, 2), round(a, 2)]
                for t, (b, a) in share_changes(shares_before, final_percents).items()
            },
        )

        return EnhancedBalancerResult(
            final_percents=final_percents,
            mode_used=mode_used or policy.desired_mode,
            position_metrics=list(position_metrics),
            total_portfolio_value=portfolio_value,
            margin_info=margin_info,
            orders_planned=orders,
            funding=funding,
            blocked_sells=blocked,
        )
