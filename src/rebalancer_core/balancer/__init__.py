"""Rebalancing computation: weights in, whole-lot orders out."""

from rebalancer_core.balancer.drift import DriftDampener, dampen_weight, dampen_weights
from rebalancer_core.balancer.engine import Balancer, ingest_wallet
from rebalancer_core.balancer.funding import reallocate_for_priority_buys
from rebalancer_core.balancer.margin import (
    MarginCalculator,
    MarketSchedule,
    apply_margin_strategy,
    calculate_optimal_sizes,
    identify_margin_positions,
)
from rebalancer_core.balancer.normalize import normalize_weights
from rebalancer_core.balancer.profit import apply_profit_gate, check_sell_allowed
from rebalancer_core.balancer.sequencing import sequence_orders, simulate_final_percents
from rebalancer_core.balancer.targets import resolve_targets

__all__ = [
    "Balancer",
    "DriftDampener",
    "MarginCalculator",
    "MarketSchedule",
    "apply_margin_strategy",
    "apply_profit_gate",
    "calculate_optimal_sizes",
    "check_sell_allowed",
    "dampen_weight",
    "dampen_weights",
    "identify_margin_positions",
    "ingest_wallet",
    "normalize_weights",
    "reallocate_for_priority_buys",
    "resolve_targets",
    "sequence_orders",
    "simulate_final_percents",
]
