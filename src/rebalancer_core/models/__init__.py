"""Pydantic domain models."""

from rebalancer_core.models.order import PlannedOrder
from rebalancer_core.models.position import MarginPosition, Position, Wallet
from rebalancer_core.models.result import (
    EnhancedBalancerResult,
    FundingReport,
    MarginInfo,
    PositionMetric,
)
from rebalancer_core.models.snapshot import DAY_START_KEY, ITERATION_PREFIX, DriftSnapshot

__all__ = [
    "DAY_START_KEY",
    "DriftSnapshot",
    "EnhancedBalancerResult",
    "FundingReport",
    "ITERATION_PREFIX",
    "MarginInfo",
    "MarginPosition",
    "PlannedOrder",
    "Position",
    "PositionMetric",
    "Wallet",
]
