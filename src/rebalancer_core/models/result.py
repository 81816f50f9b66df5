"""Pass result models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from rebalancer_core.models.order import PlannedOrder
from rebalancer_core.models.position import MarginPosition


class PositionMetric(BaseModel):
    """Per-instrument data behind a non-manual desired wallet, passed through for reporting."""

    ticker: str
    market_cap: float | None = None
    aum: float | None = None
    decorrelation_pct: float | None = None


class MarginInfo(BaseModel):
    total_margin_used: float
    within_limits: bool
    margin_positions: list[MarginPosition] = Field(default_factory=list)


class FundingReport(BaseModel):
    """Outcome of the priority-funding pass."""

    applied: bool
    reason: str
    funds_required: float = 0.0
    funds_to_raise: float = 0.0
    funds_raised: float = 0.0
    shortfall: float = 0.0
    sells: dict[str, int] = Field(default_factory=dict)


class EnhancedBalancerResult(BaseModel):
    final_percents: dict[str, float]
    mode_used: str = "manual"
    position_metrics: list[PositionMetric] = Field(default_factory=list)
    total_portfolio_value: float = 0.0
    margin_info: MarginInfo | None = None
    orders_planned: list[PlannedOrder] = Field(default_factory=list)
    funding: FundingReport | None = None
    blocked_sells: dict[str, str] = Field(default_factory=dict)
