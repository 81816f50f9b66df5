"""Weight normalization — pure functions, no I/O."""

from __future__ import annotations

import math
from collections.abc import Mapping

import structlog

log = structlog.get_logger("normalize")


def sum_weights(weights: Mapping[str, float]) -> float:
    """Sum of the numeric weights, ignoring NaN entries."""
    return sum(float(v) for v in weights.values() if not math.isnan(float(v)))


def normalize_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """Rescale *weights* so they sum to 100, preserving proportions.

    A zero or non-finite sum leaves the map unchanged instead of dividing by
    zero. NaN entries stay NaN. Negative weights go through the same ratio;
    rejecting them is the config layer's job.
    """
    total = sum_weights(weights)
    if total == 0 or not math.isfinite(total):
        log.debug("normalize_passthrough", total=total, tickers=sorted(weights))
        return dict(weights)
    return {k: float(v) / total * 100 for k, v in weights.items()}
