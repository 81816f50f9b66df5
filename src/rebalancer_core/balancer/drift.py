"""Drift dampening — partial reversion of fresh weights toward a stored reference.

The reference is the latest ``iteration_N`` snapshot of the day (mode
``iteration``) or the ``00:00`` snapshot (mode ``day``). Every dampened pass
appends its pre-dampening weights under the next iteration key.
"""

from __future__ import annotations

import datetime as dt
import math
from collections.abc import Callable, Mapping

import structlog

from rebalancer_core.balancer.normalize import normalize_weights
from rebalancer_core.config.schema import DriftConfig
from rebalancer_core.models.snapshot import DAY_START_KEY, DriftSnapshot
from rebalancer_core.snapshots.base import SnapshotStore

log = structlog.get_logger("drift")

ReferenceBuilder = Callable[[str, dt.date, Mapping[str, float]], "Mapping[str, float] | None"]


def dampen_weight(current: float, reference: float | None, multiplier: float) -> float:
    """current + (current - reference) / reference * 100 * multiplier / 100.

    A missing or zero reference leaves the weight as it is.
    """
    if reference is None or reference == 0 or not math.isfinite(reference):
        return current
    change_pct = (current - reference) / reference * 100
    return current + change_pct * multiplier / 100


def dampen_weights(
    current: Mapping[str, float],
    reference: Mapping[str, float],
    multiplier: float,
) -> dict[str, float]:
    """Dampen every weight against *reference*, then renormalize to 100."""
    adjusted: dict[str, float] = {}
    for ticker, weight in current.items():
        value = dampen_weight(weight, reference.get(ticker), multiplier)
        # A weight pushed below zero means "hold none"
        adjusted[ticker] = max(0.0, value)
    return normalize_weights(adjusted)


class DriftDampener:
    """Applies DriftConfig for one account against a SnapshotStore."""

    def __init__(
        self,
        store: SnapshotStore,
        reference_builder: ReferenceBuilder | None = None,
    ) -> None:
        self.store = store
        self.reference_builder = reference_builder

    def _day_reference(
        self,
        snapshot: DriftSnapshot,
        current: Mapping[str, float],
    ) -> dict[str, float]:
        existing = snapshot.day_start()
        if existing is not None:
            return existing

        built: Mapping[str, float] | None = None
        if self.reference_builder is not None:
            built = self.reference_builder(snapshot.account_id, snapshot.date, current)
        if built:
            reference = normalize_weights({k: float(v) for k, v in built.items()})
            log.info("day_reference_built", account_id=snapshot.account_id, tickers=len(reference))
        else:
            reference = dict(current)
            log.info("day_reference_seeded", account_id=snapshot.account_id)
        snapshot.snapshots[DAY_START_KEY] = reference
        return reference

    def apply(
        self,
        account_id: str,
        desired: Mapping[str, float],
        config: DriftConfig,
        today: dt.date | None = None,
    ) -> dict[str, float]:
        """Return the dampened weight map and record *desired* in the store."""
        current = dict(desired)
        if config.mode == "off":
            return current

        day = today or dt.date.today()
        snapshot = self.store.load(account_id, day)
        if snapshot is None:
            snapshot = DriftSnapshot(account_id=account_id, date=day)

        if config.mode == "iteration":
            reference = snapshot.latest_iteration()
        else:
            reference = self._day_reference(snapshot, current)

        if reference is None:
            log.debug("no_drift_reference", mode=config.mode, day=day.isoformat())
            result = current
        else:
            result = dampen_weights(current, reference, config.multiplier)
            log.info(
                "drift_dampened",
                mode=config.mode,
                multiplier=config.multiplier,
                changes={
                    t: [round(current[t], 4), round(result[t], 4)]
                    for t in current
                    if not math.isclose(current[t], result[t], abs_tol=1e-9)
                },
            )

        key = snapshot.next_iteration_key()
        snapshot.snapshots[key] = current
        self.store.save(snapshot)
        log.debug("drift_snapshot_appended", key=key, day=day.isoformat())
        return result
