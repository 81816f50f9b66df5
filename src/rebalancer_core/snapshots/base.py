"""Snapshot store interface."""

from __future__ import annotations

import datetime as dt
from typing import Protocol

from rebalancer_core.models.snapshot import DriftSnapshot


class SnapshotStore(Protocol):
    """Per-account, per-day storage of named weight maps."""

    def load(self, account_id: str, day: dt.date) -> DriftSnapshot | None: ...

    def save(self, snapshot: DriftSnapshot) -> None: ...
