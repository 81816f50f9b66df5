"""Drift snapshot model — named weight maps for one account and day."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

DAY_START_KEY = "00:00"
ITERATION_PREFIX = "iteration_"


def _iteration_number(name: str) -> int | None:
    if not name.startswith(ITERATION_PREFIX):
        return None
    suffix = name[len(ITERATION_PREFIX):]
    return int(suffix) if suffix.isdigit() else None


class DriftSnapshot(BaseModel):
    account_id: str
    date: dt.date
    snapshots: dict[str, dict[str, float]] = Field(default_factory=dict)

    def latest_iteration(self) -> dict[str, float] | None:
        numbered = [
            (n, name) for name in self.snapshots
            if (n := _iteration_number(name)) is not None
        ]
        if not numbered:
            return None
        _, name = max(numbered)
        return self.snapshots[name]

    def next_iteration_key(self) -> str:
        numbers = [n for name in self.snapshots if (n := _iteration_number(name)) is not None]
        return f"{ITERATION_PREFIX}{max(numbers, default=0) + 1}"

    def day_start(self) -> dict[str, float] | None:
        return self.snapshots.get(DAY_START_KEY)
