"""JSON file snapshot store — one file per account per day."""

from __future__ import annotations

import datetime as dt
import json
from pathlib import Path

import structlog

from rebalancer_core.models.snapshot import DriftSnapshot

log = structlog.get_logger("snapshot_store")


class JsonSnapshotStore:
    """Stores ``<account>_<YYYY-MM-DD>.json`` files under *directory*."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, account_id: str, day: dt.date) -> Path:
        return self.directory / f"{account_id}_{day.isoformat()}.json"

    def load(self, account_id: str, day: dt.date) -> DriftSnapshot | None:
        path = self.path_for(account_id, day)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            data.setdefault("account_id", account_id)
            return DriftSnapshot.model_validate(data)
        except (OSError, ValueError) as exc:
            log.warning("snapshot_unreadable", path=str(path), error=str(exc))
            return None

    def save(self, snapshot: DriftSnapshot) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(snapshot.account_id, snapshot.date)
        path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        log.debug("snapshot_saved", path=str(path), names=sorted(snapshot.snapshots))
