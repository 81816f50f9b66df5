"""Database-backed snapshot store."""

from __future__ import annotations

import datetime as dt

import structlog
from sqlalchemy.orm import Session

from rebalancer_core.db.tables.snapshots import DriftSnapshotRow
from rebalancer_core.models.snapshot import DriftSnapshot

log = structlog.get_logger("snapshot_store")


class SqlSnapshotStore:
    """Reads and upserts rows of rebalancer_state.drift_snapshots."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, account_id: str, day: dt.date) -> DriftSnapshot | None:
        rows = (
            self.session.query(DriftSnapshotRow)
            .filter(DriftSnapshotRow.account_id == account_id, DriftSnapshotRow.day == day)
            .order_by(DriftSnapshotRow.id)
            .all()
        )
        if not rows:
            return None
        return DriftSnapshot(
            account_id=account_id,
            date=day,
            snapshots={r.name: dict(r.weights) for r in rows},
        )

    def save(self, snapshot: DriftSnapshot) -> None:
        existing = {
            r.name: r
            for r in self.session.query(DriftSnapshotRow).filter(
                DriftSnapshotRow.account_id == snapshot.account_id,
                DriftSnapshotRow.day == snapshot.date,
            )
        }
        now = dt.datetime.now(dt.timezone.utc)
        for name, weights in snapshot.snapshots.items():
            row = existing.get(name)
            if row is None:
                self.session.add(DriftSnapshotRow(
                    account_id=snapshot.account_id,
                    day=snapshot.date,
                    name=name,
                    weights=dict(weights),
                    created_at=now,
                ))
            elif row.weights != weights:
                row.weights = dict(weights)
        self.session.commit()
        log.debug(
            "snapshot_saved",
            account_id=snapshot.account_id,
            day=snapshot.date.isoformat(),
            names=sorted(snapshot.snapshots),
        )
