"""Drift snapshot stores."""

from rebalancer_core.snapshots.base import SnapshotStore
from rebalancer_core.snapshots.json_store import JsonSnapshotStore
from rebalancer_core.snapshots.sql_store import SqlSnapshotStore

__all__ = ["JsonSnapshotStore", "SnapshotStore", "SqlSnapshotStore"]
