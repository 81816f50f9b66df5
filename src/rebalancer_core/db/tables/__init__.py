"""Import all table modules so Base.metadata knows about them."""

from rebalancer_core.db.tables.snapshots import DriftSnapshotRow

__all__ = ["DriftSnapshotRow"]
