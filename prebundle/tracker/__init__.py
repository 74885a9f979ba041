"""
Tracker Module - Detects changes in the depended-on package set.

The tracker:
1. Accumulates specifiers observed during a compile pass
2. Fingerprints them with the version resolver
3. Diffs against the persisted snapshot
4. Persists the new snapshot after a successful build

The snapshot file is the only durable state.
"""

from .snapshot import Snapshot, SnapshotDiff, SnapshotStore, SnapshotDocument
from .tracker import DependencyTracker, FinalizeResult

__all__ = [
    "Snapshot",
    "SnapshotDiff",
    "SnapshotStore",
    "SnapshotDocument",
    "DependencyTracker",
    "FinalizeResult",
]
