"""
Dependency Tracker - Decides when the shared dependency artifact is stale.

One compile pass:
1. start_pass() clears the pending set
2. observe(specifier) for every matched import
3. finalize() resolves each pending specifier and diffs the result
   against the persisted snapshot

should_build is True when a dependency was added or removed, or when
any shared dependency resolves to a different version. Identical
sets short-circuit without a build.

The persisted snapshot only advances through write_cache(), which the
host calls after a build succeeds.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import threading

from ..errors import CacheIOError
from ..resolver import DependencyRecord, VersionResolver
from .snapshot import Snapshot, SnapshotDiff, SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of one compile pass."""
    deps: tuple[DependencyRecord, ...]
    should_build: bool
    diff: SnapshotDiff = field(default_factory=SnapshotDiff)


class DependencyTracker:
    """
    Owns the persisted Snapshot and the per-pass Pending Set.

    Usage:
        tracker = DependencyTracker(resolver, store)
        tracker.load_cache()

        tracker.start_pass()
        tracker.observe("react")
        tracker.observe("lodash/fp")
        result = tracker.finalize()
        if result.should_build:
            ...build, then on success:
            tracker.write_cache(result.deps)
    """

    def __init__(self, resolver: VersionResolver, store: SnapshotStore):
        self.resolver = resolver
        self.store = store
        self._snapshot = Snapshot()
        self._pending: dict[str, None] = {}
        self._finalized: tuple[DependencyRecord, ...] = ()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Snapshot:
        """The last persisted snapshot."""
        with self._lock:
            return self._snapshot

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    @property
    def finalized(self) -> tuple[DependencyRecord, ...]:
        """Dependency list produced by the most recent finalize()."""
        return self._finalized

    # =========================================================================
    # Persistence
    # =========================================================================

    def load_cache(self) -> Snapshot:
        """Load the persisted snapshot; missing or corrupt means empty."""
        snapshot = self.store.load()
        with self._lock:
            self._snapshot = snapshot
        logger.debug("loaded snapshot with %d deps", len(snapshot.deps))
        return snapshot

    def write_cache(self, deps: tuple[DependencyRecord, ...] | list[DependencyRecord] | None = None) -> bool:
        """
        Persist a built dependency set, replacing the snapshot.

        Call only after a successful build. Write failures are logged
        and leave the in-memory snapshot unchanged so the next pass
        retries.
        """
        snapshot = Snapshot.from_records(self._finalized if deps is None else deps)
        try:
            self.store.save(snapshot)
        except CacheIOError as e:
            logger.error("%s", e)
            return False
        with self._lock:
            self._snapshot = snapshot
        logger.debug("wrote snapshot with %d deps", len(snapshot.deps))
        return True

    # =========================================================================
    # Compile pass
    # =========================================================================

    def start_pass(self):
        """Begin a compile pass with an empty pending set."""
        self._pending = {}

    def abort_pass(self):
        """Discard whatever an abandoned pass observed."""
        self._pending = {}

    def observe(self, specifier: str):
        """Record a dependency seen by the transformer."""
        self._pending.setdefault(specifier, None)

    def observe_snapshot(self):
        """Observe every dependency of the persisted snapshot."""
        for specifier in self.snapshot.deps:
            self.observe(specifier)

    def finalize(self) -> FinalizeResult:
        """
        Resolve the pending set and decide whether to rebuild.

        Raises UnresolvedDependency when any pending specifier has no
        versioned manifest; an un-versioned dependency can't be cached.
        """
        records = tuple(self.resolver.resolve(spec) for spec in self._pending)
        diff = self.snapshot.diff(Snapshot.from_records(records))
        self._finalized = records

        should_build = not diff.is_empty()
        logger.debug("finalize: %d deps, should_build=%s (%s)",
                     len(records), should_build, diff.describe())
        return FinalizeResult(deps=records, should_build=should_build, diff=diff)

    def needs_build(self, deps: tuple[DependencyRecord, ...] | list[DependencyRecord]) -> bool:
        """Whether a dependency list differs from the latest persisted snapshot."""
        return not self.snapshot.diff(Snapshot.from_records(deps)).is_empty()
