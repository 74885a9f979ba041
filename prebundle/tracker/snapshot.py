"""
Snapshot Store - Persists the last successfully built dependency set.

The store:
- Holds one JSON file per mode
- Validates the document with pydantic on load
- Treats a missing, unreadable or corrupt file as an empty snapshot
- Replaces the file atomically (temp file + rename) on save

The snapshot file is the ONLY durable marker of a successful build.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Literal
import logging
import os
import tempfile

from pydantic import BaseModel, Field, ValidationError

from ..errors import CacheIOError
from ..resolver import DependencyRecord

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_VERSION = 1


class DependencyEntry(BaseModel):
    """On-disk form of a DependencyRecord."""
    version: str
    file: str


class SnapshotDocument(BaseModel):
    """On-disk snapshot document."""
    version: Literal[1] = SNAPSHOT_SCHEMA_VERSION
    deps: dict[str, DependencyEntry] = Field(default_factory=dict)


@dataclass(frozen=True)
class SnapshotDiff:
    """Difference between two snapshots, keyed by specifier."""
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    changed: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)

    def describe(self) -> str:
        parts = []
        if self.added:
            parts.append(f"added {', '.join(self.added)}")
        if self.removed:
            parts.append(f"removed {', '.join(self.removed)}")
        if self.changed:
            parts.append(f"changed {', '.join(self.changed)}")
        return "; ".join(parts) or "no changes"


@dataclass
class Snapshot:
    """
    Specifier -> DependencyRecord mapping.

    Snapshots are replaced as a whole, never merged.
    """
    deps: dict[str, DependencyRecord] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[DependencyRecord]) -> Snapshot:
        return cls(deps={record.specifier: record for record in records})

    def records(self) -> list[DependencyRecord]:
        return list(self.deps.values())

    def diff(self, newer: Snapshot) -> SnapshotDiff:
        """What changed going from this snapshot to a newer one."""
        old_keys = set(self.deps)
        new_keys = set(newer.deps)
        changed = [
            spec for spec in old_keys & new_keys
            if self.deps[spec].version != newer.deps[spec].version
        ]
        return SnapshotDiff(
            added=tuple(sorted(new_keys - old_keys)),
            removed=tuple(sorted(old_keys - new_keys)),
            changed=tuple(sorted(changed)),
        )

    def to_document(self) -> SnapshotDocument:
        return SnapshotDocument(
            deps={
                spec: DependencyEntry(version=record.version, file=record.file)
                for spec, record in self.deps.items()
            }
        )

    @classmethod
    def from_document(cls, document: SnapshotDocument) -> Snapshot:
        return cls(
            deps={
                spec: DependencyRecord(specifier=spec, version=entry.version, file=entry.file)
                for spec, entry in document.deps.items()
            }
        )


class SnapshotStore:
    """
    File-backed snapshot persistence.

    Usage:
        store = SnapshotStore(Path(".prebundle-tmp/.cache/prebundle.development.json"))
        snapshot = store.load()
        ...
        store.save(new_snapshot)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Snapshot:
        """
        Load the persisted snapshot.

        Never raises: a missing or corrupt file yields an empty
        snapshot, which forces one rebuild.
        """
        if not self.path.exists():
            logger.debug("no snapshot at %s", self.path)
            return Snapshot()

        try:
            raw = self.path.read_text(encoding="utf-8")
            document = SnapshotDocument.model_validate_json(raw)
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            error = CacheIOError(f"Ignoring unreadable snapshot {self.path}: {e}")
            logger.warning("%s", error)
            return Snapshot()

        return Snapshot.from_document(document)

    def save(self, snapshot: Snapshot):
        """
        Atomically replace the persisted snapshot.

        Raises CacheIOError when the file can't be written; the
        previous file is left in place.
        """
        payload = snapshot.to_document().model_dump_json(indent=2)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheIOError(f"Can't write snapshot {self.path}: {e}") from e
