"""
Version Resolver - Fingerprints a specifier by its installed version.

Resolution:
1. Absolute paths skip aliasing.
2. Alias entries redirect either to an absolute path (the sub-path
   remainder is kept) or to another specifier (resolution restarts).
3. Bare specifiers are split into package root + sub-path and looked
   up in <dir>/node_modules/<root>, ascending from cwd until found.
4. Absolute paths find their nearest ancestor manifest that declares
   a version, walking upward.

The result is deterministic for a given specifier, alias table and
installed tree.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
import json
import logging

from ..errors import ConfigError, UnresolvedDependency
from .specifier import (
    is_absolute,
    is_relative,
    join_subpath,
    match_alias,
    split_specifier,
)

logger = logging.getLogger(__name__)

INSTALL_DIR = "node_modules"
MANIFEST_NAME = "package.json"
MAX_ALIAS_DEPTH = 10


@dataclass(frozen=True)
class DependencyRecord:
    """
    A resolved dependency.

    version comes from the nearest package manifest; file is the
    resolved entry location (it need not exist for deep imports).
    """
    specifier: str
    version: str
    file: str

    def to_dict(self) -> dict[str, str]:
        return {"version": self.version, "file": self.file}


@dataclass
class VersionResolver:
    """
    Resolves specifiers to DependencyRecords.

    Usage:
        resolver = VersionResolver(cwd="/work/app", alias_table={"react": "preact/compat"})
        record = resolver.resolve("react/jsx-runtime")
        record.version   # "10.19.3"
    """
    cwd: Path
    alias_table: Mapping[str, str]
    install_dir: str = INSTALL_DIR
    manifest_name: str = MANIFEST_NAME
    max_alias_depth: int = MAX_ALIAS_DEPTH

    def __init__(
        self,
        cwd: str | Path,
        alias_table: Mapping[str, str] | None = None,
        install_dir: str = INSTALL_DIR,
        manifest_name: str = MANIFEST_NAME,
        max_alias_depth: int = MAX_ALIAS_DEPTH,
    ):
        self.cwd = Path(cwd)
        self.alias_table = dict(alias_table or {})
        self.install_dir = install_dir
        self.manifest_name = manifest_name
        self.max_alias_depth = max_alias_depth

    def resolve(self, specifier: str) -> DependencyRecord:
        """
        Resolve a specifier to its DependencyRecord.

        Raises:
            UnresolvedDependency: no versioned manifest could be found
            ConfigError: the alias chain does not terminate
        """
        version, file = self._resolve(specifier, specifier, depth=0)
        logger.debug("resolved %s -> %s (%s)", specifier, version, file)
        return DependencyRecord(specifier=specifier, version=version, file=file)

    def _resolve(self, original: str, specifier: str, depth: int) -> tuple[str, str]:
        if depth > self.max_alias_depth:
            raise ConfigError(
                f"Alias chain for '{original}' exceeds {self.max_alias_depth} hops, "
                f"check the alias table for a cycle"
            )

        if is_absolute(specifier):
            return self._resolve_absolute(original, Path(specifier))

        aliased = match_alias(specifier, self.alias_table)
        if aliased is not None:
            target, remainder = aliased
            if is_absolute(target):
                path = Path(target) / remainder if remainder else Path(target)
                return self._resolve_absolute(original, path)
            return self._resolve(original, join_subpath(target, remainder), depth + 1)

        if is_relative(specifier):
            raise UnresolvedDependency(original, "relative imports are not dependencies")

        return self._resolve_installed(original, specifier)

    def _resolve_installed(self, original: str, specifier: str) -> tuple[str, str]:
        """Probe <dir>/node_modules/<package> from cwd upward."""
        package = split_specifier(specifier)
        for directory in _ancestors(self.cwd):
            package_dir = directory / self.install_dir / package.name
            manifest = package_dir / self.manifest_name
            if not manifest.is_file():
                continue
            version = self._read_version(manifest)
            if version is None:
                raise UnresolvedDependency(original, f"{manifest} declares no version")
            file = package_dir / package.subpath if package.subpath else package_dir
            return version, str(file)

        raise UnresolvedDependency(
            original, f"package '{package.name}' is not installed above {self.cwd}"
        )

    def _resolve_absolute(self, original: str, path: Path) -> tuple[str, str]:
        """Walk upward from an absolute path to the nearest versioned manifest."""
        for directory in _ancestors(path):
            manifest = directory / self.manifest_name
            if not manifest.is_file():
                continue
            version = self._read_version(manifest)
            if version is not None:
                return version, str(path)
            # Nested manifests such as {"type": "module"} carry no version
            logger.debug("skipping unversioned manifest %s", manifest)

        raise UnresolvedDependency(original, f"no package manifest above {path}")

    def _read_version(self, manifest: Path) -> str | None:
        try:
            with open(manifest, "r", encoding="utf-8") as f:
                data: Any = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.debug("unreadable manifest %s: %s", manifest, e)
            return None
        if isinstance(data, dict) and isinstance(data.get("version"), str):
            return data["version"]
        return None


def resolve(
    specifier: str,
    cwd: str | Path,
    alias_table: Mapping[str, str] | None = None,
) -> DependencyRecord:
    """Resolve one specifier with the default install layout."""
    return VersionResolver(cwd, alias_table).resolve(specifier)


def _ancestors(path: Path):
    """Yield path and each parent up to the file-system root."""
    current = path
    while True:
        yield current
        parent = current.parent
        if parent == current:
            return
        current = parent
