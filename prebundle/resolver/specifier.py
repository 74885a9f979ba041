"""
Specifier parsing and alias matching.

A specifier names an imported module:
    lodash               package root
    lodash/fp/array      package root + sub-path
    @babel/core          scoped package root (one unit)
    @babel/core/src/x    scoped package root + sub-path
    /abs/path/to/file    absolute path, never aliased
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping
import posixpath


@dataclass(frozen=True)
class PackageSpecifier:
    """A specifier split into its package root name and sub-path."""
    name: str
    subpath: str = ""


def is_absolute(specifier: str) -> bool:
    """Absolute file-system paths (POSIX or Windows drive)."""
    if specifier.startswith("/"):
        return True
    return len(specifier) > 2 and specifier[1] == ":" and specifier[2] in "\\/"


def is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def split_specifier(specifier: str) -> PackageSpecifier:
    """
    Split a bare specifier into package root and remainder.

    Scoped packages keep "@scope/name" together regardless of
    how deep the sub-path goes.
    """
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return PackageSpecifier(name="/".join(parts[:2]), subpath="/".join(parts[2:]))
    return PackageSpecifier(name=parts[0], subpath="/".join(parts[1:]))


def match_alias(specifier: str, alias_table: Mapping[str, str]) -> tuple[str, str] | None:
    """
    Find the alias entry for a specifier.

    A key matches the whole specifier, or a prefix of it followed by "/".
    The longest matching key wins.

    Returns (target, remainder) or None.
    """
    if specifier in alias_table:
        return alias_table[specifier], ""

    best: str | None = None
    for key in alias_table:
        if specifier.startswith(key + "/") and (best is None or len(key) > len(best)):
            best = key
    if best is None:
        return None
    return alias_table[best], specifier[len(best) + 1:]


def join_subpath(target: str, remainder: str) -> str:
    """Append a sub-path remainder to an alias target."""
    if not remainder:
        return target
    return posixpath.join(target.rstrip("/"), remainder)
