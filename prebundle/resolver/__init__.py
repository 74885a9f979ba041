"""
Resolver Module - Maps module specifiers to installed package versions.

The resolver is alias-aware and mirrors nested/hoisted install trees:
a package is looked up in the nearest node_modules directory,
ascending from the project root.
"""

from .specifier import PackageSpecifier, split_specifier, match_alias
from .version import DependencyRecord, VersionResolver, resolve

__all__ = [
    "PackageSpecifier",
    "split_specifier",
    "match_alias",
    "DependencyRecord",
    "VersionResolver",
    "resolve",
]
