"""
Errors - Failure taxonomy for dependency prebuilding.

- ConfigError: invalid user configuration, fatal at startup
- UnresolvedDependency: no manifest found for a specifier, aborts the pass
- BuildFailure: the bundling engine failed, recovered and reported
- CacheIOError: the snapshot file could not be read or written, never fatal
"""

from __future__ import annotations

MESSAGE_PREFIX = "[prebundle]"


class PrebundleError(Exception):
    """Base class for all prebundle errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{MESSAGE_PREFIX} {message}")


class ConfigError(PrebundleError):
    """Raised when the configuration is invalid."""


class UnresolvedDependency(PrebundleError):
    """Raised when no package manifest can be located for a specifier."""

    def __init__(self, specifier: str, reason: str = ""):
        self.specifier = specifier
        detail = f": {reason}" if reason else ""
        super().__init__(f"Can't find a versioned package for '{specifier}'{detail}")


class BuildFailure(PrebundleError):
    """
    Reported when the bundling engine fails.

    Never raised past the orchestrator; carried in BuildResult.error.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class CacheIOError(PrebundleError):
    """The snapshot cache file could not be read or written."""
