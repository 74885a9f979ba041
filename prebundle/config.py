"""
Config - Prebundle configuration.

Configuration is a pydantic model so user input is validated once,
at startup. Anything invalid becomes a ConfigError and aborts the run.

Derived locations (per mode):
    development output   <tmp_dir>/.cache/.prebundle
    production output    <cwd>/.prebundle-production
    snapshot cache       <cache_dir>/prebundle.<mode>.json
    distribution copy    <cwd>/<output_path>

Output directories must contain ".prebundle" so file watchers and
source transformers can exclude them by that suffix.
"""

from __future__ import annotations
from enum import Enum
from pathlib import Path
from typing import Any, Optional
import json
import os

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

# Environment configuration
PREBUNDLE_MODE = os.getenv("PREBUNDLE_MODE", "development")
PREBUNDLE_DEBUG = os.getenv("PREBUNDLE_DEBUG", "")

DEFAULT_MF_NAME = "mf"
OUTPUT_MARKER = ".prebundle"
CACHE_FILE_TEMPLATE = "prebundle.{mode}.json"


class Mode(str, Enum):
    """Build mode; each mode owns its own output and cache."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ModeOutput(BaseModel):
    """Per-mode output override, relative to cwd."""
    output: Optional[str] = None

    @field_validator("output")
    @classmethod
    def _output_matches_marker(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and OUTPUT_MARKER not in value:
            raise ValueError(f"output must match /{OUTPUT_MARKER}/, got {value!r}")
        return value


class PrebundleConfig(BaseModel):
    """
    Validated prebundle configuration.

    Usage:
        config = load_config(cwd="/work/app", mode="production")
        config.output_dir()      # /work/app/.prebundle-production
        config.cache_file()      # /work/app/.prebundle-tmp/.cache/prebundle.production.json
    """
    cwd: Path = Field(default_factory=Path.cwd)
    mode: Mode = Mode.DEVELOPMENT
    enabled: bool = True

    tmp_dir: Optional[Path] = None
    cache_dir: Optional[Path] = None
    development: ModeOutput = Field(default_factory=ModeOutput)
    production: ModeOutput = Field(default_factory=ModeOutput)
    output_path: str = Field(default="dist", description="Distribution directory for publish mode")

    mf_name: str = DEFAULT_MF_NAME
    public_path: str = "/"
    alias: dict[str, str] = Field(default_factory=dict)
    externals: Optional[Any] = None
    export_all_members: dict[str, list[str]] = Field(default_factory=dict)

    install_dir: str = "node_modules"
    manifest_name: str = "package.json"
    engine_command: list[str] = Field(default_factory=list)

    @field_validator("externals")
    @classmethod
    def _externals_is_mapping(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, dict):
            raise ValueError(
                f"Unsupported externals config format, only support object, but got {value!r}"
            )
        return value

    @field_validator("public_path")
    @classmethod
    def _public_path_slashes(cls, value: str) -> str:
        if not value.startswith("/"):
            value = "/" + value
        if not value.endswith("/"):
            value = value + "/"
        return value

    # =========================================================================
    # Derived paths
    # =========================================================================

    def resolved_tmp_dir(self) -> Path:
        """Project temp directory."""
        return self.tmp_dir if self.tmp_dir else self.cwd / ".prebundle-tmp"

    def output_dir(self, mode: Mode | None = None) -> Path:
        """Artifact output directory for a mode (defaults to the configured mode)."""
        mode = Mode(mode or self.mode)
        if mode == Mode.DEVELOPMENT:
            if self.development.output:
                return self.cwd / self.development.output
            return self.resolved_tmp_dir() / ".cache" / OUTPUT_MARKER
        if self.production.output:
            return self.cwd / self.production.output
        return self.cwd / f"{OUTPUT_MARKER}-production"

    def cache_file(self, mode: Mode | None = None) -> Path:
        """Snapshot cache file for a mode."""
        mode = Mode(mode or self.mode)
        cache_dir = self.cache_dir if self.cache_dir else self.resolved_tmp_dir() / ".cache"
        return cache_dir / CACHE_FILE_TEMPLATE.format(mode=mode.value)

    def dist_dir(self) -> Path:
        """Distribution directory the production artifact is copied into."""
        return self.cwd / self.output_path

    def is_artifact_path(self, path: str | Path) -> bool:
        """True when a path lies under an output directory (watchers skip these)."""
        return OUTPUT_MARKER in Path(path).as_posix()


def resolve_mode(mode: str | None = None) -> Mode:
    """Pick the build mode: an explicit mode wins, then PREBUNDLE_MODE."""
    value = mode or PREBUNDLE_MODE
    try:
        return Mode(value)
    except ValueError:
        raise ConfigError(
            f"Unsupported mode {value}, expect development or production."
        ) from None


def load_config(path: str | Path | None = None, **overrides: Any) -> PrebundleConfig:
    """
    Build a PrebundleConfig from an optional JSON file plus overrides.

    Raises ConfigError for unreadable files and invalid values.
    """
    data: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Can't read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain an object")

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return PrebundleConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
