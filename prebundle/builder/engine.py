"""
Bundling Engine - Interface to the external compiler/bundler.

The orchestrator only relies on:
- invoke() returning BuildStats, or raising on a hard failure
- BuildStats.has_errors()

CommandEngine drives any bundler that can be run as a command:

    <command...> --entries <entries.json> --out <dir>

entries.json holds {"entries": [...], "alias": {...}}: one
{"specifier", "expose", "filename", "path"} object per entry module, and
the alias table the bundler must apply when resolving those specifiers.
The command may print a JSON object on stdout:

    {"assets": {"./react": "react.3f2a.js"}, "errors": [], "warnings": []}
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping
import json
import logging
import subprocess
import time

from .entry import EntryModule

logger = logging.getLogger(__name__)


@dataclass
class BuildStats:
    """What the engine reports about one build."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    assets: dict[str, str] = field(default_factory=dict)
    duration_ms: int = 0

    def has_errors(self) -> bool:
        return bool(self.errors)


class BundlingEngine(ABC):
    """
    Abstract bundling engine.

    Implementations compile the entry modules into output_dir and
    must not be invoked concurrently against the same output.
    """

    @abstractmethod
    def invoke(
        self,
        entries: list[EntryModule],
        entry_dir: Path,
        output_dir: Path,
        alias_table: Mapping[str, str],
    ) -> BuildStats:
        """
        Compile entries (already written under entry_dir) into output_dir.

        alias_table redirects specifiers exactly as the resolver did when
        fingerprinting them.

        Raise for failures that produce no stats at all.
        """
        pass


@dataclass
class CommandEngine(BundlingEngine):
    """Runs an external bundler command."""
    command: list[str]
    cwd: Path | None = None

    def invoke(
        self,
        entries: list[EntryModule],
        entry_dir: Path,
        output_dir: Path,
        alias_table: Mapping[str, str],
    ) -> BuildStats:
        if not self.command:
            raise ValueError("No bundler command configured")

        manifest = entry_dir / "entries.json"
        manifest.write_text(json.dumps({
            "entries": [
                {
                    "specifier": entry.specifier,
                    "expose": entry.expose,
                    "filename": entry.filename,
                    "path": str(entry_dir / entry.filename),
                }
                for entry in entries
            ],
            "alias": dict(alias_table),
        }, indent=2), encoding="utf-8")

        args = [*self.command, "--entries", str(manifest), "--out", str(output_dir)]
        logger.info("running bundler: %s", " ".join(args))
        start_time = time.time()
        completed = subprocess.run(
            args,
            cwd=self.cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        duration_ms = int((time.time() - start_time) * 1000)

        stats = _parse_stats(completed.stdout)
        stats.duration_ms = duration_ms
        if completed.returncode != 0:
            detail = completed.stderr.strip() or f"exit status {completed.returncode}"
            stats.errors.append(detail)
        return stats


def _parse_stats(stdout: str) -> BuildStats:
    """Read the engine's JSON report; non-JSON output yields empty stats."""
    try:
        data = json.loads(stdout) if stdout.strip() else {}
    except json.JSONDecodeError:
        logger.debug("bundler output is not JSON")
        return BuildStats()
    if not isinstance(data, dict):
        return BuildStats()
    return BuildStats(
        errors=[str(e) for e in data.get("errors", [])],
        warnings=[str(w) for w in data.get("warnings", [])],
        assets={str(k): str(v) for k, v in dict(data.get("assets", {})).items()},
    )
