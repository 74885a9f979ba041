"""
Entry Synthesis - Builds the modules the bundling engine compiles.

Each dependency becomes one small re-export module, exposed to the
application as "./<specifier>". The remote entry manifest maps every
exposed module to its runtime location so the application can load
them by name.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import json
import re

from ..resolver import DependencyRecord

MF_VA_PREFIX = "mf-va_"
REMOTE_ENTRY = "remoteEntry.js"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9@._-]")


@dataclass(frozen=True)
class EntryModule:
    """A synthesized re-export module for one dependency."""
    specifier: str
    expose: str
    filename: str
    source: str


def entry_filename(specifier: str) -> str:
    """File name of the re-export module for a specifier."""
    return MF_VA_PREFIX + _UNSAFE_CHARS.sub("_", specifier.replace("/", "_")) + ".js"


def render_entry_source(specifier: str, members: Iterable[str] | None = None) -> str:
    """
    Re-export source for a dependency.

    With an explicit member list only those names (plus default) are
    re-exported; otherwise the whole namespace is.
    """
    quoted = json.dumps(specifier)
    if members:
        names = ", ".join(sorted(set(members)))
        return (
            f"import * as _ns from {quoted};\n"
            f"export {{ {names} }} from {quoted};\n"
            f"export default _ns.default;\n"
        )
    return (
        f"import * as _ns from {quoted};\n"
        f"export * from {quoted};\n"
        f"export default _ns.default;\n"
    )


def synthesize_entries(
    deps: Iterable[DependencyRecord],
    export_all_members: Mapping[str, list[str]] | None = None,
) -> list[EntryModule]:
    """One EntryModule per dependency, ordered by specifier."""
    export_all_members = export_all_members or {}
    entries = []
    for record in sorted(deps, key=lambda r: r.specifier):
        entries.append(EntryModule(
            specifier=record.specifier,
            expose=f"./{record.specifier}",
            filename=entry_filename(record.specifier),
            source=render_entry_source(
                record.specifier, export_all_members.get(record.specifier)
            ),
        ))
    return entries


def write_entries(entries: Iterable[EntryModule], directory: Path) -> list[Path]:
    """Write entry modules into a directory."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for entry in entries:
        path = directory / entry.filename
        path.write_text(entry.source, encoding="utf-8")
        paths.append(path)
    return paths


def render_remote_entry(
    mf_name: str,
    public_path: str,
    exposes: Mapping[str, str],
) -> str:
    """
    Remote entry manifest registering the exposed modules.

    exposes maps "./<specifier>" to the emitted asset file name.
    """
    manifest = {
        "name": mf_name,
        "exposes": {
            expose: public_path + asset for expose, asset in sorted(exposes.items())
        },
    }
    return f"self[{json.dumps(mf_name)}] = {json.dumps(manifest, indent=2)};\n"
