"""
Builder Module - Produces the shared dependency artifact.

The builder:
1. Synthesizes one re-export entry module per dependency
2. Drives an external bundling engine, one build at a time
3. Publishes the artifact atomically into its output directory
4. Writes the remote entry manifest the application loads first
"""

from .engine import BuildStats, BundlingEngine, CommandEngine
from .entry import EntryModule, REMOTE_ENTRY, synthesize_entries, render_remote_entry
from .orchestrator import BuildJob, BuildResult, BuildOrchestrator

__all__ = [
    "BuildStats",
    "BundlingEngine",
    "CommandEngine",
    "EntryModule",
    "REMOTE_ENTRY",
    "synthesize_entries",
    "render_remote_entry",
    "BuildJob",
    "BuildResult",
    "BuildOrchestrator",
]
