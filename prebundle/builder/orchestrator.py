"""
Build Orchestrator - Serializes dependency builds for one output directory.

The orchestrator:
1. Accepts BuildJobs via build(); returns immediately
2. Runs at most one job at a time on a worker thread
3. Coalesces jobs that arrive mid-build into a single pending slot
   (latest job wins, no caller is dropped)
4. Re-diffs a deferred job before running it and skips it when the
   build that just finished already satisfied it
5. Builds into a staging directory, then moves the new files into the
   output directory on success, remote entry last

On failure the previous artifact stays in place and the error is
delivered through the completion callback, never raised.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping
import logging
import os
import shutil
import tempfile
import threading
import time

from ..config import DEFAULT_MF_NAME, Mode
from ..errors import BuildFailure
from ..resolver import DependencyRecord
from .engine import BuildStats, BundlingEngine
from .entry import REMOTE_ENTRY, render_remote_entry, synthesize_entries, write_entries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildJob:
    """
    One request to build the dependency artifact.

    deps is the finalized, immutable dependency list.
    """
    deps: tuple[DependencyRecord, ...]
    output_dir: Path
    alias_table: Mapping[str, str] = field(default_factory=dict)
    mode: Mode = Mode.DEVELOPMENT
    force: bool = False


@dataclass
class BuildResult:
    """Completion notification for a BuildJob."""
    job: BuildJob
    stats: BuildStats | None = None
    error: BuildFailure | None = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        """True only for a build that ran and produced an artifact."""
        return (
            not self.skipped
            and self.error is None
            and self.stats is not None
            and not self.stats.has_errors()
        )


CompletionCallback = Callable[[BuildResult], None]


class BuildOrchestrator:
    """
    Single-slot build queue in front of a BundlingEngine.

    Usage:
        orchestrator = BuildOrchestrator(engine, recheck=tracker.needs_build)
        orchestrator.build(job, on_complete=handle_result)
        ...
        orchestrator.wait()
    """

    def __init__(
        self,
        engine: BundlingEngine,
        mf_name: str = DEFAULT_MF_NAME,
        public_path: str = "/",
        export_all_members: Mapping[str, list[str]] | None = None,
        recheck: Callable[[tuple[DependencyRecord, ...]], bool] | None = None,
    ):
        self.engine = engine
        self.mf_name = mf_name
        self.public_path = public_path
        self.export_all_members = dict(export_all_members or {})
        self.recheck = recheck

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._running: BuildJob | None = None
        self._pending: BuildJob | None = None
        self._pending_callbacks: list[CompletionCallback] = []

    @property
    def is_building(self) -> bool:
        with self._lock:
            return self._running is not None

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def build(self, job: BuildJob, on_complete: CompletionCallback | None = None):
        """
        Request a build.

        Starts immediately when idle; otherwise the job replaces any
        pending one and runs after the in-flight build finishes.
        """
        callbacks = [on_complete] if on_complete else []
        with self._lock:
            if self._running is not None:
                if self._pending is not None:
                    logger.debug("coalescing pending build into newer request")
                self._pending = job
                self._pending_callbacks.extend(callbacks)
                return
            self._running = job
            self._idle.clear()

        self._start_worker(job, callbacks)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no build is running or pending."""
        return self._idle.wait(timeout)

    def publish(self, output_dir: Path, dist_dir: Path) -> bool:
        """Copy a built artifact into the distribution directory."""
        if not output_dir.is_dir():
            logger.warning("nothing to publish, %s does not exist", output_dir)
            return False
        logger.info("copying %s to %s", output_dir, dist_dir)
        shutil.copytree(output_dir, dist_dir, dirs_exist_ok=True)
        return True

    # =========================================================================
    # Worker
    # =========================================================================

    def _start_worker(self, job: BuildJob, callbacks: list[CompletionCallback]):
        worker = threading.Thread(
            target=self._drain,
            args=(job, callbacks),
            name="prebundle-build",
            daemon=True,
        )
        worker.start()

    def _drain(self, job: BuildJob, callbacks: list[CompletionCallback]):
        deferred = False
        finished = False
        try:
            while True:
                result = self._step(job, deferred)
                self._notify(result, callbacks)

                with self._lock:
                    if self._pending is None:
                        self._running = None
                        self._idle.set()
                        finished = True
                        return
                    job, self._pending = self._pending, None
                    callbacks, self._pending_callbacks = self._pending_callbacks, []
                    self._running = job
                deferred = True
        finally:
            if not finished:
                self._recover()

    def _recover(self):
        """Release the slot after the worker died; hand any pending job to a new worker."""
        with self._lock:
            job, self._pending = self._pending, None
            callbacks, self._pending_callbacks = self._pending_callbacks, []
            self._running = job
            if job is None:
                self._idle.set()
                return
        logger.warning("build worker exited unexpectedly, restarting for pending build")
        self._start_worker(job, callbacks)

    def _step(self, job: BuildJob, deferred: bool) -> BuildResult:
        try:
            if deferred and not job.force and self.recheck is not None \
                    and not self.recheck(job.deps):
                logger.info("skipping build, dependencies already up to date")
                return BuildResult(job=job, skipped=True)
            return self._run(job)
        except Exception as e:
            logger.exception("build worker failed")
            return BuildResult(job=job, error=BuildFailure(f"Build failed unexpectedly: {e}"))

    def _notify(self, result: BuildResult, callbacks: list[CompletionCallback]):
        for callback in callbacks:
            try:
                callback(result)
            except Exception:
                logger.exception("build completion callback failed")

    def _run(self, job: BuildJob) -> BuildResult:
        start_time = time.time()
        logger.info("building %d deps into %s", len(job.deps), job.output_dir)

        try:
            job.output_dir.parent.mkdir(parents=True, exist_ok=True)
            staging_root = Path(tempfile.mkdtemp(
                prefix=f"{job.output_dir.name}.staging-",
                dir=job.output_dir.parent,
            ))
        except OSError as e:
            return BuildResult(job=job, error=BuildFailure(f"Can't create staging directory: {e}"))

        try:
            entries = synthesize_entries(job.deps, self.export_all_members)
            entry_dir = staging_root / "entries"
            staged_output = staging_root / "output"
            write_entries(entries, entry_dir)
            staged_output.mkdir()

            try:
                stats = self.engine.invoke(entries, entry_dir, staged_output, job.alias_table)
            except Exception as e:
                logger.error("bundling engine crashed: %s", e)
                return BuildResult(job=job, error=BuildFailure(f"Bundling engine crashed: {e}"))

            if not isinstance(stats, BuildStats):
                logger.error("bundling engine returned %r instead of stats", stats)
                return BuildResult(
                    job=job,
                    error=BuildFailure("Bundling engine returned no build stats"),
                )

            if stats.has_errors():
                logger.error("build failed with %d error(s)", len(stats.errors))
                return BuildResult(
                    job=job,
                    stats=stats,
                    error=BuildFailure(
                        f"Build failed with {len(stats.errors)} error(s)", errors=stats.errors
                    ),
                )

            exposes = {
                entry.expose: stats.assets.get(entry.expose, entry.filename)
                for entry in entries
            }
            (staged_output / REMOTE_ENTRY).write_text(
                render_remote_entry(self.mf_name, self.public_path, exposes),
                encoding="utf-8",
            )
            _move_into_place(staged_output, job.output_dir)
        except OSError as e:
            return BuildResult(job=job, error=BuildFailure(f"Can't write build output: {e}"))
        finally:
            shutil.rmtree(staging_root, ignore_errors=True)

        if not stats.duration_ms:
            stats.duration_ms = int((time.time() - start_time) * 1000)
        logger.info("build complete in %dms", stats.duration_ms)
        return BuildResult(job=job, stats=stats)


def _move_into_place(staged: Path, output_dir: Path):
    """
    Move a fully written staging tree into output_dir.

    output_dir itself is never removed, and each file is renamed in
    atomically. remoteEntry.js goes last so it only ever names assets
    that are already present; files left over from the previous build
    are deleted after it.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    staged_files = sorted(
        (path.relative_to(staged) for path in staged.rglob("*") if path.is_file()),
        key=lambda rel: (rel == Path(REMOTE_ENTRY), str(rel)),
    )
    for rel in staged_files:
        target = output_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        os.replace(staged / rel, target)

    keep = set(staged_files)
    for path in sorted(output_dir.rglob("*"), reverse=True):
        if path.is_dir() and not path.is_symlink():
            if not any(path.iterdir()):
                path.rmdir()
        elif path.relative_to(output_dir) not in keep:
            path.unlink()
