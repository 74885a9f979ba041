"""
Prebundle Service - Host-facing facade over tracker and orchestrator.

The host compilation pipeline:
1. Calls start() once at startup (loads the snapshot)
2. Per compile pass: start_pass(), on_transform()/observe() for each
   import, then compile_done()
3. Receives reload notifications after successful development builds

This layer is framework-agnostic; server/app.py exposes it over HTTP.
"""

from __future__ import annotations
from typing import Callable
import logging

from .builder import BuildJob, BuildOrchestrator, BuildResult, BundlingEngine, CommandEngine
from .config import PREBUNDLE_DEBUG, Mode, PrebundleConfig
from .resolver import VersionResolver
from .tracker import DependencyTracker, FinalizeResult, SnapshotStore

logger = logging.getLogger(__name__)

ReloadListener = Callable[[BuildResult], None]


class PrebundleService:
    """
    Wires the dependency tracker to the build orchestrator.

    Usage:
        service = PrebundleService(config, engine=MyEngine())
        service.start()

        service.start_pass()
        service.on_transform("react", matched=True)
        service.compile_done()
    """

    def __init__(
        self,
        config: PrebundleConfig,
        engine: BundlingEngine | None = None,
        tracker: DependencyTracker | None = None,
        orchestrator: BuildOrchestrator | None = None,
    ):
        self.config = config
        self.tracker = tracker or DependencyTracker(
            VersionResolver(
                config.cwd,
                config.alias,
                install_dir=config.install_dir,
                manifest_name=config.manifest_name,
            ),
            SnapshotStore(config.cache_file()),
        )
        self.orchestrator = orchestrator or BuildOrchestrator(
            engine or CommandEngine(command=list(config.engine_command), cwd=config.cwd),
            mf_name=config.mf_name,
            public_path=config.public_path,
            export_all_members=config.export_all_members,
            recheck=self.tracker.needs_build,
        )
        self.last_finalize: FinalizeResult | None = None
        self.last_result: BuildResult | None = None
        self._reload_listeners: list[ReloadListener] = []
        # "1" logs every import, "MATCHED"/"UNMATCHED" only that kind
        self.debug_imports = PREBUNDLE_DEBUG

    @property
    def mode(self) -> Mode:
        return self.config.mode

    @property
    def output_dir(self):
        return self.config.output_dir()

    def start(self):
        """Prepare the output directory and load the persisted snapshot."""
        logger.debug("mode: %s, output: %s", self.mode.value, self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.tracker.load_cache()

    def add_reload_listener(self, listener: ReloadListener):
        self._reload_listeners.append(listener)

    # =========================================================================
    # Compile pass
    # =========================================================================

    def start_pass(self):
        self.tracker.start_pass()
        self.last_finalize = None

    def abort_pass(self):
        self.tracker.abort_pass()
        self.last_finalize = None

    def observe(self, specifier: str):
        self.tracker.observe(specifier)

    def on_transform(self, specifier: str, matched: bool, file: str | None = None):
        """
        Consume one event from the source transformer.

        Only matched imports are shared dependencies.
        """
        if self.debug_imports and not specifier.startswith("."):
            label = "MATCHED" if matched else "UNMATCHED"
            if self.debug_imports not in ("MATCHED", "UNMATCHED") or self.debug_imports == label:
                logger.info("import %s from %s, %s", specifier, file or "<unknown>", label)
        if matched:
            self.tracker.observe(specifier)

    def finalize_pass(self) -> bool:
        """
        Resolve the pass's dependencies and decide whether to rebuild.

        Raises UnresolvedDependency; the pass should be aborted.
        """
        self.last_finalize = self.tracker.finalize()
        if self.last_finalize.should_build:
            logger.info("dependencies changed: %s", self.last_finalize.diff.describe())
        return self.last_finalize.should_build

    def compile_done(self) -> bool:
        """End-of-pass hook: finalize, then build if needed."""
        self.finalize_pass()
        return self.trigger_build()

    # =========================================================================
    # Building
    # =========================================================================

    def trigger_build(self, force: bool = False) -> bool:
        """
        Schedule a build of the finalized dependency set.

        Builds only when forced or when the set differs from the
        latest snapshot. Returns whether a build was scheduled.
        """
        if self.last_finalize is None:
            self.last_finalize = self.tracker.finalize()
        deps = self.last_finalize.deps

        should_build = self.tracker.needs_build(deps)
        logger.debug("should_build: %s, force: %s", should_build, force)
        if not (force or should_build):
            if self.mode == Mode.PRODUCTION:
                self._publish()
            return False

        job = BuildJob(
            deps=deps,
            output_dir=self.output_dir,
            alias_table=dict(self.config.alias),
            mode=self.mode,
            force=force,
        )
        self.orchestrator.build(job, on_complete=self._on_build_complete)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        return self.orchestrator.wait(timeout)

    def _on_build_complete(self, result: BuildResult):
        self.last_result = result
        if result.skipped:
            logger.debug("build skipped, snapshot already current")
            return

        if not result.ok:
            logger.error("%s", result.error)
            for message in (result.error.errors if result.error else []):
                logger.error("  %s", message)
            return

        logger.debug("write cache")
        self.tracker.write_cache(result.job.deps)

        if result.job.mode == Mode.PRODUCTION:
            self._publish()
        else:
            for listener in self._reload_listeners:
                listener(result)

    def _publish(self):
        self.orchestrator.publish(self.output_dir, self.config.dist_dir())
