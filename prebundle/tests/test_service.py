"""
Integration tests for the prebundle service.

Tests the full flow:
- Transformer events -> tracker -> orchestrator -> snapshot write
- Failed builds keep snapshot and artifact
- Production builds copy the artifact into dist
- Development builds notify reload listeners
"""

import pytest

from prebundle.builder import REMOTE_ENTRY
from prebundle.config import load_config
from prebundle.service import PrebundleService

from .fakes import FakeEngine, install_package, set_version


@pytest.fixture
def service(config, engine):
    service = PrebundleService(config, engine=engine)
    service.start()
    return service


def compile_pass(service, *specifiers):
    service.start_pass()
    for spec in specifiers:
        service.on_transform(spec, matched=True, file="src/index.js")
    scheduled = service.compile_done()
    assert service.wait(5)
    return scheduled


class TestServiceFlow:
    """Tests for compile passes through the service."""

    def test_scenario(self, service, engine, project):
        """Four passes: build, no-op, added dep, bumped + removed dep."""
        install_package(project, "axios", "0.21.1")

        assert compile_pass(service, "lodash", "react")
        assert service.last_result.ok
        versions = {s: r.version for s, r in service.tracker.snapshot.deps.items()}
        assert versions == {"lodash": "4.17.0", "react": "17.0.0"}

        assert not compile_pass(service, "lodash", "react")
        assert len(engine.calls) == 1

        assert compile_pass(service, "lodash", "react", "axios")
        assert len(engine.calls) == 2

        set_version(project, "lodash", "4.18.0")
        assert compile_pass(service, "lodash", "react")
        assert service.tracker.snapshot.deps["lodash"].version == "4.18.0"
        assert "axios" not in service.tracker.snapshot.deps

    def test_unmatched_imports_ignored(self, service):
        service.start_pass()
        service.on_transform("lodash", matched=True)
        service.on_transform("./utils", matched=False)
        service.on_transform("react", matched=False)
        assert service.tracker.pending == ["lodash"]

    def test_debug_logging_of_imports(self, service, caplog):
        service.debug_imports = "UNMATCHED"
        service.start_pass()
        with caplog.at_level("INFO", logger="prebundle.service"):
            service.on_transform("lodash", matched=True)
            service.on_transform("react", matched=False)
        assert "react" in caplog.text
        assert "lodash" not in caplog.text

    def test_artifact_written(self, service):
        compile_pass(service, "react")
        assert (service.output_dir / REMOTE_ENTRY).exists()

    def test_force_rebuilds_unchanged(self, service, engine):
        compile_pass(service, "react")
        service.start_pass()
        service.observe("react")
        service.finalize_pass()
        assert service.trigger_build(force=True)
        service.wait(5)
        assert len(engine.calls) == 2

    def test_reload_listener_on_success(self, service):
        notified = []
        service.add_reload_listener(notified.append)
        compile_pass(service, "react")
        assert len(notified) == 1
        assert notified[0].ok


class TestFailures:
    """Tests for failed builds."""

    def test_failed_build_keeps_snapshot(self, config):
        engine = FakeEngine()
        service = PrebundleService(config, engine=engine)
        service.start()
        compile_pass(service, "react")
        cache_before = config.cache_file().read_bytes()
        artifact_before = (service.output_dir / REMOTE_ENTRY).read_bytes()

        engine.errors = ["SyntaxError in lodash"]
        notified = []
        service.add_reload_listener(notified.append)
        assert compile_pass(service, "react", "lodash")

        assert not service.last_result.ok
        assert config.cache_file().read_bytes() == cache_before
        assert (service.output_dir / REMOTE_ENTRY).read_bytes() == artifact_before
        assert notified == []

    def test_failed_build_retried_next_pass(self, config):
        engine = FakeEngine(errors=["boom"])
        service = PrebundleService(config, engine=engine)
        service.start()
        assert compile_pass(service, "react")

        engine.errors = []
        assert compile_pass(service, "react")
        assert service.last_result.ok
        assert len(engine.calls) == 2


class TestProduction:
    """Tests for production (publish) mode."""

    def test_build_copies_to_dist(self, project, engine):
        config = load_config(cwd=str(project), mode="production")
        service = PrebundleService(config, engine=engine)
        service.start()

        compile_pass(service, "react")

        assert service.output_dir == project / ".prebundle-production"
        assert (project / "dist" / REMOTE_ENTRY).exists()

    def test_unchanged_still_publishes(self, project, engine):
        config = load_config(cwd=str(project), mode="production")
        service = PrebundleService(config, engine=engine)
        service.start()
        compile_pass(service, "react")
        (project / "dist" / REMOTE_ENTRY).unlink()

        assert not compile_pass(service, "react")
        assert (project / "dist" / REMOTE_ENTRY).exists()

    def test_no_reload_in_production(self, project, engine):
        config = load_config(cwd=str(project), mode="production")
        service = PrebundleService(config, engine=engine)
        service.start()
        notified = []
        service.add_reload_listener(notified.append)
        compile_pass(service, "react")
        assert notified == []
