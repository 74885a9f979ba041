"""
Pytest fixtures for prebundle tests.
"""

import pytest
from pathlib import Path

from prebundle.config import PrebundleConfig, load_config
from prebundle.resolver import VersionResolver
from prebundle.tracker import DependencyTracker, SnapshotStore

from .fakes import FakeEngine, install_package


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with lodash, react and @babel/core installed."""
    root = tmp_path / "app"
    root.mkdir()
    install_package(root, "lodash", "4.17.0")
    install_package(root, "react", "17.0.0")
    install_package(root, "@babel/core", "7.12.3")
    (root / "src" / "pages").mkdir(parents=True)
    return root


@pytest.fixture
def cache_file(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "prebundle.development.json"


@pytest.fixture
def tracker(project: Path, cache_file: Path) -> DependencyTracker:
    """Tracker over the project with an empty cache."""
    tracker = DependencyTracker(VersionResolver(project), SnapshotStore(cache_file))
    tracker.load_cache()
    return tracker


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def config(project: Path) -> PrebundleConfig:
    """Development config rooted at the project."""
    return load_config(cwd=str(project), mode="development")
