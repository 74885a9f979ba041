"""
Tests for configuration validation and derived paths.
"""

import json
import pytest

from prebundle.config import Mode, load_config, resolve_mode
from prebundle.errors import ConfigError


class TestConfigValidation:
    """Tests for invalid configuration."""

    def test_output_must_match_marker(self, project):
        with pytest.raises(ConfigError) as exc:
            load_config(cwd=str(project), development={"output": "build/deps"})
        assert "development" in str(exc.value)

    def test_production_output_must_match_marker(self, project):
        with pytest.raises(ConfigError):
            load_config(cwd=str(project), production={"output": "out"})

    def test_externals_must_be_object(self, project):
        with pytest.raises(ConfigError) as exc:
            load_config(cwd=str(project), externals=["react"])
        assert "externals" in str(exc.value)

    def test_externals_object_accepted(self, project):
        config = load_config(cwd=str(project), externals={"react": "React"})
        assert config.externals == {"react": "React"}

    def test_unsupported_mode(self, project):
        with pytest.raises(ConfigError):
            load_config(cwd=str(project), mode="staging")

    def test_config_file(self, project, tmp_path):
        path = tmp_path / "prebundle.json"
        path.write_text(json.dumps({"mf_name": "vendor", "alias": {"foo": "react"}}))
        config = load_config(path, cwd=str(project))
        assert config.mf_name == "vendor"
        assert config.alias == {"foo": "react"}

    def test_unreadable_config_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{")
        with pytest.raises(ConfigError):
            load_config(path)


class TestDerivedPaths:
    """Tests for per-mode locations."""

    def test_development_default(self, project):
        config = load_config(cwd=str(project))
        assert config.output_dir() == project / ".prebundle-tmp" / ".cache" / ".prebundle"

    def test_production_default(self, project):
        config = load_config(cwd=str(project), mode="production")
        assert config.output_dir() == project / ".prebundle-production"

    def test_custom_output(self, project):
        config = load_config(cwd=str(project), development={"output": "tmp/.prebundle-dev"})
        assert config.output_dir(Mode.DEVELOPMENT) == project / "tmp" / ".prebundle-dev"

    def test_cache_file_per_mode(self, project):
        config = load_config(cwd=str(project))
        dev = config.cache_file(Mode.DEVELOPMENT)
        prod = config.cache_file(Mode.PRODUCTION)
        assert dev != prod
        assert dev.name == "prebundle.development.json"

    def test_cache_outside_output(self, project):
        """Cleaning the output directory never touches the snapshot."""
        config = load_config(cwd=str(project))
        assert config.output_dir() not in config.cache_file().parents

    def test_public_path_normalized(self, project):
        assert load_config(cwd=str(project), public_path="static").public_path == "/static/"

    def test_is_artifact_path(self, project):
        config = load_config(cwd=str(project))
        assert config.is_artifact_path(config.output_dir() / "remoteEntry.js")
        assert not config.is_artifact_path(project / "src" / "index.js")


class TestResolveMode:
    """Tests for mode selection."""

    def test_explicit_mode(self):
        assert resolve_mode(mode="development") == Mode.DEVELOPMENT

    def test_unknown_mode(self):
        with pytest.raises(ConfigError):
            resolve_mode(mode="test")

    def test_falls_back_to_environment_mode(self, monkeypatch):
        monkeypatch.setattr("prebundle.config.PREBUNDLE_MODE", "production")
        assert resolve_mode() == Mode.PRODUCTION
