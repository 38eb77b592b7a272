"""Tests for contractlens.config -- XDG paths, config files, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from contractlens.config import (
    ENV_SERVER_PROTOCOL,
    ENV_SPECS_DIR,
    get_config_dir,
    get_data_dir,
    load_global_config,
    load_project_config,
    resolve_config,
)
from contractlens.exceptions import ConfigError
from contractlens.exit_codes import EXIT_GENERIC_FAILURE
from contractlens.models import GlobalConfig, NormalizerOptions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _global_config_path(root: Path) -> Path:
    return root / "config" / "contractlens" / "config.json"


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".config" / "contractlens"

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "contractlens"

    def test_data_dir_created(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "contractlens"
        assert result.is_dir()


class TestPathsNonXDG:
    """macOS and Windows keep everything under ``~/.contractlens``."""

    def test_config_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".contractlens"

    def test_data_dir(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".contractlens" / "logs"
        assert result.is_dir()


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config == GlobalConfig()
        assert config.specs_dir == "specs"
        assert config.output.format == "auto"
        assert config.normalizer.default_server_protocol == "kafka"

    def test_reads_file(self, isolated_config: Path) -> None:
        _write_json(
            _global_config_path(isolated_config),
            {"specs_dir": "/srv/contracts", "normalizer": {"include_original_spec": False}},
        )
        config = load_global_config()
        assert config.specs_dir == "/srv/contracts"
        assert config.normalizer.include_original_spec is False
        assert config.normalizer.schema_formats == ["avro"]

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = _global_config_path(isolated_config)
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError) as exc_info:
            load_global_config()
        assert exc_info.value.exit_code == EXIT_GENERIC_FAILURE
        assert "Invalid global config" in str(exc_info.value)

    def test_non_object(self, isolated_config: Path) -> None:
        _write_json(_global_config_path(isolated_config), ["specs"])
        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_global_config()

    def test_validation_failure(self, isolated_config: Path) -> None:
        _write_json(_global_config_path(isolated_config), {"normalizer": {"schema_formats": "avro"}})
        with pytest.raises(ConfigError):
            load_global_config()


# ---------------------------------------------------------------------------
# Project config
# ---------------------------------------------------------------------------


class TestProjectConfig:
    def test_missing_returns_none(self, isolated_config: Path) -> None:
        assert load_project_config() is None

    def test_reads_cwd_file(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "contractlens.json", {"specs_dir": "api"})
        assert load_project_config() == {"specs_dir": "api"}

    def test_invalid_json(self, isolated_config: Path) -> None:
        (isolated_config / "contractlens.json").write_text("[", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid project config"):
            load_project_config()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    """CLI > env > project > global > defaults."""

    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == GlobalConfig()

    def test_project_overrides_global(self, isolated_config: Path) -> None:
        _write_json(
            _global_config_path(isolated_config),
            {"specs_dir": "global-specs", "normalizer": {"default_server_protocol": "amqp"}},
        )
        _write_json(
            isolated_config / "contractlens.json",
            {"specs_dir": "project-specs", "normalizer": {"include_original_spec": False}},
        )
        config = resolve_config()
        assert config.specs_dir == "project-specs"
        # Nested sections merge key by key.
        assert config.normalizer.default_server_protocol == "amqp"
        assert config.normalizer.include_original_spec is False

    def test_env_overrides_project(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(isolated_config / "contractlens.json", {"specs_dir": "project-specs"})
        monkeypatch.setenv(ENV_SPECS_DIR, "env-specs")
        monkeypatch.setenv(ENV_SERVER_PROTOCOL, "mqtt")

        config = resolve_config()
        assert config.specs_dir == "env-specs"
        assert config.normalizer.default_server_protocol == "mqtt"

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_SPECS_DIR, "env-specs")
        config = resolve_config(cli_specs_dir="cli-specs", cli_format="json")
        assert config.specs_dir == "cli-specs"
        assert config.output.format == "json"

    def test_invalid_project_values(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "contractlens.json", {"output": {"format": ["json"]}})
        with pytest.raises(ConfigError, match="Invalid project config"):
            resolve_config()


class TestNormalizerOptions:
    """Normalizer options travel inside the resolved config."""

    def test_defaults(self) -> None:
        options = NormalizerOptions()
        assert options.default_server_protocol == "kafka"
        assert options.include_original_spec is True
        assert options.schema_formats == ["avro"]

    def test_from_resolved_config(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "contractlens.json",
            {"normalizer": {"schema_formats": []}},
        )
        assert resolve_config().normalizer.schema_formats == []
