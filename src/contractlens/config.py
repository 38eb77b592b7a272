"""Configuration management with XDG paths and precedence resolution.

This module handles all persistent configuration for contractlens:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.contractlens/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Global config** -- A single :class:`~contractlens.models.GlobalConfig`
  JSON file storing defaults (specs directory, output format, normalizer
  options).
* **Project config** -- ``./contractlens.json`` with the same keys, layered
  over the global file.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from contractlens.exceptions import ConfigError
from contractlens.models import GlobalConfig

_APP_NAME = "contractlens"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "contractlens.json"

ENV_SPECS_DIR = "CONTRACTLENS_SPECS_DIR"
ENV_SERVER_PROTOCOL = "CONTRACTLENS_SERVER_PROTOCOL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/contractlens/`` (default
    ``~/.config/contractlens/``).  On macOS/Windows: ``~/.contractlens/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def get_data_dir() -> Path:
    """Return the data directory for crash logs, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/contractlens/`` (default
    ``~/.local/share/contractlens/``).  On macOS/Windows: ``~/.contractlens/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Config files ---


def _read_json(path: Path, label: str) -> Optional[dict[str, Any]]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} config at {path}: expected a JSON object")
    return data


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~contractlens.models.GlobalConfig`, or a
        default instance when no file exists.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    data = _read_json(path, "global")
    if data is None:
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./contractlens.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    return _read_json(Path.cwd() / _PROJECT_CONFIG_FILENAME, "project")


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Precedence resolution ---


def resolve_config(
    cli_specs_dir: Optional[str] = None,
    cli_format: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_specs_dir``, ``cli_format``)
        2. Environment variables (``CONTRACTLENS_SPECS_DIR``,
           ``CONTRACTLENS_SERVER_PROTOCOL``)
        3. Project config (``./contractlens.json``)
        4. User config (``~/.config/contractlens/config.json``)
        5. Defaults

    Raises:
        ConfigError: If a config file is invalid.
    """
    # 5 + 4. Defaults filled in by the model
    config = load_global_config()

    # 3. Project-local overrides
    project = load_project_config()
    if project:
        try:
            config = GlobalConfig.model_validate(
                _deep_merge(config.model_dump(mode="json"), project)
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid project config: {exc}") from exc

    # 2. Environment
    env_specs_dir = os.environ.get(ENV_SPECS_DIR)
    if env_specs_dir:
        config.specs_dir = env_specs_dir
    env_protocol = os.environ.get(ENV_SERVER_PROTOCOL)
    if env_protocol:
        config.normalizer.default_server_protocol = env_protocol

    # 1. CLI flags
    if cli_specs_dir is not None:
        config.specs_dir = cli_specs_dir
    if cli_format is not None:
        config.output.format = cli_format

    return config
