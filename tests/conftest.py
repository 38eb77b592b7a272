"""Shared test fixtures for contractlens.

Provides reusable fixtures for loading document fixtures, building a specs
directory, creating isolated config environments, resetting output state,
and running CLI commands.  These fixtures are automatically discovered by
pytest and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import pytest

from contractlens.output import reset_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Auto-reset global output and logging state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the CLI log handler after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  The CLI also installs a log handler
    bound to those streams, so it is removed as well.
    """
    yield
    reset_output()
    logger = logging.getLogger("contractlens")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw document fixtures (plain dicts loaded from JSON files)
# ---------------------------------------------------------------------------


@pytest.fixture
def shop_openapi_raw() -> dict[str, Any]:
    """OpenAPI 3.0 shop document."""
    return load_fixture("shop_openapi.json")


@pytest.fixture
def orders_asyncapi_raw() -> dict[str, Any]:
    """AsyncAPI 3.0 order events document."""
    return load_fixture("orders_asyncapi_v3.json")


@pytest.fixture
def sensors_asyncapi_raw() -> dict[str, Any]:
    """AsyncAPI 2.6 sensor document (publish/subscribe channel items)."""
    return load_fixture("sensors_asyncapi_v2.json")


@pytest.fixture
def avro_asyncapi_raw() -> dict[str, Any]:
    """AsyncAPI 3.0 document with an Avro message payload."""
    return load_fixture("users_avro_asyncapi.json")


# ---------------------------------------------------------------------------
# Specs directory fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def specs_dir(tmp_path: Path) -> Path:
    """A specs directory with one OpenAPI and two AsyncAPI documents.

    Layout::

        specs/openapi/shop.json
        specs/asyncapi/orders.json
        specs/asyncapi/sensors.json
    """
    root = tmp_path / "specs"
    (root / "openapi").mkdir(parents=True)
    (root / "asyncapi").mkdir(parents=True)
    shutil.copy(FIXTURES_DIR / "shop_openapi.json", root / "openapi" / "shop.json")
    shutil.copy(FIXTURES_DIR / "orders_asyncapi_v3.json", root / "asyncapi" / "orders.json")
    shutil.copy(FIXTURES_DIR / "sensors_asyncapi_v2.json", root / "asyncapi" / "sensors.json")
    return root


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path
    so that tests never touch real user config. Clears all CONTRACTLENS_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("contractlens.config._is_xdg_platform", lambda: True)

    for var in ["CONTRACTLENS_SPECS_DIR", "CONTRACTLENS_SERVER_PROTOCOL"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
