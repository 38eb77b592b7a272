"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- emit() in JSON, plain, and forced-JSON modes
- print_table in all three modes
- print_schema trees
- Output file redirection
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from contractlens import output as output_module
from contractlens.models import SchemaProperty, UnifiedDataSchema
from contractlens.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    schema_lines,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("contractlens.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("contractlens.output._is_tty", lambda: True)


@pytest.fixture()
def order_schema() -> UnifiedDataSchema:
    return UnifiedDataSchema(
        name="Order",
        type="object",
        required=["id"],
        properties={
            "id": SchemaProperty(type="string", format="uuid"),
            "lines": SchemaProperty(
                type="array",
                items=SchemaProperty(
                    type="object",
                    properties={"sku": SchemaProperty(type="string")},
                ),
            ),
            "status": SchemaProperty(type="string", enum=["open", "paid"]),
        },
    )


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    """Test that AUTO format resolves correctly based on environment."""

    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO)
        assert mgr.format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    """Test that NO_COLOR and TERM=dumb are respected."""

    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    """Data goes to stdout, diagnostics go to stderr."""

    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_warning_prefix_in_no_color(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).warning("skipped")
        assert capfd.readouterr().err.strip() == "Warning: skipped"


class TestQuietMode:
    """Quiet suppresses info and suggestions, never warnings or errors."""

    def test_quiet_suppresses_info_and_suggest(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("info")
        mgr.suggest("next")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warning_and_error(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "careful" in err
        assert "broken" in err

    def test_quiet_keeps_stdout_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.print_data("data")
        assert "data" in capfd.readouterr().out


# ------------------------------------------------------------------ #
# emit
# ------------------------------------------------------------------ #


class TestEmit:
    """Structured data in each format."""

    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).emit({"id": "asyncapi-orders", "count": 2})
        assert json.loads(capfd.readouterr().out) == {"id": "asyncapi-orders", "count": 2}

    def test_plain_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).emit({"protocol": "openapi"})
        assert capfd.readouterr().out.strip() == "protocol\topenapi"

    def test_plain_list_of_dicts(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.emit([{"a": 1, "b": 2}, {"a": 3, "b": 4}])
        assert capfd.readouterr().out.splitlines() == ["1\t2", "3\t4"]

    def test_force_json_in_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.emit([{"id": "x"}], force_json=True)
        assert json.loads(capfd.readouterr().out) == [{"id": "x"}]

    def test_unicode_kept(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).emit({"name": "Bestellübersicht"})
        assert "Bestellübersicht" in capfd.readouterr().out


# ------------------------------------------------------------------ #
# print_table
# ------------------------------------------------------------------ #


class TestPrintTable:
    """Tables in JSON, plain and rich modes."""

    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        mgr.print_table(["ID", "Action"], [["getOrder", "GET"]])
        assert json.loads(capfd.readouterr().out) == [{"ID": "getOrder", "Action": "GET"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["ID", "Action"], [["getOrder", "GET"], ["onOrder", "SUBSCRIBE"]], title="x")
        assert capfd.readouterr().out.splitlines() == [
            "ID\tAction",
            "getOrder\tGET",
            "onOrder\tSUBSCRIBE",
        ]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH)
        mgr.print_table(["ID"], [["getOrder"]], title="Operations (1)")
        out = capfd.readouterr().out
        assert "getOrder" in out
        # rich wraps the title to the table width
        assert "Operations" in out
        assert "(1)" in out


# ------------------------------------------------------------------ #
# print_schema
# ------------------------------------------------------------------ #


class TestPrintSchema:
    """Schema trees."""

    def test_schema_lines(self, order_schema):
        assert schema_lines(order_schema) == [
            "id: string (uuid) *required",
            "lines: array",
            "  []: object",
            "    sku: string",
            "status: string enum[open, paid]",
        ]

    def test_plain(self, capfd, non_tty, order_schema):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_schema("input", order_schema)
        lines = capfd.readouterr().out.splitlines()
        assert lines[0] == "input: object"
        assert lines[1] == "  id: string (uuid) *required"

    def test_json(self, capfd, non_tty, order_schema):
        OutputManager(format=OutputFormat.JSON).print_schema("output 200", order_schema)
        data = json.loads(capfd.readouterr().out)
        assert data["output 200"]["properties"]["id"]["format"] == "uuid"

    def test_rich(self, capfd, non_tty, order_schema):
        OutputManager(format=OutputFormat.RICH).print_schema("input", order_schema)
        out = capfd.readouterr().out
        assert "input" in out
        assert "sku" in out


# ------------------------------------------------------------------ #
# Output file
# ------------------------------------------------------------------ #


class TestOutputFile:
    def test_emit_writes_to_file(self, tmp_path, capfd, non_tty):
        target = tmp_path / "contracts.json"
        mgr = OutputManager(format=OutputFormat.PLAIN, output_file=str(target))
        mgr.emit([{"id": "openapi-shop"}])
        assert capfd.readouterr().out == ""
        assert json.loads(target.read_text(encoding="utf-8")) == [{"id": "openapi-shop"}]
        assert target.read_text(encoding="utf-8").endswith("\n")


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self, non_tty):
        assert isinstance(get_output(), OutputManager)

    def test_set_and_reset(self, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_module_functions_delegate(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.error("failed")
        output_module.info("loaded")
        err = capfd.readouterr().err
        assert "Error: failed" in err
        assert "loaded" in err
