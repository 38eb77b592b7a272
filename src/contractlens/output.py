"""Output formatting with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary data only (contract lists, operation details, JSON
  exports).  This is what downstream tools pipe and parse.
* **stderr** -- all diagnostics (status, warnings, errors, suggestions).
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and the quiet flag.  Created once in
   :func:`~contractlens.app.main_callback` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`, ...)
   that delegate to the global ``OutputManager`` instance.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional, Union

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree

from contractlens.models import SchemaProperty, UnifiedDataSchema


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Central manager for all CLI output.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        output_file: If set, primary data goes to this file instead of stdout.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._output_file = output_file

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def stderr_console(self) -> Console:
        """Console used for diagnostics; the CLI's log handler writes here."""
        return self._stderr

    # --- Data output (stdout) ---

    def emit(self, data: Any, force_json: bool = False) -> None:
        """Write structured data (dict or list) to stdout in the active format.

        JSON mode, *force_json* and ``--output`` files always receive indented JSON.
        """
        if self._output_file:
            self._write_to_file(data)
        elif force_json or self._format == OutputFormat.JSON:
            self.print_data(_dump_json(data))
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._stdout.print(Syntax(_dump_json(data), "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        """Print one line of raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table`.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, one row per line.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dump_json([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def print_schema(self, label: str, schema: UnifiedDataSchema) -> None:
        """Print a schema tree: a Rich tree, indented plain text, or JSON."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dump_json({label: schema.to_json_dict()}))
        elif self._format == OutputFormat.PLAIN:
            self.print_data(f"{label}: {_describe(schema)}")
            for line in schema_lines(schema, indent=1):
                self.print_data(line)
        else:
            tree = Tree(f"[bold]{label}[/bold]: {_describe(schema)}")
            _add_branches(tree, schema)
            self._stdout.print(tree)

    # --- Diagnostics (stderr) ---

    def info(self, message: str) -> None:
        """Status message. Suppressed by ``--quiet``."""
        self._diagnostic(message, plain_prefix="", markup="{}", suppressible=True)

    def warning(self, message: str) -> None:
        """Warning about a skipped document or a degraded result. Never suppressed."""
        self._diagnostic(message, plain_prefix="Warning: ", markup="[yellow]Warning:[/yellow] {}")

    def error(self, message: str) -> None:
        """Error. Never suppressed."""
        self._diagnostic(message, plain_prefix="Error: ", markup="[bold red]Error:[/bold red] {}")

    def suggest(self, message: str) -> None:
        """Dimmed next-step hint. Suppressed by ``--quiet``."""
        self._diagnostic(message, plain_prefix="→ ", markup="[dim]→ {}[/dim]", suppressible=True)

    # --- Private helpers ---

    def _diagnostic(
        self,
        message: str,
        plain_prefix: str,
        markup: str,
        suppressible: bool = False,
    ) -> None:
        if suppressible and self._quiet:
            return
        if self._no_color:
            print(f"{plain_prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(message))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _write_to_file(self, data: Any) -> None:
        assert self._output_file is not None
        content = data if isinstance(data, str) else _dump_json(data)
        with open(self._output_file, "w", encoding="utf-8") as f:
            f.write(content)
            if not content.endswith("\n"):
                f.write("\n")


# --- Schema rendering ---

SchemaNode = Union[UnifiedDataSchema, SchemaProperty]


def _describe(node: SchemaNode, required: bool = False) -> str:
    text = node.type
    if node.format:
        text += f" ({node.format})"
    if node.enum:
        text += " enum[" + ", ".join(str(v) for v in node.enum) + "]"
    if required:
        text += " *required"
    return text


def _members(node: SchemaNode) -> list[tuple[str, SchemaNode]]:
    """Child rows of a node: its properties, or ``[]`` for an array's items."""
    if node.properties is not None:
        return list(node.properties.items())
    if node.items is not None:
        return [("[]", node.items)]
    return []


def schema_lines(node: SchemaNode, indent: int = 0) -> list[str]:
    """Indented ``name: type`` lines for every member below *node*."""
    required = set(node.required or [])
    lines: list[str] = []
    for name, child in _members(node):
        lines.append("  " * indent + f"{name}: {_describe(child, name in required)}")
        lines.extend(schema_lines(child, indent + 1))
    return lines


def _add_branches(tree: Tree, node: SchemaNode) -> None:
    required = set(node.required or [])
    for name, child in _members(node):
        branch = tree.add(f"[cyan]{name}[/cyan]: {_describe(child, name in required)}")
        _add_branches(branch, child)


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# --- Global output instance (set during app startup) ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager; used by tests between CLI invocations."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
