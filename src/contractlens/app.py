"""Typer application and CLI entry point for contractlens.

This module wires together the top-level Typer application and registers the
built-in commands (``contracts``, ``operations``, ``operation``, ``detect``,
``export``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It installs signal handlers and invokes the Typer app.
:class:`~contractlens.exceptions.ContractLensError` exits with the error's
code; any other exception is written to a crash log under the data directory.

See Also:
    :mod:`contractlens.config`: Configuration resolution used by
        :func:`main_callback`.
    :mod:`contractlens.output`: Output formatting initialised in
        :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from contractlens import __version__
from contractlens.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="contractlens",
    help="Browse OpenAPI and AsyncAPI documents through one unified contract model.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

LOGGER_NAME = "contractlens"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"contractlens {__version__}")
        raise typer.Exit()


def configure_logging(console: Console, verbose: bool = False, quiet: bool = False) -> None:
    """Route the package's log records to *console* through a Rich handler.

    ``--verbose`` selects DEBUG, ``--quiet`` selects ERROR, and the default
    is WARNING.  Calling it again replaces the previously installed handler.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=console, show_time=False, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    specs_dir: Optional[str] = typer.Option(
        None, "--specs-dir", "-d", help="Directory with openapi/ and asyncapi/ sub-directories."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output file path."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Resolves configuration, installs the global
    :class:`~contractlens.output.OutputManager` and the log handler, and
    stores the effective :class:`~contractlens.models.GlobalConfig` in
    ``ctx.obj["config"]`` for the sub-commands.
    """
    from contractlens.config import resolve_config
    from contractlens.exceptions import ConfigError
    from contractlens.output import OutputFormat, OutputManager, error, set_output

    cli_format: Optional[str] = None
    if json_output:
        cli_format = OutputFormat.JSON.value
    elif plain_output:
        cli_format = OutputFormat.PLAIN.value

    try:
        config = resolve_config(cli_specs_dir=specs_dir, cli_format=cli_format)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    try:
        fmt = OutputFormat(config.output.format)
    except ValueError:
        fmt = OutputFormat.AUTO

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        output_file=output_file,
    )
    set_output(output)
    configure_logging(output.stderr_console, verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


# --- Commands ---

from contractlens.commands.inspect import (  # noqa: E402
    detect_document,
    export_contracts,
    list_contracts,
    list_operations,
    show_operation,
)

app.command("contracts")(list_contracts)
app.command("operations")(list_operations)
app.command("operation")(show_operation)
app.command("detect")(detect_document)
app.command("export")(export_contracts)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to the data directory and return the log path."""
    from contractlens.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``contractlens`` console script.

    Unhandled :class:`~contractlens.exceptions.ContractLensError` instances
    cause a clean exit with the error's ``exit_code``.  All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from contractlens.exceptions import ContractLensError
        from contractlens.output import error

        if isinstance(exc, ContractLensError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
