"""Typer application and CLI entry point for filecache.

The CLI is an operator's window into a cache folder: it resolves the same
:class:`~filecache.models.CacheConfig` a server would use and reports on
entries (``inspect``, ``show``) or manages the config file (``config``).

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from filecache import __version__
from filecache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="filecache",
    help="Inspect and manage disk-backed HTTP response caches.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"filecache {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool, console: Any) -> None:
    """Route library log records to stderr through Rich."""
    root = logging.getLogger("filecache")
    root.handlers.clear()
    handler = RichHandler(console=console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


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
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a filecache.json config file."
    ),
    folder: Optional[Path] = typer.Option(
        None, "--folder", "-d", help="Cache folder (overrides config)."
    ),
    ttl: Optional[float] = typer.Option(
        None, "--ttl", help="Time-to-live in seconds (overrides config)."
    ),
    no_gzip: bool = typer.Option(
        False, "--no-gzip", help="Ignore compressed entries."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~filecache.output.OutputManager`, wires
    logging to stderr, and stores the config options in ``ctx.obj`` for the
    sub-commands to resolve.
    """
    from filecache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    _setup_logging(output.is_verbose, output.stderr_console)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "folder": folder,
        "ttl_seconds": ttl,
        "gzip": False if no_gzip else None,
    }


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _register_commands() -> None:
    from filecache.commands.config import config_app
    from filecache.commands.entries import inspect_command, show_command

    app.command("inspect")(inspect_command)
    app.command("show")(show_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def main() -> None:
    """CLI entry point invoked by the ``filecache`` console script.

    :class:`~filecache.exceptions.FileCacheError` instances that escape a
    command exit with the error's ``exit_code``; anything else is reported
    as an unexpected error.
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
        from filecache.exceptions import FileCacheError
        from filecache.output import error

        if isinstance(exc, FileCacheError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
