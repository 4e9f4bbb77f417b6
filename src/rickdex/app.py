"""Typer application and CLI entry point for rickdex.

This module wires together the top-level Typer application and registers
the built-in sub-command groups (``episodes``, ``characters``, ``cache``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a signal handler, registers commands and
invokes the Typer app. Unhandled exceptions are written to a crash log
under the data directory.

See Also:
    :mod:`rickdex.config`: Global configuration resolution.
    :mod:`rickdex.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from rickdex import __version__
from rickdex.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="rickdex",
    help="Browse Rick & Morty episodes and characters from a local cache.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"rickdex {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr; DEBUG with ``--verbose``, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )
    # httpx logs every request at INFO; keep it out of the way.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


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
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="API base URL (overrides config and RICKDEX_BASE_URL)."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~rickdex.output.OutputManager` from CLI
    flags and stores shared options (``base_url``, ``force``) in the Typer
    context so that sub-commands can read them via ``ctx.obj``. Values the
    caller already placed in ``ctx.obj`` are kept.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        base_url: API base URL override (highest precedence).
        force: Skip interactive confirmations.
    """
    from rickdex.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["base_url"] = base_url
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from rickdex.commands.cache import cache_app
    from rickdex.commands.characters import characters_app
    from rickdex.commands.config import config_app
    from rickdex.commands.episodes import episodes_app

    app.add_typer(episodes_app, name="episodes", help="List and inspect episodes.")
    app.add_typer(characters_app, name="characters", help="Inspect and export characters.")
    app.add_typer(cache_app, name="cache", help="Inspect and clear the local store.")
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from rickdex.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``rickdex`` console script.

    Unhandled :class:`~rickdex.exceptions.RickdexError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

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
        from rickdex.exceptions import RickdexError
        from rickdex.output import error

        if isinstance(exc, RickdexError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
