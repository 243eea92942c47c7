"""Typer application and CLI entry point for vopex.

This module wires together the top-level Typer application and registers
the sub-commands (``init``, ``auth``, ``leads``, ``opportunities``,
``campaigns``, ``cache``, ``flags``, ``config``, ``watch``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands and
invokes the Typer app. Unhandled exceptions are written to a crash log under
the data directory.

See Also:
    :mod:`vopex.config`: Profile and global configuration resolution.
    :mod:`vopex.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from vopex import __version__
from vopex.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="vopex",
    help="Work with a Vopex CRM deployment from the terminal.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

_registered = False


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"vopex {__version__}")
        raise typer.Exit()


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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Override the profile's API root."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log requests and cache activity to stderr."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~vopex.output.OutputManager` from CLI
    flags and stores the connection overrides in ``ctx.obj`` for
    :func:`~vopex.commands._common.open_runtime`.
    """
    from vopex.output import OutputManager, set_output

    fmt = _output_format(json_output, plain_output)
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        _enable_debug_logging(no_color)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["base_url"] = base_url
    ctx.obj["verbose"] = verbose


def _output_format(json_output: bool, plain_output: bool):
    """Pick the format from the flags, else from ``output.format`` in config.json."""
    from vopex.config import load_global_config
    from vopex.exceptions import ConfigError
    from vopex.output import OutputFormat

    if json_output:
        return OutputFormat.JSON
    if plain_output:
        return OutputFormat.PLAIN
    try:
        return OutputFormat(load_global_config().output.format)
    except (ConfigError, ValueError):
        # A broken config.json is reported by the command that needs it.
        return OutputFormat.AUTO


def _enable_debug_logging(no_color: bool) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger = logging.getLogger("vopex")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def register_commands() -> None:
    """Attach the sub-commands to :data:`app`. Safe to call more than once."""
    global _registered
    if _registered:
        return

    from vopex.commands.auth import auth_app
    from vopex.commands.cache import cache_app
    from vopex.commands.campaigns import campaigns_app
    from vopex.commands.config import config_app
    from vopex.commands.flags import flags_app
    from vopex.commands.init import init_command
    from vopex.commands.leads import leads_app
    from vopex.commands.opportunities import opportunities_app
    from vopex.commands.watch import watch_command

    app.command("init")(init_command)
    app.add_typer(auth_app, name="auth", help="Sign in and manage the session.")
    app.add_typer(leads_app, name="leads", help="Leads.")
    app.add_typer(opportunities_app, name="opportunities", help="Sales opportunities.")
    app.add_typer(campaigns_app, name="campaigns", help="Marketing campaigns.")
    app.add_typer(cache_app, name="cache", help="Client-side cache.")
    app.add_typer(flags_app, name="flags", help="Feature flags.")
    app.add_typer(config_app, name="config", help="Configuration management.")
    app.command("watch")(watch_command)
    _registered = True


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``<data dir>/logs`` and return its path."""
    from vopex.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    header = f"vopex {__version__}\nargv: {' '.join(sys.argv)}\n{type(exc).__name__}: {exc}\n\n"
    log_path.write_text(header + traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``vopex`` console script.

    Unhandled :class:`~vopex.exceptions.VopexError` instances cause a clean
    exit with the error's ``exit_code``. All other exceptions produce a
    crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from vopex.exceptions import VopexError
        from vopex.output import error

        if isinstance(exc, VopexError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
