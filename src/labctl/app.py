"""Root Typer application and console-script entry point.

``labctl`` itself only owns the global flags; the work happens in the
``auth`` and ``config`` sub-apps mounted below. :func:`main` is what the
``labctl`` console script runs:

* a :class:`~labctl.exceptions.LabctlError` that escapes a command becomes
  one ``Error: ...`` line and the error's exit code;
* anything else is a bug, so its traceback goes to
  ``<data dir>/logs/crash-<timestamp>.log`` and the exit code is 1;
* Ctrl-C outside of ``auth login`` exits with 130.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from labctl import __version__
from labctl.commands.auth import auth_app
from labctl.commands.config import config_app
from labctl.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="labctl",
    help="Command-line client for iximiuz Labs.",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(auth_app, name="auth", help="Log in to iximiuz Labs.")
app.add_typer(config_app, name="config", help="Inspect the labctl configuration.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"labctl {__version__}")
        raise typer.Exit()


def _route_logs(console: Console, verbose: bool) -> None:
    """Send ``labctl.*`` records to *console*: DEBUG with ``-v``, else WARNING."""
    logger = logging.getLogger("labctl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=console, show_time=False, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        is_eager=True,
        callback=_print_version,
        help="Print the labctl version and exit.",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Print plain, uncoloured text."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print errors and command results."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log requests and polling progress."
    ),
) -> None:
    """Set up output and logging from the global flags."""
    from labctl.output import OutputManager, set_output

    output = OutputManager(no_color=no_color, quiet=quiet)
    set_output(output)
    _route_logs(output.console, verbose)

    ctx.ensure_object(dict)
    ctx.obj.update(quiet=quiet, verbose=verbose)


def _exit_on_sigint() -> None:
    """Turn Ctrl-C into exit code 130.

    ``labctl auth login`` swaps in its own handler while it waits, so an
    interrupted login is cancelled rather than killed.
    """

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: BaseException) -> Path:
    from labctl.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text("".join(traceback.format_exception(exc)), encoding="utf-8")
    return path


def main() -> None:
    """Run the CLI. Always ends in :class:`SystemExit`."""
    from labctl.exceptions import LabctlError
    from labctl.output import error

    _exit_on_sigint()
    try:
        app()
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(EXIT_CANCELLED)
    except LabctlError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
