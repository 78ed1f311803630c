"""Auth commands -- log in to iximiuz Labs.

Provides the ``labctl auth`` sub-command group.

Typical workflow::

    labctl auth login                       # authorize in the browser
    labctl auth login -s SESSION -t TOKEN   # reuse an existing session
"""

from __future__ import annotations

import signal
from typing import Any

import typer

from labctl.exceptions import LabctlError, LoginTimedOutError
from labctl.exit_codes import EXIT_CANCELLED
from labctl.output import error, info, suggest


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    session_id: str = typer.Option(
        "", "--session-id", "-s", help="Session ID", show_default=False
    ),
    access_token: str = typer.Option(
        "", "--access-token", "-t", help="Access token", show_default=False
    ),
) -> None:
    """Log in as a Labs user (you will be prompted to open a browser page with a one-time use URL).

    Without options, a new login session is created and its one-time URL
    opened in the browser; the command then waits up to 10 minutes for the
    session to be authorized. With ``--session-id`` and ``--access-token``
    an already authorized session is stored as-is.

    On success the credentials are written to the config file and an SSH
    identity is generated in the configured SSH directory.

    Raises:
        typer.Exit: With code 1 for a partial session ID / access token
            pair, when already logged in, on timeout, or when storing the
            credentials fails; code 130 when interrupted.

    Example::

        labctl auth login
        labctl auth login --session-id ses_123 --access-token tok_abc
    """
    from labctl.auth import LoginOptions, LoginOutcome, login
    from labctl.auth.login import LOGIN_SESSION_TIMEOUT
    from labctl.client import LabsClient
    from labctl.config import effective_api_base_url, load_config
    from labctl.context import Context

    options = LoginOptions(session_id=session_id, access_token=access_token)
    ctx = Context()

    def _cancel(signum: int, frame: Any) -> None:  # noqa: ANN401
        ctx.cancel()

    try:
        options.validate()
        config = load_config()

        previous = signal.signal(signal.SIGINT, _cancel)
        try:
            with LabsClient(effective_api_base_url(config)) as client:
                outcome = login(ctx, client, config, options)
        finally:
            signal.signal(signal.SIGINT, previous)

        if outcome is LoginOutcome.TIMED_OUT:
            minutes = int(LOGIN_SESSION_TIMEOUT // 60)
            raise LoginTimedOutError(
                f"The session wasn't authorized within {minutes} minutes."
            )
    except LoginTimedOutError as exc:
        error(str(exc))
        suggest("Try again: labctl auth login")
        raise typer.Exit(code=exc.exit_code) from None
    except LabctlError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if outcome is LoginOutcome.CANCELLED:
        info("\nCancelled.")
        raise typer.Exit(code=EXIT_CANCELLED)
