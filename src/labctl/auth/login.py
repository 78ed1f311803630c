"""Browser-delegated login for labctl.

Two modes, selected by :class:`LoginOptions`:

**Direct** (session ID and access token supplied): the pair is bound to the
client and persisted straight away. No remote session is created.

**Interactive** (nothing supplied):
    1. Create a login session on the Labs API.
    2. Bind its ID and access token to the client, so the client is usable
       while the user is still authorizing.
    3. Open the session's auth URL in the browser (falling back to asking
       the user to copy it).
    4. Poll the session every :data:`POLL_INTERVAL` seconds until it is
       authorized, :data:`LOGIN_SESSION_TIMEOUT` elapses, or the governing
       :class:`~labctl.context.Context` is cancelled.
    5. On authorization: persist the credentials to the config file and
       generate the local SSH identity.

Both modes refuse to run when the config already holds credentials.

Credentials are bound to the client before they are persisted. If writing
the config fails afterwards, the current process stays authenticated while
the config file does not.
"""

from __future__ import annotations

import enum
import logging
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from labctl import ssh
from labctl.context import CANCELLED, Context
from labctl.exceptions import (
    AlreadyAuthenticatedError,
    ConfigurationError,
    IdentityProvisioningError,
    LabctlError,
    PersistenceError,
    SessionCreationError,
)
from labctl.models import Config, Session
from labctl.output import OutputManager, get_output

POLL_INTERVAL = 2.0
"""Seconds between two session polls."""

LOGIN_SESSION_TIMEOUT = 10 * 60.0
"""Seconds the user has to authorize a session in the browser."""

WAITING_MESSAGE = "Waiting for the session to be authorized... "

logger = logging.getLogger(__name__)


class LoginOutcome(str, enum.Enum):
    """Terminal state of a login transaction that did not fail."""

    AUTHORIZED = "authorized"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass
class LoginOptions:
    """Caller-supplied credentials for ``labctl auth login``.

    Both fields empty selects interactive mode, both set selects direct
    mode. A partial pair is rejected by :meth:`validate`.
    """

    session_id: str = ""
    access_token: str = ""

    def validate(self) -> None:
        """Raise :class:`~labctl.exceptions.ConfigurationError` on a partial pair."""
        if self.session_id and not self.access_token:
            raise ConfigurationError(
                "Access token must be provided if session ID is specified."
            )
        if self.access_token and not self.session_id:
            raise ConfigurationError(
                "Session ID must be provided if access token is specified."
            )

    @property
    def is_direct(self) -> bool:
        return bool(self.session_id and self.access_token)


class SessionClient(Protocol):
    """What the login flow needs from the API client."""

    def create_session(self, ctx: Optional[Context] = None) -> Session: ...

    def get_session(self, session_id: str, ctx: Optional[Context] = None) -> Session: ...

    def set_credentials(self, session_id: str, access_token: str) -> None: ...


IdentityGenerator = Callable[[Path], object]
BrowserOpener = Callable[[str], bool]


def save_session_and_generate_identity(
    config: Config,
    session_id: str,
    access_token: str,
    generate_identity: Optional[IdentityGenerator] = None,
) -> None:
    """Persist the credentials and make sure the SSH identity exists.

    Steps run in order and the first failure aborts; nothing is retried.

    Raises:
        PersistenceError: If the config file cannot be written.
        IdentityProvisioningError: If the SSH keypair cannot be generated.
    """
    config.session_id = session_id
    config.access_token = access_token
    try:
        config.dump()
    except (OSError, ValueError) as exc:
        raise PersistenceError(
            f"couldn't save the credentials to the config file: {exc}", cause=exc
        ) from exc

    generate_identity = generate_identity or ssh.generate_identity
    try:
        generate_identity(config.ssh_dir)
    except (OSError, ValueError) as exc:
        raise IdentityProvisioningError(
            f"couldn't generate SSH identity in {config.ssh_dir}: {exc}",
            ssh_dir=config.ssh_dir,
            cause=exc,
        ) from exc


class LoginFlow:
    """One ``labctl auth login`` transaction.

    Args:
        client: API client; receives the credentials via ``set_credentials``.
        config: Loaded config; credentials are written into it and dumped.
        open_browser: Opens a URL, returning ``False`` (or raising) on
            failure. Defaults to :func:`webbrowser.open`.
        generate_identity: SSH identity provisioner, called with
            ``config.ssh_dir``. Defaults to :func:`labctl.ssh.generate_identity`.
        output: Where user-facing messages go. Defaults to the global
            :class:`~labctl.output.OutputManager`.
        poll_interval: Seconds between polls (:data:`POLL_INTERVAL`).
        timeout: Seconds to wait for the user to authorize the session
            (:data:`LOGIN_SESSION_TIMEOUT`).
    """

    def __init__(
        self,
        client: SessionClient,
        config: Config,
        open_browser: Optional[BrowserOpener] = None,
        generate_identity: Optional[IdentityGenerator] = None,
        output: Optional[OutputManager] = None,
        poll_interval: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._config = config
        self._open_browser = open_browser or webbrowser.open
        self._generate_identity = generate_identity or ssh.generate_identity
        self._output = output or get_output()
        self._poll_interval = POLL_INTERVAL if poll_interval is None else poll_interval
        self._timeout = LOGIN_SESSION_TIMEOUT if timeout is None else timeout

    def run(self, ctx: Context, options: LoginOptions) -> LoginOutcome:
        """Run the login transaction.

        Returns:
            :attr:`LoginOutcome.AUTHORIZED` once credentials are saved,
            :attr:`LoginOutcome.TIMED_OUT` if the session was not authorized
            in time, :attr:`LoginOutcome.CANCELLED` if *ctx* was cancelled.
            Nothing is persisted unless the outcome is ``AUTHORIZED``.

        Raises:
            ConfigurationError: Only one of session ID / access token given.
            AlreadyAuthenticatedError: The config already holds credentials.
            SessionCreationError: The login session could not be created.
            PersistenceError: The config file could not be written.
            IdentityProvisioningError: The SSH identity could not be created.
        """
        options.validate()

        if self._config.is_logged_in:
            raise AlreadyAuthenticatedError(
                "Already logged in. Clear session_id and access_token in "
                f"{self._config.file_path or 'the config file'} first if you want "
                "to log in as a different user."
            )

        if options.is_direct:
            return self._login_direct(options)
        return self._login_interactive(ctx)

    # ------------------------------------------------------------------ #
    # Modes
    # ------------------------------------------------------------------ #

    def _login_direct(self, options: LoginOptions) -> LoginOutcome:
        self._client.set_credentials(options.session_id, options.access_token)
        self._save(options.session_id, options.access_token)
        self._output.success("Authenticated.")
        return LoginOutcome.AUTHORIZED

    def _login_interactive(self, ctx: Context) -> LoginOutcome:
        try:
            session = self._client.create_session(ctx)
        except LabctlError as exc:
            raise SessionCreationError(f"couldn't start a session: {exc}", cause=exc) from exc

        # Interrupted while the session was being created.
        reason = ctx.err()
        if reason is not None:
            logger.debug("Login stopped after creating session %s: %s", session.id, reason)
            if reason == CANCELLED:
                return LoginOutcome.CANCELLED
            return LoginOutcome.TIMED_OUT

        access_token = session.access_token
        self._client.set_credentials(session.id, access_token)

        self._output.info(f"Opening {session.auth_url} in your browser...")
        if not self._try_open_browser(session.auth_url):
            self._output.info(
                "Couldn't open the browser. Copy the above URL into a browser "
                "manually and follow the instructions on the page."
            )
        self._output.info("")

        poll_ctx = ctx.with_timeout(self._timeout)
        try:
            with self._output.status(WAITING_MESSAGE):
                authorized = self._wait_for_authorization(poll_ctx, session.id)
            reason = poll_ctx.err()
        finally:
            poll_ctx.release()

        if authorized is None:
            if reason == CANCELLED:
                logger.debug("Login cancelled while waiting for session %s", session.id)
                return LoginOutcome.CANCELLED
            logger.debug("Session %s was not authorized in time", session.id)
            return LoginOutcome.TIMED_OUT

        self._output.info(WAITING_MESSAGE + "Done.")
        self._save(authorized.id, access_token)
        self._output.info("")
        self._output.success("Session authorized. You can now use labctl commands.")
        return LoginOutcome.AUTHORIZED

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _wait_for_authorization(self, ctx: Context, session_id: str) -> Optional[Session]:
        """Poll *session_id* until it is authorized or *ctx* is done.

        Failed polls count as "not authorized yet".

        Returns:
            The authorized session, or ``None`` on timeout / cancellation.
        """
        attempt = 0
        while ctx.err() is None:
            attempt += 1
            try:
                session = self._client.get_session(session_id, ctx)
            except LabctlError as exc:
                logger.debug("Poll #%d of session %s failed: %s", attempt, session_id, exc)
            else:
                if session.authenticated:
                    # A cancellation that raced the last poll still wins.
                    if ctx.cancelled:
                        return None
                    logger.debug("Session %s authorized after %d poll(s)", session_id, attempt)
                    return session
                logger.debug("Poll #%d: session %s not authorized yet", attempt, session_id)

            ctx.sleep(self._poll_interval)
        return None

    def _try_open_browser(self, url: str) -> bool:
        try:
            return bool(self._open_browser(url))
        except (webbrowser.Error, OSError) as exc:
            logger.debug("Opening %s failed: %s", url, exc)
            return False

    def _save(self, session_id: str, access_token: str) -> None:
        save_session_and_generate_identity(
            self._config, session_id, access_token, self._generate_identity
        )


def login(
    ctx: Context,
    client: SessionClient,
    config: Config,
    options: LoginOptions,
    **kwargs: Any,
) -> LoginOutcome:
    """Run a :class:`LoginFlow` with *options*. See :meth:`LoginFlow.run`.

    Extra keyword arguments are passed to :class:`LoginFlow`.
    """
    return LoginFlow(client, config, **kwargs).run(ctx, options)
