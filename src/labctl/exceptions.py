"""Exception hierarchy for labctl.

All exceptions inherit from :class:`LabctlError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`labctl.exit_codes`
and an optional ``cause`` -- the lower-level exception that triggered it.
The top-level error handler in :func:`labctl.app.main` catches
``LabctlError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    LabctlError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthError                  (exit 3)
    +-- NotFoundError              (exit 4)
    +-- ServerError                (exit 5)
    +-- ConnectionError_           (exit 6)
    +-- ConfigError                (exit 1)
    +-- LoginError                 (exit 1)
        +-- ConfigurationError
        +-- AlreadyAuthenticatedError
        +-- SessionCreationError
        +-- PersistenceError
        +-- IdentityProvisioningError
        +-- LoginTimedOutError
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from labctl.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class LabctlError(Exception):
    """Base exception for all labctl errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`labctl.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable, single-line error description printed to
            stderr.
        exit_code: Optional override for the class-level exit code.
        cause: The underlying exception, kept for diagnostics. Callers
            should still use ``raise ... from cause`` so the traceback
            chain is preserved.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code
        self.cause = cause


class InvalidUsageError(LabctlError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(LabctlError):
    """Raised when the API rejects the bound credentials (HTTP 401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(LabctlError):
    """Raised when the API returns HTTP 404 (e.g. an unknown session ID)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(LabctlError):
    """Raised when the API returns an HTTP 5xx error or an unusable response."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(LabctlError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(LabctlError):
    """Raised when the config file cannot be read or fails validation."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Login flow ---


class LoginError(LabctlError):
    """Base class for failures of a ``labctl auth login`` transaction."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigurationError(LoginError):
    """Raised when only one of session ID / access token is supplied."""


class AlreadyAuthenticatedError(LoginError):
    """Raised when the config already holds a complete set of credentials."""


class SessionCreationError(LoginError):
    """Raised when the remote service fails to create a login session."""


class PersistenceError(LoginError):
    """Raised when the credentials cannot be written to the config file."""


class IdentityProvisioningError(LoginError):
    """Raised when the SSH identity cannot be generated.

    Args:
        message: Human-readable error description.
        ssh_dir: The directory the identity was to be generated in.
        cause: The underlying exception.
    """

    def __init__(
        self,
        message: str,
        ssh_dir: Path | str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.ssh_dir = Path(ssh_dir)


class LoginTimedOutError(LoginError):
    """Raised by the CLI when a session was not authorized before the deadline."""
