"""Authentication for labctl.

The main entry points are:

- :func:`login` / :class:`LoginFlow` -- run one login transaction, either
  with caller-supplied credentials or through the browser.
- :class:`LoginOptions` -- the optional session ID / access token pair.
- :class:`LoginOutcome` -- how a non-failing login ended.
- :func:`save_session_and_generate_identity` -- persist credentials and
  provision the SSH identity.

Typical usage::

    from labctl.auth import LoginOptions, login
    from labctl.context import Context

    outcome = login(Context(), client, config, LoginOptions())
"""

from labctl.auth.login import (
    LOGIN_SESSION_TIMEOUT,
    POLL_INTERVAL,
    LoginFlow,
    LoginOptions,
    LoginOutcome,
    login,
    save_session_and_generate_identity,
)

__all__ = [
    "LOGIN_SESSION_TIMEOUT",
    "POLL_INTERVAL",
    "LoginFlow",
    "LoginOptions",
    "LoginOutcome",
    "login",
    "save_session_and_generate_identity",
]
