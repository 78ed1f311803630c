"""Synchronous client for the iximiuz Labs API.

This module provides :class:`LabsClient`, a thin wrapper around
:class:`httpx.Client` that layers on:

- **Credential binding** -- :meth:`LabsClient.set_credentials` attaches a
  session ID and access token to every subsequent request.
- **Context-aware timeouts** -- each call accepts an optional
  :class:`~labctl.context.Context`; the request timeout never outlives the
  context's deadline and a finished context aborts the call up front.
- **Error mapping** -- HTTP and transport failures are translated into the
  :mod:`labctl.exceptions` hierarchy.

Only the login session resource is exposed here:
:meth:`LabsClient.create_session` and :meth:`LabsClient.get_session`.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from labctl import __version__
from labctl.context import Context
from labctl.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from labctl.models import Session

SESSION_HEADER = "X-Labs-Session-Id"

logger = logging.getLogger(__name__)


class LabsClient:
    """HTTP client for the Labs API.

    Can be used as a context manager so the underlying connection pool is
    closed deterministically; :meth:`close` does the same explicitly.

    Args:
        base_url: API base URL, e.g. ``https://labs.iximiuz.com/api``.
        timeout: Default per-request timeout in seconds.
        user_agent: Overrides the default ``labctl/<version>`` User-Agent.
        transport: Optional httpx transport (tests pass
            :class:`httpx.MockTransport`).

    Example::

        with LabsClient(config.api_base_url) as client:
            session = client.create_session()
            client.set_credentials(session.id, session.access_token)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._session_id: Optional[str] = None
        self._access_token: Optional[str] = None
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
            headers={
                "Accept": "application/json",
                "User-Agent": user_agent or f"labctl/{__version__}",
            },
        )

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> LabsClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    # ------------------------------------------------------------------ #
    # Credentials
    # ------------------------------------------------------------------ #

    def set_credentials(self, session_id: str, access_token: str) -> None:
        """Bind *session_id* and *access_token* to all subsequent requests."""
        self._session_id = session_id
        self._access_token = access_token

    @property
    def session_id(self) -> Optional[str]:
        """The currently bound session ID, if any."""
        return self._session_id

    @property
    def has_credentials(self) -> bool:
        """Whether a session ID and access token are bound."""
        return bool(self._session_id and self._access_token)

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def create_session(self, ctx: Optional[Context] = None) -> Session:
        """Start a new login session (``POST /auth/sessions``).

        Returns:
            The new, not yet authenticated :class:`~labctl.models.Session`.

        Raises:
            LabctlError: Any subclass from the error mapping in
                :meth:`_request`.
        """
        response = self._request("POST", "/auth/sessions", ctx=ctx, json_body={})
        return self._parse_session(response)

    def get_session(self, session_id: str, ctx: Optional[Context] = None) -> Session:
        """Fetch the current state of a session (``GET /auth/sessions/{id}``)."""
        response = self._request("GET", f"/auth/sessions/{session_id}", ctx=ctx)
        return self._parse_session(response)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _auth_headers(self) -> dict[str, str]:
        session_id, access_token = self._session_id, self._access_token
        if not (session_id and access_token):
            return {}
        return {
            "Authorization": f"Bearer {access_token}",
            SESSION_HEADER: session_id,
        }

    def _request(
        self,
        method: str,
        path: str,
        ctx: Optional[Context] = None,
        json_body: Optional[Any] = None,
    ) -> httpx.Response:
        """Send one request and map failures onto labctl exceptions.

        Raises:
            ConnectionError_: On network errors, timeouts, or when *ctx*
                is already done.
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On any other 4xx / 5xx.
        """
        timeout = self._timeout
        if ctx is not None:
            reason = ctx.err()
            if reason is not None:
                raise ConnectionError_(f"{method} {path} aborted: {reason}")
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining)

        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(
                method,
                path,
                json=json_body,
                headers=self._auth_headers(),
                timeout=timeout,
            )
        except httpx.RequestError as exc:
            raise ConnectionError_(f"{method} {path} failed: {exc}", cause=exc) from exc

        self._map_response_error(response)
        return response

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        # Try to extract an error message from the response body.
        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)

    @staticmethod
    def _parse_session(response: httpx.Response) -> Session:
        try:
            return Session.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ServerError(f"Malformed session response: {exc}", cause=exc) from exc
