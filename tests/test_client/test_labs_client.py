"""Tests for the Labs API client."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from labctl.client import SESSION_HEADER, LabsClient
from labctl.context import Context
from labctl.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

BASE_URL = "https://labs.example.com/api"


def _session_json(authenticated: bool = False) -> dict[str, Any]:
    return {
        "id": "ses_123",
        "accessToken": "tok_abc",
        "authURL": "https://labs.example.com/auth/ses_123",
        "authenticated": authenticated,
    }


def _client(handler) -> LabsClient:
    return LabsClient(BASE_URL, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestCreateSession:
    def test_posts_and_decodes(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json=_session_json())

        with _client(handler) as client:
            session = client.create_session()

        assert session.id == "ses_123"
        assert session.access_token == "tok_abc"
        assert session.auth_url == "https://labs.example.com/auth/ses_123"
        assert session.authenticated is False

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/auth/sessions"
        assert json.loads(request.content) == {}
        assert "authorization" not in request.headers
        assert request.headers["user-agent"].startswith("labctl/")

    def test_unknown_fields_ignored(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={**_session_json(), "createdAt": "2024-01-01"})

        with _client(handler) as client:
            assert client.create_session().id == "ses_123"


class TestGetSession:
    def test_sends_bound_credentials(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_session_json(authenticated=True))

        with _client(handler) as client:
            client.set_credentials("ses_123", "tok_abc")
            session = client.get_session("ses_123")

        assert session.authenticated is True
        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/api/auth/sessions/ses_123"
        assert request.headers["authorization"] == "Bearer tok_abc"
        assert request.headers[SESSION_HEADER] == "ses_123"

    def test_missing_token_in_body_is_allowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "ses_123", "authenticated": True})

        with _client(handler) as client:
            session = client.get_session("ses_123")
        assert session.access_token == ""
        assert session.authenticated is True


class TestCredentials:
    def test_initially_unbound(self) -> None:
        client = LabsClient(BASE_URL)
        assert client.has_credentials is False
        assert client.session_id is None
        client.close()

    def test_custom_user_agent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json=_session_json())

        transport = httpx.MockTransport(handler)
        with LabsClient(BASE_URL, user_agent="labctl-test/1.0", transport=transport) as client:
            client.create_session()
        assert seen[0].headers["user-agent"] == "labctl-test/1.0"

    def test_set_credentials(self) -> None:
        with LabsClient(BASE_URL) as client:
            client.set_credentials("ses_1", "tok_1")
            assert client.has_credentials is True
            assert client.session_id == "ses_1"

    @pytest.mark.parametrize(("session_id", "token"), [("ses_1", ""), ("", "tok_1")])
    def test_partial_credentials_send_no_auth_headers(
        self, session_id: str, token: str
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_session_json())

        with _client(handler) as client:
            client.set_credentials(session_id, token)
            client.get_session("ses_123")

        assert client.has_credentials is False
        assert "authorization" not in seen[0].headers
        assert SESSION_HEADER not in seen[0].headers


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("status", "exc_type", "exit_code"),
        [
            (401, AuthError, 3),
            (403, AuthError, 3),
            (404, NotFoundError, 4),
            (400, ServerError, 5),
            (500, ServerError, 5),
            (503, ServerError, 5),
        ],
    )
    def test_status_codes(self, status: int, exc_type: type, exit_code: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"message": "nope"})

        with _client(handler) as client:
            with pytest.raises(exc_type) as exc_info:
                client.get_session("ses_123")

        assert exc_info.value.exit_code == exit_code
        assert f"HTTP {status}: nope" in str(exc_info.value)

    def test_plain_text_error_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with _client(handler) as client:
            with pytest.raises(ServerError, match="HTTP 502: Bad Gateway"):
                client.create_session()

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(ConnectionError_) as exc_info:
                client.create_session()

        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert exc_info.value.exit_code == 6

    def test_timeout_maps_to_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _client(handler) as client:
            with pytest.raises(ConnectionError_):
                client.get_session("ses_123")

    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '{"authenticated": true}'])
    def test_malformed_session(self, body: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=body)

        with _client(handler) as client:
            with pytest.raises(ServerError, match="Malformed session response"):
                client.get_session("ses_123")


# ---------------------------------------------------------------------------
# Context handling
# ---------------------------------------------------------------------------


class TestContext:
    def test_done_context_aborts_before_sending(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_session_json())

        ctx = Context()
        ctx.cancel()
        with _client(handler) as client:
            with pytest.raises(ConnectionError_, match="context cancelled"):
                client.get_session("ses_123", ctx)

        assert calls == []

    def test_live_context_passes_through(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_session_json())

        with _client(handler) as client:
            session = client.get_session("ses_123", Context().with_timeout(30))
        assert session.id == "ses_123"

    def test_request_timeout_capped_by_deadline(self) -> None:
        timeouts: list[Any] = []

        def handler(request: httpx.Request) -> httpx.Response:
            timeouts.append(request.extensions["timeout"])
            return httpx.Response(200, json=_session_json())

        with _client(handler) as client:
            client.get_session("ses_123", Context(timeout=5))

        assert timeouts[0]["read"] <= 5
