"""Pydantic models shared across labctl modules.

**Wire models** -- decoded from the Labs API:
    :class:`Session`.

**Configuration models** -- serialised as YAML in the user's config
directory:
    :class:`Config`.

All models use Pydantic v2. Wire models accept the API's camelCase keys
through aliases while exposing snake_case attributes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Remote session ---


class Session(BaseModel):
    """A server-side login session.

    Created by ``POST /auth/sessions``. The ``authenticated`` flag flips from
    ``False`` to ``True`` on the server once the user approves the session in
    the browser; labctl only ever observes it.

    Example::

        Session.model_validate({
            "id": "ses_123",
            "accessToken": "tok_abc",
            "authURL": "https://labs.iximiuz.com/auth/sessions/ses_123",
            "authenticated": False,
        })
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(description="Opaque session identifier")
    access_token: str = Field(
        default="",
        alias="accessToken",
        description="Secret bound to the session; sent as a bearer token",
    )
    auth_url: str = Field(
        default="",
        alias="authURL",
        description="URL the user opens to authorize the session",
    )
    authenticated: bool = Field(
        default=False, description="Whether the user has authorized the session"
    )


# --- Local configuration ---


class Config(BaseModel):
    """Persistent labctl configuration.

    Loaded from and dumped to ``config.yaml`` by :mod:`labctl.config`. The
    ``file_path`` attribute records where the config came from and is never
    serialised.

    The pair (``session_id``, ``access_token``) is written by
    ``labctl auth login``. Once both are non-empty the user is considered
    logged in (see :attr:`is_logged_in`).
    """

    model_config = ConfigDict(validate_assignment=True)

    base_url: str = Field(
        default="https://labs.iximiuz.com", description="Labs website URL"
    )
    api_base_url: str = Field(
        default="https://labs.iximiuz.com/api", description="Labs API base URL"
    )
    session_id: str = Field(default="", description="Active login session ID")
    access_token: str = Field(default="", description="Active session access token")
    ssh_dir: Path = Field(description="Directory holding the labctl SSH identity")
    file_path: Optional[Path] = Field(default=None, exclude=True)

    @field_validator("ssh_dir")
    @classmethod
    def _expand_ssh_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def is_logged_in(self) -> bool:
        """``True`` when both the session ID and the access token are set."""
        return bool(self.session_id) and bool(self.access_token)

    def dump(self) -> None:
        """Persist this config to :attr:`file_path` atomically.

        Raises:
            OSError: If the file cannot be written.
            ValueError: If the config has no ``file_path``.
        """
        from labctl.config import dump_config

        dump_config(self)
