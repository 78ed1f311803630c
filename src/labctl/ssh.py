"""Local SSH identity used to connect to playgrounds.

:func:`generate_identity` makes sure an ed25519 keypair exists in the
configured SSH directory::

    <ssh_dir>/id_ed25519      OpenSSH private key, mode 0600
    <ssh_dir>/id_ed25519.pub  OpenSSH public key, mode 0644

Generation is create-if-absent: an existing private key is never replaced,
so calling it on every login is safe.
"""

from __future__ import annotations

import getpass
import logging
import os
import socket
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from labctl.config import atomic_write

IDENTITY_FILE = "id_ed25519"

logger = logging.getLogger(__name__)


def identity_paths(ssh_dir: Path | str) -> tuple[Path, Path]:
    """Return ``(private_key_path, public_key_path)`` inside *ssh_dir*."""
    ssh_dir = Path(ssh_dir)
    private_path = ssh_dir / IDENTITY_FILE
    return private_path, private_path.with_name(f"{IDENTITY_FILE}.pub")


def _default_comment() -> str:
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "labctl"
    return f"{user}@{socket.gethostname()}"


def _public_line(private_key: ed25519.Ed25519PrivateKey, comment: str) -> str:
    public_openssh = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    line = public_openssh.decode("ascii")
    if comment:
        line = f"{line} {comment}"
    return line + "\n"


def generate_identity(ssh_dir: Path | str, comment: str | None = None) -> Path:
    """Ensure an ed25519 SSH keypair exists in *ssh_dir*.

    * Neither key exists: generate a new pair.
    * Private key exists: leave it untouched. A missing public key is
      re-derived from it.

    Args:
        ssh_dir: Directory for the identity. Created with mode ``0o700`` if
            missing.
        comment: Comment appended to the public key. Defaults to
            ``user@hostname``.

    Returns:
        Path to the private key.

    Raises:
        OSError: If the directory or key files cannot be created or read.
        ValueError: If an existing private key cannot be parsed or is not an
            ed25519 key.
    """
    ssh_dir = Path(ssh_dir).expanduser()
    private_path, public_path = identity_paths(ssh_dir)
    comment = _default_comment() if comment is None else comment

    ssh_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

    if private_path.is_file():
        if public_path.is_file():
            logger.debug("SSH identity already present in %s", ssh_dir)
            return private_path

        try:
            private_key = serialization.load_ssh_private_key(
                private_path.read_bytes(), password=None
            )
        except (TypeError, UnsupportedAlgorithm) as exc:
            # Passphrase-protected keys, or ciphers this build cannot read.
            raise ValueError(f"{private_path} cannot be read: {exc}") from exc
        if not isinstance(private_key, ed25519.Ed25519PrivateKey):
            raise ValueError(f"{private_path} is not an ed25519 private key")
        atomic_write(public_path, _public_line(private_key, comment), mode=0o644)
        logger.info("Restored missing public key %s", public_path)
        return private_path

    private_key = ed25519.Ed25519PrivateKey.generate()
    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )

    # The private key is written last; its presence marks a complete identity.
    atomic_write(public_path, _public_line(private_key, comment), mode=0o644)
    atomic_write(private_path, private_bytes.decode("ascii"), mode=0o600)
    os.chmod(ssh_dir, 0o700)

    logger.info("Generated SSH identity %s", private_path)
    return private_path
