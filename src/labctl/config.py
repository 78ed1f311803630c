"""Where labctl keeps its state, and how it reads and writes it.

The config file is ``config.yaml`` in the labctl config directory:

* Linux / BSD: ``$XDG_CONFIG_HOME/labctl`` (default ``~/.config/labctl``),
  with crash logs under ``$XDG_DATA_HOME/labctl``.
* macOS and Windows: ``~/.labctl``, with crash logs under ``~/.labctl/data``.

``LABCTL_CONFIG`` replaces the whole config file path, and
``LABCTL_API_BASE_URL`` points the API client elsewhere (see
:func:`effective_api_base_url`) without touching the stored ``api_base_url``.

The file holds a live session token, so it is only ever replaced through
:func:`atomic_write` with ``0o600`` permissions.
"""

from __future__ import annotations

import contextlib
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from labctl.exceptions import ConfigError
from labctl.models import Config

_APP_NAME = "labctl"
_CONFIG_FILENAME = "config.yaml"
_SSH_DIRNAME = "ssh"

ENV_CONFIG = "LABCTL_CONFIG"
ENV_API_BASE_URL = "LABCTL_API_BASE_URL"

logger = logging.getLogger(__name__)


# --- Directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: str, fallback_subdir: str = "") -> Path:
    """Resolve and create one of labctl's directories.

    Args:
        xdg_var: XDG variable consulted on Linux/BSD, e.g. ``XDG_CONFIG_HOME``.
        xdg_default: Its default relative to ``$HOME`` when unset or empty.
        fallback_subdir: Subdirectory of ``~/.labctl`` used elsewhere.
    """
    if _is_xdg_platform():
        root = os.environ.get(xdg_var) or Path.home() / xdg_default
        path = Path(root) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / fallback_subdir
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.yaml`` and, by default, the SSH identity."""
    return _app_dir("XDG_CONFIG_HOME", ".config")


def get_data_dir() -> Path:
    return _app_dir("XDG_DATA_HOME", os.path.join(".local", "share"), "data")


def get_config_path() -> Path:
    """Return the config file path, honouring ``$LABCTL_CONFIG``."""
    override = os.environ.get(ENV_CONFIG, "")
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


# --- Writing ---


def atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Replace *path* with *data* in a single rename.

    The text goes to a hidden sibling file that is restricted to *mode*
    before anything is written and fsynced before it is renamed over
    *path*, so readers see either the old content or the new one. The
    sibling is removed if anything fails, Ctrl-C included.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with tmp:
            os.chmod(tmp.name, mode)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp.name)
        raise


# --- Config file ---


def default_config(path: Optional[Path] = None) -> Config:
    """Build a fresh :class:`~labctl.models.Config` with default values.

    The SSH directory defaults to ``<dir of the config file>/ssh``.

    Args:
        path: Config file path. Defaults to :func:`get_config_path`.
    """
    path = path or get_config_path()
    return Config(ssh_dir=path.parent / _SSH_DIRNAME, file_path=path)


def load_config(path: Optional[Path] = None) -> Config:
    """Load the config file, falling back to defaults when it does not exist.

    Args:
        path: Config file path. Defaults to :func:`get_config_path`.

    Returns:
        The deserialised :class:`~labctl.models.Config` with ``file_path``
        set to *path*.

    Raises:
        ConfigError: If the file exists but is not valid YAML, is not a
            mapping, or fails validation.
    """
    path = path or get_config_path()
    config = default_config(path)

    if path.is_file():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigError(f"Invalid config at {path}: {exc}", cause=exc) from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config at {path}: expected a mapping")

        merged = config.model_dump()
        merged.update(data)
        merged["file_path"] = path
        try:
            config = Config.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config at {path}: {exc}", cause=exc) from exc
        logger.debug("Loaded config from %s", path)

    return config


def effective_api_base_url(config: Config) -> str:
    """Return the API base URL to talk to: ``$LABCTL_API_BASE_URL`` if set,
    otherwise the stored ``api_base_url``."""
    return os.environ.get(ENV_API_BASE_URL) or config.api_base_url


def dump_config(config: Config) -> None:
    """Persist *config* atomically as YAML with ``0o600`` permissions.

    Args:
        config: The config to write; its ``file_path`` selects the target.

    Raises:
        ValueError: If ``config.file_path`` is not set.
        OSError: If the file cannot be written.
    """
    if config.file_path is None:
        raise ValueError("config has no file path to dump to")

    data = config.model_dump(mode="json")
    text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    atomic_write(config.file_path, text)
    logger.debug("Saved config to %s", config.file_path)
