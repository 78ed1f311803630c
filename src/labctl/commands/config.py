"""Config commands -- inspect the labctl configuration.

Provides the ``labctl config`` sub-command group for locating and
printing the user's config file (:class:`~labctl.models.Config`). The
access token is masked in all output.
"""

from __future__ import annotations

import typer
import yaml

from labctl.exceptions import LabctlError
from labctl.output import error, info, print_data


config_app = typer.Typer(no_args_is_help=True)


def _mask(secret: str) -> str:
    """Keep the first 8 characters of *secret* and hide the rest."""
    if not secret:
        return ""
    return secret[:8] + "..." if len(secret) > 8 else "***"


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Prints the config file path to stderr and the effective configuration,
    including environment overrides, as YAML to stdout.

    Example::

        labctl config show
    """
    from labctl.config import effective_api_base_url, load_config

    try:
        config = load_config()
    except LabctlError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    data = config.model_dump(mode="json")
    data["api_base_url"] = effective_api_base_url(config)
    data["access_token"] = _mask(config.access_token)
    info(f"Config file: {config.file_path}")
    print_data(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


@config_app.command("path")
def config_path() -> None:
    """Print the path of the config file.

    Example::

        labctl config path
    """
    from labctl.config import get_config_path

    print_data(str(get_config_path()))
