"""labctl -- command-line client for iximiuz Labs.

This package implements the ``labctl`` CLI. Its login flow creates a
session on the Labs API, sends the user to a browser to authorize it,
polls until the session is authorized, and then stores the credentials and
a local SSH identity for later commands.

Typical workflow::

    labctl auth login          # browser-based login
    labctl config show         # inspect the stored configuration

Modules:
    app: Root Typer app and the console-script entry point.
    auth: The login flow.
    client: HTTP client for the Labs API.
    config: XDG-aware config file handling.
    context: Cancellation and deadlines for blocking operations.
    exceptions: Exception hierarchy with exit-code mapping.
    models: Pydantic models shared across the package.
    output: stdout/stderr formatting with Rich.
    ssh: Local SSH identity generation.
"""

__version__ = "0.1.0"
