"""Built-in CLI sub-commands for labctl.

* :mod:`~labctl.commands.auth` -- log in to iximiuz Labs.
* :mod:`~labctl.commands.config` -- locate and print the config file.

Each module exports a :class:`typer.Typer` sub-application that
:func:`labctl.app.main` mounts on the root app.
"""
