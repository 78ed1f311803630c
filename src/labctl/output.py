"""Terminal output for labctl.

Two streams, following `clig.dev <https://clig.dev/>`_:

* **stdout** carries command results only (``labctl config show``,
  ``labctl config path``), so they can be piped.
* **stderr** carries everything addressed to the person at the terminal:
  the login URL, the "waiting for authorization" spinner, confirmations,
  errors and hints.

Colour is dropped for ``--no-color``, ``NO_COLOR`` and ``TERM=dumb``; in
that mode messages are written as plain lines without going through Rich.

A single :class:`OutputManager` is built by
:func:`~labctl.app.main_callback` from the global flags and installed with
:func:`set_output`. Code that has no manager at hand uses the module-level
shortcuts (:func:`info`, :func:`error`, ...), which resolve it lazily.
"""

from __future__ import annotations

import contextlib
import os
import sys
from typing import ContextManager, Optional

from rich.console import Console
from rich.markup import escape

# Rich markup wrapped around each kind of stderr message, and the plain
# prefix used instead when colour is off.
_STYLES = {
    "info": ("{}", ""),
    "success": ("[green]{}[/green]", ""),
    "error": ("[bold red]Error:[/bold red] {}", "Error: "),
    "suggest": ("[dim]→ {}[/dim]", "→ "),
}


class OutputManager:
    """Writes labctl's user-facing messages.

    Args:
        no_color: Print plain text. Forced on by ``NO_COLOR`` / ``TERM=dumb``.
        quiet: Drop everything on stderr except errors.
    """

    def __init__(self, no_color: bool = False, quiet: bool = False) -> None:
        self._plain = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._console = Console(
            file=sys.stderr,
            stderr=True,
            no_color=self._plain,
            highlight=False,
        )

    @property
    def console(self) -> Console:
        """The stderr console; log records are rendered through it too."""
        return self._console

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    def print_data(self, text: str) -> None:
        """Write a command result to stdout, newline-terminated."""
        if not text.endswith("\n"):
            text += "\n"
        sys.stdout.write(text)
        sys.stdout.flush()

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def error(self, message: str) -> None:
        """Report a failure. Printed even with ``--quiet``."""
        self._emit("error", message, always=True)

    def suggest(self, message: str) -> None:
        """Hint at the next command to run."""
        self._emit("suggest", message)

    def status(self, message: str) -> ContextManager[object]:
        """Keep a spinner with *message* on stderr while the block runs.

        Without a colour terminal the message is printed once instead, and
        under ``--quiet`` nothing is shown.

        Example::

            with output.status("Waiting for the session to be authorized... "):
                session = poll()
        """
        if self._quiet:
            return contextlib.nullcontext()
        if self._plain or not self._console.is_terminal:
            self.info(message)
            return contextlib.nullcontext()
        return self._console.status(escape(message), spinner="dots")

    def _emit(self, kind: str, message: str, always: bool = False) -> None:
        if self._quiet and not always:
            return
        markup, prefix = _STYLES[kind]
        if self._plain:
            print(prefix + message, file=sys.stderr, flush=True)
        else:
            self._console.print(markup.format(escape(message)))


def _color_disabled_by_env() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, falling back to a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests use this between cases)."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
