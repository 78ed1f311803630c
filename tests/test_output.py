"""Tests for the output formatting system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- The status spinner and its plain fallbacks
- Global instance management
"""

from __future__ import annotations

import pytest

from labctl import output as output_module
from labctl.output import (
    OutputManager,
    _color_disabled_by_env,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


# ------------------------------------------------------------------ #
# Colour detection
# ------------------------------------------------------------------ #


class TestColorFromEnv:
    def test_no_color_env(self, monkeypatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _color_disabled_by_env() is True

    def test_term_dumb(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _color_disabled_by_env() is True

    def test_default(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _color_disabled_by_env() is False


# ------------------------------------------------------------------ #
# Stream discipline
# ------------------------------------------------------------------ #


class TestStreams:
    def test_print_data_goes_to_stdout(self, capsys) -> None:
        OutputManager(no_color=True).print_data("payload")
        captured = capsys.readouterr()
        assert captured.out == "payload\n"
        assert captured.err == ""

    def test_print_data_keeps_single_newline(self, capsys) -> None:
        OutputManager(no_color=True).print_data("payload\n")
        assert capsys.readouterr().out == "payload\n"

    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            ("info", "hello"),
            ("success", "hello"),
            ("error", "Error: hello"),
            ("suggest", "→ hello"),
        ],
    )
    def test_diagnostics_go_to_stderr(self, capsys, method: str, expected: str) -> None:
        getattr(OutputManager(no_color=True), method)("hello")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == expected + "\n"

    def test_markup_is_not_interpreted(self, capsys) -> None:
        OutputManager(no_color=True).info("[bold]literal[/bold]")
        assert "[bold]literal[/bold]" in capsys.readouterr().err


# ------------------------------------------------------------------ #
# Quiet mode
# ------------------------------------------------------------------ #


class TestQuiet:
    def test_quiet_suppresses_info(self, capsys) -> None:
        out = OutputManager(no_color=True, quiet=True)
        out.info("info")
        out.success("success")
        out.suggest("suggest")
        assert capsys.readouterr().err == ""

    def test_quiet_keeps_errors(self, capsys) -> None:
        out = OutputManager(no_color=True, quiet=True)
        out.error("broken")
        assert capsys.readouterr().err == "Error: broken\n"

    def test_is_quiet(self) -> None:
        assert OutputManager(quiet=True).is_quiet is True
        assert OutputManager().is_quiet is False


# ------------------------------------------------------------------ #
# Status
# ------------------------------------------------------------------ #


class TestStatus:
    def test_plain_status_prints_once(self, capsys) -> None:
        with OutputManager(no_color=True).status("Waiting... "):
            pass
        assert capsys.readouterr().err == "Waiting... \n"

    def test_quiet_status_prints_nothing(self, capsys) -> None:
        with OutputManager(no_color=True, quiet=True).status("Waiting... "):
            pass
        assert capsys.readouterr().err == ""

    def test_spinner_on_terminal(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        out = OutputManager()
        monkeypatch.setattr(type(out.console), "is_terminal", property(lambda self: True))

        calls = []
        monkeypatch.setattr(
            out.console, "status", lambda message, spinner: calls.append((message, spinner)) or _Null()
        )
        with out.status("Waiting... "):
            pass
        assert calls == [("Waiting... ", "dots")]


class _Null:
    def __enter__(self):
        return self

    def __exit__(self, *args):
        return None


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self) -> None:
        out = get_output()
        assert isinstance(out, OutputManager)
        assert get_output() is out

    def test_set_output(self) -> None:
        custom = OutputManager(quiet=True)
        set_output(custom)
        assert get_output() is custom

    def test_reset_output(self) -> None:
        set_output(OutputManager())
        reset_output()
        assert output_module._output is None

    def test_module_functions_delegate(self, capsys) -> None:
        set_output(OutputManager(no_color=True))
        output_module.info("via module")
        output_module.error("also via module")
        output_module.print_data("data")
        captured = capsys.readouterr()
        assert "via module" in captured.err
        assert "Error: also via module" in captured.err
        assert captured.out == "data\n"
