"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- print_table and print_record in all three modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from rickdex import output as output_module
from rickdex.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
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


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("rickdex.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("rickdex.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env_disables_color(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout vs stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "warning", "error", "success"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("diagnostic text")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "diagnostic text" in captured.err

    def test_warning_prefix_without_color(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).warning("stale")
        assert "Warning: stale" in capfd.readouterr().err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warning_and_error(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("important warning")
        mgr.error("critical error")
        err = capfd.readouterr().err
        assert "important warning" in err
        assert "critical error" in err

    def test_debug_hidden_by_default(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("trace")
        assert "[debug] trace" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Structured data
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_is_indented(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"a": 1})
        out = capfd.readouterr().out
        assert json.loads(out) == {"a": 1}
        assert "\n  " in out

    def test_plain_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(
            {"base_url": "x", "timeout": 15}
        )
        assert capfd.readouterr().out.splitlines() == ["base_url\tx", "timeout\t15"]


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        mgr.print_table(["ID", "Name"], [["1", "Pilot"], ["2", "Lawnmower Dog"]])
        data = json.loads(capfd.readouterr().out)
        assert data == [{"ID": "1", "Name": "Pilot"}, {"ID": "2", "Name": "Lawnmower Dog"}]

    def test_table_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["ID", "Name"], [["1", "Pilot"]], title="ignored")
        assert capfd.readouterr().out.splitlines() == ["ID\tName", "1\tPilot"]

    def test_table_rich_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH)
        mgr.print_table(["ID", "Name"], [["1", "Pilot"]], title="Episodes")
        out = capfd.readouterr().out
        assert "Pilot" in out
        assert "Episodes" in out


class TestPrintRecord:
    def test_record_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_record({"Name": "Rick"})
        assert json.loads(capfd.readouterr().out) == {"Name": "Rick"}

    def test_record_plain_mode(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_record({"Name": "Rick", "Status": "Alive"})
        assert capfd.readouterr().out.splitlines() == ["Name\tRick", "Status\tAlive"]


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default_lazily(self):
        assert output_module._output is None
        assert isinstance(get_output(), OutputManager)

    def test_set_and_reset(self, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert output_module._output is None

    def test_convenience_functions_use_global(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via module")
        assert "via module" in capfd.readouterr().err
