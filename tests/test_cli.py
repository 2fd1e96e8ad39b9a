"""
Tests for the command-line interface (upcheck/cli.py).

Commands run through a real /bin/sh with PATH resolution disabled.
"""

import json
import sys

import pytest

from upcheck import cli, shell_runner
from upcheck.cli import EXIT_ALREADY_RUNNING, EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_OK, main
from upcheck.guard import SingleFlightGuard

pytestmark = pytest.mark.skipif(
    sys.platform == "win32",
    reason="Commands run through a POSIX shell",
)

CONFIG_YAML = """\
version: 1
command_timeout_seconds: 10
manual_item_ids: [alpha, beta]
items:
  - id: alpha
    name: Alpha
    update_check_command: echo yes
    update_command: echo upgraded alpha
  - id: beta
    name: Beta
    current_version_command: echo 1.0.0
    latest_version_command: echo 1.0.0
  - id: gamma
    name: Gamma
    kind: gui
    update_check_command: echo broken >&2; exit 3
"""


@pytest.fixture(autouse=True)
def posix_shell(monkeypatch):
    monkeypatch.setenv("UPCHECK_SHELL", "/bin/sh")
    monkeypatch.setattr(shell_runner, "interactive_path", lambda: None)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "upcheck.yml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return str(path)


def _json_out(capsys):
    return json.loads(capsys.readouterr().out)


class TestCheck:
    """Tests for the check command."""

    def test_check_all(self, config_path, capsys):
        """Test the default mode checks the manual items."""
        assert main(["--config", config_path, "--json", "check"]) == EXIT_OK
        results = _json_out(capsys)
        assert len(results) == 1
        assert results[0]["action"] == "check-all"
        assert [v["item_id"] for v in results[0]["verdicts"]] == ["alpha", "beta"]
        assert results[0]["update_count"] == 1
        assert results[0]["error_count"] == 0

    def test_mode_with_errors(self, config_path, capsys):
        """Test a failing item makes the command fail."""
        assert main(["--config", config_path, "--json", "check", "--mode", "auto-check-app"]) == EXIT_FAILURE
        results = _json_out(capsys)
        verdict = results[0]["verdicts"][0]
        assert verdict["item_id"] == "gamma"
        assert verdict["error"] == "update_check_command failed (exit 3): broken"

    def test_everything(self, config_path, capsys):
        main(["--config", config_path, "--json", "check", "--mode", "everything"])
        results = _json_out(capsys)
        assert [r["action"] for r in results] == [
            "check-all", "check-runtime", "auto-check-cli", "auto-check-app",
        ]

    def test_specific_items(self, config_path, capsys):
        assert main(["--config", config_path, "--json", "check", "beta"]) == EXIT_OK
        verdicts = _json_out(capsys)
        assert verdicts[0]["current_version"] == "1.0.0"
        assert verdicts[0]["has_update"] is False

    def test_unknown_item(self, config_path, capsys):
        assert main(["--config", config_path, "check", "nope"]) == EXIT_FAILURE
        assert "Unknown item: nope" in capsys.readouterr().err

    def test_text_output(self, config_path, capsys):
        main(["--config", config_path, "check"])
        out = capsys.readouterr().out
        assert "[check-all]" in out
        assert "Checked 2 items, found 1 updates, 0 errors" in out

    def test_already_running(self, config_path, capsys, monkeypatch):
        """Test a held guard maps to the already-running exit code."""
        guard = SingleFlightGuard()
        token = guard.try_acquire()
        monkeypatch.setattr(cli, "SingleFlightGuard", lambda: guard)
        try:
            assert main(["--config", config_path, "check"]) == EXIT_ALREADY_RUNNING
        finally:
            token.release()
        assert "check-all is already running" in capsys.readouterr().err

    def test_bad_config(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yml"), "check"]) == EXIT_FAILURE
        assert "Could not load config" in capsys.readouterr().err


class TestCommands:
    """Tests for update, run and detect."""

    def test_update(self, config_path, capsys):
        assert main(["--config", config_path, "--json", "update", "alpha"]) == EXIT_OK
        result = _json_out(capsys)
        assert result["item_id"] == "alpha"
        assert result["outcome"]["stdout"] == "upgraded alpha"

    def test_update_without_command(self, config_path, capsys):
        assert main(["--config", config_path, "update", "beta"]) == EXIT_FAILURE
        assert "beta has no update_command" in capsys.readouterr().err

    def test_run(self, config_path, capsys):
        assert main(["--config", config_path, "--json", "run", "echo hi"]) == EXIT_OK
        assert _json_out(capsys)["stdout"] == "hi"

    def test_run_failure(self, config_path, capsys):
        assert main(["--config", config_path, "run", "exit 4"]) == EXIT_FAILURE
        assert "[exit 4," in capsys.readouterr().out

    def test_detect(self, config_path, capsys):
        assert main(["--config", config_path, "--json", "detect"]) == EXIT_OK
        assert _json_out(capsys) == {"alpha": True, "beta": True, "gamma": True}


class TestPersistence:
    """Tests for status and history."""

    def test_status_after_check(self, config_path, capsys):
        main(["--config", config_path, "check"])
        capsys.readouterr()
        assert main(["--config", config_path, "--json", "status"]) == EXIT_OK
        state = _json_out(capsys)
        assert set(state["items"]) == {"alpha", "beta"}
        assert state["items"]["alpha"]["has_update"] is True

    def test_status_empty(self, config_path, capsys):
        assert main(["--config", config_path, "status"]) == EXIT_OK
        assert "No check results recorded yet." in capsys.readouterr().out

    def test_history(self, config_path, capsys):
        main(["--config", config_path, "check"])
        main(["--config", config_path, "run", "echo hi"])
        capsys.readouterr()
        assert main(["--config", config_path, "--json", "history", "--limit", "1"]) == EXIT_OK
        entries = _json_out(capsys)
        assert len(entries) == 1
        assert entries[0]["action"] == "run-shared-command"
        assert entries[0]["target"] == "shared"


class TestErrorExits:
    """Tests for errors reaching the entry point."""

    def test_interrupt(self, config_path, capsys, monkeypatch):
        """Test Ctrl-C exits with 130 instead of a traceback."""
        def interrupted(args, config, orchestrator):
            raise KeyboardInterrupt

        monkeypatch.setitem(cli.COMMANDS, "status", interrupted)
        assert main(["--config", config_path, "status"]) == EXIT_INTERRUPTED
        assert "Interrupted" in capsys.readouterr().err

    def test_malformed_status_file(self, config_path, isolated_state_dir, capsys):
        isolated_state_dir.mkdir(parents=True)
        (isolated_state_dir / "latest-check-results.json").write_text('{"items": null}')
        assert main(["--config", config_path, "status"]) == EXIT_FAILURE
        assert "failed to parse latest results" in capsys.readouterr().err

    def test_check_survives_malformed_history(self, config_path, isolated_state_dir, capsys):
        isolated_state_dir.mkdir(parents=True)
        (isolated_state_dir / "execution-history.json").write_text("[1, 2]")
        assert main(["--config", config_path, "--json", "check"]) == EXIT_OK
        assert _json_out(capsys)[0]["update_count"] == 1
