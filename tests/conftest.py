"""
Shared test fixtures.
"""

from __future__ import annotations

import logging
import threading

import pytest

from upcheck import logging_config, render
from upcheck.logging_config import LOGGER_NAME
from upcheck.models import CommandOutcome, SoftwareItem
from upcheck.shell_runner import CommandExecutionError


class ScriptedRunner:
    """
    Fake runner returning canned outcomes per command string.

    Script values are (exit_code, stdout, stderr) tuples, or an exception
    instance to raise. Unknown commands raise CommandExecutionError.
    Satisfies both the runner interface (execute(command, timeout)) and
    the CommandExecutor interface (execute(command)).
    """

    def __init__(self, script: dict | None = None):
        self.script = dict(script or {})
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def execute(self, command: str, timeout_seconds: int | None = None) -> CommandOutcome:
        with self._lock:
            self.calls.append(command)
        if command not in self.script:
            raise CommandExecutionError(f"unscripted command: {command}", command)
        value = self.script[command]
        if isinstance(value, Exception):
            raise value
        exit_code, stdout, stderr = value
        return CommandOutcome(
            command=command,
            exit_code=exit_code,
            stdout=stdout.strip(),
            stderr=stderr.strip(),
            duration_ms=1,
            timed_out=exit_code == -124,
        )


class RecordingSink:
    """Collects everything sent to a result or history sink."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.verdict_batches: list[list] = []
        self.entries: list = []

    def upsert_results(self, verdicts) -> None:
        if self.fail:
            raise OSError("disk full")
        self.verdict_batches.append(list(verdicts))

    def append(self, entry) -> None:
        if self.fail:
            raise OSError("disk full")
        self.entries.append(entry)


@pytest.fixture
def scripted_runner():
    """Factory for ScriptedRunner instances."""
    return ScriptedRunner


@pytest.fixture
def recording_sink():
    """Factory for RecordingSink instances."""
    return RecordingSink


@pytest.fixture
def make_item():
    """Factory for SoftwareItem with sensible defaults."""
    def _make(item_id: str = "tool", **kwargs) -> SoftwareItem:
        kwargs.setdefault("name", item_id.title())
        return SoftwareItem(id=item_id, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def isolated_state_dir(tmp_path, monkeypatch):
    """Keep result and history files out of the real home directory."""
    state_dir = tmp_path / "state"
    monkeypatch.setenv("UPCHECK_STATE_DIR", str(state_dir))
    monkeypatch.delenv("UPCHECK_TIMEOUT_SECONDS", raising=False)
    return state_dir


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    """Render without ANSI colors so output assertions see plain text."""
    monkeypatch.setattr(render, "USE_COLOR", False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a finished test's captured streams."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logging_config._logger = None
