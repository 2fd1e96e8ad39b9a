"""
Bounded external command execution through a login shell.

Commands are operator-authored configuration and run with full shell
semantics (pipes, substitution, aliases). They are a trust boundary: nothing
here quotes, escapes or sandboxes them.

Each command runs in its own process group so a timeout can kill the whole
pipeline, not only the shell. stdout and stderr are drained by two reader
threads so neither pipe buffer can fill up and stall the child.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from typing import IO

from .models import CommandOutcome

logger = logging.getLogger(__name__)

# Reserved exit code for "killed by timeout". Real POSIX exit codes are 0-255
# and processes killed by a signal are reported as UNKNOWN_EXIT_CODE, so this
# value cannot collide with either.
TIMEOUT_EXIT_CODE = -124
UNKNOWN_EXIT_CODE = -1

POLL_INTERVAL_SECONDS = 0.04
PATH_RESOLVE_TIMEOUT_SECONDS = 5
READER_GRACE_SECONDS = 2.0

_path_lock = threading.Lock()
_path_resolved = False
_resolved_path: str | None = None


class CommandExecutionError(Exception):
    """
    A command could not be run to completion.

    Raised for spawn failures and stream capture failures. Non-zero exits and
    timeouts are not errors; they are reported through CommandOutcome.

    Attributes:
        message: Human-readable error message
        command: Command text that failed
    """
    def __init__(self, message: str, command: str = ""):
        self.message = message
        self.command = command
        super().__init__(message)


def default_shell() -> str:
    """Shell used to run commands: $UPCHECK_SHELL, then $SHELL, then /bin/sh."""
    return os.environ.get("UPCHECK_SHELL") or os.environ.get("SHELL") or "/bin/sh"


def _kill_process_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        # Group already gone; make sure the leader is dead anyway
        try:
            proc.kill()
        except OSError:
            pass


def resolve_interactive_path(
    shell: str | None = None,
    timeout: float = PATH_RESOLVE_TIMEOUT_SECONDS,
) -> str | None:
    """
    Ask an interactive login shell for its fully customized PATH.

    Args:
        shell: Shell executable (default_shell() if None)
        timeout: Seconds to wait before giving up

    Returns:
        The PATH value, or None if the shell failed, timed out or printed nothing
    """
    shell = shell or default_shell()
    try:
        proc = subprocess.Popen(
            [shell, "-ilc", "printf '%s' \"$PATH\""],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            start_new_session=True,
        )
    except OSError as e:
        logger.debug("PATH resolution via %s failed to start: %s", shell, e)
        return None

    try:
        out, _ = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug("PATH resolution via %s timed out after %ss", shell, timeout)
        _kill_process_group(proc)
        proc.communicate()
        return None

    if proc.returncode != 0:
        return None
    path = (out or "").strip()
    return path or None


def interactive_path() -> str | None:
    """
    Process-wide cached result of resolve_interactive_path().

    Resolved lazily on first use, at most once, and never invalidated.
    """
    global _path_resolved, _resolved_path
    with _path_lock:
        if not _path_resolved:
            _resolved_path = resolve_interactive_path()
            _path_resolved = True
            if _resolved_path:
                logger.debug("Resolved interactive PATH: %s", _resolved_path)
            else:
                logger.debug("Falling back to inherited PATH")
        return _resolved_path


class _StreamReader(threading.Thread):
    """Drains one pipe into a list of lines with terminators stripped."""

    def __init__(self, stream: IO[str], label: str):
        super().__init__(name=f"upcheck-{label}-reader", daemon=True)
        self.stream = stream
        self.label = label
        self.lines: list[str] = []
        self.error: Exception | None = None

    def run(self) -> None:
        try:
            for line in self.stream:
                self.lines.append(line.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            self.error = e
        finally:
            try:
                self.stream.close()
            except OSError:
                pass

    def text(self, command: str) -> str:
        if self.is_alive():
            raise CommandExecutionError(f"failed to collect command {self.label}", command)
        if self.error is not None:
            raise CommandExecutionError(f"failed to read {self.label}: {self.error}", command)
        return "\n".join(self.lines)


class ProcessRunner:
    """
    Runs shell commands with a wall-clock timeout.

    Attributes:
        shell: Shell executable; commands run as `<shell> -lc <command>`
        resolve_path: Export the interactive login shell PATH to commands
        poll_interval: Seconds between completion polls
    """

    def __init__(
        self,
        shell: str | None = None,
        resolve_path: bool = True,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        self.shell = shell or default_shell()
        self.resolve_path = resolve_path
        self.poll_interval = poll_interval

    def _environment(self) -> dict[str, str]:
        env = dict(os.environ)
        if self.resolve_path:
            path = interactive_path()
            if path:
                env["PATH"] = path
        return env

    def execute(self, command: str, timeout_seconds: int) -> CommandOutcome:
        """
        Run a command to completion or until it times out.

        Args:
            command: Shell command text
            timeout_seconds: Wall-clock limit; values below 1 are raised to 1

        Returns:
            CommandOutcome with trimmed output

        Raises:
            CommandExecutionError: If the process cannot be spawned or its output captured
        """
        timeout_seconds = max(1, int(timeout_seconds))
        env = self._environment()

        started = time.monotonic()
        logger.debug("Executing (timeout %ss): %s", timeout_seconds, command)
        try:
            proc = subprocess.Popen(
                [self.shell, "-lc", command],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise CommandExecutionError(f"failed to execute command: {e}", command) from e

        if proc.stdout is None or proc.stderr is None:
            _kill_process_group(proc)
            proc.wait()
            raise CommandExecutionError("failed to capture command output", command)

        stdout_reader = _StreamReader(proc.stdout, "stdout")
        stderr_reader = _StreamReader(proc.stderr, "stderr")
        stdout_reader.start()
        stderr_reader.start()

        deadline = started + timeout_seconds
        timed_out = False
        while proc.poll() is None:
            if time.monotonic() >= deadline:
                timed_out = True
                _kill_process_group(proc)
                break
            time.sleep(self.poll_interval)
        returncode = proc.wait()

        stdout_reader.join(READER_GRACE_SECONDS)
        stderr_reader.join(READER_GRACE_SECONDS)
        if stdout_reader.is_alive() or stderr_reader.is_alive():
            # Background children still hold the pipes; the exit status stands
            logger.debug("Killing background processes holding output: %s", command)
            _kill_process_group(proc)
            stdout_reader.join(READER_GRACE_SECONDS)
            stderr_reader.join(READER_GRACE_SECONDS)

        stdout = stdout_reader.text(command).strip()
        stderr = stderr_reader.text(command).strip()
        duration_ms = int((time.monotonic() - started) * 1000)

        if timed_out:
            notice = f"command timed out after {timeout_seconds}s"
            stderr = f"{stderr}\n{notice}" if stderr else notice
            exit_code = TIMEOUT_EXIT_CODE
        elif returncode < 0:
            # Killed by a signal; there is no exit status
            exit_code = UNKNOWN_EXIT_CODE
        else:
            exit_code = returncode

        logger.debug(
            "Finished in %dms (exit %d%s): %s",
            duration_ms, exit_code, ", timed out" if timed_out else "", command,
        )
        return CommandOutcome(
            command=command,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            timed_out=timed_out,
        )


class ShellExecutor:
    """Binds a ProcessRunner to a fixed timeout so it can serve as a CommandExecutor."""

    def __init__(self, runner: ProcessRunner, timeout_seconds: int):
        self.runner = runner
        self.timeout_seconds = timeout_seconds

    def execute(self, command: str) -> CommandOutcome:
        return self.runner.execute(command, self.timeout_seconds)


def run_shell_command(command: str, timeout_seconds: int) -> CommandOutcome:
    """Run a command with a default ProcessRunner."""
    return ProcessRunner().execute(command, timeout_seconds)
