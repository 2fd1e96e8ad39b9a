"""
Update check strategies.

Turns an item's declared commands into a CheckVerdict. Two mutually
exclusive algorithms exist:

- check-command: run update_check_command and interpret its output
  (regex match, or a boolean-like token). Current/latest version commands
  are run afterwards for display only; their failure never fails the check.
- version-diff: run current_version_command and latest_version_command and
  report an update when both outputs are non-empty and differ textually.
  No semantic version ordering is applied.

All commands go through an injected CommandExecutor so strategies can be
exercised with scripted fakes.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from .models import CheckVerdict, CommandOutcome, SoftwareItem, now_rfc3339

logger = logging.getLogger(__name__)

TRUTHY_TOKENS = frozenset({"1", "true", "yes"})


class CommandExecutor(Protocol):
    """Anything that can run a command and return its outcome."""

    def execute(self, command: str) -> CommandOutcome: ...


class CheckError(Exception):
    """Contract or command failure while checking a single item."""


def command_error_text(stderr: str, stdout: str) -> str:
    """Most informative text for a failed command: stderr, else stdout, else a marker."""
    if stderr.strip():
        return stderr.strip()
    if stdout.strip():
        return f"stdout: {stdout.strip()}"
    return "no output"


def _failure_message(field: str, outcome: CommandOutcome) -> str:
    return (
        f"{field} failed (exit {outcome.exit_code}): "
        f"{command_error_text(outcome.stderr, outcome.stdout)}"
    )


def _matches_update(item: SoftwareItem, output: str) -> bool:
    value = output.strip()
    if item.update_check_regex is None:
        return value.lower() in TRUTHY_TOKENS
    try:
        pattern = re.compile(item.update_check_regex)
    except re.error as e:
        raise CheckError(f"invalid update_check_regex for {item.id}: {e}") from e
    return pattern.search(value) is not None


def _optional_version(command: str | None, executor: CommandExecutor) -> str | None:
    if command is None:
        return None
    outcome = executor.execute(command)
    if outcome.exit_code != 0:
        logger.debug("Version command failed (exit %d): %s", outcome.exit_code, command)
        return None
    return outcome.stdout.strip()


def check_with_command(item: SoftwareItem, executor: CommandExecutor) -> CheckVerdict:
    """
    Check-command strategy.

    Order is fixed: check, then current version, then latest version.

    Raises:
        CheckError: If the check command fails or the regex is invalid
        CommandExecutionError: If a command cannot be spawned
    """
    if item.update_check_command is None:
        raise CheckError(f"{item.id} has no update_check_command")

    outcome = executor.execute(item.update_check_command)
    if outcome.exit_code != 0:
        raise CheckError(_failure_message("update_check_command", outcome))

    has_update = _matches_update(item, outcome.stdout)
    current_version = _optional_version(item.current_version_command, executor)
    latest_version = _optional_version(item.latest_version_command, executor)

    return CheckVerdict(
        item_id=item.id,
        checked_at=now_rfc3339(),
        has_update=has_update,
        current_version=current_version,
        latest_version=latest_version,
        details=f"check command output: {outcome.stdout}",
        error=None,
    )


def check_with_versions(item: SoftwareItem, executor: CommandExecutor) -> CheckVerdict:
    """
    Version-diff strategy.

    Both commands run (current first) before either exit code is inspected.

    Raises:
        CheckError: If a command is missing or exits non-zero
        CommandExecutionError: If a command cannot be spawned
    """
    if item.current_version_command is None:
        raise CheckError(f"{item.id} has no current_version_command")
    if item.latest_version_command is None:
        raise CheckError(f"{item.id} has no latest_version_command")

    current_outcome = executor.execute(item.current_version_command)
    latest_outcome = executor.execute(item.latest_version_command)
    if current_outcome.exit_code != 0:
        raise CheckError(_failure_message("current_version_command", current_outcome))
    if latest_outcome.exit_code != 0:
        raise CheckError(_failure_message("latest_version_command", latest_outcome))

    current = current_outcome.stdout.strip()
    latest = latest_outcome.stdout.strip()
    has_update = bool(current) and bool(latest) and current != latest

    return CheckVerdict(
        item_id=item.id,
        checked_at=now_rfc3339(),
        has_update=has_update,
        current_version=current,
        latest_version=latest,
        details="version comparison",
        error=None,
    )


def check_item(item: SoftwareItem, executor: CommandExecutor) -> CheckVerdict:
    """
    Check one item and always return a verdict.

    Any failure, including spawn errors raised by the executor, becomes a
    verdict with error set, has_update False and no versions.

    Args:
        item: Item to check
        executor: Command executor shared by every command of this check

    Returns:
        CheckVerdict for exactly this item
    """
    try:
        if item.update_check_command is not None:
            return check_with_command(item, executor)
        if item.latest_version_command is not None:
            return check_with_versions(item, executor)
        raise CheckError(
            f"{item.id} has neither update_check_command nor latest_version_command"
        )
    except Exception as e:
        logger.debug("Check failed for %s: %s", item.id, e)
        return CheckVerdict.failure(item.id, str(e))
