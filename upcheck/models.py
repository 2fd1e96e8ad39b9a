"""
Data types shared by the runner, the check strategies and the orchestrator.

SoftwareItem is supplied by configuration and never mutated. CommandOutcome,
CheckVerdict and UpdateResult are created fresh per invocation and are
immutable once returned.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any


# Item kinds used for bulk selection
ITEM_KINDS = frozenset({"cli", "gui", "app", "runtime"})


def now_rfc3339() -> str:
    """Current UTC time as an RFC 3339 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _optional_command(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class SoftwareItem:
    """
    One trackable piece of software and the commands used to check it.

    Attributes:
        id: Unique identifier
        name: Display name
        kind: Category tag ("cli", "gui", "app" or "runtime")
        enabled: Whether bulk checks include this item
        description: Free-text description
        current_version_command: Prints the installed version (empty if not installed)
        latest_version_command: Prints the version available upstream
        update_check_command: Prints an update-availability signal
        update_check_regex: Pattern matched against the check command output
        update_command: Performs the actual upgrade
    """
    id: str
    name: str = ""
    kind: str = "cli"
    enabled: bool = True
    description: str = ""
    current_version_command: str | None = None
    latest_version_command: str | None = None
    update_check_command: str | None = None
    update_check_regex: str | None = None
    update_command: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "enabled": self.enabled,
            "description": self.description,
            "current_version_command": self.current_version_command,
            "latest_version_command": self.latest_version_command,
            "update_check_command": self.update_check_command,
            "update_check_regex": self.update_check_regex,
            "update_command": self.update_command,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> SoftwareItem:
        """Create SoftwareItem from dictionary. Blank commands are treated as absent."""
        item_id = data.get("id")
        if not item_id:
            raise ValueError("software item is missing an id")
        return SoftwareItem(
            id=str(item_id),
            name=data.get("name") or str(item_id),
            kind=data.get("kind", "cli"),
            enabled=bool(data.get("enabled", True)),
            description=data.get("description", ""),
            current_version_command=_optional_command(data.get("current_version_command")),
            latest_version_command=_optional_command(data.get("latest_version_command")),
            update_check_command=_optional_command(data.get("update_check_command")),
            update_check_regex=_optional_command(data.get("update_check_regex")),
            update_command=data.get("update_command") or "",
        )


@dataclass(frozen=True)
class CommandOutcome:
    """
    Result of running one external command.

    Attributes:
        command: Command text as given to the shell
        exit_code: Process exit status, or TIMEOUT_EXIT_CODE when timed out
        stdout: Trimmed standard output
        stderr: Trimmed standard error, with a timeout notice appended if timed out
        duration_ms: Wall-clock time from spawn to reap
        timed_out: Whether the process was killed for exceeding its timeout
    """
    command: str
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "command": self.command,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration_ms": self.duration_ms,
            "timed_out": self.timed_out,
        }


@dataclass(frozen=True)
class CheckVerdict:
    """
    Structured result of checking one item.

    When error is set, has_update is False and both versions are None.

    Attributes:
        item_id: Identifier of the checked item
        checked_at: RFC 3339 timestamp
        has_update: Whether a newer version is available
        current_version: Installed version, if known
        latest_version: Upstream version, if known
        details: Free-text detail
        error: Error message if the check failed
    """
    item_id: str
    checked_at: str
    has_update: bool
    current_version: str | None = None
    latest_version: str | None = None
    details: str = ""
    error: str | None = None

    @staticmethod
    def failure(item_id: str, error: str) -> CheckVerdict:
        """Build a failed verdict; versions are discarded."""
        return CheckVerdict(
            item_id=item_id,
            checked_at=now_rfc3339(),
            has_update=False,
            current_version=None,
            latest_version=None,
            details="check failed",
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "item_id": self.item_id,
            "checked_at": self.checked_at,
            "has_update": self.has_update,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "details": self.details,
            "error": self.error,
        }


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of running an item's update command."""
    item_id: str
    updated_at: str
    outcome: CommandOutcome

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "item_id": self.item_id,
            "updated_at": self.updated_at,
            "outcome": self.outcome.to_dict(),
        }
