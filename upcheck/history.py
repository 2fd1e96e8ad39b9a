"""
Execution history.

Append-only audit trail of checks, updates and ad-hoc commands, stored
newest-first in execution-history.json and bounded to HISTORY_LIMIT entries.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .common import get_state_dir
from .models import CheckVerdict, CommandOutcome, now_rfc3339

HISTORY_FILE = "execution-history.json"
HISTORY_LIMIT = 200
DEFAULT_LOAD_LIMIT = 50

BULK_TARGET = "enabled-items"


@dataclass(frozen=True)
class HistoryEntry:
    """
    One recorded action.

    Attributes:
        id: Unique id, "<epoch-micros>-<action>-<target>"
        action: Action name (e.g. "check-item", "check-all", "run-item-update")
        target: Item id, "enabled-items" or "shared"
        command: Command text for command actions
        stdout: Captured stdout for command actions
        stderr: Captured stderr for command actions
        recorded_at: RFC 3339 timestamp
        success: Whether the action succeeded
        exit_code: Exit code for command actions
        timed_out: Whether the command timed out
        duration_ms: Command duration for command actions
        summary: Human-readable summary
    """
    id: str
    action: str
    target: str
    recorded_at: str
    success: bool
    summary: str
    command: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    exit_code: int | None = None
    timed_out: bool = False
    duration_ms: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "target": self.target,
            "command": self.command,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "recorded_at": self.recorded_at,
            "success": self.success,
            "exit_code": self.exit_code,
            "timed_out": self.timed_out,
            "duration_ms": self.duration_ms,
            "summary": self.summary,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> HistoryEntry:
        return HistoryEntry(
            id=data.get("id", ""),
            action=data.get("action", ""),
            target=data.get("target", ""),
            command=data.get("command"),
            stdout=data.get("stdout"),
            stderr=data.get("stderr"),
            recorded_at=data.get("recorded_at", ""),
            success=bool(data.get("success", False)),
            exit_code=data.get("exit_code"),
            timed_out=bool(data.get("timed_out", False)),
            duration_ms=data.get("duration_ms"),
            summary=data.get("summary", ""),
        )


def next_history_id(action: str, target: str) -> str:
    return f"{time.time_ns() // 1000}-{action}-{target}"


def check_item_entry(verdict: CheckVerdict) -> HistoryEntry:
    """History entry for a single-item check."""
    if verdict.error is not None:
        summary = verdict.error
    elif verdict.has_update:
        summary = "update available"
    else:
        summary = "up to date"
    return HistoryEntry(
        id=next_history_id("check-item", verdict.item_id),
        action="check-item",
        target=verdict.item_id,
        recorded_at=now_rfc3339(),
        success=verdict.error is None,
        summary=summary,
    )


def bulk_entry(action: str, success: bool, summary: str) -> HistoryEntry:
    """History entry for a bulk check or a skipped bulk check."""
    return HistoryEntry(
        id=next_history_id(action, BULK_TARGET),
        action=action,
        target=BULK_TARGET,
        recorded_at=now_rfc3339(),
        success=success,
        summary=summary,
    )


def command_entry(
    action: str,
    target: str,
    outcome: CommandOutcome,
    summary: str,
) -> HistoryEntry:
    """History entry carrying a full command outcome."""
    return HistoryEntry(
        id=next_history_id(action, target),
        action=action,
        target=target,
        command=outcome.command,
        stdout=outcome.stdout,
        stderr=outcome.stderr,
        recorded_at=now_rfc3339(),
        success=outcome.success,
        exit_code=outcome.exit_code,
        timed_out=outcome.timed_out,
        duration_ms=outcome.duration_ms,
        summary=summary,
    )


class HistoryStore:
    """
    JSON-file sink for history entries.

    Attributes:
        path: Location of execution-history.json
        limit: Maximum number of entries kept
    """

    def __init__(self, path: Path | None = None, limit: int = HISTORY_LIMIT):
        self.path = path if path is not None else get_state_dir() / HISTORY_FILE
        self.limit = limit
        self._lock = threading.Lock()

    def _read_all(self) -> list[HistoryEntry]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"failed to parse history from {self.path}: {e}") from e
        if not isinstance(data, list):
            raise ValueError(f"failed to parse history from {self.path}: not a list")
        if not all(isinstance(entry, dict) for entry in data):
            raise ValueError(f"failed to parse history from {self.path}: entry is not an object")
        return [HistoryEntry.from_dict(entry) for entry in data]

    def _write_all(self, entries: list[HistoryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump([e.to_dict() for e in entries], f, indent=2, ensure_ascii=False)
        temp_path.replace(self.path)

    def append(self, entry: HistoryEntry) -> None:
        """Insert entry at the front and drop anything beyond the limit."""
        with self._lock:
            entries = self._read_all()
            entries.insert(0, entry)
            self._write_all(entries[: self.limit])

    def load_entries(self, limit: int = DEFAULT_LOAD_LIMIT) -> list[HistoryEntry]:
        """
        Most recent entries, newest first.

        Args:
            limit: Number of entries; clamped to 1..HISTORY_LIMIT
        """
        limit = min(max(limit, 1), HISTORY_LIMIT)
        with self._lock:
            return self._read_all()[:limit]
