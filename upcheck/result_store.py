"""
Latest check result persistence.

Keeps the most recent verdict per item in latest-check-results.json.
Writes are last-write-wins per item id.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .common import get_state_dir
from .models import CheckVerdict, now_rfc3339

RESULT_FILE = "latest-check-results.json"


@dataclass
class ResultSnapshot:
    """Persisted view of a verdict (details are not kept)."""

    item_id: str
    checked_at: str
    has_update: bool = False
    current_version: str | None = None
    latest_version: str | None = None
    error: str | None = None

    @classmethod
    def from_verdict(cls, verdict: CheckVerdict) -> "ResultSnapshot":
        return cls(
            item_id=verdict.item_id,
            checked_at=verdict.checked_at,
            has_update=verdict.has_update,
            current_version=verdict.current_version,
            latest_version=verdict.latest_version,
            error=verdict.error,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "checked_at": self.checked_at,
            "has_update": self.has_update,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultSnapshot":
        return cls(
            item_id=data.get("item_id", ""),
            checked_at=data.get("checked_at", ""),
            has_update=bool(data.get("has_update", False)),
            current_version=data.get("current_version"),
            latest_version=data.get("latest_version"),
            error=data.get("error"),
        )


@dataclass
class LatestResultState:
    """All persisted snapshots, keyed by item id."""

    items: dict[str, ResultSnapshot] = field(default_factory=dict)
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "updated_at": self.updated_at,
            "items": {item_id: snap.to_dict() for item_id, snap in self.items.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LatestResultState":
        """
        Raises:
            ValueError: If "items" or any snapshot is not a JSON object
        """
        items_raw = data.get("items", {})
        if not isinstance(items_raw, dict):
            raise ValueError("failed to parse latest results: items is not an object")
        for item_id, snap in items_raw.items():
            if not isinstance(snap, dict):
                raise ValueError(f"failed to parse latest results: entry {item_id!r} is not an object")
        return cls(
            items={
                item_id: ResultSnapshot.from_dict(snap)
                for item_id, snap in items_raw.items()
            },
            updated_at=data.get("updated_at", ""),
        )

    def update_candidates(self) -> list[ResultSnapshot]:
        """Snapshots that report an update and no error."""
        return [s for s in self.items.values() if s.error is None and s.has_update]

    def error_count(self) -> int:
        return sum(1 for s in self.items.values() if s.error is not None)


class ResultStore:
    """
    JSON-file sink for latest verdicts.

    Attributes:
        path: Location of latest-check-results.json
    """

    def __init__(self, path: Path | None = None):
        self.path = path if path is not None else get_state_dir() / RESULT_FILE
        self._lock = threading.Lock()

    def load_state(self) -> LatestResultState:
        """
        Load persisted results.

        Returns:
            LatestResultState (empty if the file does not exist)

        Raises:
            ValueError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            return LatestResultState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"failed to parse latest results from {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"failed to parse latest results from {self.path}: not an object")
        try:
            return LatestResultState.from_dict(data)
        except ValueError as e:
            raise ValueError(f"{e} ({self.path})") from e

    def _write_state(self, state: LatestResultState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2, ensure_ascii=False)
        temp_path.replace(self.path)

    def upsert_results(self, verdicts: Sequence[CheckVerdict]) -> None:
        """
        Merge verdicts into the persisted state.

        Args:
            verdicts: Verdicts to store; later entries win for duplicate ids
        """
        if not verdicts:
            return
        with self._lock:
            state = self.load_state()
            for verdict in verdicts:
                state.items[verdict.item_id] = ResultSnapshot.from_verdict(verdict)
            state.updated_at = now_rfc3339()
            self._write_state(state)

    def upsert_result(self, verdict: CheckVerdict) -> None:
        self.upsert_results([verdict])
