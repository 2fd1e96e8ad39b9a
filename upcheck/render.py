"""
Output rendering and formatting for the command line.
"""

from __future__ import annotations

import os
import sys
from typing import IO, Mapping, Sequence

from packaging.version import InvalidVersion, Version

from .history import HistoryEntry
from .models import CheckVerdict, CommandOutcome
from .result_store import LatestResultState

# Environment options
USE_EMOJI = os.environ.get("UPCHECK_EMOJI", "1") == "1"
USE_COLOR = os.environ.get("UPCHECK_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
RED = "\033[31m"
RESET = "\033[0m"


def colorize(text: str, color: str) -> str:
    """Apply color to text unless colors are disabled."""
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def status_icon(has_update: bool, error: str | None) -> str:
    """Icon for a verdict: error, update available, or up to date."""
    if error is not None:
        return "❌" if USE_EMOJI else "x"
    if has_update:
        return "⬆" if USE_EMOJI else "↑"
    return "✅" if USE_EMOJI else "✓"


def _parse_version(text: str) -> Version | None:
    try:
        return Version(text.strip().lstrip("vV"))
    except InvalidVersion:
        return None


def is_major_jump(current: str | None, latest: str | None) -> bool:
    """
    Whether latest has a higher major version than current.

    Display hint only; update detection itself is textual.
    Unparsable versions are never reported as major jumps.
    """
    if not current or not latest:
        return False
    v1 = _parse_version(current)
    v2 = _parse_version(latest)
    if v1 is None or v2 is None:
        return False
    return v2.major > v1.major


def version_jump(current: str | None, latest: str | None) -> str:
    """Human-readable version jump, e.g. "1.2.0 → 2.0.0 (major)"."""
    if current and latest:
        text = f"{current} → {latest}"
        if current != latest and is_major_jump(current, latest):
            text += " (major)"
        return text
    return current or latest or "-"


def format_verdict(verdict: CheckVerdict, name: str | None = None) -> str:
    """One-line description of a verdict."""
    label = name or verdict.item_id
    icon = status_icon(verdict.has_update, verdict.error)
    if verdict.error is not None:
        return f"{icon} {label}: {colorize(verdict.error, RED)}"
    versions = version_jump(verdict.current_version, verdict.latest_version)
    if verdict.has_update:
        return f"{icon} {label}: {colorize('update available', YELLOW)} ({versions})"
    return f"{icon} {label}: {colorize('up to date', GREEN)} ({versions})"


def render_verdicts(
    verdicts: Sequence[CheckVerdict],
    names: Mapping[str, str] | None = None,
    out: IO[str] | None = None,
) -> None:
    """Print one line per verdict, in order."""
    out = out or sys.stdout
    names = names or {}
    for verdict in verdicts:
        print(format_verdict(verdict, names.get(verdict.item_id)), file=out)


def render_outcome(outcome: CommandOutcome, out: IO[str] | None = None) -> None:
    """Print a command outcome with its captured output."""
    out = out or sys.stdout
    status = f"exit {outcome.exit_code}"
    if outcome.timed_out:
        status = colorize("timed out", RED)
    elif outcome.exit_code != 0:
        status = colorize(status, RED)
    print(f"$ {outcome.command}  [{status}, {outcome.duration_ms}ms]", file=out)
    if outcome.stdout:
        print(outcome.stdout, file=out)
    if outcome.stderr:
        print(colorize(outcome.stderr, YELLOW), file=out)


def render_status(
    state: LatestResultState,
    names: Mapping[str, str] | None = None,
    out: IO[str] | None = None,
) -> None:
    """Print persisted results and a count of updates and errors."""
    out = out or sys.stdout
    names = names or {}
    if not state.items:
        print("No check results recorded yet.", file=out)
        return
    for snap in state.items.values():
        label = names.get(snap.item_id, snap.item_id)
        icon = status_icon(snap.has_update, snap.error)
        detail = snap.error if snap.error is not None else version_jump(
            snap.current_version, snap.latest_version
        )
        print(f"{icon} {label}: {detail}  (checked {snap.checked_at})", file=out)
    print(
        f"{len(state.update_candidates())} updates available, "
        f"{state.error_count()} errors (updated {state.updated_at})",
        file=out,
    )


def render_history(entries: Sequence[HistoryEntry], out: IO[str] | None = None) -> None:
    """Print history entries, newest first."""
    out = out or sys.stdout
    if not entries:
        print("No history recorded yet.", file=out)
        return
    for entry in entries:
        mark = "✓" if entry.success else "✗"
        print(f"{entry.recorded_at} {mark} {entry.action} [{entry.target}] {entry.summary}", file=out)
