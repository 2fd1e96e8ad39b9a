"""
Check orchestration.

Runs single and bulk checks, item updates and ad-hoc commands, and forwards
results to the persistence and history sinks. Bulk checks are single-flight:
a bulk request made while another is running is rejected, not queued.
Single-item checks never take the guard.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Collection, Protocol, Sequence

from .check_strategy import check_item
from .common import vlog
from .config import DEFAULT_COMMAND_TIMEOUT_SECONDS
from .guard import SingleFlightGuard
from .history import HistoryEntry, bulk_entry, check_item_entry, command_entry
from .models import CheckVerdict, CommandOutcome, SoftwareItem, UpdateResult, now_rfc3339
from .selection import DEFAULT_MANUAL_ITEM_IDS, EVERYTHING_SEQUENCE, get_mode
from .shell_runner import ProcessRunner, ShellExecutor

logger = logging.getLogger(__name__)


class CheckAlreadyRunningError(RuntimeError):
    """
    A bulk check was requested while another one holds the guard.

    Attributes:
        action: Action name of the rejected request
    """
    def __init__(self, action: str = "check-all"):
        self.action = action
        super().__init__(f"{action} is already running")


class ResultSink(Protocol):
    def upsert_results(self, verdicts: Sequence[CheckVerdict]) -> None: ...


class HistorySink(Protocol):
    def append(self, entry: HistoryEntry) -> None: ...


@dataclass(frozen=True)
class BulkCheckResult:
    """
    Result of one bulk check.

    Attributes:
        action: Action name (e.g. "check-all")
        verdicts: One verdict per selected item, in input order
        duration_seconds: Total execution time
    """
    action: str
    verdicts: tuple[CheckVerdict, ...]
    duration_seconds: float = 0.0

    @property
    def checked(self) -> int:
        return len(self.verdicts)

    @property
    def update_count(self) -> int:
        return sum(1 for v in self.verdicts if v.has_update)

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.verdicts if v.error is not None)

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def summary(self) -> str:
        """Human-readable summary."""
        return (
            f"Checked {self.checked} items, found {self.update_count} updates, "
            f"{self.error_count} errors"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "action": self.action,
            "verdicts": [v.to_dict() for v in self.verdicts],
            "checked": self.checked,
            "update_count": self.update_count,
            "error_count": self.error_count,
            "duration_seconds": self.duration_seconds,
        }


class CheckOrchestrator:
    """
    Entry point for checks and updates.

    Attributes:
        guard: Shared single-flight guard for bulk checks
        timeout_seconds: Per-command timeout
        runner: Process runner (anything with execute(command, timeout_seconds))
        result_sink: Receives verdicts, keyed by item id
        history_sink: Receives history entries
        manual_item_ids: Items treated as manual by the named bulk modes
        verbose: Enable verbose logging
    """

    def __init__(
        self,
        guard: SingleFlightGuard,
        timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        runner: ProcessRunner | None = None,
        result_sink: ResultSink | None = None,
        history_sink: HistorySink | None = None,
        manual_item_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS,
        verbose: bool = False,
    ):
        self.guard = guard
        self.timeout_seconds = max(1, int(timeout_seconds))
        self.runner = runner if runner is not None else ProcessRunner()
        self.result_sink = result_sink
        self.history_sink = history_sink
        self.manual_item_ids = tuple(manual_item_ids)
        self.verbose = verbose

    def executor(self) -> ShellExecutor:
        """Fresh executor bound to the configured timeout."""
        return ShellExecutor(self.runner, self.timeout_seconds)

    def _persist(self, verdicts: Sequence[CheckVerdict]) -> None:
        if self.result_sink is None:
            return
        try:
            self.result_sink.upsert_results(verdicts)
        except (OSError, ValueError) as e:
            logger.warning("Failed to persist latest results: %s", e)

    def _record(self, entry: HistoryEntry) -> None:
        if self.history_sink is None:
            return
        try:
            self.history_sink.append(entry)
        except (OSError, ValueError) as e:
            logger.warning("Failed to append history: %s", e)

    def run_one(self, item: SoftwareItem) -> CheckVerdict:
        """
        Check a single item. Does not take the bulk guard.

        Args:
            item: Item to check

        Returns:
            CheckVerdict (failures are reported in verdict.error)
        """
        vlog(f"Checking {item.id}", self.verbose)
        verdict = check_item(item, self.executor())
        self._persist([verdict])
        self._record(check_item_entry(verdict))
        return verdict

    def run_bulk(
        self,
        items: Sequence[SoftwareItem],
        predicate: Callable[[SoftwareItem], bool],
        action: str = "check-all",
        skip_summary: str | None = None,
    ) -> BulkCheckResult:
        """
        Check every item selected by predicate, in input order.

        One item's failure never stops the batch.

        Args:
            items: Candidate items
            predicate: Selects the items to check
            action: History action name
            skip_summary: History summary recorded when rejected

        Returns:
            BulkCheckResult with one verdict per selected item

        Raises:
            CheckAlreadyRunningError: If another bulk check holds the guard
        """
        token = self.guard.try_acquire()
        if token is None:
            logger.info("Skipping %s: a bulk check is already running", action)
            self._record(bulk_entry(
                f"{action}-skip",
                False,
                skip_summary or f"skipped: previous {action} still running",
            ))
            raise CheckAlreadyRunningError(action)

        with token:
            start_time = time.time()
            selected = [item for item in items if predicate(item)]
            vlog(f"{action}: checking {len(selected)} of {len(items)} items", self.verbose)

            verdicts = tuple(check_item(item, self.executor()) for item in selected)
            result = BulkCheckResult(
                action=action,
                verdicts=verdicts,
                duration_seconds=time.time() - start_time,
            )

            self._persist(verdicts)
            self._record(bulk_entry(action, result.success, result.summary()))
            vlog(f"{action}: {result.summary()}", self.verbose)
            return result

    def run_mode(self, items: Sequence[SoftwareItem], mode_name: str) -> BulkCheckResult:
        """
        Run a named bulk mode (see selection.BULK_MODES).

        Raises:
            ValueError: If the mode is unknown
            CheckAlreadyRunningError: If another bulk check holds the guard
        """
        mode = get_mode(mode_name)
        manual_ids = self.manual_item_ids
        return self.run_bulk(
            items,
            lambda item: mode.predicate(item, manual_ids),
            action=mode.action,
            skip_summary=mode.skip_summary,
        )

    def run_everything(self, items: Sequence[SoftwareItem]) -> list[BulkCheckResult]:
        """
        Run every bulk mode in EVERYTHING_SEQUENCE.

        Each mode takes the guard in turn; the first conflict aborts the rest.

        Raises:
            CheckAlreadyRunningError: If another bulk check holds the guard
        """
        return [self.run_mode(items, mode_name) for mode_name in EVERYTHING_SEQUENCE]

    def run_update(self, item: SoftwareItem) -> UpdateResult:
        """
        Run an item's update command.

        Raises:
            ValueError: If the item has no update command
            CommandExecutionError: If the command cannot be spawned
        """
        if not item.update_command.strip():
            raise ValueError(f"{item.id} has no update_command")

        vlog(f"Updating {item.id}: {item.update_command}", self.verbose)
        outcome = self.runner.execute(item.update_command, self.timeout_seconds)
        self._record(command_entry(
            "run-item-update",
            item.id,
            outcome,
            f"update {item.name} (exit {outcome.exit_code})",
        ))
        return UpdateResult(item_id=item.id, updated_at=now_rfc3339(), outcome=outcome)

    def run_command(self, command: str) -> CommandOutcome:
        """
        Run a shared or ad-hoc command.

        Raises:
            CommandExecutionError: If the command cannot be spawned
        """
        vlog(f"Running shared command: {command}", self.verbose)
        outcome = self.runner.execute(command, self.timeout_seconds)
        self._record(command_entry(
            "run-shared-command",
            "shared",
            outcome,
            f"shared command finished (exit {outcome.exit_code})",
        ))
        return outcome
