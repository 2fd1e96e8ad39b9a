"""
Installation detection.

An item counts as installed when it declares no current_version_command, or
when that command exits 0 with non-empty output.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from .models import SoftwareItem
from .shell_runner import CommandExecutionError, ProcessRunner

logger = logging.getLogger(__name__)

DETECT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_WORKERS = 8


def is_installed(
    item: SoftwareItem,
    runner: ProcessRunner,
    timeout_seconds: int = DETECT_TIMEOUT_SECONDS,
) -> bool:
    if item.current_version_command is None:
        return True
    try:
        outcome = runner.execute(item.current_version_command, timeout_seconds)
    except CommandExecutionError as e:
        logger.debug("Detection failed for %s: %s", item.id, e)
        return False
    return outcome.exit_code == 0 and bool(outcome.stdout.strip())


def detect_installed(
    items: Sequence[SoftwareItem],
    runner: ProcessRunner | None = None,
    timeout_seconds: int = DETECT_TIMEOUT_SECONDS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> dict[str, bool]:
    """
    Detect which items are installed, checking items in parallel.

    Args:
        items: Items to probe
        runner: Process runner (a default ProcessRunner if None)
        timeout_seconds: Timeout for each version command
        max_workers: Maximum parallel workers

    Returns:
        Mapping of item id to installed flag
    """
    if not items:
        return {}
    runner = runner if runner is not None else ProcessRunner()

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        flags = executor.map(lambda item: is_installed(item, runner, timeout_seconds), items)
        return {item.id: flag for item, flag in zip(items, flags)}
