"""
Common utilities shared across upcheck modules.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# Default directory for latest results and execution history
DEFAULT_STATE_DIR = os.path.join("~", ".local", "state", "upcheck")


def get_state_dir() -> Path:
    """
    Directory holding persisted results and history.

    Uses $UPCHECK_STATE_DIR when set.

    Returns:
        Absolute path (not created)
    """
    state_dir = os.environ.get("UPCHECK_STATE_DIR") or DEFAULT_STATE_DIR
    return Path(os.path.expanduser(state_dir)).absolute()


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("UPCHECK_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            logger = get_logger()
            logger.info(msg)
        except Exception:
            # Fallback to stderr if logging fails
            try:
                print(f"[upcheck] {msg}", file=sys.stderr)
            except Exception:
                pass
