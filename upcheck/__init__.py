"""
upcheck - update checks for locally installed software.

Core Modules:
- Execution: bounded login-shell command runner
- Checking: check-command and version-diff strategies
- Orchestration: single-flight bulk checks, updates, ad-hoc commands
- Persistence: latest results and execution history
"""

__version__ = "1.0.0"

from .models import SoftwareItem, CommandOutcome, CheckVerdict, UpdateResult
from .shell_runner import (
    TIMEOUT_EXIT_CODE,
    CommandExecutionError,
    ProcessRunner,
    ShellExecutor,
    run_shell_command,
)
from .check_strategy import (
    CommandExecutor,
    check_item,
    check_with_command,
    check_with_versions,
)
from .guard import GuardToken, SingleFlightGuard
from .orchestrator import BulkCheckResult, CheckAlreadyRunningError, CheckOrchestrator
from .selection import BULK_MODES, BulkMode
from .result_store import LatestResultState, ResultStore
from .history import HistoryEntry, HistoryStore
from .detection import detect_installed
from .config import Config, load_config, load_config_file, validate_config
from .logging_config import setup_logging, get_logger

__all__ = [
    "__version__",
    # Models
    "SoftwareItem",
    "CommandOutcome",
    "CheckVerdict",
    "UpdateResult",
    # Execution
    "TIMEOUT_EXIT_CODE",
    "CommandExecutionError",
    "ProcessRunner",
    "ShellExecutor",
    "run_shell_command",
    # Checking
    "CommandExecutor",
    "check_item",
    "check_with_command",
    "check_with_versions",
    # Orchestration
    "GuardToken",
    "SingleFlightGuard",
    "BulkCheckResult",
    "CheckAlreadyRunningError",
    "CheckOrchestrator",
    "BULK_MODES",
    "BulkMode",
    # Persistence
    "LatestResultState",
    "ResultStore",
    "HistoryEntry",
    "HistoryStore",
    # Detection
    "detect_installed",
    # Configuration
    "Config",
    "load_config",
    "load_config_file",
    "validate_config",
    # Logging
    "setup_logging",
    "get_logger",
]
