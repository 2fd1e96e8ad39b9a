"""
upcheck - check locally installed software for available updates.

Usage:
    upcheck check                    # Check enabled manual items (check-all)
    upcheck check --mode auto-check  # Run a named bulk mode
    upcheck check --mode everything  # Run every bulk mode in turn
    upcheck check brew node          # Check specific items
    upcheck update brew              # Run an item's update command
    upcheck run "brew update"        # Run a shared/ad-hoc command
    upcheck detect                   # Report which items are installed
    upcheck status                   # Show persisted latest results
    upcheck history --limit 20       # Show execution history
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence

from .config import Config, load_config, validate_config
from .detection import detect_installed
from .guard import SingleFlightGuard
from .history import HistoryStore
from .logging_config import get_logger, setup_logging
from .orchestrator import BulkCheckResult, CheckAlreadyRunningError, CheckOrchestrator
from .render import render_history, render_outcome, render_status, render_verdicts
from .result_store import ResultStore
from .selection import BULK_MODES
from .shell_runner import CommandExecutionError, ProcessRunner

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_ALREADY_RUNNING = 3
EXIT_INTERRUPTED = 130

EVERYTHING_MODE = "everything"


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _item_names(config: Config) -> dict[str, str]:
    return {item.id: item.name for item in config.items}


def build_orchestrator(
    config: Config,
    guard: SingleFlightGuard,
    verbose: bool = False,
) -> CheckOrchestrator:
    """Wire an orchestrator to the default runner and JSON stores."""
    return CheckOrchestrator(
        guard=guard,
        timeout_seconds=config.command_timeout_seconds,
        runner=ProcessRunner(),
        result_sink=ResultStore(),
        history_sink=HistoryStore(),
        manual_item_ids=config.manual_item_ids,
        verbose=verbose,
    )


def cmd_check(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Check specific items, or run a bulk mode."""
    if args.items:
        verdicts = []
        for item_id in args.items:
            item = config.get_item(item_id)
            if item is None:
                print(f"✗ Unknown item: {item_id}", file=sys.stderr)
                return EXIT_FAILURE
            verdicts.append(orchestrator.run_one(item))
        if args.json:
            _print_json([v.to_dict() for v in verdicts])
        else:
            render_verdicts(verdicts, _item_names(config))
        return EXIT_OK if all(v.error is None for v in verdicts) else EXIT_FAILURE

    try:
        if args.mode == EVERYTHING_MODE:
            results = orchestrator.run_everything(config.items)
        else:
            results = [orchestrator.run_mode(config.items, args.mode)]
    except CheckAlreadyRunningError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_ALREADY_RUNNING

    if args.json:
        _print_json([r.to_dict() for r in results])
    else:
        for result in results:
            _render_bulk(result, config)
    return EXIT_OK if all(r.success for r in results) else EXIT_FAILURE


def _render_bulk(result: BulkCheckResult, config: Config) -> None:
    print(f"[{result.action}]")
    render_verdicts(result.verdicts, _item_names(config))
    print(result.summary())


def cmd_update(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Run an item's update command."""
    item = config.get_item(args.item)
    if item is None:
        print(f"✗ Unknown item: {args.item}", file=sys.stderr)
        return EXIT_FAILURE
    result = orchestrator.run_update(item)
    if args.json:
        _print_json(result.to_dict())
    else:
        render_outcome(result.outcome)
    return EXIT_OK if result.outcome.success else EXIT_FAILURE


def cmd_run(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Run a shared or ad-hoc command."""
    outcome = orchestrator.run_command(args.shell_command)
    if args.json:
        _print_json(outcome.to_dict())
    else:
        render_outcome(outcome)
    return EXIT_OK if outcome.success else EXIT_FAILURE


def cmd_detect(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Report which configured items are installed."""
    installed = detect_installed(config.items, runner=orchestrator.runner)
    if args.json:
        _print_json(installed)
    else:
        names = _item_names(config)
        for item_id, flag in installed.items():
            print(f"{'✓' if flag else '✗'} {names.get(item_id, item_id)}")
    return EXIT_OK


def cmd_status(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Show the latest persisted results."""
    state = ResultStore().load_state()
    if args.json:
        _print_json(state.to_dict())
    else:
        render_status(state, _item_names(config))
    return EXIT_OK


def cmd_history(args: argparse.Namespace, config: Config, orchestrator: CheckOrchestrator) -> int:
    """Show execution history, newest first."""
    entries = HistoryStore().load_entries(args.limit)
    if args.json:
        _print_json([e.to_dict() for e in entries])
    else:
        render_history(entries)
    return EXIT_OK


COMMANDS = {
    "check": cmd_check,
    "update": cmd_update,
    "run": cmd_run,
    "detect": cmd_detect,
    "status": cmd_status,
    "history": cmd_history,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upcheck",
        description="Check locally installed software for available updates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")
    parser.add_argument("--log-file", help="Also write a debug log to this file")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")

    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Check items for updates")
    check.add_argument("items", nargs="*", help="Item ids to check (bypasses bulk modes)")
    check.add_argument(
        "--mode",
        default="check-all",
        choices=sorted(BULK_MODES) + [EVERYTHING_MODE],
        help="Bulk mode to run when no items are given (default: check-all)",
    )

    update = sub.add_parser("update", help="Run an item's update command")
    update.add_argument("item", help="Item id")

    run = sub.add_parser("run", help="Run a shared or ad-hoc command")
    run.add_argument("shell_command", help="Command text, run through the login shell")

    sub.add_parser("detect", help="Report which items are installed")
    sub.add_parser("status", help="Show latest persisted results")

    history = sub.add_parser("history", help="Show execution history")
    history.add_argument("--limit", type=int, default=50, help="Number of entries (1-200)")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)
    logger = get_logger()

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_FAILURE

    for warning in validate_config(config):
        logger.warning(warning)

    guard = SingleFlightGuard()
    orchestrator = build_orchestrator(config, guard, verbose=args.verbose)

    try:
        return COMMANDS[args.command](args, config, orchestrator)
    except (CommandExecutionError, ValueError, OSError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
