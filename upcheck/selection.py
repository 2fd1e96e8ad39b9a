"""
Item selection for bulk checks.

Manual items (by default Homebrew and Bun) are checked on demand; every other
enabled item is checked by the automatic modes, split by kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Collection

from .models import SoftwareItem

DEFAULT_MANUAL_ITEM_IDS: tuple[str, ...] = ("brew", "bun")

APP_KINDS = frozenset({"gui", "app"})

ItemPredicate = Callable[[SoftwareItem, Collection[str]], bool]


def is_manual_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return item.id in manual_ids


def is_manual_check_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return item.enabled and is_manual_item(item, manual_ids)


def is_auto_cli_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return item.enabled and not is_manual_item(item, manual_ids) and item.kind == "cli"


def is_auto_app_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return item.enabled and not is_manual_item(item, manual_ids) and item.kind in APP_KINDS


def is_auto_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return is_auto_cli_item(item, manual_ids) or is_auto_app_item(item, manual_ids)


def is_runtime_item(item: SoftwareItem, manual_ids: Collection[str] = DEFAULT_MANUAL_ITEM_IDS) -> bool:
    return item.enabled and item.kind == "runtime"


@dataclass(frozen=True)
class BulkMode:
    """
    A named bulk check.

    Attributes:
        action: History action name
        label: Short description used in skip summaries
        predicate: Selects the items this mode checks
    """
    action: str
    label: str
    predicate: ItemPredicate

    @property
    def skip_action(self) -> str:
        return f"{self.action}-skip"

    @property
    def skip_summary(self) -> str:
        return f"skipped: previous {self.label} still running"


BULK_MODES: dict[str, BulkMode] = {
    "check-all": BulkMode("check-all", "full check", is_manual_check_item),
    "auto-check": BulkMode("auto-check", "automatic check", is_auto_item),
    "auto-check-cli": BulkMode("auto-check-cli", "automatic CLI check", is_auto_cli_item),
    "auto-check-app": BulkMode("auto-check-app", "automatic app check", is_auto_app_item),
    "check-runtime": BulkMode("check-runtime", "runtime check", is_runtime_item),
}

# Modes run in order by a "check everything" request
EVERYTHING_SEQUENCE: tuple[str, ...] = (
    "check-all",
    "check-runtime",
    "auto-check-cli",
    "auto-check-app",
)


def get_mode(name: str) -> BulkMode:
    """
    Look up a bulk mode by action name.

    Raises:
        ValueError: If the mode is unknown
    """
    try:
        return BULK_MODES[name]
    except KeyError:
        raise ValueError(
            f"Unknown bulk mode: {name}. Must be one of: {', '.join(sorted(BULK_MODES))}"
        ) from None
