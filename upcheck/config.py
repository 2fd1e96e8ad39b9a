"""
Configuration file parsing and management.

Supports YAML configuration files (and plain JSON files ending in .json).
The first configuration file found wins; without one, built-in defaults are used.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any

import yaml

from .common import vlog
from .models import ITEM_KINDS, SoftwareItem
from .selection import DEFAULT_MANUAL_ITEM_IDS


DEFAULT_COMMAND_TIMEOUT_SECONDS = 120
MAX_COMMAND_TIMEOUT_SECONDS = 3600

# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".upcheck.yml",                                    # Project (highest priority)
    ".upcheck.yaml",
    os.path.expanduser("~/.config/upcheck/config.yml"),  # User global
    os.path.expanduser("~/.config/upcheck/config.yaml"),
]


def default_items() -> tuple[SoftwareItem, ...]:
    """Items used when no configuration file exists."""
    return (
        SoftwareItem(
            id="brew",
            name="Homebrew",
            kind="cli",
            enabled=True,
            description="Check and update Homebrew packages",
            current_version_command="brew --version | head -n 1 | awk '{print $2}'",
            update_check_command="brew outdated --quiet",
            update_check_regex=".+",
            update_command="brew update && brew upgrade",
        ),
        SoftwareItem(
            id="bun",
            name="Bun",
            kind="cli",
            enabled=True,
            description="Check and update Bun (if managed via brew)",
            current_version_command="bun --version",
            update_check_command=(
                "if brew list bun >/dev/null 2>&1; then brew outdated --quiet bun; else echo ''; fi"
            ),
            update_check_regex=".+",
            update_command=(
                "if brew list bun >/dev/null 2>&1; then brew upgrade bun; "
                "else echo 'bun is not managed by brew'; fi"
            ),
        ),
        SoftwareItem(
            id="npm-global",
            name="npm global packages",
            kind="cli",
            enabled=False,
            description="Example: outdated global npm packages",
            current_version_command="npm --version",
            update_check_command="npm outdated -g --parseable",
            update_check_regex=".+",
            update_command="npm update -g",
        ),
    )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration.

    Attributes:
        version: Config schema version
        command_timeout_seconds: Timeout applied to every command
        shared_update_commands: Commands offered for ad-hoc execution
        manual_item_ids: Items checked only by the manual "check-all" mode
        items: Tracked software items, in display order
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    command_timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS
    shared_update_commands: tuple[str, ...] = ("brew update", "brew upgrade")
    manual_item_ids: tuple[str, ...] = DEFAULT_MANUAL_ITEM_IDS
    items: tuple[SoftwareItem, ...] = field(default_factory=default_items)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        if (
            self.command_timeout_seconds < 1
            or self.command_timeout_seconds > MAX_COMMAND_TIMEOUT_SECONDS
        ):
            raise ValueError(
                f"Invalid command_timeout_seconds: {self.command_timeout_seconds}. "
                f"Must be between 1 and {MAX_COMMAND_TIMEOUT_SECONDS}"
            )

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        defaults = Config()
        items_data = data.get("items")
        items = (
            tuple(SoftwareItem.from_dict(item) for item in items_data)
            if items_data is not None
            else defaults.items
        )
        return Config(
            version=data.get("version", 1),
            command_timeout_seconds=int(
                data.get("command_timeout_seconds", DEFAULT_COMMAND_TIMEOUT_SECONDS)
            ),
            shared_update_commands=tuple(
                data.get("shared_update_commands", defaults.shared_update_commands)
            ),
            manual_item_ids=tuple(data.get("manual_item_ids", DEFAULT_MANUAL_ITEM_IDS)),
            items=items,
            source=source,
        )

    def get_item(self, item_id: str) -> SoftwareItem | None:
        """
        Look up an item by id.

        Args:
            item_id: Item identifier

        Returns:
            The item, or None if not configured
        """
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def with_timeout(self, timeout_seconds: int) -> Config:
        """Copy of this config with a different command timeout."""
        return Config(
            version=self.version,
            command_timeout_seconds=timeout_seconds,
            shared_update_commands=self.shared_update_commands,
            manual_item_ids=self.manual_item_ids,
            items=self.items,
            source=self.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file (.json files are parsed as JSON, others as YAML)
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError, AttributeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def _apply_env_overrides(config: Config, verbose: bool = False) -> Config:
    raw = os.environ.get("UPCHECK_TIMEOUT_SECONDS")
    if not raw:
        return config
    try:
        timeout = int(raw)
        updated = config.with_timeout(timeout)
    except ValueError as e:
        vlog(f"Ignoring UPCHECK_TIMEOUT_SECONDS={raw!r}: {e}", verbose)
        return config
    vlog(f"Command timeout overridden by environment: {timeout}s", verbose)
    return updated


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load configuration.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .upcheck.yml
    3. User ~/.config/upcheck/config.yml
    4. Default configuration

    $UPCHECK_TIMEOUT_SECONDS overrides the command timeout of whichever wins.

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        vlog(f"Using custom config: {custom_path}", verbose)
        return _apply_env_overrides(config, verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            vlog(f"Found config at: {location}", verbose)
            return _apply_env_overrides(config, verbose)

    vlog("No config files found, using defaults", verbose)
    return _apply_env_overrides(Config(), verbose)


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    warnings = []

    seen: set[str] = set()
    for item in config.items:
        if item.id in seen:
            warnings.append(f"Duplicate item id: {item.id}")
        seen.add(item.id)

        if item.kind not in ITEM_KINDS:
            warnings.append(
                f"Item '{item.id}': unknown kind '{item.kind}' "
                f"(expected one of: {', '.join(sorted(ITEM_KINDS))})"
            )

        if item.update_check_command is None and item.latest_version_command is None:
            warnings.append(
                f"Item '{item.id}': needs update_check_command or latest_version_command"
            )
        elif item.update_check_command is None and item.current_version_command is None:
            warnings.append(
                f"Item '{item.id}': latest_version_command requires current_version_command"
            )

        if item.update_check_regex is not None:
            try:
                re.compile(item.update_check_regex)
            except re.error as e:
                warnings.append(f"Item '{item.id}': invalid update_check_regex: {e}")

    for manual_id in config.manual_item_ids:
        if manual_id not in seen:
            warnings.append(f"Manual item '{manual_id}' is not configured")

    return warnings
