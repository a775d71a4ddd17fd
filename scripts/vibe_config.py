#!/usr/bin/env python3
"""
Vibe Submission Tools - Configuration

Loads user configuration for the validators and the project initializer, and
edits the YAML file from the command line.

Usage:
    python scripts/vibe_config.py list
    python scripts/vibe_config.py get source_dir
    python scripts/vibe_config.py set extra_ignore_names "[coverage, dist]"
    python scripts/vibe_config.py unset source_dir
    python scripts/vibe_config.py delete debug          # same as unset

Sources, lowest to highest priority:
1. Built-in defaults
2. YAML file: $VIBE_CONFIG, else ~/.vibe/config.yaml (optional)
3. Environment variables:
   VIBE_EXTRA_IGNORE   Comma-separated names added to the walker ignore set
   VIBE_SOURCE_DIR     UI source directory scanned for accessibility issues
   VIBE_TEMPLATES_DIR  Directory holding the app/plugin/agent templates
   VIBE_DEBUG          Any of 1/true/yes enables debug logging

Example config.yaml:
    extra_ignore_names:
      - coverage
      - .DS_Store
    source_dir: src
    max_file_bytes: 1048576
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from vibe_validation_common import EXIT_INVALID, EXIT_OK

DEFAULT_SOURCE_DIR = "src"
DEFAULT_MAX_FILE_BYTES = 1024 * 1024

_TRUTHY = {"1", "true", "yes", "on"}

CONFIG_KEYS = ("extra_ignore_names", "source_dir", "templates_dir", "max_file_bytes", "debug")


class ConfigError(Exception):
    """Raised when the configuration file exists but cannot be used."""


def get_repo_root() -> Path:
    """Get the repository root directory (parent of scripts/)."""
    return Path(__file__).resolve().parent.parent


def get_config_path() -> Path:
    """Get the path of the YAML configuration file."""
    explicit = os.environ.get("VIBE_CONFIG", "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".vibe" / "config.yaml"


@dataclass
class VibeConfig:
    """Effective configuration for one CLI invocation."""

    extra_ignore_names: list[str] = field(default_factory=list)
    source_dir: str = DEFAULT_SOURCE_DIR
    templates_dir: Path = field(default_factory=lambda: get_repo_root() / "templates")
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    debug: bool = False


def _read_config_file(config_path: Path) -> dict[str, Any]:
    """Parse the YAML config file; a missing file is an empty config."""
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return data


def _apply_file_values(config: VibeConfig, data: dict[str, Any], config_path: Path) -> None:
    names = data.get("extra_ignore_names")
    if names is not None:
        if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
            raise ConfigError(f"'extra_ignore_names' in {config_path} must be a list of strings")
        config.extra_ignore_names.extend(names)

    source_dir = data.get("source_dir")
    if source_dir is not None:
        if not isinstance(source_dir, str) or not source_dir:
            raise ConfigError(f"'source_dir' in {config_path} must be a non-empty string")
        config.source_dir = source_dir

    templates_dir = data.get("templates_dir")
    if templates_dir is not None:
        if not isinstance(templates_dir, str) or not templates_dir:
            raise ConfigError(f"'templates_dir' in {config_path} must be a non-empty string")
        config.templates_dir = Path(templates_dir).expanduser()

    max_bytes = data.get("max_file_bytes")
    if max_bytes is not None:
        if not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes <= 0:
            raise ConfigError(f"'max_file_bytes' in {config_path} must be a positive integer")
        config.max_file_bytes = max_bytes

    debug = data.get("debug")
    if debug is not None:
        config.debug = bool(debug)


def _apply_env_values(config: VibeConfig) -> None:
    extra = os.environ.get("VIBE_EXTRA_IGNORE", "").strip()
    if extra:
        config.extra_ignore_names.extend(n.strip() for n in extra.split(",") if n.strip())

    source_dir = os.environ.get("VIBE_SOURCE_DIR", "").strip()
    if source_dir:
        config.source_dir = source_dir

    templates_dir = os.environ.get("VIBE_TEMPLATES_DIR", "").strip()
    if templates_dir:
        config.templates_dir = Path(templates_dir).expanduser()

    debug = os.environ.get("VIBE_DEBUG", "").strip().lower()
    if debug:
        config.debug = debug in _TRUTHY


def load_config(config_path: Path | None = None) -> VibeConfig:
    """Build the effective configuration.

    Args:
        config_path: Explicit YAML file (default: get_config_path())

    Raises:
        ConfigError: if the YAML file is malformed or has wrongly typed values
    """
    path = config_path or get_config_path()
    config = VibeConfig()
    _apply_file_values(config, _read_config_file(path), path)
    _apply_env_values(config)
    return config


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr: WARNING by default, DEBUG when asked.

    Callers pass ``args.debug or config.debug`` so the flag, the config file
    and VIBE_DEBUG all take effect.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def format_value(value: Any) -> str:
    """Render a config value the way `get` and `list` print it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(str(v) for v in value)
    return str(value)


def write_config_file(config_path: Path, data: dict[str, Any]) -> None:
    """Write the YAML config file, creating its directory if needed.

    Raises:
        ConfigError: if the file cannot be written
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(yaml.safe_dump(data, sort_keys=False, default_flow_style=False), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write {config_path}: {e}") from e


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Show or edit the vibe configuration file")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="Print the config file path and every effective value")
    get_cmd = sub.add_parser("get", help="Print one effective value")
    get_cmd.add_argument("key", choices=CONFIG_KEYS)
    set_cmd = sub.add_parser("set", help="Store a value in the config file (parsed as YAML)")
    set_cmd.add_argument("key", choices=CONFIG_KEYS)
    set_cmd.add_argument("value")
    unset_cmd = sub.add_parser("unset", aliases=["delete"], help="Remove a value from the config file")
    unset_cmd.add_argument("key", choices=CONFIG_KEYS)
    args = parser.parse_args()

    path = get_config_path()
    try:
        data = _read_config_file(path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID

    if args.command in ("list", "get"):
        try:
            config = load_config(path)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_INVALID
        if args.command == "get":
            print(format_value(getattr(config, args.key)))
            return EXIT_OK
        print(f"Config file: {path}")
        for key in CONFIG_KEYS:
            print(f"  {key}: {format_value(getattr(config, key))}")
        return EXIT_OK

    if args.command in ("unset", "delete"):
        if args.key not in data:
            print(f"{args.key} is not set in {path}")
            return EXIT_OK
        del data[args.key]
        try:
            write_config_file(path, data)
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_INVALID
        print(f"Removed {args.key} from {path}")
        return EXIT_OK

    try:
        value = yaml.safe_load(args.value)
    except yaml.YAMLError as e:
        print(f"Error: cannot parse value for {args.key}: {e}", file=sys.stderr)
        return EXIT_INVALID
    updated = {**data, args.key: value}
    try:
        _apply_file_values(VibeConfig(), updated, path)
        write_config_file(path, updated)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID
    print(f"Set {args.key} = {format_value(value)} in {path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
