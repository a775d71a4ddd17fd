#!/usr/bin/env python3
"""
Vibe Submission Tools - Manifest Validator

Validates the structural rules of a project's manifest.json:
required fields (id, name, version, type) and recommended fields
(description, author). Every check runs; an early failure never hides
a later one.

Usage:
    python scripts/validate_manifest.py /path/to/project
    python scripts/validate_manifest.py /path/to/project --fix --json

Exit codes:
    0 - No errors (warnings allowed)
    1 - Errors found, or the manifest could not be loaded
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from vibe_config import ConfigError, configure_logging, load_config
from vibe_manifest import Manifest, ManifestLoadError, load_manifest, save_manifest
from vibe_validation_common import (
    EXIT_INVALID,
    ID_PATTERN,
    MAX_FIELD_LENGTH,
    VALID_PROJECT_TYPES,
    VERSION_PATTERN,
    ValidationContext,
    ValidationResult,
    print_result,
)

logger = logging.getLogger(__name__)


def is_valid_id(value: object) -> bool:
    """Check an id against the bounded reverse-domain pattern."""
    if not isinstance(value, str) or len(value) > MAX_FIELD_LENGTH:
        return False
    return bool(ID_PATTERN.match(value))


def is_valid_version(value: object) -> bool:
    """Check a version is an exact semver triple."""
    if not isinstance(value, str) or len(value) > MAX_FIELD_LENGTH:
        return False
    return bool(VERSION_PATTERN.match(value))


def is_valid_type(value: object) -> bool:
    """Check a project type is one of app / plugin / agent."""
    return isinstance(value, str) and value in VALID_PROJECT_TYPES


# =============================================================================
# Fix Rules
# =============================================================================

# (field, validity check) pairs eligible for the whitespace-trim fix
_TRIM_FIXABLE_FIELDS: tuple[tuple[str, Callable[[object], bool]], ...] = (
    ("id", is_valid_id),
    ("version", is_valid_version),
    ("type", is_valid_type),
)


def apply_manifest_fixes(manifest: Manifest) -> list[str]:
    """Apply deterministic, lossless fixes in place.

    The only rule: strip surrounding whitespace from id, version and type
    when the stripped value is valid. Anything else is left for the author.

    Returns:
        Names of the fields that were changed (empty if none)
    """
    fixed: list[str] = []
    for field_name, check in _TRIM_FIXABLE_FIELDS:
        value = getattr(manifest, field_name)
        if not isinstance(value, str):
            continue
        stripped = value.strip()
        if stripped != value and check(stripped):
            setattr(manifest, field_name, stripped)
            fixed.append(field_name)
            logger.info("Fixed manifest field '%s': stripped surrounding whitespace", field_name)
    return fixed


# =============================================================================
# Validation
# =============================================================================


def validate_required_fields(manifest: Manifest, ctx: ValidationContext) -> None:
    """Validate the required manifest fields."""
    # id
    if not manifest.id:
        ctx.error("manifest-missing-id", "Manifest is missing required field: id", "id")
    elif not is_valid_id(manifest.id):
        ctx.error(
            "manifest-invalid-id",
            "Manifest id must be in reverse domain format (e.g., com.example.myapp)",
            "id",
        )

    # name
    if not manifest.name:
        ctx.error("manifest-missing-name", "Manifest is missing required field: name", "name")

    # version
    if not manifest.version:
        ctx.error("manifest-missing-version", "Manifest is missing required field: version", "version")
    elif not is_valid_version(manifest.version):
        ctx.error(
            "manifest-invalid-version",
            "Manifest version must be in semver format (e.g., 1.0.0)",
            "version",
        )

    # type: only an absent value counts as missing, "" is an invalid type
    if manifest.type is None:
        ctx.error("manifest-missing-type", "Manifest is missing required field: type", "type")
    elif not is_valid_type(manifest.type):
        ctx.error(
            "manifest-invalid-type",
            "Manifest type must be one of: app, plugin, agent",
            "type",
        )


def validate_recommended_fields(manifest: Manifest, ctx: ValidationContext) -> None:
    """Validate the recommended manifest fields (warnings only)."""
    if not manifest.description:
        ctx.warning(
            "manifest-missing-description",
            "Manifest is missing recommended field: description",
            "description",
        )
    if not manifest.author:
        ctx.warning("manifest-missing-author", "Manifest is missing recommended field: author", "author")


def validate_manifest(manifest: Manifest, fix: bool = False) -> ValidationResult:
    """Validate a manifest's structural rules.

    Args:
        manifest: The manifest to check (mutated only when fix applies)
        fix: Apply deterministic fixes before checking

    Returns:
        A fresh ValidationResult
    """
    if fix:
        apply_manifest_fixes(manifest)

    ctx = ValidationContext("manifest")
    validate_required_fields(manifest, ctx)
    validate_recommended_fields(manifest, ctx)
    return ctx.finalize()


# =============================================================================
# CLI Main
# =============================================================================


def main() -> int:
    """CLI entry point for standalone manifest validation."""
    parser = argparse.ArgumentParser(description="Validate a vibe project's manifest.json")
    parser.add_argument("path", nargs="?", type=Path, default=Path.cwd(), help="Project directory (default: cwd)")
    parser.add_argument("--fix", action="store_true", help="Apply deterministic fixes and save the manifest")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic codes")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    try:
        config = load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID
    configure_logging(args.debug or config.debug)
    project_root = args.path.resolve()

    try:
        manifest = load_manifest(project_root)
    except ManifestLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID

    before = manifest.to_dict()
    result = validate_manifest(manifest, fix=args.fix)
    if args.fix and manifest.to_dict() != before:
        save_manifest(manifest, project_root)

    if args.json:
        print(result.to_json())
    else:
        print_result(result, title=f"Manifest Validation: {project_root.name}", verbose=args.verbose)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
