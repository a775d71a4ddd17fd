#!/usr/bin/env python3
"""
Vibe Submission Tools - Permission Validator

Validates the capability grants declared in a manifest's ``permissions``
array. Only apps and plugins are checked; agents are exempt.

Rules:
- no permissions at all          -> warning permissions-empty
- permissions not an array       -> error   permission-missing-type
- permission without a type      -> error   permission-missing-type
- memory permission, no access   -> error   permission-missing-access
- memory write, global/no scope  -> warning permission-too-broad

Every per-permission diagnostic carries a ``permissions[i].<field>`` path.

Usage:
    python scripts/validate_permissions.py /path/to/project [--json]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from vibe_config import ConfigError, configure_logging, load_config
from vibe_manifest import Manifest, ManifestLoadError, Permission, load_manifest
from vibe_validation_common import (
    EXIT_INVALID,
    PERMISSION_CHECKED_TYPES,
    ValidationContext,
    ValidationResult,
    print_result,
)


def validate_single_permission(permission: Permission, index: int, ctx: ValidationContext) -> None:
    """Validate one permission entry."""
    if not permission.type:
        ctx.error(
            "permission-missing-type",
            f"Permission at index {index} is missing required field: type",
            f"permissions[{index}].type",
        )
        return

    if permission.type == "memory":
        access = permission.access or []
        if not access:
            ctx.error(
                "permission-missing-access",
                f"Memory permission at index {index} is missing required field: access",
                f"permissions[{index}].access",
            )
        elif "write" in access and (not permission.scope or permission.scope == "global"):
            # Broad grants are legal, only discouraged
            ctx.warning(
                "permission-too-broad",
                "Global write permission is very broad. Consider using a more specific scope.",
                f"permissions[{index}].scope",
            )


def validate_permissions(manifest: Manifest, fix: bool = False) -> ValidationResult:
    """Validate the permissions declared in a manifest.

    Args:
        manifest: The manifest to check (never mutated)
        fix: Accepted for a uniform validator signature; no permission fix rules exist

    Returns:
        A fresh ValidationResult
    """
    ctx = ValidationContext("permissions")

    if not isinstance(manifest.type, str) or manifest.type not in PERMISSION_CHECKED_TYPES:
        return ctx.finalize()

    if manifest.permissions is None or manifest.permissions == []:
        ctx.warning(
            "permissions-empty",
            "No permissions defined. Most apps/plugins require permissions.",
            "permissions",
        )
        return ctx.finalize()

    if not isinstance(manifest.permissions, list):
        ctx.error(
            "permission-missing-type",
            "Permissions must be an array of objects, each with a type",
            "permissions",
        )
        return ctx.finalize()

    for index, permission in enumerate(manifest.permissions):
        validate_single_permission(permission, index, ctx)

    return ctx.finalize()


def main() -> int:
    """CLI entry point for standalone permission validation."""
    parser = argparse.ArgumentParser(description="Validate the permissions of a vibe project's manifest.json")
    parser.add_argument("path", nargs="?", type=Path, default=Path.cwd(), help="Project directory (default: cwd)")
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

    result = validate_permissions(manifest)
    if args.json:
        print(result.to_json())
    else:
        print_result(result, title=f"Permission Validation: {project_root.name}", verbose=args.verbose)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
