#!/usr/bin/env python3
"""
Vibe Submission Tools - Project Validator

Runs every validator against a project and merges their findings into one
report for marketplace submission.

Validators run in a fixed order, and the merged errors and warnings keep
that order:
    1. manifest       (validate_manifest.py)
    2. permissions    (validate_permissions.py)
    3. security       (validate_security.py)
    4. accessibility  (validate_accessibility.py)

A validator that crashes is reported as a single <category>-check-failed
error; the others still run.

Usage:
    python scripts/vibe_validate.py                  # validate the cwd
    python scripts/vibe_validate.py /path/to/project
    python scripts/vibe_validate.py --fix            # apply safe fixes, save manifest.json
    python scripts/vibe_validate.py --json           # machine-readable output
    python scripts/vibe_validate.py --format lines   # key=value records

Exit codes:
    0 - No errors (warnings allowed)
    1 - Errors found, or the project could not be loaded
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from validate_accessibility import validate_accessibility
from validate_manifest import validate_manifest
from validate_permissions import validate_permissions
from validate_security import validate_security
from vibe_config import ConfigError, VibeConfig, configure_logging, load_config
from vibe_manifest import Manifest, ManifestLoadError, load_manifest, save_manifest
from vibe_validation_common import (
    EXIT_INVALID,
    Diagnostic,
    ValidationResult,
    merge_results,
    print_result,
)

logger = logging.getLogger(__name__)


class DiagnosticAggregator:
    """Runs all validators in a fixed order and merges their results."""

    def __init__(self, config: VibeConfig | None = None) -> None:
        self.config = config or VibeConfig()

    def run(self, manifest: Manifest, project_root: Path, fix: bool = False) -> ValidationResult:
        """Validate a project.

        Args:
            manifest: Parsed manifest (mutated only by fix rules when fix=True)
            project_root: Absolute project directory
            fix: Apply deterministic fixes where a rule exists

        Returns:
            The concatenation of every validator's diagnostics, in order,
            with exact duplicates dropped
        """
        steps: list[tuple[str, Callable[[], ValidationResult]]] = [
            ("manifest", lambda: validate_manifest(manifest, fix)),
            ("permission", lambda: validate_permissions(manifest, fix)),
            ("security", lambda: validate_security(project_root)),
            (
                "a11y",
                lambda: validate_accessibility(
                    project_root,
                    source_dir=self.config.source_dir,
                    extra_ignore_names=self.config.extra_ignore_names,
                    max_file_bytes=self.config.max_file_bytes,
                ),
            ),
        ]
        return merge_results(self._run_step(category, step) for category, step in steps)

    @staticmethod
    def _run_step(category: str, step: Callable[[], ValidationResult]) -> ValidationResult:
        """Run one validator, turning a crash into a single diagnostic."""
        try:
            return step()
        except Exception as e:
            logger.error("%s validator failed: %s", category, e, exc_info=True)
            return ValidationResult(
                errors=(Diagnostic(f"{category}-check-failed", f"{category} check failed: {e}", "error"),)
            )


# =============================================================================
# CLI Main
# =============================================================================


def main() -> int:
    """CLI entry point for full project validation."""
    parser = argparse.ArgumentParser(description="Validate project for marketplace submission")
    parser.add_argument("path", nargs="?", type=Path, default=Path.cwd(), help="Project directory (default: cwd)")
    parser.add_argument("--fix", action="store_true", help="Automatically fix issues when possible")
    parser.add_argument(
        "--format",
        choices=("text", "json", "lines"),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument("--json", action="store_true", help="Output as JSON (same as --format json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic codes")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    output_format = "json" if args.json else args.format
    project_root = args.path.resolve()

    try:
        config = load_config()
        manifest = load_manifest(project_root)
    except (ConfigError, ManifestLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID

    configure_logging(args.debug or config.debug)

    before = manifest.to_dict()
    result = DiagnosticAggregator(config).run(manifest, project_root, fix=args.fix)

    if args.fix and manifest.to_dict() != before:
        try:
            saved = save_manifest(manifest, project_root)
        except OSError as e:
            print(f"Error: cannot save fixed manifest: {e}", file=sys.stderr)
            return EXIT_INVALID
        if output_format == "text":
            print(f"Applied fixes to {saved}")

    if output_format == "json":
        print(result.to_json())
    elif output_format == "lines":
        print("\n".join(result.to_lines()))
    else:
        print_result(result, title=f"Project Validation: {project_root.name}", verbose=args.verbose)

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
