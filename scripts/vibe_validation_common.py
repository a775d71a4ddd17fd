#!/usr/bin/env python3
"""
Vibe Submission Tools - Common Module

Shared validation infrastructure for all marketplace project validators.
This module contains:
- Type definitions (Severity, Diagnostic, ValidationResult, ValidationContext)
- Common constants (ignore set, bounded patterns, project types)
- Utility functions (merging, formatting, exit codes)

All individual validators should import from this module to ensure consistency.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

# =============================================================================
# Type Definitions
# =============================================================================

# Diagnostic severity levels
# - error: blocks validity (non-zero exit code)
# - warning: always reported, never blocks
Severity = Literal["error", "warning"]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # No errors (warnings allowed)
EXIT_INVALID = 1  # Errors found, or the run could not start

# =============================================================================
# Common Constants
# =============================================================================

VALID_PROJECT_TYPES: frozenset[str] = frozenset({"app", "plugin", "agent"})

# Project types the permission rules apply to (agents are exempt)
PERMISSION_CHECKED_TYPES: frozenset[str] = frozenset({"app", "plugin"})

# Reverse-domain id: every segment is capped so matching stays linear
ID_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,63}(\.[a-z0-9_]{1,63}){1,10}$", re.IGNORECASE)

# Exact semver triple, no pre-release or build metadata
VERSION_PATTERN = re.compile(r"^\d{1,9}\.\d{1,9}\.\d{1,9}$")

# Longest manifest field value handed to a pattern
MAX_FIELD_LENGTH = 1024

# Names never scanned or copied. Callers may add to this set but never remove from it.
MIN_IGNORE_NAMES: frozenset[str] = frozenset(
    {
        # Version control metadata
        ".git",
        ".hg",
        ".svn",
        # Dependency caches
        "node_modules",
        "bower_components",
        "jspm_packages",
        "__pycache__",
        ".venv",
        # Environment files (every other .env* name is covered by the dot rule)
        ".env",
        ".env.local",
        ".env.development",
        ".env.production",
        # Credential files
        "secrets.json",
        "credentials.json",
        "service-account.json",
        "token.json",
        "auth.json",
        "private.key",
        "id_rsa",
        "id_ed25519",
        "id_dsa",
        "id_ecdsa",
        ".npmrc",
        ".pypirc",
        ".netrc",
    }
)


def build_ignore_set(extra: Iterable[str] | None = None) -> frozenset[str]:
    """Return the built-in ignore set united with caller additions.

    Args:
        extra: Additional names to ignore (empty strings are dropped)

    Returns:
        A frozenset that is always a superset of MIN_IGNORE_NAMES
    """
    if not extra:
        return MIN_IGNORE_NAMES
    return MIN_IGNORE_NAMES | frozenset(name for name in extra if name)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class Diagnostic:
    """Single validator finding.

    Attributes:
        code: Namespaced code (manifest-..., permission-..., security-..., a11y-...)
        message: Human-readable description of the finding
        severity: error or warning
        path: Optional location (manifest field path or project-relative file)
    """

    code: str
    message: str
    severity: Severity = "error"
    path: str | None = None

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        result = {"code": self.code, "message": self.message, "severity": self.severity}
        if self.path is not None:
            result["path"] = self.path
        return result


@dataclass(frozen=True)
class ValidationResult:
    """Immutable outcome of one validator (or of the aggregated run).

    ``valid`` is derived from ``errors`` on every access, never stored.
    """

    errors: tuple[Diagnostic, ...] = ()
    warnings: tuple[Diagnostic, ...] = ()

    @property
    def valid(self) -> bool:
        """True when no error-severity diagnostic is present."""
        return len(self.errors) == 0

    @property
    def exit_code(self) -> int:
        """Exit code for CLI entry points. Warnings never block."""
        return EXIT_OK if self.valid else EXIT_INVALID

    def codes(self) -> list[str]:
        """All diagnostic codes, errors first, in report order."""
        return [d.code for d in self.errors] + [d.code for d in self.warnings]

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "valid": self.valid,
            "errors": [d.to_dict() for d in self.errors],
            "warnings": [d.to_dict() for d in self.warnings],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert result to JSON string.

        Args:
            indent: JSON indentation level (default 2)

        Returns:
            JSON string representation of the result
        """
        return json.dumps(self.to_dict(), indent=indent)

    def to_lines(self) -> list[str]:
        """Serialize as line-delimited key=value records, one per diagnostic."""
        lines = [f"valid={str(self.valid).lower()}"]
        for diagnostic in (*self.errors, *self.warnings):
            record = f"severity={diagnostic.severity} code={diagnostic.code}"
            if diagnostic.path is not None:
                record += f" path={json.dumps(diagnostic.path)}"
            record += f" message={json.dumps(diagnostic.message)}"
            lines.append(record)
        return lines


def merge_results(results: Iterable[ValidationResult]) -> ValidationResult:
    """Concatenate results in the given order, dropping exact duplicates.

    The first occurrence of a diagnostic wins, so ordering stays stable
    across runs for identical input.
    """
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []
    seen: set[Diagnostic] = set()
    for result in results:
        for bucket, diagnostics in ((errors, result.errors), (warnings, result.warnings)):
            for diagnostic in diagnostics:
                if diagnostic in seen:
                    continue
                seen.add(diagnostic)
                bucket.append(diagnostic)
    return ValidationResult(errors=tuple(errors), warnings=tuple(warnings))


@dataclass
class ValidationContext:
    """Per-call collector for diagnostics without failing fast.

    Each validator call creates its own context, records every finding,
    then freezes it into a ValidationResult. Contexts are never shared
    between validators.

    Usage:
        ctx = ValidationContext("manifest")
        ctx.error("manifest-missing-id", "Manifest is missing required field: id")
        ctx.warning("manifest-missing-author", "...")
        result = ctx.finalize()
    """

    name: str
    errors: list[Diagnostic] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)

    def error(self, code: str, message: str, path: str | None = None) -> None:
        """Add an error-severity diagnostic."""
        self.errors.append(Diagnostic(code, message, "error", path))

    def warning(self, code: str, message: str, path: str | None = None) -> None:
        """Add a warning-severity diagnostic."""
        self.warnings.append(Diagnostic(code, message, "warning", path))

    def extend(self, result: ValidationResult) -> None:
        """Append every diagnostic of another result."""
        self.errors.extend(result.errors)
        self.warnings.extend(result.warnings)

    def finalize(self) -> ValidationResult:
        """Freeze the collected diagnostics into an immutable result."""
        return ValidationResult(errors=tuple(self.errors), warnings=tuple(self.warnings))


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

# ANSI color codes
COLORS = {
    "error": "\033[91m",  # Red
    "warning": "\033[93m",  # Yellow
    "info": "\033[94m",  # Blue
    "success": "\033[92m",  # Green
    "RESET": "\033[0m",
    "BOLD": "\033[1m",
}


def colorize(text: str, level: str) -> str:
    """Apply color to text based on level."""
    color = COLORS.get(level, "")
    return f"{color}{text}{COLORS['RESET']}"


def format_diagnostic(diagnostic: Diagnostic, show_code: bool = False) -> str:
    """Format a single diagnostic for terminal output."""
    text = diagnostic.message
    if diagnostic.path:
        text += f" ({diagnostic.path})"
    if show_code:
        text += f" [{diagnostic.code}]"
    return text


def print_result(result: ValidationResult, title: str = "Validation Report", verbose: bool = False) -> None:
    """Print a formatted, colorized report of a validation result."""
    print(f"\n{'=' * 60}")
    print(colorize(title, "BOLD"))
    print(f"{'=' * 60}")

    if result.errors:
        print("\n" + colorize(f"--- ERRORS ({len(result.errors)}) ---", "error"))
        for index, diagnostic in enumerate(result.errors, start=1):
            print(f"  {index}. {format_diagnostic(diagnostic, show_code=verbose)}")

    if result.warnings:
        print("\n" + colorize(f"--- WARNINGS ({len(result.warnings)}) [non-blocking] ---", "warning"))
        for index, diagnostic in enumerate(result.warnings, start=1):
            print(f"  {index}. {format_diagnostic(diagnostic, show_code=verbose)}")

    if result.valid:
        print("\n" + colorize("✓ All validation checks passed", "success"))
    else:
        print("\n" + colorize("✗ Please fix the errors before publishing", "error"))


def clip(value: str, limit: int = MAX_FIELD_LENGTH) -> str:
    """Cap a string before it is handed to a pattern."""
    return value if len(value) <= limit else value[:limit]
