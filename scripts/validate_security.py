#!/usr/bin/env python3
"""
Vibe Submission Tools - Security Module

Pattern scan of a project's build-script declarations (the ``scripts`` map
of package.json). This is a narrow, extensible rule set, not a dependency
vulnerability scanner: new rules are added to SCRIPT_RULES without
changing the scanner's contract.

Security Checks Implemented:
1. Privilege escalation in scripts (sudo, doas, pkexec)
2. Pipe to shell in scripts (curl ... | sh)

All patterns use bounded quantifiers and script strings are capped before
matching, so hostile input cannot trigger catastrophic backtracking.
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import stat
import sys
from pathlib import Path

from secure_walker import CODE_PATH_TRAVERSAL, realpath_within, resolve_within
from vibe_config import ConfigError, configure_logging, load_config
from vibe_validation_common import (
    EXIT_INVALID,
    ValidationContext,
    ValidationResult,
    clip,
    print_result,
)

logger = logging.getLogger(__name__)

PACKAGE_JSON = "package.json"

# Longest script string handed to a pattern
MAX_SCRIPT_LENGTH = 8192

# Largest package.json read
MAX_PACKAGE_JSON_BYTES = 1024 * 1024

# =============================================================================
# Script Patterns
# =============================================================================

# Privilege escalation - the command would run as superuser on the user's machine
PRIVILEGE_ESCALATION_PATTERNS = [
    (re.compile(r"(?<![\w-])sudo(?![\w-])"), "sudo"),
    (re.compile(r"(?<![\w-])doas(?![\w-])"), "doas"),
    (re.compile(r"(?<![\w-])pkexec(?![\w-])"), "pkexec"),
]

# Pipe to shell - runs whatever the left-hand side downloads or prints
PIPE_TO_SHELL_PATTERNS = [
    (re.compile(r"\|\s{0,16}(?:sudo\s{1,16})?(?:sh|bash|zsh|ksh|dash)(?![\w-])"), "pipe to shell"),
    (re.compile(r"\|\s{0,16}source(?![\w-])"), "pipe to source"),
]

# (code, patterns, message template) - message gets the script name and the matched label
SCRIPT_RULES = [
    (
        "security-sudo-in-script",
        PRIVILEGE_ESCALATION_PATTERNS,
        'Script "{name}" contains {label} command which is a security risk',
    ),
    (
        "security-pipe-to-shell",
        PIPE_TO_SHELL_PATTERNS,
        'Script "{name}" contains a {label}, which executes unreviewed code',
    ),
]

# =============================================================================
# Security Validation Functions
# =============================================================================


def scan_script(name: str, script: str, ctx: ValidationContext) -> int:
    """Scan one script string against every rule. Returns count of issues found."""
    issues_found = 0
    text = clip(script, MAX_SCRIPT_LENGTH)
    for code, patterns, template in SCRIPT_RULES:
        for pattern, label in patterns:
            if pattern.search(text):
                ctx.error(code, template.format(name=name, label=label), f"{PACKAGE_JSON} > scripts.{name}")
                issues_found += 1
                # One finding per rule and script
                break
    return issues_found


def read_package_json(project_root: Path, ctx: ValidationContext) -> dict[str, object] | None:
    """Read package.json from inside the project root.

    Returns None when the file is absent or could not be used; problems are
    recorded on ``ctx`` rather than raised.
    """
    package_path = resolve_within(project_root, PACKAGE_JSON)
    if package_path is None or not (package_path.exists() or package_path.is_symlink()):
        return None

    if package_path.is_symlink() and not realpath_within(package_path, project_root):
        ctx.error(
            CODE_PATH_TRAVERSAL,
            f"{PACKAGE_JSON} is a symbolic link pointing outside the project",
            PACKAGE_JSON,
        )
        return None

    try:
        st = package_path.stat()
        if not stat.S_ISREG(st.st_mode):
            ctx.error(
                "security-unreadable-manifest",
                f"{PACKAGE_JSON} is not a regular file",
                PACKAGE_JSON,
            )
            return None
        if st.st_size > MAX_PACKAGE_JSON_BYTES:
            ctx.error(
                "security-unreadable-manifest",
                f"{PACKAGE_JSON} is larger than {MAX_PACKAGE_JSON_BYTES} bytes",
                PACKAGE_JSON,
            )
            return None
        data = json.loads(package_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Cannot read %s: %s", package_path, e)
        ctx.error("security-unreadable-manifest", f"Cannot read {PACKAGE_JSON}: {e}", PACKAGE_JSON)
        return None

    if not isinstance(data, dict):
        ctx.error("security-unreadable-manifest", f"{PACKAGE_JSON} must contain a JSON object", PACKAGE_JSON)
        return None
    return data


def validate_security(project_root: Path) -> ValidationResult:
    """Run the build-script security scan on a project directory.

    Args:
        project_root: Path to the project directory

    Returns:
        ValidationResult with all security findings
    """
    ctx = ValidationContext("security")

    if not project_root.is_dir():
        ctx.error("security-missing-root", f"Project path is not a directory: {project_root}", str(project_root))
        return ctx.finalize()

    package_json = read_package_json(project_root, ctx)
    if package_json is None:
        return ctx.finalize()

    scripts = package_json.get("scripts")
    if not isinstance(scripts, dict):
        return ctx.finalize()

    for name, script in scripts.items():
        if isinstance(script, str):
            scan_script(str(name), script, ctx)

    return ctx.finalize()


# =============================================================================
# CLI Main
# =============================================================================


def main() -> int:
    """CLI entry point for standalone security validation."""
    parser = argparse.ArgumentParser(
        description="Security validation for vibe projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Security Checks Performed:
  1. Privilege escalation in package.json scripts (sudo, doas, pkexec)
  2. Pipe to shell in package.json scripts

Exit Codes:
  0 - No errors
  1 - Errors found
        """,
    )
    parser.add_argument("path", nargs="?", type=Path, default=Path.cwd(), help="Project directory (default: cwd)")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
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
    result = validate_security(project_root)

    if args.json:
        print(result.to_json())
    else:
        print_result(result, title=f"Security Validation: {project_root.name}", verbose=args.verbose)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
