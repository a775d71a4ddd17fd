#!/usr/bin/env python3
"""
Vibe Submission Tools - Accessibility Module

Pattern scan of a project's UI source files for accessibility problems.
Files are enumerated with SecureFileWalker under the project's source
directory (``src`` by default), so hidden, ignored and symlinked entries
are never read.

Accessibility Checks Implemented:
1. Image tags without an alt attribute (a11y-missing-alt)

A missing source directory means zero findings, not a failure.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from pathlib import Path

from secure_walker import (
    CODE_PATH_TRAVERSAL,
    Decision,
    FileEntry,
    SecureFileWalker,
    realpath_within,
    resolve_within,
)
from vibe_config import (
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_SOURCE_DIR,
    ConfigError,
    configure_logging,
    load_config,
)
from vibe_validation_common import (
    EXIT_INVALID,
    ValidationContext,
    ValidationResult,
    print_result,
)

logger = logging.getLogger(__name__)

# UI source files worth scanning
UI_EXTENSIONS = frozenset({".tsx", ".jsx", ".html", ".htm", ".vue", ".svelte"})

# <img ...> with no alt= before the closing bracket. Both scans of the tag
# body are capped, so every candidate costs at most a few KiB of work.
IMG_WITHOUT_ALT = re.compile(r"<img\b(?![^>]{0,2048}\balt\s{0,8}=)[^>]{0,2048}>", re.IGNORECASE)


def is_ui_source(entry: FileEntry) -> bool:
    """Check if a walked entry is a UI source file."""
    return not entry.is_directory and entry.absolute_path.suffix.lower() in UI_EXTENSIONS


def read_source(path: Path, max_bytes: int) -> str:
    """Read at most ``max_bytes`` of a source file as text."""
    with open(path, "rb") as f:
        raw = f.read(max_bytes)
    return raw.decode("utf-8", errors="replace")


def scan_file(rel_path: str, content: str, ctx: ValidationContext) -> int:
    """Scan one file's content. Returns count of issues found."""
    match = IMG_WITHOUT_ALT.search(content)
    if match is None:
        return 0
    line = content.count("\n", 0, match.start()) + 1
    ctx.warning("a11y-missing-alt", f"Found image tag without alt attribute (line {line})", rel_path)
    return 1


def validate_accessibility(
    project_root: Path,
    source_dir: str = DEFAULT_SOURCE_DIR,
    extra_ignore_names: list[str] | None = None,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> ValidationResult:
    """Run the accessibility scan on a project directory.

    Args:
        project_root: Path to the project directory
        source_dir: Directory under the root holding UI sources
        extra_ignore_names: Names to skip on top of the built-in ignore set
        max_file_bytes: Largest prefix of each file that is scanned

    Returns:
        ValidationResult with all accessibility findings
    """
    ctx = ValidationContext("a11y")

    src_path = resolve_within(project_root, source_dir)
    if src_path is None:
        ctx.error(CODE_PATH_TRAVERSAL, f"Source directory escapes the project: {source_dir}", source_dir)
        return ctx.finalize()

    if src_path.is_symlink():
        if not realpath_within(src_path, project_root):
            ctx.error(
                CODE_PATH_TRAVERSAL,
                f"Source directory is a symbolic link pointing outside the project: {source_dir}",
                source_dir,
            )
        else:
            logger.debug("Source directory is a symbolic link, not scanned: %s", src_path)
        return ctx.finalize()

    if not src_path.is_dir():
        logger.debug("No source directory at %s, nothing to scan", src_path)
        return ctx.finalize()

    # Walk paths are relative to the source dir; reports use project-relative paths
    prefix = os.path.relpath(src_path, resolve_within(project_root, ".")).replace(os.sep, "/")
    walker = SecureFileWalker(src_path, ignore_names=extra_ignore_names)
    files_scanned = 0

    for entry in walker.walk(_select_ui_sources):
        rel_path = entry.relative_path if prefix == "." else f"{prefix}/{entry.relative_path}"
        try:
            content = read_source(entry.absolute_path, max_file_bytes)
        except OSError as e:
            logger.debug("Cannot read %s: %s", entry.absolute_path, e)
            ctx.warning("a11y-unreadable-file", f"Cannot read file: {rel_path} ({e})", rel_path)
            continue
        files_scanned += 1
        scan_file(rel_path, content, ctx)

    logger.debug("Scanned %d UI source files under %s", files_scanned, src_path)
    ctx.extend(walker.result())
    return ctx.finalize()


def _select_ui_sources(entry: FileEntry) -> Decision:
    if entry.is_directory:
        return "descend"
    return "keep" if is_ui_source(entry) else "skip"


# =============================================================================
# CLI Main
# =============================================================================


def main() -> int:
    """CLI entry point for standalone accessibility validation."""
    parser = argparse.ArgumentParser(description="Accessibility validation for vibe projects")
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
    result = validate_accessibility(
        project_root,
        source_dir=config.source_dir,
        extra_ignore_names=config.extra_ignore_names,
        max_file_bytes=config.max_file_bytes,
    )

    if args.json:
        print(result.to_json())
    else:
        print_result(result, title=f"Accessibility Validation: {project_root.name}", verbose=args.verbose)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
