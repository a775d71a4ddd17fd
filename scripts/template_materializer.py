#!/usr/bin/env python3
"""
Vibe Submission Tools - Template Materializer

Copies a vetted template tree into a new project directory through
SecureFileWalker. Credentials, VCS metadata, dependency caches and
environment files are never copied; directories left empty by that
filtering are still created so the project keeps the template's shape.

Whether an existing target may be overwritten is the caller's decision.
Rewriting the copied manifest's identity fields is also left to the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from secure_walker import SecureFileWalker, is_within
from vibe_validation_common import ValidationResult

logger = logging.getLogger(__name__)


class MaterializationError(Exception):
    """Raised when the caller asks for a copy that needs its decision first."""


def target_inside_template(template_root: Path, target_root: Path) -> bool:
    """True if the target is the template itself or lies anywhere under it."""
    return is_within(os.path.realpath(target_root), os.path.realpath(template_root))


@dataclass(frozen=True)
class MaterializationResult:
    """Outcome of one template copy."""

    files_copied: int
    diagnostics: ValidationResult


class TemplateMaterializer:
    """Copies template trees into new project roots."""

    def __init__(self, extra_ignore_names: Iterable[str] | None = None) -> None:
        self.extra_ignore_names = tuple(extra_ignore_names or ())

    def copy(self, template_root: Path, target_root: Path, overwrite: bool = False) -> MaterializationResult:
        """Materialize ``template_root`` into ``target_root``.

        Args:
            template_root: Template directory to copy from
            target_root: Project directory to create
            overwrite: Caller has authorized writing into an existing target

        Returns:
            MaterializationResult with the number of files copied and any
            per-entry diagnostics raised by the walk

        Raises:
            MaterializationError: if the template is not a directory, the
                target exists and overwrite was not authorized, the target is
                the template itself or lies inside it, or the target is a
                symbolic link
        """
        if not template_root.is_dir():
            raise MaterializationError(f"Template directory not found: {template_root}")
        if target_inside_template(template_root, target_root):
            raise MaterializationError(f"Target {target_root} lies inside the template {template_root}")
        if (target_root.exists() or target_root.is_symlink()) and not overwrite:
            raise MaterializationError(f"Directory already exists: {target_root}")
        if target_root.is_symlink():
            raise MaterializationError(f"Refusing to materialize into a symbolic link: {target_root}")

        walker = SecureFileWalker(template_root, ignore_names=self.extra_ignore_names)
        files_copied = walker.copy(target_root)
        result = walker.result()

        logger.info("Copied %d files from %s to %s", files_copied, template_root, target_root)
        if not result.valid:
            logger.warning("Template copy recorded %d error(s)", len(result.errors))
        return MaterializationResult(files_copied=files_copied, diagnostics=result)
