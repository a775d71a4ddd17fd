#!/usr/bin/env python3
"""Containment-checked file tree walking and copying.

Provides a SecureFileWalker class that traverses a directory tree while
guaranteeing that nothing it yields, reads or writes resolves outside its
root. Every scanner and the template materializer go through this class.

Usage:
    walker = SecureFileWalker(project_root / "src")
    for entry in walker.walk():
        # entry.absolute_path is always inside the root
        ...
    findings = walker.result()

    walker = SecureFileWalker(template_root, ignore_names={"README.draft.md"})
    count = walker.copy(target_root)

Rules applied to every candidate entry, in order:
1. hidden names (leading ".") and ignore-set names are skipped (debug log only)
2. the normalized path must stay under the normalized root, otherwise a
   security-path-traversal error is recorded and the entry is dropped
3. symbolic links are never followed
4. real directories are descended depth-first, files are leaves

One unreadable entry never aborts the walk; it is recorded and the walk
moves on to its siblings.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from vibe_validation_common import (
    Diagnostic,
    ValidationContext,
    ValidationResult,
    build_ignore_set,
)

logger = logging.getLogger(__name__)

Decision = Literal["keep", "skip", "descend"]

CODE_PATH_TRAVERSAL = "security-path-traversal"
CODE_UNREADABLE_PATH = "security-unreadable-path"
CODE_WALK_TIMEOUT = "security-walk-timeout"


@dataclass(frozen=True)
class FileEntry:
    """One entry produced by a walk."""

    absolute_path: Path
    relative_path: str  # POSIX separators, relative to the walk root
    is_directory: bool

    @property
    def name(self) -> str:
        return self.absolute_path.name


Predicate = Callable[[FileEntry], Decision]


def default_predicate(entry: FileEntry) -> Decision:
    """Keep files, descend into directories without yielding them."""
    return "descend" if entry.is_directory else "keep"


def keep_all(entry: FileEntry) -> Decision:
    """Keep every entry, directories included."""
    return "keep"


def _normalize(path: str | os.PathLike[str]) -> str:
    return os.path.normpath(os.path.abspath(path))


def is_within(candidate: str, root: str) -> bool:
    """True if normalized ``candidate`` equals or lies under normalized ``root``."""
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def resolve_within(root: str | os.PathLike[str], relative: str | os.PathLike[str]) -> Path | None:
    """Join ``relative`` onto ``root`` and return it only if it stays inside.

    ``..`` segments are collapsed and absolute-looking inputs replace the
    root during the join, so both end up rejected when they escape.
    Returns None on a containment violation.
    """
    normalized_root = _normalize(root)
    candidate = os.path.normpath(os.path.join(normalized_root, os.fspath(relative)))
    if not is_within(candidate, normalized_root):
        return None
    return Path(candidate)


def realpath_within(path: str | os.PathLike[str], root: str | os.PathLike[str]) -> bool:
    """True if ``path`` still lies under ``root`` once every symlink is resolved.

    Non-strict resolution, so dangling links and link loops do not raise.
    """
    return is_within(os.path.realpath(path), os.path.realpath(root))


class SecureFileWalker:
    """Bounded, containment-checked traversal of one directory tree.

    An instance belongs to a single scan: it records the diagnostics raised
    while walking, so scanners create their own walker instead of sharing one.
    """

    def __init__(
        self,
        root: Path,
        ignore_names: Iterable[str] | None = None,
        deadline: float | None = None,
    ) -> None:
        self.root = Path(os.path.realpath(_normalize(root)))
        self.ignore_names = build_ignore_set(ignore_names)
        # Absolute time.monotonic() value after which the walk stops early
        self.deadline = deadline
        self._ctx = ValidationContext("walk")
        self._timed_out = False

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Diagnostics recorded so far, errors first."""
        return [*self._ctx.errors, *self._ctx.warnings]

    def result(self) -> ValidationResult:
        """Diagnostics recorded so far as an immutable result."""
        return self._ctx.finalize()

    def is_ignored(self, name: str) -> bool:
        """Check if an entry name is hidden or in the ignore set."""
        return name.startswith(".") or name in self.ignore_names

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def walk(self, predicate: Predicate | None = None) -> Iterator[FileEntry]:
        """Yield entries under the root, depth-first, sorted by name.

        A kept directory is yielded before its contents. The walk keeps an
        explicit stack of open directory listings, so tree depth is bounded
        by the filesystem rather than the interpreter's call stack.

        Args:
            predicate: Returns "keep", "skip" or "descend" for each entry.
                Defaults to keeping files and descending into directories.
        """
        if not self.root.is_dir():
            self._unreadable(self.root, "", NotADirectoryError(f"not a directory: {self.root}"))
            return
        predicate = predicate or default_predicate

        stack: list[Iterator[tuple[os.DirEntry[str], str]]] = []
        listing = self._list_dir(self.root, "")
        if listing is not None:
            stack.append(listing)

        while stack:
            if self._expired():
                return
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
                continue

            file_entry = self._check_entry(*item)
            if file_entry is None:
                continue
            decision = predicate(file_entry)

            # Rule 4: depth-first descent, files as leaves
            if file_entry.is_directory:
                if decision == "keep":
                    yield file_entry
                if decision in ("keep", "descend"):
                    listing = self._list_dir(file_entry.absolute_path, file_entry.relative_path)
                    if listing is not None:
                        stack.append(listing)
            elif decision == "keep":
                yield file_entry

    def _list_dir(self, directory: Path, rel_dir: str) -> Iterator[tuple[os.DirEntry[str], str]] | None:
        """Name-sorted (entry, relative path) pairs of one directory, or None if unreadable."""
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._unreadable(directory, rel_dir, e)
            return None
        return iter([(entry, f"{rel_dir}/{entry.name}" if rel_dir else entry.name) for entry in entries])

    def _check_entry(self, entry: os.DirEntry[str], rel_path: str) -> FileEntry | None:
        """Apply the ignore, containment and symlink rules to one listed entry."""
        # Rule 1: hidden and ignored names
        if self.is_ignored(entry.name):
            logger.debug("Skipping ignored entry: %s", rel_path)
            return None

        # Rule 2: containment of the normalized path
        candidate = resolve_within(self.root, rel_path)
        if candidate is None:
            self._traversal(rel_path, "escapes the walk root")
            return None

        # Rule 3: never follow symlinks
        try:
            if entry.is_symlink():
                self._skip_symlink(candidate, rel_path)
                return None
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file(follow_symlinks=False)
        except OSError as e:
            self._unreadable(candidate, rel_path, e)
            return None

        if not is_dir and not is_file:
            logger.debug("Skipping special file: %s", rel_path)
            return None

        # The entry may have been swapped for a link since it was listed
        if not realpath_within(candidate, self.root):
            self._traversal(rel_path, "resolves outside the walk root")
            return None

        return FileEntry(candidate, rel_path, is_dir)

    def _skip_symlink(self, candidate: Path, rel_path: str) -> None:
        if realpath_within(candidate, self.root):
            logger.debug("Skipping symbolic link: %s", rel_path)
            return
        self._traversal(rel_path, "is a symbolic link pointing outside the walk root")

    def _expired(self) -> bool:
        if self.deadline is None or self._timed_out:
            return self._timed_out
        if time.monotonic() >= self.deadline:
            self._timed_out = True
            self._ctx.warning(CODE_WALK_TIMEOUT, f"Walk of {self.root} stopped at its deadline", None)
            logger.warning("Walk of %s stopped at its deadline", self.root)
        return self._timed_out

    def _traversal(self, rel_path: str, reason: str) -> None:
        logger.warning("Path traversal detected: %s %s", rel_path, reason)
        self._ctx.error(CODE_PATH_TRAVERSAL, f"Path {reason}: {rel_path}", rel_path)

    def _unreadable(self, path: Path, rel_path: str, error: OSError) -> None:
        logger.debug("Cannot read %s: %s", path, error)
        self._ctx.warning(CODE_UNREADABLE_PATH, f"Cannot read {rel_path or path}: {error}", rel_path or str(path))

    # -------------------------------------------------------------------------
    # Copy
    # -------------------------------------------------------------------------

    def copy(self, dest_root: Path, ignore_names: Iterable[str] = ()) -> int:
        """Copy every kept entry under the root into ``dest_root``.

        Directories are created even when filtering leaves them empty, files
        are copied byte-for-byte with their permission bits.

        Args:
            dest_root: Destination directory (created if missing)
            ignore_names: Extra names to leave out of this copy

        Returns:
            Number of files copied

        Raises:
            ValueError: if ``dest_root`` is the root or lies inside it
        """
        extra = frozenset(ignore_names)
        dest = Path(_normalize(dest_root))
        if is_within(os.path.realpath(dest), str(self.root)):
            raise ValueError(f"Copy destination {dest} lies inside the walk root {self.root}")
        dest.mkdir(parents=True, exist_ok=True)

        def predicate(entry: FileEntry) -> Decision:
            if entry.name in extra:
                logger.debug("Skipping ignored entry: %s", entry.relative_path)
                return "skip"
            return "keep"

        copied = 0
        for entry in self.walk(predicate):
            target = resolve_within(dest, entry.relative_path)
            if target is None:
                self._traversal(entry.relative_path, "escapes the copy destination")
                continue
            try:
                if target.is_symlink():
                    # Never write through a link left in the destination
                    target.unlink()
                if entry.is_directory:
                    target.mkdir(exist_ok=True)
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(entry.absolute_path, target, follow_symlinks=False)
                shutil.copymode(entry.absolute_path, target, follow_symlinks=False)
            except OSError as e:
                self._unreadable(entry.absolute_path, entry.relative_path, e)
                continue
            copied += 1
        return copied
