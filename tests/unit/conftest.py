"""Shared fixtures for the unit tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest

# Deeper than the default interpreter recursion limit (1000), short enough
# that every absolute path stays under PATH_MAX
DEEP_TREE_DEPTH = 1500


@pytest.fixture
def deep_tree(tmp_path: Path) -> Iterator[tuple[Path, Path]]:
    """A single chain of nested directories, yielded as (root, innermost directory).

    The chain is built and removed one level at a time, so neither setup nor
    teardown recurses through it.
    """
    root = tmp_path / "deep"
    root.mkdir()
    levels = []
    current = root
    for _ in range(DEEP_TREE_DEPTH):
        current = current / "d"
        current.mkdir()
        levels.append(current)
    try:
        yield root, current
    finally:
        for level in reversed(levels):
            for child in level.iterdir():
                child.unlink()
            level.rmdir()
