"""Shared fixtures for tree-based tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from tree_utils import FixedClock, write_tree


@pytest.fixture
def src(tmp_path: Path) -> Path:
    """Vendor source directory with two default files."""
    return write_tree(tmp_path / "vendor" / "etc", {"a.cfg": "X", "b.cfg": "Y"})


@pytest.fixture
def dst(tmp_path: Path) -> Path:
    """Empty persistent target directory."""
    path = tmp_path / "data" / "etc"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
