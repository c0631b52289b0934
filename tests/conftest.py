"""
Shared pytest fixtures for dupfinder tests.

This file provides:
- PYTHONPATH setup so tests run from a plain checkout
- make_tree: builds a file tree under tmp_path from a {relative_path: bytes} mapping
- symlink / permission helpers that skip where the platform cannot express them

Note: async tests run under pytest-asyncio (asyncio_mode = "auto" in pyproject.toml).
"""

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

# ==========================================
# PYTHONPATH Setup
# ==========================================

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))


# ==========================================
# File tree helpers
# ==========================================


@pytest.fixture
def make_tree(tmp_path) -> Callable[[dict[str, bytes]], Path]:
    """
    Build files under tmp_path.

    Usage:
        root = make_tree({"a.txt": b"abc", "sub/b.txt": b"abc"})
    """

    def _make(files: dict[str, bytes], root: Path | None = None) -> Path:
        base = root or tmp_path
        for relative, content in files.items():
            path = base / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return base

    return _make


def symlink_or_skip(link: Path, target: Path, target_is_directory: bool = False) -> None:
    """Create a symlink or skip the test (Windows without privilege)."""
    try:
        link.symlink_to(target, target_is_directory=target_is_directory)
    except (OSError, NotImplementedError):
        pytest.skip("Symlinks not supported on this platform")


@pytest.fixture
def symlink():
    return symlink_or_skip


@pytest.fixture
def revoke_read():
    """
    chmod 000 a path for the duration of the test.

    Skips when running as root or on Windows, where the mode bits do not
    prevent reading.
    """
    revoked: list[tuple[Path, int]] = []

    def _revoke(path: Path) -> None:
        if os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0):
            pytest.skip("Permission bits not enforced for this user/platform")
        revoked.append((path, path.stat().st_mode))
        path.chmod(0)

    yield _revoke

    for path, mode in revoked:
        path.chmod(mode)
