"""
Filesystem collaborators used by the grouper.

- length(): exact byte length, raises NotAccessible
- content_equals(): buffered byte-by-byte comparison, raises IOFailure
"""

from __future__ import annotations

import os
from pathlib import Path

from dupfinder.config.exceptions import IOFailure, NotAccessible

DEFAULT_CHUNK_SIZE = 65536


def length(path: Path) -> int:
    """
    Return the exact byte length of a file.

    Args:
        path: File to stat (symbolic links are followed)

    Returns:
        Size in bytes

    Raises:
        NotAccessible: If the path cannot be stat'ed
    """
    try:
        return os.stat(path).st_size
    except OSError as e:
        raise NotAccessible(path, e.strerror or str(e)) from e


def content_equals(a: Path, b: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bool:
    """
    Compare two files byte for byte.

    Reads both files in chunks and stops at the first differing chunk.
    A failure to open or fully read either file is never reported as
    "not equal".

    Args:
        a: First file
        b: Second file
        chunk_size: Read buffer size in bytes

    Returns:
        True if both files have identical contents

    Raises:
        IOFailure: If either file cannot be fully read (path identifies which)
    """
    try:
        fa = open(a, "rb")
    except OSError as e:
        raise IOFailure(a, e.strerror or str(e)) from e

    with fa:
        try:
            fb = open(b, "rb")
        except OSError as e:
            raise IOFailure(b, e.strerror or str(e)) from e

        with fb:
            while True:
                chunk_a = _read(fa, a, chunk_size)
                chunk_b = _read(fb, b, chunk_size)
                if chunk_a != chunk_b:
                    return False
                if not chunk_a:
                    return True


def _read(handle, path: Path, chunk_size: int) -> bytes:
    try:
        return handle.read(chunk_size)
    except OSError as e:
        raise IOFailure(path, e.strerror or str(e)) from e
