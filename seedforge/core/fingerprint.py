"""
Directory fingerprinting for images without an explicit version string.

The fingerprint covers file names and sizes only, so a same-size content
edit inside the vendor tree goes unnoticed.
"""

from __future__ import annotations

import os
from pathlib import Path

import xxhash

MISSING_FINGERPRINT = "missing"


def fingerprint_dir(directory: Path) -> str:
    """
    Compute a change-detecting fingerprint of a directory.

    Every regular file contributes a ``<relative-path> <size>`` line; the
    sorted listing is hashed. Relative paths keep the fingerprint stable
    when the same tree is mounted at a different location.

    Args:
        directory: Directory to fingerprint.

    Returns:
        Hex-encoded hash string, or MISSING_FINGERPRINT if the directory
        does not exist.

    Examples:
        >>> fingerprint_dir(Path("/nonexistent"))
        'missing'
    """
    root = Path(directory)
    if not root.is_dir():
        return MISSING_FINGERPRINT

    listing: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in filenames:
            full = base / name
            try:
                if full.is_symlink() or not full.is_file():
                    continue
                size = full.stat().st_size
            except OSError:
                continue
            listing.append(f"{full.relative_to(root).as_posix()} {size}")

    listing.sort()
    hasher = xxhash.xxh64()
    for line in listing:
        hasher.update(line.encode("utf-8", errors="surrogateescape"))
        hasher.update(b"\n")
    return hasher.hexdigest()
