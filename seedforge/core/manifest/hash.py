"""
Content hashing for tree manifests.

Hashes are for accidental-drift detection, not tamper resistance.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import xxhash

if TYPE_CHECKING:
    from seedforge.core.manifest.tree_manifest import TreeManifest

CHUNK_SIZE = 65536


def compute_file_hash(path: Path) -> str:
    """
    Compute hash of a file's contents.

    Args:
        path: Path to file.

    Returns:
        Hex-encoded hash string.
    """
    hasher = xxhash.xxh64()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_bytes_hash(data: bytes) -> str:
    """Compute hash of an in-memory byte string."""
    return xxhash.xxh64(data).hexdigest()


def compute_manifest_hash(manifest: TreeManifest) -> str:
    """
    Compute hash of a whole tree manifest.

    Two manifests hash equal exactly when they list the same paths with
    the same content hashes.

    Args:
        manifest: The manifest to hash.

    Returns:
        Hex-encoded hash string.
    """
    return compute_bytes_hash(manifest.to_text().encode("utf-8", errors="surrogateescape"))


def is_hex_digest(value: str) -> bool:
    """Check whether a string looks like a hex digest."""
    if not value:
        return False
    return all(c in "0123456789abcdef" for c in value)
