"""Manifest system: tree content hashing and sidecar format."""

from seedforge.core.manifest.tree_manifest import (
    MANIFEST_NAME,
    VERSION_STAMP_NAME,
    ManifestCorruptionError,
    TreeManifest,
    generate_manifest,
)
from seedforge.core.manifest.hash import compute_file_hash, compute_manifest_hash

__all__ = [
    "MANIFEST_NAME",
    "VERSION_STAMP_NAME",
    "ManifestCorruptionError",
    "TreeManifest",
    "generate_manifest",
    "compute_file_hash",
    "compute_manifest_hash",
]
