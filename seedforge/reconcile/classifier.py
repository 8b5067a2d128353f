"""
Edit classification: which files in a target did the user touch?

Compares the live tree against the manifest persisted at the last seed
or refresh. Both sides are path-to-hash mappings, so classification is
plain set arithmetic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from seedforge.core.manifest.tree_manifest import TreeManifest, generate_manifest

logger = logging.getLogger(__name__)


class EditKind(str, Enum):
    """How a path deviates from the stored manifest."""

    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"


@dataclass
class EditSet:
    """
    User edits found in a target directory.

    ``modified`` and ``added`` together form the set of paths that must be
    preserved across a refresh. ``deleted`` paths are left deleted.
    """

    modified: set[str] = field(default_factory=set)
    added: set[str] = field(default_factory=set)
    deleted: set[str] = field(default_factory=set)
    manifest_missing: bool = False

    @property
    def preserved(self) -> list[str]:
        """Sorted paths to stage aside and restore after the overwrite."""
        return sorted(self.modified | self.added)

    @property
    def is_empty(self) -> bool:
        return not (self.modified or self.added or self.deleted)

    def kind_of(self, path: str) -> EditKind | None:
        """Classify a single path, or None if it is an untouched default."""
        if path in self.modified:
            return EditKind.MODIFIED
        if path in self.added:
            return EditKind.ADDED
        if path in self.deleted:
            return EditKind.DELETED
        return None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "modified": sorted(self.modified),
            "added": sorted(self.added),
            "deleted": sorted(self.deleted),
            "manifest_missing": self.manifest_missing,
        }


def diff_manifests(live: TreeManifest, stored: TreeManifest | None) -> EditSet:
    """
    Classify live entries against a stored manifest.

    Args:
        live: Manifest of the current target content.
        stored: Manifest persisted at the last seed/refresh, or None if
            missing or corrupt.

    Returns:
        EditSet. Without a stored manifest every live path is user-added.
    """
    if stored is None:
        return EditSet(added=live.paths, manifest_missing=True)

    live_paths = live.paths
    stored_paths = stored.paths

    modified = {
        path
        for path in live_paths & stored_paths
        if live.get(path) != stored.get(path)
    }
    return EditSet(
        modified=modified,
        added=live_paths - stored_paths,
        deleted=stored_paths - live_paths,
    )


def classify_edits(target: Path, stored: TreeManifest | None) -> EditSet:
    """
    Find user-modified, user-added and user-deleted files in a target.

    Args:
        target: Target directory.
        stored: Stored manifest, or None.

    Returns:
        EditSet describing the user's changes since the last seed/refresh.
    """
    edits = diff_manifests(generate_manifest(target), stored)

    if edits.manifest_missing:
        logger.warning(
            "No usable manifest in %s; preserving all %d existing files as user edits",
            target,
            len(edits.added),
        )
    for path in sorted(edits.modified):
        logger.info("  User-modified: %s", path)
    for path in sorted(edits.added):
        logger.info("  User-added: %s", path)
    for path in sorted(edits.deleted):
        logger.info("  User-deleted (left absent): %s", path)

    return edits
