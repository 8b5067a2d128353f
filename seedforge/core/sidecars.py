"""
Sidecar files persisted inside a seeded target directory.

The version stamp is a single opaque string with no trailing newline.
The manifest uses the TreeManifest text format.
"""

from __future__ import annotations

import logging
from pathlib import Path

from seedforge.core.manifest.tree_manifest import (
    MANIFEST_NAME,
    VERSION_STAMP_NAME,
    ManifestCorruptionError,
    TreeManifest,
)

logger = logging.getLogger(__name__)


def stamp_path(target: Path) -> Path:
    return Path(target) / VERSION_STAMP_NAME


def manifest_path(target: Path) -> Path:
    return Path(target) / MANIFEST_NAME


def read_stamp(target: Path) -> str | None:
    """
    Read the stored version stamp of a target.

    Args:
        target: Target directory.

    Returns:
        The stamp with any trailing newline removed, or None when absent,
        blank, or unreadable.
    """
    path = stamp_path(target)
    if not path.is_file():
        return None
    try:
        value = path.read_text(encoding="utf-8").rstrip("\r\n")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read version stamp %s: %s", path, e)
        return None
    return value if value.strip() else None


def write_stamp(target: Path, version: str) -> None:
    """Persist the version stamp. Raises OSError on failure."""
    stamp_path(target).write_text(version, encoding="utf-8")


def read_stored_manifest(target: Path) -> tuple[TreeManifest | None, bool]:
    """
    Load the persisted manifest of a target.

    A missing or unreadable manifest yields None so callers fall back to
    treating every live file as user-edited.

    Args:
        target: Target directory.

    Returns:
        Tuple of (manifest or None, whether the file existed but was corrupt).
    """
    path = manifest_path(target)
    if not path.is_file():
        return None, False
    try:
        return TreeManifest.load(path), False
    except ManifestCorruptionError as e:
        logger.warning("Stored manifest %s is corrupt (%s); treating as absent", path, e)
        return None, True
    except OSError as e:
        logger.warning("Stored manifest %s is unreadable (%s); treating as absent", path, e)
        return None, True


def write_manifest(target: Path, manifest: TreeManifest) -> None:
    """Persist the manifest. Raises OSError on failure."""
    manifest.save(manifest_path(target))
