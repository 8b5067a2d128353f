"""
Tree manifest: deterministic content-hash listing of a directory.

The persisted form is one ``<hash>  <relative-path>`` line per file,
sorted by path, so the sidecar diffs cleanly and reads like ``md5sum``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field

from seedforge.core.manifest.hash import compute_file_hash, is_hex_digest

VERSION_STAMP_NAME = ".seed_version"
MANIFEST_NAME = ".seed_checksums"
SIDECAR_NAMES = frozenset({VERSION_STAMP_NAME, MANIFEST_NAME})

# Interpreter byproducts that appear at runtime and are never vendor defaults
COMPILED_SUFFIXES = (".pyc", ".pyo")

SEPARATOR = "  "

logger = logging.getLogger(__name__)


class ManifestCorruptionError(ValueError):
    """Raised when persisted manifest text cannot be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def is_excluded(name: str) -> bool:
    """
    Check whether a file name is excluded from manifests.

    Args:
        name: Base name of the file.

    Returns:
        True for sidecar files and compiled artifacts.
    """
    return name in SIDECAR_NAMES or name.endswith(COMPILED_SUFFIXES)


def iter_regular_files(directory: Path) -> Iterator[tuple[str, Path]]:
    """
    Walk a directory and yield its manifest-eligible regular files.

    Symlinks are neither followed nor listed. Unreadable subdirectories
    are skipped silently, matching ``find`` with stderr discarded.

    Args:
        directory: Root of the tree.

    Yields:
        Tuples of (relative POSIX path, absolute path).
    """
    root = Path(directory)
    if not root.is_dir():
        return

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(filenames):
            if is_excluded(name):
                continue
            full = base / name
            if full.is_symlink() or not full.is_file():
                continue
            rel = PurePosixPath(full.relative_to(root).as_posix())
            yield str(rel), full


class TreeManifest(BaseModel):
    """
    Mapping from relative path to content hash for a directory tree.

    Entries are always kept sorted by path.
    """

    model_config = ConfigDict(frozen=True)

    entries: dict[str, str] = Field(
        default_factory=dict, description="Content hash by relative POSIX path"
    )

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    @property
    def paths(self) -> set[str]:
        """Set of all listed relative paths."""
        return set(self.entries)

    def get(self, path: str) -> str | None:
        """Get the recorded hash for a path."""
        return self.entries.get(path)

    def items(self) -> list[tuple[str, str]]:
        """Path-sorted (path, hash) pairs."""
        return sorted(self.entries.items())

    def to_text(self) -> str:
        """
        Serialize to the sidecar text format.

        Returns:
            ``<hash>  <path>`` lines sorted by path, newline-terminated.
        """
        return "".join(f"{digest}{SEPARATOR}{path}\n" for path, digest in self.items())

    @classmethod
    def parse(cls, text: str) -> TreeManifest:
        """
        Parse sidecar text into a manifest.

        Blank lines are ignored; anything else must be a well-formed entry.

        Args:
            text: Persisted manifest content.

        Returns:
            Parsed TreeManifest.

        Raises:
            ManifestCorruptionError: If any line is malformed.
        """
        entries: dict[str, str] = {}
        for line_number, raw in enumerate(text.splitlines(), start=1):
            if not raw.strip():
                continue
            digest, sep, path = raw.partition(SEPARATOR)
            if not sep:
                raise ManifestCorruptionError("missing separator", line_number)
            if not is_hex_digest(digest):
                raise ManifestCorruptionError(f"invalid hash {digest!r}", line_number)
            if not path:
                raise ManifestCorruptionError("empty path", line_number)
            if path in entries:
                raise ManifestCorruptionError(f"duplicate path {path!r}", line_number)
            entries[path] = digest
        return cls(entries=dict(sorted(entries.items())))

    def save(self, path: Path) -> None:
        """
        Write manifest to a sidecar file.

        Undecodable file names round-trip as their original bytes.
        """
        Path(path).write_text(self.to_text(), encoding="utf-8", errors="surrogateescape")

    @classmethod
    def load(cls, path: Path) -> TreeManifest:
        """
        Load manifest from a sidecar file.

        Raises:
            OSError: If the file cannot be read.
            ManifestCorruptionError: If the content is malformed.
        """
        content = Path(path).read_text(encoding="utf-8", errors="surrogateescape")
        return cls.parse(content)


def generate_manifest(directory: Path) -> TreeManifest:
    """
    Compute the manifest of a directory tree.

    Missing and empty directories produce an empty manifest. Files that
    vanish or become unreadable mid-walk are left out.

    Args:
        directory: Root of the tree.

    Returns:
        TreeManifest over all eligible regular files.
    """
    entries: dict[str, str] = {}
    for rel, full in iter_regular_files(directory):
        try:
            entries[rel] = compute_file_hash(full)
        except OSError as e:
            logger.warning("Could not hash %s: %s", full, e)
            continue
    return TreeManifest(entries=dict(sorted(entries.items())))
