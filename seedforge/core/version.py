"""
Vendor version resolution.

Order of precedence:
1. An explicit version string
2. A ``KEY=value`` entry in a release file shipped inside the vendor image
3. A fingerprint of the vendor source directory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from seedforge.core.fingerprint import fingerprint_dir

logger = logging.getLogger(__name__)

DEFAULT_RELEASE_KEY = "REL_VSN"


class VersionOrigin(str, Enum):
    """Where a resolved version string came from."""

    EXPLICIT = "explicit"
    RELEASE_FILE = "release_file"
    FINGERPRINT = "fingerprint"


@dataclass(frozen=True)
class ResolvedVersion:
    """A version string together with its origin."""

    value: str
    origin: VersionOrigin

    def __str__(self) -> str:
        return self.value


def read_release_value(release_file: Path, key: str = DEFAULT_RELEASE_KEY) -> str | None:
    """
    Read a ``KEY=value`` entry from a release variables file.

    The first matching line wins. Surrounding quotes are stripped.

    Args:
        release_file: Path to the release file.
        key: Variable name to look up.

    Returns:
        The value, or None when the key is absent or empty.

    Raises:
        OSError: If the file cannot be read.
    """
    prefix = f"{key}="
    with open(release_file, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line.startswith(prefix):
                continue
            value = line[len(prefix):].strip().strip("\"'")
            return value or None
    return None


def resolve_version(
    source: Path,
    explicit: str | None = None,
    release_file: Path | None = None,
    release_key: str = DEFAULT_RELEASE_KEY,
    prefix: str = "",
) -> ResolvedVersion:
    """
    Resolve the vendor version for a source directory.

    Args:
        source: Vendor source directory (fingerprinted as last resort).
        explicit: Explicit version string; blank counts as absent.
        release_file: Optional release variables file in the vendor image.
        release_key: Variable holding the release version.
        prefix: Prepended to a release-file version, e.g. ``"emqx-"``.

    Returns:
        ResolvedVersion with value and origin.
    """
    if explicit is not None and explicit.strip():
        return ResolvedVersion(explicit, VersionOrigin.EXPLICIT)

    if release_file is not None:
        release_path = Path(release_file)
        if release_path.is_file():
            try:
                value = read_release_value(release_path, release_key)
            except OSError as e:
                logger.warning("Could not read release file %s: %s", release_path, e)
                value = None
            if value:
                return ResolvedVersion(f"{prefix}{value}", VersionOrigin.RELEASE_FILE)
            logger.info("No %s entry in %s; falling back to fingerprint", release_key, release_path)
        else:
            logger.info("Release file %s not found; falling back to fingerprint", release_path)

    return ResolvedVersion(fingerprint_dir(source), VersionOrigin.FINGERPRINT)
