"""Core utilities: manifests, sidecars, fingerprints, version resolution."""

from seedforge.core.fingerprint import MISSING_FINGERPRINT, fingerprint_dir
from seedforge.core.json_canonical import canonical_json_dumps, canonical_json_loads
from seedforge.core.manifest import TreeManifest, generate_manifest
from seedforge.core.version import ResolvedVersion, VersionOrigin, resolve_version

__all__ = [
    "MISSING_FINGERPRINT",
    "fingerprint_dir",
    "canonical_json_dumps",
    "canonical_json_loads",
    "TreeManifest",
    "generate_manifest",
    "ResolvedVersion",
    "VersionOrigin",
    "resolve_version",
]
