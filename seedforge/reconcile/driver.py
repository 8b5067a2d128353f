"""
Reconciliation driver.

One call per target directory decides between three branches:

- UNSEEDED (target missing/empty or no version stamp): copy all vendor
  files, persist manifest and stamp.
- SEEDED with the same version: do nothing, write nothing.
- SEEDED with a different version: classify user edits, snapshot, refresh
  from the vendor source, restore edits, persist manifest and stamp.

No locking is done. Two concurrent reconciliations of the same target can
interleave their overwrite and restore steps; callers must sequence them.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from seedforge.core.fingerprint import fingerprint_dir
from seedforge.core.manifest.tree_manifest import (
    TreeManifest,
    generate_manifest,
    iter_regular_files,
)
from seedforge.core.sidecars import (
    read_stamp,
    read_stored_manifest,
    write_manifest,
    write_stamp,
)
from seedforge.reconcile.backup import (
    DEFAULT_BACKUP_PREFIX,
    backup_path_for,
    copy_tree,
    normalize_target,
    refresh_target,
)
from seedforge.reconcile.classifier import EditSet, classify_edits, diff_manifests
from seedforge.reconcile.errors import (
    CopyPhase,
    CopyReport,
    FailureCategory,
    MissingSourceError,
    StagingError,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SeedState(str, Enum):
    """Seeding state of a target directory."""

    UNSEEDED = "unseeded"
    SEEDED = "seeded"


class ReconcileAction(str, Enum):
    """Branch taken (or planned) by a reconciliation."""

    SEED = "seed"
    SKIP = "skip"
    REFRESH = "refresh"
    FAIL = "fail"


def is_dir_empty(path: Path) -> bool:
    """Check whether a directory is missing or has no entries."""
    path = Path(path)
    if not path.is_dir():
        return True
    return next(path.iterdir(), None) is None


@dataclass
class TargetState:
    """Snapshot of a target's sidecars, read without writing anything."""

    target: Path
    exists: bool
    is_empty: bool
    stamp: str | None
    manifest: TreeManifest | None = None
    manifest_corrupt: bool = False

    @property
    def state(self) -> SeedState:
        if self.is_empty or self.stamp is None:
            return SeedState.UNSEEDED
        return SeedState.SEEDED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "target": str(self.target),
            "exists": self.exists,
            "is_empty": self.is_empty,
            "state": self.state.value,
            "stamp": self.stamp,
            "manifest_entries": len(self.manifest) if self.manifest is not None else None,
            "manifest_corrupt": self.manifest_corrupt,
        }


def inspect_target(target: Path, load_manifest: bool = True) -> TargetState:
    """
    Read the seeding state of a target directory.

    Args:
        target: Target directory.
        load_manifest: Whether to load and parse the stored manifest.

    Returns:
        TargetState.
    """
    target = Path(target)
    manifest: TreeManifest | None = None
    corrupt = False
    if load_manifest:
        manifest, corrupt = read_stored_manifest(target)

    return TargetState(
        target=target,
        exists=target.is_dir(),
        is_empty=is_dir_empty(target),
        stamp=read_stamp(target),
        manifest=manifest,
        manifest_corrupt=corrupt,
    )


def require_source(source: Path) -> None:
    """Raise MissingSourceError unless the vendor source is a directory."""
    if not source.is_dir():
        raise MissingSourceError(source)


def _effective_version(source: Path, version: str | None) -> str:
    if version is not None and version.strip():
        return version
    fingerprint = fingerprint_dir(source)
    logger.info("No version given for %s; using fingerprint %s", source, fingerprint)
    return fingerprint


def _decide(state: TargetState, version: str) -> ReconcileAction:
    if state.state is SeedState.UNSEEDED:
        return ReconcileAction.SEED
    if state.stamp == version:
        return ReconcileAction.SKIP
    return ReconcileAction.REFRESH


def stale_vendor_paths(
    source: Path,
    stored: TreeManifest | None,
    edits: EditSet,
) -> list[str]:
    """
    Find untouched defaults that the vendor no longer ships.

    Vendor deletions are not propagated, so these stay in the target.

    Args:
        source: Vendor source directory.
        stored: Stored manifest of the target, or None.
        edits: User edits in the target.

    Returns:
        Sorted relative paths.
    """
    if stored is None:
        return []
    shipped = {rel for rel, _ in iter_regular_files(source)}
    untouched = stored.paths - edits.deleted - edits.modified
    return sorted(untouched - shipped)


@dataclass
class ReconcilePlan:
    """What a reconciliation would do, computed without writing anything."""

    source: Path
    target: Path
    action: ReconcileAction
    version: str | None
    target_state: TargetState | None = None
    edits: EditSet | None = None
    backup_path: Path | None = None
    stale_paths: list[str] = field(default_factory=list)
    reason: str = ""

    @property
    def previous_version(self) -> str | None:
        return self.target_state.stamp if self.target_state else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": str(self.source),
            "target": str(self.target),
            "action": self.action.value,
            "version": self.version,
            "previous_version": self.previous_version,
            "target_state": self.target_state.to_dict() if self.target_state else None,
            "edits": self.edits.to_dict() if self.edits else None,
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "stale_paths": self.stale_paths,
            "reason": self.reason,
        }


def plan_reconcile(
    source: Path,
    target: Path,
    version: str | None = None,
    *,
    backup_prefix: str = DEFAULT_BACKUP_PREFIX,
    clock: Clock = time.time,
) -> ReconcilePlan:
    """
    Dry-run a reconciliation.

    Makes the same decision and classification as reconcile() with zero
    writes anywhere.

    Args:
        source: Vendor source directory.
        target: Target directory.
        version: Vendor version; blank or None means fingerprint the source.
        backup_prefix: Backup name prefix.
        clock: Time source for the projected backup name.

    Returns:
        ReconcilePlan.
    """
    source = Path(source)
    target = normalize_target(target)

    try:
        require_source(source)
    except MissingSourceError as e:
        return ReconcilePlan(
            source=source,
            target=target,
            action=ReconcileAction.FAIL,
            version=None,
            reason=str(e),
        )

    applied = _effective_version(source, version)
    state = inspect_target(target)
    action = _decide(state, applied)
    plan = ReconcilePlan(
        source=source,
        target=target,
        action=action,
        version=applied,
        target_state=state,
    )

    if action is ReconcileAction.SEED:
        plan.reason = "target is empty" if state.is_empty else "no version stamp"
    elif action is ReconcileAction.SKIP:
        plan.reason = "version unchanged"
    else:
        plan.reason = f"version change {state.stamp} -> {applied}"
        plan.edits = diff_manifests(generate_manifest(target), state.manifest)
        plan.backup_path = backup_path_for(target, backup_prefix, int(clock()))
        plan.stale_paths = stale_vendor_paths(source, state.manifest, plan.edits)

    return plan


@dataclass
class ReconcileResult:
    """
    Outcome of one reconciliation.

    Truthy when the reconciliation succeeded. A successful result may
    still carry per-file copy failures in ``report``.
    """

    source: Path
    target: Path
    action: ReconcileAction
    success: bool
    version: str | None = None
    previous_version: str | None = None
    edits: EditSet | None = None
    backup_path: Path | None = None
    stale_paths: list[str] = field(default_factory=list)
    report: CopyReport = field(default_factory=CopyReport)
    manifest_corrupt: bool = False
    failure: FailureCategory | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.success

    @property
    def degraded(self) -> bool:
        """Whether some files failed to copy."""
        return bool(self.report.failures)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": str(self.source),
            "target": str(self.target),
            "action": self.action.value,
            "success": self.success,
            "version": self.version,
            "previous_version": self.previous_version,
            "edits": self.edits.to_dict() if self.edits else None,
            "backup_path": str(self.backup_path) if self.backup_path else None,
            "stale_paths": self.stale_paths,
            "copied": self.report.copied,
            "copy_failures": [
                {"phase": f.phase.value, "path": f.path, "error": f.error}
                for f in self.report.failures
            ],
            "manifest_corrupt": self.manifest_corrupt,
            "failure": self.failure.value if self.failure else None,
            "message": self.message,
        }


def _persist(target: Path, version: str) -> None:
    """Record the settled target content and the applied version."""
    write_manifest(target, generate_manifest(target))
    write_stamp(target, version)


def _seed(source: Path, target: Path, version: str, state: TargetState) -> ReconcileResult:
    if not state.is_empty:
        logger.warning(
            "%s has content but no version stamp; vendor files will overwrite matching paths",
            target,
        )
    logger.info("First-time seed: %s -> %s (version: %s)", source, target, version)

    report = CopyReport()
    copy_tree(source, target, report, CopyPhase.SEED)

    result = ReconcileResult(
        source=source,
        target=target,
        action=ReconcileAction.SEED,
        success=True,
        version=version,
        report=report,
    )
    return _finish(result)


def _refresh(
    source: Path,
    target: Path,
    version: str,
    state: TargetState,
    backup_prefix: str,
    clock: Clock,
) -> ReconcileResult:
    logger.info("Version change: %s -> %s for %s", state.stamp, version, target)
    logger.info("Refreshing defaults while preserving user edits...")

    stored, corrupt = read_stored_manifest(target)
    edits = classify_edits(target, stored)
    stale = stale_vendor_paths(source, stored, edits)
    for path in stale:
        logger.info("  Retained default no longer shipped: %s", path)

    result = ReconcileResult(
        source=source,
        target=target,
        action=ReconcileAction.REFRESH,
        success=True,
        version=version,
        previous_version=state.stamp,
        edits=edits,
        stale_paths=stale,
        manifest_corrupt=corrupt,
    )

    try:
        result.backup_path = refresh_target(
            source,
            target,
            edits,
            result.report,
            prefix=backup_prefix,
            timestamp=int(clock()),
        )
    except StagingError as e:
        logger.error("Refresh of %s aborted before any change: %s", target, e)
        result.success = False
        result.failure = FailureCategory.STAGING
        result.message = str(e)
        return result

    if result.backup_path is None:
        logger.warning("  No full backup was taken for %s", target)

    return _finish(result)


def _finish(result: ReconcileResult) -> ReconcileResult:
    try:
        _persist(result.target, result.version or "")
    except OSError as e:
        logger.error("Could not persist manifest/stamp in %s: %s", result.target, e)
        result.success = False
        result.failure = FailureCategory.SIDECAR_WRITE
        result.message = str(e)
        return result

    if result.degraded:
        logger.warning(
            "%d file(s) could not be copied for %s", len(result.report.failures), result.target
        )
    if result.action is ReconcileAction.REFRESH:
        logger.info("Refresh complete for %s", result.target)
    return result


def reconcile(
    source: Path,
    target: Path,
    version: str | None = None,
    *,
    backup_prefix: str = DEFAULT_BACKUP_PREFIX,
    clock: Clock = time.time,
) -> ReconcileResult:
    """
    Seed or refresh a target directory from a vendor source.

    Never raises: every failure is logged and reported through the
    returned result.

    Args:
        source: Vendor source directory, read-only for the call.
        target: Persistent target directory.
        version: Vendor version; blank or None means fingerprint the source.
        backup_prefix: Prefix of the pre-refresh snapshot directory name.
        clock: Time source for the snapshot timestamp.

    Returns:
        ReconcileResult, truthy on success.

    Example:
        >>> result = reconcile(Path("/opt/emqx/etc"), Path("/data/emqx/etc"), "5.8.1")
        >>> result.action
        <ReconcileAction.SEED: 'seed'>
    """
    source = Path(source)
    target = normalize_target(target)

    try:
        require_source(source)
    except MissingSourceError as e:
        logger.warning("%s; skipping.", e)
        return ReconcileResult(
            source=source,
            target=target,
            action=ReconcileAction.FAIL,
            success=False,
            failure=FailureCategory.MISSING_SOURCE,
            message=str(e),
        )

    try:
        applied = _effective_version(source, version)
        state = inspect_target(target, load_manifest=False)
        action = _decide(state, applied)

        if action is ReconcileAction.SEED:
            return _seed(source, target, applied, state)

        if action is ReconcileAction.SKIP:
            logger.info("Version unchanged (%s) for %s; skipping.", applied, target)
            return ReconcileResult(
                source=source,
                target=target,
                action=ReconcileAction.SKIP,
                success=True,
                version=applied,
                previous_version=state.stamp,
            )

        return _refresh(source, target, applied, state, backup_prefix, clock)
    except Exception as e:
        logger.exception("Unexpected error reconciling %s -> %s", source, target)
        return ReconcileResult(
            source=source,
            target=target,
            action=ReconcileAction.FAIL,
            success=False,
            failure=FailureCategory.UNEXPECTED,
            message=str(e),
        )
