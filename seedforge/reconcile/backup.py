"""
Backup and restore around a vendor refresh.

A refresh has two independent safety nets:

1. Targeted staging: every user-edited file is copied to a scratch area
   before the vendor overwrite and copied back on top afterwards.
2. Full snapshot: the whole pre-refresh target is copied to a sibling
   directory ``<target>.<prefix>_<unix-ts>`` that is never auto-deleted.

Per-file copy failures are recorded in a CopyReport and skipped. A
half-refreshed target with a stale manifest is worse than one file that
missed its refresh or its preservation.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Collection, Iterable

from seedforge.reconcile.classifier import EditSet
from seedforge.reconcile.errors import CopyPhase, CopyReport, StagingError

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_PREFIX = "pre_upgrade"


@dataclass(frozen=True)
class BackupRecord:
    """A pre-refresh snapshot directory next to a target."""

    path: Path
    timestamp: int
    sequence: int = 0

    @property
    def created_at(self) -> datetime:
        """Snapshot time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


def _backup_pattern(target: Path, prefix: str) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(target.name)}\.{re.escape(prefix)}_(\d+)(?:_(\d+))?$"
    )


def normalize_target(target: Path) -> Path:
    """
    Make a target path absolute and collapse ``.`` and ``..`` parts.

    Snapshots are named after the final path component, which ``.`` lacks.
    Symlinks are kept as given.
    """
    return Path(os.path.abspath(target))


def backup_path_for(target: Path, prefix: str, timestamp: int) -> Path:
    """
    Choose the snapshot path for a target.

    Appends a ``_<n>`` counter when a snapshot with the same timestamp
    already exists, so every refresh gets its own directory.

    Args:
        target: Target directory.
        prefix: Backup name prefix.
        timestamp: Unix timestamp in seconds.

    Returns:
        Path of a sibling directory that does not exist yet.
    """
    target = normalize_target(target)
    base = target.parent / f"{target.name}.{prefix}_{timestamp}"
    candidate = base
    sequence = 1
    while os.path.lexists(candidate):
        candidate = base.with_name(f"{base.name}_{sequence}")
        sequence += 1
    return candidate


def list_backups(target: Path, prefix: str = DEFAULT_BACKUP_PREFIX) -> list[BackupRecord]:
    """
    List snapshot directories of a target, oldest first.

    Args:
        target: Target directory.
        prefix: Backup name prefix.

    Returns:
        Sorted list of BackupRecord.
    """
    target = normalize_target(target)
    parent = target.parent
    if not parent.is_dir():
        return []

    pattern = _backup_pattern(target, prefix)
    records: list[BackupRecord] = []
    for entry in parent.iterdir():
        match = pattern.match(entry.name)
        if match is None or not entry.is_dir():
            continue
        records.append(
            BackupRecord(
                path=entry,
                timestamp=int(match.group(1)),
                sequence=int(match.group(2) or 0),
            )
        )
    records.sort(key=lambda r: (r.timestamp, r.sequence))
    return records


def copy_entry(src: Path, dst: Path) -> None:
    """
    Copy one file or symlink, preserving metadata.

    Symlinks are recreated, not followed. An existing symlink at the
    destination is replaced instead of written through.

    Raises:
        OSError: If the copy fails.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    if dst.is_symlink():
        dst.unlink()
    elif dst.is_dir():
        raise IsADirectoryError(f"Destination is a directory: {dst}")
    if src.is_symlink():
        if os.path.lexists(dst):
            dst.unlink()
        os.symlink(os.readlink(src), dst)
        return
    shutil.copy2(src, dst)


def copy_tree(
    source: Path,
    destination: Path,
    report: CopyReport,
    phase: CopyPhase,
    skip: Collection[str] = (),
) -> int:
    """
    Copy a tree on top of a destination.

    Adds and overwrites files; never deletes anything already present in
    the destination.

    Args:
        source: Tree to copy from.
        destination: Tree to copy into (created if needed).
        report: Collects per-file failures.
        phase: Copy phase recorded with failures.
        skip: Relative POSIX paths to leave out.

    Returns:
        Number of entries copied.
    """
    source = Path(source)
    destination = Path(destination)
    copied = 0

    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning("Could not create %s: %s", destination, e)
        report.record_failure(phase, ".", e)
        return 0

    for dirpath, dirnames, filenames in os.walk(source):
        base = Path(dirpath)
        rel_dir = base.relative_to(source)

        # Symlinked directories are copied as links, not descended into
        linked_dirs = [d for d in dirnames if (base / d).is_symlink()]
        dirnames[:] = sorted(d for d in dirnames if d not in linked_dirs)

        # Parents are created per copied file; only empty directories need it here
        if not dirnames and not filenames and not linked_dirs and rel_dir.parts:
            try:
                (destination / rel_dir).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning("  Could not create directory %s: %s", rel_dir.as_posix(), e)
                report.record_failure(phase, rel_dir.as_posix(), e)

        for name in sorted(filenames + linked_dirs):
            rel = (rel_dir / name).as_posix()
            if rel in skip:
                continue
            try:
                copy_entry(base / name, destination / rel)
            except OSError as e:
                logger.warning("  Copy failed (%s) %s: %s", phase.value, rel, e)
                report.record_failure(phase, rel, e)
                continue
            copied += 1

    report.copied += copied
    return copied


def stage_edits(
    target: Path,
    paths: Iterable[str],
    scratch: Path,
    report: CopyReport,
) -> list[str]:
    """
    Copy user-edited files aside before the vendor overwrite.

    Args:
        target: Target directory.
        paths: Relative paths to preserve.
        scratch: Staging directory.
        report: Collects per-file failures.

    Returns:
        Relative paths that were staged successfully.
    """
    staged: list[str] = []
    for rel in paths:
        src = Path(target) / rel
        if not os.path.lexists(src):
            continue
        try:
            copy_entry(src, Path(scratch) / rel)
        except OSError as e:
            logger.warning("  Could not stage user edit %s: %s", rel, e)
            report.record_failure(CopyPhase.STAGE, rel, e)
            continue
        logger.info("  Preserved user edit: %s", rel)
        staged.append(rel)
    return staged


def snapshot_target(
    target: Path,
    prefix: str,
    timestamp: int,
    report: CopyReport,
) -> Path | None:
    """
    Copy the whole target to a timestamped sibling directory.

    Best-effort: failures are logged and never abort the refresh.

    Args:
        target: Target directory.
        prefix: Backup name prefix.
        timestamp: Unix timestamp in seconds.
        report: Collects per-file failures.

    Returns:
        The snapshot path, or None if it could not be created.
    """
    backup = backup_path_for(target, prefix, timestamp)
    try:
        backup.mkdir()
    except OSError as e:
        logger.warning("  Full backup of %s failed: %s", target, e)
        report.record_failure(CopyPhase.SNAPSHOT, ".", e)
        return None

    logger.info("  Full backup -> %s", backup)
    copy_tree(target, backup, report, CopyPhase.SNAPSHOT)
    try:
        shutil.copystat(target, backup)
    except OSError as e:
        logger.debug("Could not copy directory metadata to %s: %s", backup, e)
    return backup


def restore_staged(scratch: Path, target: Path, report: CopyReport) -> int:
    """
    Copy staged user files back on top of the refreshed target.

    Returns:
        Number of files restored.
    """
    restored = copy_tree(scratch, target, report, CopyPhase.RESTORE)
    if restored:
        logger.info("  Restored %d user-modified files.", restored)
    return restored


def refresh_target(
    source: Path,
    target: Path,
    edits: EditSet,
    report: CopyReport,
    prefix: str = DEFAULT_BACKUP_PREFIX,
    timestamp: int = 0,
) -> Path | None:
    """
    Refresh a seeded target from new vendor defaults, keeping user edits.

    Order: stage edits -> full snapshot -> vendor overwrite -> restore
    staged edits. Paths the user deleted are not re-created. Persisting
    the new manifest and stamp is left to the caller.

    Args:
        source: Vendor source directory.
        target: Target directory.
        edits: User edits found by the classifier.
        report: Collects per-file failures.
        prefix: Backup name prefix.
        timestamp: Unix timestamp for the snapshot name.

    Returns:
        Path of the full snapshot, or None if it failed.

    Raises:
        StagingError: If the scratch area cannot be created. The target
            is untouched in that case.
    """
    try:
        scratch_dir = tempfile.TemporaryDirectory(
            prefix="seedforge-staging-", ignore_cleanup_errors=True
        )
    except OSError as e:
        raise StagingError(f"Could not create staging area: {e}") from e

    with scratch_dir as scratch:
        stage_edits(target, edits.preserved, Path(scratch), report)
        backup = snapshot_target(target, prefix, timestamp, report)
        copy_tree(source, target, report, CopyPhase.OVERWRITE, skip=edits.deleted)
        restore_staged(Path(scratch), target, report)

    return backup
