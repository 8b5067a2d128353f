"""
Failure taxonomy for reconciliation.

MissingSourceError and StagingError are raised by the low-level helpers;
the driver turns every failure into a result with a FailureCategory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from seedforge.core.manifest.tree_manifest import ManifestCorruptionError


class ReconcileError(Exception):
    """Base class for reconciliation failures."""

    pass


class MissingSourceError(ReconcileError):
    """The vendor source directory does not exist."""

    def __init__(self, source: Path):
        super().__init__(f"Source directory {source} does not exist")
        self.source = source


class StagingError(ReconcileError):
    """The scratch area for user edits could not be prepared."""

    pass


class FailureCategory(str, Enum):
    """Category of failure for logging and reporting."""

    MISSING_SOURCE = "missing_source"
    PARTIAL_COPY = "partial_copy"
    MANIFEST_CORRUPTION = "manifest_corruption"
    STAGING = "staging"
    SIDECAR_WRITE = "sidecar_write"
    UNEXPECTED = "unexpected"


class CopyPhase(str, Enum):
    """Which copy step a file failure happened in."""

    OVERWRITE = "overwrite"
    STAGE = "stage"
    SNAPSHOT = "snapshot"
    RESTORE = "restore"
    SEED = "seed"


@dataclass(frozen=True)
class CopyFailure:
    """A single file that could not be copied."""

    phase: CopyPhase
    path: str
    error: str

    def __str__(self) -> str:
        return f"[{self.phase.value}] {self.path}: {self.error}"


@dataclass
class CopyReport:
    """Accumulates per-file copy outcomes across one reconciliation."""

    copied: int = 0
    failures: list[CopyFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def record_failure(self, phase: CopyPhase, path: str, error: BaseException | str) -> None:
        self.failures.append(CopyFailure(phase=phase, path=path, error=str(error)))

    def failures_in(self, phase: CopyPhase) -> list[CopyFailure]:
        return [f for f in self.failures if f.phase == phase]


__all__ = [
    "ReconcileError",
    "MissingSourceError",
    "StagingError",
    "ManifestCorruptionError",
    "FailureCategory",
    "CopyPhase",
    "CopyFailure",
    "CopyReport",
]
