"""Reconciliation engine: edit classification, backup/restore, driver."""

from seedforge.reconcile.classifier import EditKind, EditSet, classify_edits
from seedforge.reconcile.backup import BackupRecord, list_backups
from seedforge.reconcile.driver import (
    ReconcileAction,
    ReconcilePlan,
    ReconcileResult,
    SeedState,
    inspect_target,
    plan_reconcile,
    reconcile,
)
from seedforge.reconcile.errors import CopyFailure, CopyReport, FailureCategory

__all__ = [
    "EditKind",
    "EditSet",
    "classify_edits",
    "BackupRecord",
    "list_backups",
    "ReconcileAction",
    "ReconcilePlan",
    "ReconcileResult",
    "SeedState",
    "inspect_target",
    "plan_reconcile",
    "reconcile",
    "CopyFailure",
    "CopyReport",
    "FailureCategory",
]
