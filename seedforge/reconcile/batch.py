"""
Batch reconciliation of every target in a SeedConfig.

Targets run one after another in config order. A failed optional target
is logged and does not fail the batch.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from seedforge.reconcile.driver import Clock, ReconcileResult, reconcile

if TYPE_CHECKING:
    from seedforge.config import SeedConfig, SeedTarget

logger = logging.getLogger(__name__)


@dataclass
class TargetOutcome:
    """Result of reconciling one configured target."""

    name: str
    required: bool
    version_origin: str
    result: ReconcileResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "required": self.required,
            "version_origin": self.version_origin,
            **self.result.to_dict(),
        }


@dataclass
class BatchOutcome:
    """Results of a whole batch."""

    outcomes: list[TargetOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True unless a required target failed."""
        return all(o.result.success for o in self.outcomes if o.required)

    @property
    def failed(self) -> list[TargetOutcome]:
        return [o for o in self.outcomes if not o.result.success]

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "success": self.success,
            "targets": [o.to_dict() for o in self.outcomes],
        }


def reconcile_target(
    target: SeedTarget,
    backup_prefix: str,
    clock: Clock = time.time,
) -> TargetOutcome:
    """
    Resolve the version of one configured target and reconcile it.

    Args:
        target: Configured target.
        backup_prefix: Prefix of snapshot directory names.
        clock: Time source for snapshot timestamps.

    Returns:
        TargetOutcome.
    """
    logger.info("=== version-aware seed: %s ===", target.name)
    resolved = target.resolve_version()
    logger.info("Resolved version for %s: %s (%s)", target.name, resolved.value, resolved.origin.value)

    result = reconcile(
        target.source,
        target.target,
        resolved.value,
        backup_prefix=backup_prefix,
        clock=clock,
    )
    if not result.success:
        if target.required:
            logger.error("Target %s failed: %s", target.name, result.message)
        else:
            logger.warning("Optional target %s skipped: %s", target.name, result.message)

    return TargetOutcome(
        name=target.name,
        required=target.required,
        version_origin=resolved.origin.value,
        result=result,
    )


def run_batch(config: SeedConfig, clock: Clock = time.time) -> BatchOutcome:
    """
    Reconcile every configured target in order.

    Args:
        config: Batch configuration.
        clock: Time source for snapshot timestamps.

    Returns:
        BatchOutcome, truthy unless a required target failed.
    """
    batch = BatchOutcome()
    for target in config.targets:
        batch.outcomes.append(reconcile_target(target, config.backup_prefix, clock))
    return batch
