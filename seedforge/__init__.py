"""
SeedForge: Version-aware seeding of persistent directories from vendor defaults.

Refreshes bind-mounted config trees on image upgrades while preserving user edits.
"""

from seedforge.reconcile.driver import ReconcileResult, plan_reconcile, reconcile

__version__ = "0.1.0"
__all__ = ["__version__", "ReconcileResult", "plan_reconcile", "reconcile"]
