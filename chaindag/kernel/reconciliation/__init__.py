"""Reconciliation of a new plan against recorded execution state."""

from chaindag.kernel.reconciliation.models import (
    ReconciliationKind,
    ReconciliationReport,
    ReconciliationResult,
)
from chaindag.kernel.reconciliation.reconciler import compare, reconcile

__all__ = [
    "ReconciliationKind",
    "ReconciliationReport",
    "ReconciliationResult",
    "compare",
    "reconcile",
]
