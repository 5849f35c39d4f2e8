"""
piquediff Diff Module

Directional reconciliation of two normalized reports.

Usage:
    from piquediff.core import extract
    from piquediff.diff import reconcile

    result = reconcile(extract(left_doc), extract(right_doc))
    print(result.summary())
    result.differing_product_factors   # names whose value/benchmarkSize moved
    result.measures.peer_for("CWE-20::M1")
"""

from .results import (
    DiffResult,
    EntityDiff,
    FamilyDiff,
)

from .reconciler import (
    TOLERANCE,
    Reconciler,
    measure_key,
    reconcile,
    reconcile_both,
    values_equal,
)

__all__ = [
    # Results
    "DiffResult",
    "EntityDiff",
    "FamilyDiff",
    # Reconciler
    "TOLERANCE",
    "Reconciler",
    "measure_key",
    "reconcile",
    "reconcile_both",
    "values_equal",
]
