"""
Report Reconciler

Directional structural diff of two normalized reports. ``reconcile(a, b)``
describes how ``a`` differs from ``b``; call it with the arguments swapped
for the other direction, or use ``reconcile_both``.

Matching is by natural key, never by object identity:
- product factors by name
- measures by "<factor name>::<measure name>" within matched factors
- findings by id across the whole report
- diagnostics by id
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, TypeVar

from ..core.report_model import (
    Diagnostic, Finding, Measure, NormalizedReport, ProductFactor, to_optional_float,
)
from .results import DiffResult, EntityDiff, FamilyDiff

# Absorbs float serialization noise only
TOLERANCE = 1e-6

KEY_SEPARATOR = "::"

T = TypeVar("T")


def values_equal(a: Any, b: Any) -> bool:
    """Numeric equality within TOLERANCE; two absent values are equal."""
    a, b = to_optional_float(a), to_optional_float(b)
    if a is None or b is None:
        return a is None and b is None
    return abs(a - b) <= TOLERANCE


def measure_key(factor_name: str, measure_name: str) -> str:
    return f"{factor_name}{KEY_SEPARATOR}{measure_name}"


def _index(items: Iterable[T], key: Callable[[T], str]) -> Dict[str, T]:
    """Index by key; the first occurrence wins."""
    index: Dict[str, T] = {}
    for item in items:
        index.setdefault(key(item), item)
    return index


def _split(left: Dict[str, Any], right: Dict[str, Any]) -> Tuple[List[str], FrozenSet[str], FrozenSet[str]]:
    """Matched keys in left order, left-only keys, right-only keys."""
    matched = [k for k in left if k in right]
    return matched, frozenset(k for k in left if k not in right), frozenset(k for k in right if k not in left)


class Reconciler:
    """
    Computes DiffResult instances for pairs of NormalizedReports

    Stateless apart from its logger; one instance can reconcile any
    number of report pairs.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def reconcile(self, left: Optional[NormalizedReport], right: Optional[NormalizedReport]) -> DiffResult:
        """
        Diff ``left`` against ``right``

        Args:
            left: Report the result is about
            right: Report it is compared with (the "peer")

        Returns:
            DiffResult

        Raises:
            ValueError: If either report is None
        """
        if left is None or right is None:
            raise ValueError("reconcile() needs two reports, got None")

        left_factors = _index(left.product_factors, lambda pf: pf.name)
        right_factors = _index(right.product_factors, lambda pf: pf.name)

        product_factors = self._compare_product_factors(left_factors, right_factors)
        measures = self._compare_measures(left, right, left_factors, right_factors)
        findings, tool_scores = self._compare_findings(left.relational.findings, right.relational.findings)
        diagnostics = self._compare_diagnostics(left.relational.diagnostics, right.relational.diagnostics)

        result = DiffResult(
            left_name=left.name,
            right_name=right.name,
            product_factors=product_factors,
            measures=measures,
            findings=findings,
            diagnostics=diagnostics,
            differing_tool_scores=tool_scores,
        )
        self.logger.debug(
            f"Reconciled {left.name or 'left'} vs {right.name or 'right'}: "
            f"{len(product_factors.differing)} factors, {len(measures.differing)} measures, "
            f"{len(findings.differing)} findings, {len(diagnostics.differing)} diagnostics differ"
        )
        return result

    # -------------------------------------------------------------------------
    # Product Factors
    # -------------------------------------------------------------------------

    def _compare_product_factors(self, left: Dict[str, ProductFactor],
                                 right: Dict[str, ProductFactor]) -> FamilyDiff:
        matched, missing, peer_only = _split(left, right)
        differing = set()
        details: Dict[str, EntityDiff] = {}

        for name in matched:
            mine, peer = left[name], right[name]
            fields = []
            if not values_equal(mine.value, peer.value):
                fields.append("value")
            if mine.benchmark_size != peer.benchmark_size:
                fields.append("benchmarkSize")
            if fields:
                differing.add(name)
            details[name] = EntityDiff(name, tuple(fields),
                                       {"value": peer.value, "benchmarkSize": peer.benchmark_size})

        return FamilyDiff(frozenset(differing), missing, peer_only, details)

    # -------------------------------------------------------------------------
    # Measures
    # -------------------------------------------------------------------------

    def _compare_measures(self, left: NormalizedReport, right: NormalizedReport,
                          left_factors: Dict[str, ProductFactor],
                          right_factors: Dict[str, ProductFactor]) -> FamilyDiff:
        """
        Measures of matched factors only. A factor's measure set is its
        nested list, or the edge-table join when the report was loaded
        without one.
        """
        differing = set()
        missing = set()
        peer_only = set()
        details: Dict[str, EntityDiff] = {}

        for factor_name, mine_pf in left_factors.items():
            peer_pf = right_factors.get(factor_name)
            if peer_pf is None:
                continue

            mine_measures = _index(left.measures_for(mine_pf), lambda m: m.name)
            peer_measures = _index(right.measures_for(peer_pf), lambda m: m.name)
            matched, left_only, right_only = _split(mine_measures, peer_measures)

            missing.update(measure_key(factor_name, n) for n in left_only)
            peer_only.update(measure_key(factor_name, n) for n in right_only)

            for measure_name in matched:
                key = measure_key(factor_name, measure_name)
                detail = self._compare_measure(key, mine_measures[measure_name], peer_measures[measure_name])
                if detail.differs:
                    differing.add(key)
                details[key] = detail

        return FamilyDiff(frozenset(differing), frozenset(missing), frozenset(peer_only), details)

    @staticmethod
    def _compare_measure(key: str, mine: Measure, peer: Measure) -> EntityDiff:
        fields = []
        if not values_equal(mine.score, peer.score):
            fields.append("score")
        if not values_equal(mine.weight, peer.weight):
            fields.append("weight")
        return EntityDiff(key, tuple(fields), {"score": peer.score, "weight": peer.weight})

    # -------------------------------------------------------------------------
    # Findings
    # -------------------------------------------------------------------------

    def _compare_findings(self, left: Iterable[Finding],
                          right: Iterable[Finding]) -> Tuple[FamilyDiff, FrozenSet[str]]:
        left_index = _index(left, lambda f: f.id)
        right_index = _index(right, lambda f: f.id)
        matched, missing, peer_only = _split(left_index, right_index)

        differing = set()
        tool_scores = set()
        details: Dict[str, EntityDiff] = {}

        for finding_id in matched:
            mine, peer = left_index[finding_id], right_index[finding_id]
            fields = []
            if mine.vuln_source != peer.vuln_source:
                fields.append("vulnSource")
            if mine.vuln_source_version.strip() != peer.vuln_source_version.strip():
                fields.append("vulnSourceVersion")
            if mine.fix_status is not peer.fix_status:
                fields.append("fixed")
            if mine.fixed_version != peer.fixed_version:
                fields.append("fixedVersion")
            if mine.tool_names != peer.tool_names:
                fields.append("byTool")

            if fields:
                differing.add(finding_id)
            details[finding_id] = EntityDiff(finding_id, tuple(fields), {
                "vulnSource": peer.vuln_source,
                "vulnSourceVersion": peer.vuln_source_version.strip(),
                "fixed": peer.fix_status.value,
                "fixedVersion": peer.fixed_version,
                "byTool": sorted(peer.tool_names),
            })
            tool_scores.update(self._differing_tool_scores(mine, peer))

        return FamilyDiff(frozenset(differing), missing, peer_only, details), frozenset(tool_scores)

    @staticmethod
    def _differing_tool_scores(mine: Finding, peer: Finding) -> List[str]:
        """Keys "<id>|<tool>" for tools whose score differs or that one side lacks."""
        mine_scores = _index(mine.by_tool, lambda t: t.tool)
        peer_scores = _index(peer.by_tool, lambda t: t.tool)
        keys = []
        for tool in sorted(set(mine_scores) | set(peer_scores)):
            if not tool:
                continue
            if (tool not in mine_scores or tool not in peer_scores
                    or not values_equal(mine_scores[tool].score, peer_scores[tool].score)):
                keys.append(f"{mine.id}|{tool}")
        return keys

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def _compare_diagnostics(self, left: Iterable[Diagnostic], right: Iterable[Diagnostic]) -> FamilyDiff:
        left_index = _index(left, lambda d: d.id)
        right_index = _index(right, lambda d: d.id)
        matched, missing, peer_only = _split(left_index, right_index)

        differing = set()
        details: Dict[str, EntityDiff] = {}
        for diagnostic_id in matched:
            mine, peer = left_index[diagnostic_id], right_index[diagnostic_id]
            fields = [name for name, a, b in (("name", mine.name, peer.name),
                                              ("toolName", mine.tool_name, peer.tool_name),
                                              ("description", mine.description, peer.description))
                      if a != b]
            if not values_equal(mine.value, peer.value):
                fields.append("value")
            if fields:
                differing.add(diagnostic_id)
                details[diagnostic_id] = EntityDiff(diagnostic_id, tuple(fields), {
                    "name": peer.name,
                    "toolName": peer.tool_name,
                    "description": peer.description,
                    "value": peer.value,
                })

        return FamilyDiff(frozenset(differing), missing, peer_only, details)


# =============================================================================
# Module Functions
# =============================================================================

def reconcile(left: Optional[NormalizedReport], right: Optional[NormalizedReport]) -> DiffResult:
    """How ``left`` differs from ``right``."""
    return Reconciler().reconcile(left, right)


def reconcile_both(a: Optional[NormalizedReport],
                   b: Optional[NormalizedReport]) -> Tuple[DiffResult, DiffResult]:
    """Both directions: (a vs b, b vs a)."""
    reconciler = Reconciler()
    return reconciler.reconcile(a, b), reconciler.reconcile(b, a)
