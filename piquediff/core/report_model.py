"""
Report Model

Normalized data model for PIQUE quality-assessment reports:

Entities:
- QualityAspect: {name, score}
- ProductFactor: {id, name, value, description, benchmarkSize, aspectName}
- Measure: {id, name, description, score, weight, thresholds}
- Diagnostic: {id, name, toolName, value, description}
- Finding: {id, diagnosticId, vulnSource, vulnSourceVersion, fixed,
            fixedVersion, description, alias, byTool}

Edges:
- PF_MEASURE (ProductFactor -> Measure): {pfId, measureId, weight}
- MEASURE_DIAGNOSTIC (Measure -> Diagnostic): {measureId, diagnosticId}
- Diagnostic -> Finding is implicit through Finding.diagnostic_id

Every entity is frozen. Reports are snapshots; once extracted nothing is
mutated, and the reconciler only reads them.
"""

import math
import re
from collections import defaultdict
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Any, Dict, List, Optional, Tuple


# =============================================================================
# Identifier Patterns
# =============================================================================

VULN_ID_PATTERN = re.compile(r"^(?:CVE|GHSA)-", re.IGNORECASE)

# "Product_Factor CWE-20", "Product_Factor:CWE-20", "Pillar CWE-664", "CWE-664 Pillar"
VULN_PILLAR_PATTERN = re.compile(
    r"^\s*(?:(?:Product[_\s-]*Factor|Pillar)[\s:_-]*)?CWE-",
    re.IGNORECASE,
)

DIAGNOSTIC_NAME_PATTERN = re.compile(r"\bdiagnostic\b", re.IGNORECASE)


def is_vuln_id(value: Any) -> bool:
    return isinstance(value, str) and bool(VULN_ID_PATTERN.match(value.strip()))


# =============================================================================
# Coercion Helpers
# =============================================================================

def to_optional_float(value: Any) -> Optional[float]:
    """Numeric value as float; None for absent, boolean, non-numeric or non-finite input."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def to_float(value: Any, default: float = 0.0) -> float:
    number = to_optional_float(value)
    return default if number is None else number


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def in_unit_range(value: Optional[float]) -> bool:
    return value is None or 0.0 <= value <= 1.0


# =============================================================================
# Enumerations
# =============================================================================

class FixStatus(str, Enum):
    """Tri-state fix status of a vulnerability finding"""
    FIXED = "fixed"
    NOT_FIXED = "notfixed"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: Any) -> "FixStatus":
        """
        Normalize booleans and the strings "true", "false", "fixed",
        "not fixed" (case-insensitive). Anything else is UNKNOWN.
        """
        if value is True:
            return cls.FIXED
        if value is False:
            return cls.NOT_FIXED
        if not isinstance(value, str):
            return cls.UNKNOWN
        text = value.strip().lower()
        if text in ("true", "fixed"):
            return cls.FIXED
        if text in ("false", "not fixed"):
            return cls.NOT_FIXED
        return cls.UNKNOWN


class EntityType(str, Enum):
    """Entity types in the normalized model"""
    QUALITY_ASPECT = "QUALITY_ASPECT"
    PRODUCT_FACTOR = "PRODUCT_FACTOR"
    MEASURE = "MEASURE"
    DIAGNOSTIC = "DIAGNOSTIC"
    FINDING = "FINDING"


class EdgeType(str, Enum):
    """Edge types in the normalized model"""
    HAS_FACTOR = "HAS_FACTOR"
    PF_MEASURE = "PF_MEASURE"
    MEASURE_DIAGNOSTIC = "MEASURE_DIAGNOSTIC"
    DIAGNOSTIC_FINDING = "DIAGNOSTIC_FINDING"


# =============================================================================
# Entities
# =============================================================================

@dataclass(frozen=True)
class QualityAspect:
    """Top-level grouping of product factors with an aggregate score"""
    name: str
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "score": self.score}


@dataclass(frozen=True)
class Measure:
    """
    Scored, weighted contributor to a product factor.

    ``weight`` belongs to one PF-Measure edge. Rows of the measure table
    carry ``None``; copies attached to a product factor carry that edge's
    weight.
    """
    id: str
    name: str
    description: str = ""
    score: float = 0.0
    weight: Optional[float] = None
    thresholds: Tuple[float, ...] = ()

    @property
    def benchmark_size(self) -> int:
        return len(self.thresholds)

    def with_weight(self, weight: Optional[float]) -> "Measure":
        return replace(self, weight=weight)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "score": self.score,
            "weight": self.weight,
            "thresholds": list(self.thresholds),
        }


@dataclass(frozen=True)
class ProductFactor:
    """
    Scored sub-criterion under a quality aspect (e.g. a CWE pillar).

    ``measures`` is the nested convenience view. It is empty for reports
    loaded from separated tables; use NormalizedReport.measures_for()
    to get the measure set either way.
    """
    id: str
    name: str
    value: float = 0.0
    description: str = ""
    benchmark_size: int = 0
    aspect_name: str = ""
    measures: Tuple[Measure, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "description": self.description,
            "benchmarkSize": self.benchmark_size,
            "aspectName": self.aspect_name,
            "measures": [m.to_dict() for m in self.measures],
        }


@dataclass(frozen=True)
class Diagnostic:
    """Raw tool-reported finding category feeding one or more measures"""
    id: str
    name: str
    tool_name: str = ""
    value: Optional[float] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "toolName": self.tool_name,
            "value": self.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class ToolScore:
    """Score a single tool assigned to a finding"""
    tool: str
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"tool": self.tool, "score": self.score}


@dataclass(frozen=True)
class Finding:
    """A vulnerability instance (CVE/GHSA) reached from a diagnostic"""
    id: str
    diagnostic_id: str = ""
    vuln_source: str = ""
    vuln_source_version: str = ""
    fixed: Any = None
    fixed_version: str = ""
    description: str = ""
    alias: str = ""
    by_tool: Tuple[ToolScore, ...] = ()

    @property
    def fix_status(self) -> FixStatus:
        return FixStatus.from_raw(self.fixed)

    @property
    def tool_names(self) -> frozenset:
        return frozenset(t.tool for t in self.by_tool if t.tool)

    def merged_with(self, other: "Finding") -> "Finding":
        """
        Combine two sightings of the same finding.

        Fields already set here win; empty ones are filled from ``other``.
        Tool scores are unioned on (tool, score).
        """
        seen = {(t.tool, t.score) for t in self.by_tool}
        extra = tuple(t for t in other.by_tool if (t.tool, t.score) not in seen)
        return replace(
            self,
            diagnostic_id=self.diagnostic_id or other.diagnostic_id,
            vuln_source=self.vuln_source or other.vuln_source,
            vuln_source_version=self.vuln_source_version or other.vuln_source_version,
            fixed=self.fixed if self.fixed is not None else other.fixed,
            fixed_version=self.fixed_version or other.fixed_version,
            description=self.description or other.description,
            alias=self.alias or other.alias,
            by_tool=self.by_tool + extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "diagnosticId": self.diagnostic_id,
            "vulnSource": self.vuln_source,
            "vulnSourceVersion": self.vuln_source_version,
            "fixed": self.fixed,
            "fixStatus": self.fix_status.value,
            "fixedVersion": self.fixed_version,
            "description": self.description,
            "alias": self.alias,
            "byTool": [t.to_dict() for t in self.by_tool],
        }


# =============================================================================
# Edges
# =============================================================================

@dataclass(frozen=True)
class PFMeasureEdge:
    pf_id: str
    measure_id: str
    weight: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"pfId": self.pf_id, "measureId": self.measure_id, "weight": self.weight}


@dataclass(frozen=True)
class MeasureDiagnosticEdge:
    measure_id: str
    diagnostic_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"measureId": self.measure_id, "diagnosticId": self.diagnostic_id}


def coerce_thresholds(value: Any) -> Tuple[float, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(to_float(v) for v in value)


def first_thresholds_len(measures) -> int:
    """Benchmark size: length of the first non-empty thresholds list, else 0."""
    for measure in measures:
        if measure.thresholds:
            return len(measure.thresholds)
    return 0


# =============================================================================
# Relational Tables
# =============================================================================

@dataclass(frozen=True)
class RelationalTables:
    """Flat entity tables plus the two edge tables"""
    product_factors: Tuple[ProductFactor, ...] = ()
    measures: Tuple[Measure, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    findings: Tuple[Finding, ...] = ()
    pf_measures: Tuple[PFMeasureEdge, ...] = ()
    measure_diagnostics: Tuple[MeasureDiagnosticEdge, ...] = ()

    @cached_property
    def measure_by_id(self) -> Dict[str, Measure]:
        return {m.id: m for m in self.measures}

    @cached_property
    def diagnostic_by_id(self) -> Dict[str, Diagnostic]:
        return {d.id: d for d in self.diagnostics}

    @cached_property
    def finding_by_id(self) -> Dict[str, Finding]:
        return {f.id: f for f in self.findings}

    @cached_property
    def edges_by_pf(self) -> Dict[str, List[PFMeasureEdge]]:
        index: Dict[str, List[PFMeasureEdge]] = defaultdict(list)
        for edge in self.pf_measures:
            index[edge.pf_id].append(edge)
        return dict(index)

    @cached_property
    def diagnostics_by_measure(self) -> Dict[str, List[str]]:
        index: Dict[str, List[str]] = defaultdict(list)
        for edge in self.measure_diagnostics:
            index[edge.measure_id].append(edge.diagnostic_id)
        return dict(index)

    def measures_via_edges(self, *pf_ids: str) -> Tuple[Measure, ...]:
        """Measures linked to any of ``pf_ids``, each carrying its edge weight."""
        result = []
        seen = set()
        for pf_id in pf_ids:
            for edge in self.edges_by_pf.get(pf_id, []):
                measure = self.measure_by_id.get(edge.measure_id)
                if measure is None or (pf_id, edge.measure_id) in seen:
                    continue
                seen.add((pf_id, edge.measure_id))
                result.append(measure.with_weight(edge.weight))
        return tuple(result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productFactors": [pf.to_dict() for pf in self.product_factors],
            "measures": [m.to_dict() for m in self.measures],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "findings": [f.to_dict() for f in self.findings],
            "pfMeasures": [e.to_dict() for e in self.pf_measures],
            "measureDiagnostics": [e.to_dict() for e in self.measure_diagnostics],
        }


# =============================================================================
# Normalized Report
# =============================================================================

@dataclass(frozen=True)
class NormalizedReport:
    """Container for one extracted report with lookup helpers"""
    name: str = ""
    tqi_score: float = 0.0
    aspect_scores: Tuple[QualityAspect, ...] = ()
    product_factors_by_aspect: Dict[str, Tuple[ProductFactor, ...]] = field(default_factory=dict)
    relational: RelationalTables = field(default_factory=RelationalTables)
    source_shape: str = "nested"

    @cached_property
    def _factor_by_name(self) -> Dict[str, ProductFactor]:
        index: Dict[str, ProductFactor] = {}
        for pf in self.relational.product_factors:
            index.setdefault(pf.name, pf)
        return index

    @property
    def product_factors(self) -> Tuple[ProductFactor, ...]:
        return self.relational.product_factors

    def get_product_factor(self, name: str) -> Optional[ProductFactor]:
        return self._factor_by_name.get(name)

    def measures_for(self, pf: ProductFactor) -> Tuple[Measure, ...]:
        """
        Measures of a product factor.

        Uses the nested list when the factor has one, otherwise joins the
        PF-Measure edges (keyed by factor id or name) with the measure table.
        """
        if pf.measures:
            return pf.measures
        candidates = [pf.id] if pf.id == pf.name else [pf.id, pf.name]
        return self.relational.measures_via_edges(*candidates)

    def diagnostics_for_measure(self, measure_id: str) -> List[Diagnostic]:
        by_id = self.relational.diagnostic_by_id
        return [by_id[d] for d in self.relational.diagnostics_by_measure.get(measure_id, []) if d in by_id]

    def findings_for_diagnostic(self, diagnostic_id: str) -> List[Finding]:
        return [f for f in self.relational.findings if f.diagnostic_id == diagnostic_id]

    def get_statistics(self) -> Dict[str, int]:
        rel = self.relational
        return {
            "aspectCount": len(self.aspect_scores),
            "productFactorCount": len(rel.product_factors),
            "measureCount": len(rel.measures),
            "cweCount": len(rel.diagnostics),
            "findingCount": len(rel.findings),
            "pfMeasureCount": len(rel.pf_measures),
            "measureDiagnosticCount": len(rel.measure_diagnostics),
        }

    def summary(self) -> str:
        stats = self.get_statistics()
        lines = [
            f"Report: {self.name or '(unnamed)'}",
            f"TQI score:       {self.tqi_score:.4f}",
            f"Aspects:         {stats['aspectCount']}",
            f"Product factors: {stats['productFactorCount']}",
            f"Measures:        {stats['measureCount']}",
            f"Diagnostics:     {stats['cweCount']}",
            f"Findings:        {stats['findingCount']}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "tqiScore": self.tqi_score,
            "aspectScores": [a.to_dict() for a in self.aspect_scores],
            "productFactorsByAspect": {
                aspect: [pf.to_dict() for pf in pfs]
                for aspect, pfs in self.product_factors_by_aspect.items()
            },
            "relational": self.relational.to_dict(),
            "counts": self.get_statistics(),
        }

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (f"NormalizedReport(name={self.name!r}, product_factors={stats['productFactorCount']}, "
                f"measures={stats['measureCount']}, findings={stats['findingCount']})")
