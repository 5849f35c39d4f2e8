"""
Report Extractor

Builds NormalizedReport instances from raw PIQUE report documents:
- Nested PIQUE output ({"factors": {"tqi", "quality_aspects", "product_factors", ...}})
- Separated tables ({"measures", "productFactors", "edges", ...})
- JSON and YAML files

Features:
- Shape detection with schema validation
- Generic, stack-based descent over vulnerability-pillar subtrees
- Document-wide finding discovery in linear time
- Tolerant coercion: bad numbers become 0 / None, never exceptions
- Non-fatal anomalies collected on a ValidationResult
"""

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Set, Tuple, Union

from .json_tree import (
    JsonKind, Key, PRUNE, as_mapping, child_items, inline_child, child_keys, kind_of, walk,
)
from .report_model import (
    DIAGNOSTIC_NAME_PATTERN, VULN_PILLAR_PATTERN,
    Diagnostic, Finding, Measure, MeasureDiagnosticEdge, NormalizedReport,
    PFMeasureEdge, ProductFactor, QualityAspect, RelationalTables, ToolScore,
    coerce_thresholds, first_thresholds_len, in_unit_range, is_vuln_id,
    to_float, to_optional_float, to_text,
)

logger = logging.getLogger(__name__)

NESTED = "nested"
RELATIONAL = "relational"

RELATIONAL_KEYS = ("measures", "productFactors", "edges")

# Table keys of an exported NormalizedReport
RELATIONAL_TABLE_KEYS = ("productFactors", "measures", "pfMeasures")


class ReportSchemaError(ValueError):
    """Raised when a document does not have a recognizable report shape"""

    def __init__(self, message: str, validation: Optional["ValidationResult"] = None):
        super().__init__(message)
        self.validation = validation


# =============================================================================
# Validation Result
# =============================================================================

class ValidationResult:
    """
    Outcome of checking and extracting one document.

    ``schema_errors`` make a document unusable; ``warnings`` are anomalies
    extraction worked around; ``info`` notes what was detected.
    """

    SECTIONS = (("schema_errors", "Schema errors"), ("warnings", "Warnings"), ("info", "Info"))

    def __init__(self):
        self.schema_errors: List[str] = []
        self.warnings: List[str] = []
        self.info: List[str] = []

    @property
    def is_valid(self) -> bool:
        return not self.schema_errors

    def add_schema_error(self, msg: str) -> None:
        self.schema_errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.info.append(msg)

    def merge(self, other: 'ValidationResult') -> None:
        for attr, _ in self.SECTIONS:
            getattr(self, attr).extend(getattr(other, attr))

    def summary(self, limit: int = 5) -> str:
        """Readable listing, at most ``limit`` messages per section"""
        lines = ["Valid" if self.is_valid else "Invalid"]
        for attr, title in self.SECTIONS:
            messages = getattr(self, attr)
            if not messages:
                continue
            lines.append(f"{title} ({len(messages)}):")
            lines.extend(f"  - {m}" for m in messages[:limit])
            if len(messages) > limit:
                lines.append(f"  ... and {len(messages) - limit} more")
        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "schemaErrors": list(self.schema_errors),
            "warnings": list(self.warnings),
            "info": list(self.info),
        }

    def __repr__(self) -> str:
        return (f"ValidationResult(valid={self.is_valid}, schema_errors={len(self.schema_errors)}, "
                f"warnings={len(self.warnings)})")


# =============================================================================
# Table Builder
# =============================================================================

class NodeRole(Enum):
    """What an object node of a report subtree represents"""
    FINDING = "finding"
    DIAGNOSTIC = "diagnostic"
    MEASURE = "measure"
    CONTAINER = "container"


class _TableBuilder:
    """
    Mutable accumulator frozen into RelationalTables at the end of a build.

    Rows are keyed by id and the first occurrence in document order wins;
    findings are the exception and merge across occurrences.
    """

    def __init__(self, validation: ValidationResult):
        self.validation = validation
        self.product_factors: Dict[str, ProductFactor] = {}
        self.measures: Dict[str, Measure] = {}
        self.diagnostics: Dict[str, Diagnostic] = {}
        self.findings: Dict[str, Finding] = {}
        self.pf_measures: Dict[Tuple[str, str], PFMeasureEdge] = {}
        self.measure_diagnostics: Dict[Tuple[str, str], MeasureDiagnosticEdge] = {}

    def _check_range(self, kind: str, ident: str, value: Optional[float]) -> None:
        if not in_unit_range(value):
            msg = f"{kind} '{ident}' has value {value} outside [0, 1]"
            self.validation.add_warning(msg)
            logger.warning(msg)

    def add_product_factor(self, pf: ProductFactor) -> ProductFactor:
        if pf.id not in self.product_factors:
            self._check_range("Product factor", pf.name, pf.value)
            self.product_factors[pf.id] = pf
        return self.product_factors[pf.id]

    def add_measure(self, measure: Measure) -> Measure:
        if measure.id not in self.measures:
            self._check_range("Measure", measure.name, measure.score)
            self.measures[measure.id] = measure.with_weight(None)
        return self.measures[measure.id]

    def add_diagnostic(self, diagnostic: Diagnostic) -> Diagnostic:
        return self.diagnostics.setdefault(diagnostic.id, diagnostic)

    def add_finding(self, finding: Finding) -> Finding:
        existing = self.findings.get(finding.id)
        merged = finding if existing is None else existing.merged_with(finding)
        self.findings[finding.id] = merged
        return merged

    def link_measure(self, pf_id: str, measure_id: str, weight: Optional[float]) -> None:
        if (pf_id, measure_id) not in self.pf_measures:
            self._check_range("Weight of measure", f"{pf_id}::{measure_id}", weight)
            self.pf_measures[(pf_id, measure_id)] = PFMeasureEdge(pf_id, measure_id, weight)

    def link_diagnostic(self, measure_id: str, diagnostic_id: str) -> None:
        self.measure_diagnostics.setdefault(
            (measure_id, diagnostic_id), MeasureDiagnosticEdge(measure_id, diagnostic_id))

    def freeze(self) -> RelationalTables:
        return RelationalTables(
            product_factors=tuple(self.product_factors.values()),
            measures=tuple(self.measures.values()),
            diagnostics=tuple(self.diagnostics.values()),
            findings=tuple(self.findings.values()),
            pf_measures=tuple(self.pf_measures.values()),
            measure_diagnostics=tuple(self.measure_diagnostics.values()),
        )


# =============================================================================
# Report Extractor
# =============================================================================

class ReportExtractor:
    """
    Builds NormalizedReport instances from raw report documents

    Both accepted shapes converge on the same model: build_from_nested()
    for PIQUE "factors" output and build_from_relational() for documents
    that already carry separated tables. build_from_dict() picks one.
    """

    def __init__(self, pillar_pattern: Union[str, Pattern, None] = None):
        self.logger = logging.getLogger(__name__)
        self.validation: ValidationResult = ValidationResult()
        if pillar_pattern is None:
            self.pillar_pattern = VULN_PILLAR_PATTERN
        elif isinstance(pillar_pattern, str):
            self.pillar_pattern = re.compile(pillar_pattern, re.IGNORECASE)
        else:
            self.pillar_pattern = pillar_pattern

    # -------------------------------------------------------------------------
    # Shape Detection & Schema Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def detect_shape(data: Any) -> Optional[str]:
        """Return "nested", "relational" or None when neither shape is recognizable."""
        if kind_of(data) is not JsonKind.OBJECT:
            return None
        if kind_of(data.get("factors")) is JsonKind.OBJECT:
            return NESTED
        if any(key in data for key in RELATIONAL_KEYS):
            return RELATIONAL
        tables = data.get("relational")
        if kind_of(tables) is JsonKind.OBJECT and any(key in tables for key in RELATIONAL_TABLE_KEYS):
            return RELATIONAL
        return None

    def validate_schema(self, data: Any) -> ValidationResult:
        """
        Check that a document has a recognizable report shape

        Args:
            data: Raw document

        Returns:
            ValidationResult with schema errors for unusable documents and
            warnings for sections of the wrong type (treated as empty)
        """
        result = ValidationResult()

        if kind_of(data) is not JsonKind.OBJECT:
            result.add_schema_error(f"Expected object, got {type(data).__name__}")
            return result

        shape = self.detect_shape(data)
        if shape is None:
            if "factors" in data:
                result.add_schema_error(
                    f"factors: Expected object, got {type(data['factors']).__name__}")
            else:
                result.add_schema_error(
                    "Missing report sections: expected 'factors' or one of "
                    + ", ".join(f"'{k}'" for k in RELATIONAL_KEYS))
            return result

        if shape == NESTED:
            factors = data["factors"]
            for section in ("tqi", "quality_aspects", "product_factors", "measures", "diagnostics"):
                if section in factors and kind_of(factors[section]) is not JsonKind.OBJECT:
                    result.add_warning(
                        f"factors.{section}: Expected object, got {type(factors[section]).__name__}; treated as empty")
            if "quality_aspects" not in factors and "product_factors" not in factors:
                result.add_info("Report has no quality aspects or product factors")
        else:
            for section in ("measures", "productFactors", "diagnostics", "findings"):
                if section in data and kind_of(data[section]) is JsonKind.SCALAR:
                    result.add_warning(
                        f"{section}: Expected object or array, got {type(data[section]).__name__}; treated as empty")
            if "edges" in data and kind_of(data["edges"]) is not JsonKind.OBJECT:
                result.add_warning(f"edges: Expected object, got {type(data['edges']).__name__}; treated as empty")

        result.add_info(f"Detected {shape} report shape")
        return result

    # -------------------------------------------------------------------------
    # Build from Dictionary
    # -------------------------------------------------------------------------

    def build_from_dict(self, data: Any, name: str = "") -> NormalizedReport:
        """
        Build a NormalizedReport from a raw document of either shape

        Raises:
            ReportSchemaError: If the document is not a mapping or carries
                neither recognizable top-level section
        """
        schema = self.validate_schema(data)
        if not schema.is_valid:
            self.validation = schema
            raise ReportSchemaError(schema.schema_errors[0], schema)

        if self.detect_shape(data) == NESTED:
            report = self.build_from_nested(data, name)
        else:
            report = self.build_from_relational(data, name)

        schema.merge(self.validation)
        self.validation = schema
        return report

    def build_from_dict_validated(self, data: Any,
                                  name: str = "") -> Tuple[Optional[NormalizedReport], ValidationResult]:
        """
        Build with schema validation, without raising on bad shape

        Returns:
            Tuple of (NormalizedReport or None when the schema is invalid, ValidationResult)
        """
        schema = self.validate_schema(data)
        if not schema.is_valid:
            self.validation = schema
            return None, schema
        report = self.build_from_dict(data, name)
        return report, self.validation

    # -------------------------------------------------------------------------
    # Nested (PIQUE) Shape
    # -------------------------------------------------------------------------

    def build_from_nested(self, data: Dict, name: str = "") -> NormalizedReport:
        """
        Build from PIQUE output: {"factors": {"tqi", "quality_aspects", "product_factors"}}

        Flat "measures" and "diagnostics" sections are looked up under
        "factors" first, then at the top level of the document.
        """
        self.validation = ValidationResult()
        tables = _TableBuilder(self.validation)
        factors = as_mapping(data.get("factors"))

        measure_pool = self._merge_pools(factors.get("measures"), data.get("measures"))
        diagnostic_pool = self._merge_pools(factors.get("diagnostics"), data.get("diagnostics"))
        factor_pool = as_mapping(factors.get("product_factors"))

        aspects: List[QualityAspect] = []
        by_aspect: Dict[str, Tuple[ProductFactor, ...]] = {}
        built: Dict[str, ProductFactor] = {}

        for aspect_name, aspect_node in as_mapping(factors.get("quality_aspects")).items():
            aspect_node = as_mapping(aspect_node)
            aspects.append(QualityAspect(name=str(aspect_name), score=to_float(aspect_node.get("value"))))

            children = aspect_node.get("children")
            members: List[ProductFactor] = []
            for key in child_keys(children):
                if key not in built:
                    pf_node = factor_pool.get(key)
                    if kind_of(pf_node) is not JsonKind.OBJECT:
                        pf_node = inline_child(children, key)
                    if pf_node is None:
                        self.validation.add_warning(
                            f"Aspect '{aspect_name}' references unknown product factor '{key}'")
                        continue
                    built[key] = self._build_factor(
                        tables, key, pf_node, str(aspect_name), measure_pool, diagnostic_pool)
                members.append(built[key])
            by_aspect[str(aspect_name)] = tuple(members)

        for key, pf_node in factor_pool.items():
            if key in built:
                continue
            if kind_of(pf_node) is not JsonKind.OBJECT:
                self.validation.add_warning(f"Product factor '{key}' is not an object; skipped")
                continue
            built[key] = self._build_factor(tables, key, pf_node, "", measure_pool, diagnostic_pool)

        # Flat measures that no factor referenced still belong to the report
        for key, node in measure_pool.items():
            measure = self._measure_from_node(key, node)
            if measure.id not in tables.measures:
                self._descend(tables, None, [(0, key)], {}, False, measure_pool, diagnostic_pool)

        for key, node in diagnostic_pool.items():
            tables.add_diagnostic(self._diagnostic_from_node(key, node))

        self._discover_findings(tables, data)

        report = NormalizedReport(
            name=name or to_text(data.get("name")),
            tqi_score=self._nested_tqi(factors),
            aspect_scores=tuple(aspects),
            product_factors_by_aspect=by_aspect,
            relational=tables.freeze(),
            source_shape=NESTED,
        )
        self._log_summary(report)
        return report

    @staticmethod
    def _merge_pools(*sections: Any) -> Dict[str, Any]:
        pool: Dict[str, Any] = {}
        for section in sections:
            for key, node in as_mapping(section).items():
                pool.setdefault(str(key), node)
        return pool

    @staticmethod
    def _nested_tqi(factors: Dict) -> float:
        """Score of the first entry of factors.tqi (0 when absent or non-numeric)."""
        tqi = as_mapping(factors.get("tqi"))
        if not tqi:
            return 0.0
        first = next(iter(tqi.values()))
        if kind_of(first) is JsonKind.OBJECT:
            return to_float(first.get("value"))
        return to_float(tqi.get("value"))

    def _build_factor(self, tables: _TableBuilder, key: str, node: Dict, aspect_name: str,
                      measure_pool: Dict, diagnostic_pool: Dict) -> ProductFactor:
        name = to_text(node.get("name")) or key
        pillar = bool(self.pillar_pattern.search(name) or self.pillar_pattern.search(key))
        roots = list(child_items(node.get("children")))

        measures = self._descend(tables, key, roots, node, pillar, measure_pool, diagnostic_pool)

        explicit = to_optional_float(node.get("benchmarkSize", node.get("benchmark_size")))
        benchmark_size = int(explicit) if explicit is not None else first_thresholds_len(measures)

        pf = ProductFactor(
            id=key,
            name=name,
            value=to_float(node.get("value")),
            description=to_text(node.get("description")),
            benchmark_size=benchmark_size,
            aspect_name=aspect_name,
            measures=tuple(measures),
        )
        self.logger.debug(f"Product factor '{name}': {len(measures)} measures (pillar={pillar})")
        return tables.add_product_factor(pf)

    # -------------------------------------------------------------------------
    # Measure Descent
    # -------------------------------------------------------------------------

    def _classify(self, key: Key, node: Dict) -> NodeRole:
        label = to_text(node.get("name")) or (key if isinstance(key, str) else "")
        if is_vuln_id(key) or is_vuln_id(node.get("id")) or is_vuln_id(node.get("name")):
            return NodeRole.FINDING
        if "toolName" in node or DIAGNOSTIC_NAME_PATTERN.search(label):
            return NodeRole.DIAGNOSTIC
        if "value" in node or "score" in node or "thresholds" in node:
            return NodeRole.MEASURE
        return NodeRole.CONTAINER

    def _resolve_ref(self, ref: str, enclosing: Optional[str],
                     measure_pool: Dict, diagnostic_pool: Dict) -> Tuple[Any, Optional[NodeRole]]:
        """Resolve a list-of-keys child: measures at factor level, diagnostics first below a measure."""
        if enclosing is not None and kind_of(diagnostic_pool.get(ref)) is JsonKind.OBJECT:
            return diagnostic_pool[ref], NodeRole.DIAGNOSTIC
        if kind_of(measure_pool.get(ref)) is JsonKind.OBJECT:
            return measure_pool[ref], NodeRole.MEASURE
        if not is_vuln_id(ref):
            self.logger.debug(f"Unresolved child reference '{ref}'")
        return None, None

    def _descend(self, tables: _TableBuilder, pf_id: Optional[str], roots: List[Tuple[Key, Any]],
                 owner: Dict, pillar: bool, measure_pool: Dict, diagnostic_pool: Dict) -> List[Measure]:
        """
        Collect the measures below one product factor.

        Pillar factors are searched through their whole subtree; other
        factors only take direct children as measures, plus diagnostics
        under those measures. Returns the factor's nested measure view,
        each copy carrying its edge weight.
        """
        nested: List[Measure] = []
        seen: Set[str] = set()

        # (key, value, owning node, enclosing measure id, measure depth)
        stack: List[Tuple[Key, Any, Dict, Optional[str], int]] = [
            (k, v, owner, None, 0) for k, v in reversed(roots)
        ]

        while stack:
            key, value, parent, enclosing, depth = stack.pop()
            role = None

            if isinstance(value, str):
                if not isinstance(key, int):
                    continue
                key = value
                value, role = self._resolve_ref(value, enclosing, measure_pool, diagnostic_pool)

            kind = kind_of(value)
            if kind is JsonKind.ARRAY:
                stack.extend((k, v, parent, enclosing, depth) for k, v in reversed(list(child_items(value))))
                continue
            if kind is not JsonKind.OBJECT:
                continue

            role = role or self._classify(key, value)

            if role is NodeRole.FINDING:
                continue

            if role is NodeRole.DIAGNOSTIC:
                diagnostic = tables.add_diagnostic(self._diagnostic_from_node(key, value))
                if enclosing is not None:
                    tables.link_diagnostic(enclosing, diagnostic.id)
                continue

            if role is NodeRole.MEASURE:
                if depth >= 1 and not pillar:
                    continue
                measure = self._measure_from_node(key, value)
                if measure.id in seen:
                    continue
                seen.add(measure.id)
                weight = self._edge_weight(parent, key, value, measure)
                tables.add_measure(measure)
                if pf_id is not None:
                    tables.link_measure(pf_id, measure.id, weight)
                    nested.append(measure.with_weight(weight))
                stack.extend((k, v, value, measure.id, depth + 1)
                             for k, v in reversed(list(child_items(value))))
                continue

            if depth == 0 and not pillar:
                continue
            stack.extend((k, v, parent, enclosing, depth) for k, v in reversed(list(child_items(value))))

        return nested

    @staticmethod
    def _edge_weight(parent: Dict, key: Key, node: Dict, measure: Measure) -> Optional[float]:
        weights = as_mapping(parent.get("weights"))
        for candidate in (key, measure.name, measure.id):
            if isinstance(candidate, str) and candidate in weights:
                return to_optional_float(weights[candidate])
        return to_optional_float(node.get("weight"))

    @staticmethod
    def _measure_from_node(key: Key, node: Any) -> Measure:
        node = as_mapping(node)
        fallback = key if isinstance(key, str) else ""
        measure_id = to_text(node.get("id")) or to_text(node.get("name")) or fallback
        return Measure(
            id=measure_id,
            name=to_text(node.get("name")) or measure_id,
            description=to_text(node.get("description")),
            score=to_float(node.get("value", node.get("score"))),
            weight=to_optional_float(node.get("weight")),
            thresholds=coerce_thresholds(node.get("thresholds", node.get("threshold"))),
        )

    @staticmethod
    def _diagnostic_from_node(key: Key, node: Any) -> Diagnostic:
        node = as_mapping(node)
        fallback = key if isinstance(key, str) else ""
        diagnostic_id = to_text(node.get("id")) or to_text(node.get("name")) or fallback
        return Diagnostic(
            id=diagnostic_id,
            name=to_text(node.get("name")) or diagnostic_id,
            tool_name=to_text(node.get("toolName", node.get("tool_name"))),
            value=to_optional_float(node.get("value")),
            description=to_text(node.get("description")),
        )

    # -------------------------------------------------------------------------
    # Finding Discovery
    # -------------------------------------------------------------------------

    @staticmethod
    def _finding_from_node(finding_id: str, node: Any, diagnostic: Optional[Diagnostic]) -> Finding:
        node = as_mapping(node)
        raw_tools = node.get("byTool")
        if kind_of(raw_tools) is JsonKind.ARRAY:
            by_tool = tuple(
                ToolScore(tool=to_text(t.get("tool")), score=to_optional_float(t.get("score")))
                for t in raw_tools if kind_of(t) is JsonKind.OBJECT
            )
        elif diagnostic is not None and diagnostic.tool_name:
            by_tool = (ToolScore(diagnostic.tool_name, to_optional_float(node.get("value"))),)
        else:
            by_tool = ()

        return Finding(
            id=finding_id.strip(),
            diagnostic_id=to_text(node.get("diagnosticId")) or (diagnostic.id if diagnostic else ""),
            vuln_source=to_text(node.get("vulnSource")),
            vuln_source_version=to_text(node.get("vulnSourceVersion")).strip(),
            fixed=node.get("fixed"),
            fixed_version=to_text(node.get("fixedVersion")),
            description=to_text(node.get("description")),
            alias=to_text(node.get("alias")),
            by_tool=by_tool,
        )

    def _discover_findings(self, tables: _TableBuilder, data: Any) -> None:
        """
        One document-wide walk collecting CVE/GHSA identifiers.

        Identifiers count as mapping keys, as the id or name of an object,
        and as any string value outside a finding node. The nearest
        enclosing diagnostic is carried as walk context.
        """
        def visit(key: Key, value: Any, diagnostic: Optional[Diagnostic]) -> Any:
            kind = kind_of(value)
            if kind is JsonKind.OBJECT:
                role = self._classify(key, value)
                if role is NodeRole.FINDING:
                    for candidate in (value.get("id"), value.get("name"), key):
                        if is_vuln_id(candidate):
                            tables.add_finding(self._finding_from_node(candidate, value, diagnostic))
                            break
                    return PRUNE
                if role is NodeRole.DIAGNOSTIC:
                    return tables.add_diagnostic(self._diagnostic_from_node(key, value))
                return diagnostic
            if kind is JsonKind.SCALAR:
                if isinstance(value, str) and is_vuln_id(value):
                    tables.add_finding(self._finding_from_node(value, {}, diagnostic))
                elif is_vuln_id(key):
                    tables.add_finding(self._finding_from_node(key, {"value": value}, diagnostic))
            return diagnostic

        visited = walk(data, visit)
        self.logger.debug(f"Finding discovery visited {visited} values, found {len(tables.findings)} findings")

    # -------------------------------------------------------------------------
    # Relational Shape
    # -------------------------------------------------------------------------

    def build_from_relational(self, data: Dict, name: str = "") -> NormalizedReport:
        """
        Build from separated tables:

            {"productFactors": [...] | {id: row},
             "measures": [...] | {id: row},
             "edges": {"pfMeasures": [...], "measureDiagnostics": [...]},
             "diagnostics", "findings", "qualityAspects", "tqi" (optional)}

        The NormalizedReport.to_dict() layout, tables under "relational"
        next to "name", "tqiScore" and "aspectScores", is accepted too.

        Product factors carry no nested measures in this shape; their
        measure sets come from the edge tables.
        """
        data = self._lift_tables(data)
        self.validation = ValidationResult()
        tables = _TableBuilder(self.validation)

        for key, row in self._rows(data.get("measures"), "measures"):
            tables.add_measure(self._measure_from_node(key, row))
        for key, row in self._rows(data.get("diagnostics"), "diagnostics"):
            tables.add_diagnostic(self._diagnostic_from_node(key, row))
        for key, row in self._rows(data.get("findings"), "findings"):
            finding_id = to_text(row.get("id")) or (key or "")
            if not is_vuln_id(finding_id):
                self.validation.add_warning(f"findings: skipped row with non-CVE/GHSA id {finding_id!r}")
                continue
            tables.add_finding(self._finding_from_node(finding_id, row, None))

        edges = as_mapping(data.get("edges"))
        for row in self._edge_rows(edges, data, "pfMeasures"):
            tables.link_measure(to_text(row.get("pfId")), to_text(row.get("measureId")),
                                to_optional_float(row.get("weight")))
        for row in self._edge_rows(edges, data, "measureDiagnostics"):
            tables.link_diagnostic(to_text(row.get("measureId")), to_text(row.get("diagnosticId")))

        # Factor rows are built after the edges so benchmark size can follow them
        lookup = RelationalTables(measures=tuple(tables.measures.values()),
                                  pf_measures=tuple(tables.pf_measures.values()))
        for key, row in self._rows(data.get("productFactors"), "productFactors"):
            pf_id = to_text(row.get("id")) or (key or "") or to_text(row.get("name"))
            pf_name = to_text(row.get("name")) or pf_id
            explicit = to_optional_float(row.get("benchmarkSize", row.get("benchmark_size")))
            if explicit is not None:
                benchmark_size = int(explicit)
            else:
                benchmark_size = first_thresholds_len(lookup.measures_via_edges(pf_id, pf_name))
            tables.add_product_factor(ProductFactor(
                id=pf_id,
                name=pf_name,
                value=to_float(row.get("value", row.get("score"))),
                description=to_text(row.get("description")),
                benchmark_size=benchmark_size,
                aspect_name=to_text(row.get("aspectName", row.get("aspect"))),
            ))

        self._check_edges(tables)
        self._discover_findings(tables, data)

        aspects = self._relational_aspects(data.get("qualityAspects", data.get("aspects")))
        by_aspect: Dict[str, List[ProductFactor]] = {a.name: [] for a in aspects}
        for pf in tables.product_factors.values():
            if pf.aspect_name:
                by_aspect.setdefault(pf.aspect_name, []).append(pf)

        report = NormalizedReport(
            name=name or to_text(data.get("name")),
            tqi_score=self._relational_tqi(data),
            aspect_scores=tuple(aspects),
            product_factors_by_aspect={k: tuple(v) for k, v in by_aspect.items()},
            relational=tables.freeze(),
            source_shape=RELATIONAL,
        )
        self._log_summary(report)
        return report

    @staticmethod
    def _lift_tables(data: Dict) -> Dict:
        tables = data.get("relational")
        if any(key in data for key in RELATIONAL_KEYS) or kind_of(tables) is not JsonKind.OBJECT:
            return data
        lifted = dict(tables)
        lifted.setdefault("name", data.get("name"))
        lifted.setdefault("tqiScore", data.get("tqiScore"))
        lifted.setdefault("qualityAspects", data.get("aspectScores"))
        return lifted

    def _rows(self, section: Any, label: str) -> List[Tuple[Optional[str], Dict]]:
        """Rows of a table given either as a list of objects or as an id -> object mapping."""
        kind = kind_of(section)
        if kind is JsonKind.OBJECT:
            items = [(str(k), v) for k, v in section.items()]
        elif kind is JsonKind.ARRAY:
            items = [(None, v) for v in section]
        else:
            return []

        rows = []
        for key, row in items:
            if kind_of(row) is not JsonKind.OBJECT:
                self.validation.add_warning(f"{label}: skipped non-object row {row!r}")
                continue
            rows.append((key, row))
        return rows

    @staticmethod
    def _edge_rows(edges: Dict, data: Dict, name: str) -> List[Dict]:
        rows = edges.get(name, data.get(name))
        if kind_of(rows) is not JsonKind.ARRAY:
            return []
        return [r for r in rows if kind_of(r) is JsonKind.OBJECT]

    def _check_edges(self, tables: _TableBuilder) -> None:
        factor_keys = set(tables.product_factors)
        factor_keys.update(pf.name for pf in tables.product_factors.values())
        for edge in tables.pf_measures.values():
            if edge.pf_id not in factor_keys:
                self._dangling(f"PF-Measure edge references unknown product factor '{edge.pf_id}'")
            if edge.measure_id not in tables.measures:
                self._dangling(f"PF-Measure edge references unknown measure '{edge.measure_id}'")
        for edge in tables.measure_diagnostics.values():
            if edge.measure_id not in tables.measures:
                self._dangling(f"Measure-Diagnostic edge references unknown measure '{edge.measure_id}'")
            if edge.diagnostic_id not in tables.diagnostics:
                self._dangling(f"Measure-Diagnostic edge references unknown diagnostic '{edge.diagnostic_id}'")

    def _dangling(self, msg: str) -> None:
        self.validation.add_warning(msg)
        self.logger.warning(msg)

    @staticmethod
    def _relational_aspects(section: Any) -> List[QualityAspect]:
        aspects = []
        if kind_of(section) is JsonKind.OBJECT:
            for aspect_name, node in section.items():
                if kind_of(node) is JsonKind.OBJECT:
                    score = to_float(node.get("value", node.get("score")))
                else:
                    score = to_float(node)
                aspects.append(QualityAspect(str(aspect_name), score))
        elif kind_of(section) is JsonKind.ARRAY:
            for node in section:
                if kind_of(node) is JsonKind.OBJECT and to_text(node.get("name")):
                    aspects.append(QualityAspect(to_text(node.get("name")),
                                                 to_float(node.get("score", node.get("value")))))
        return aspects

    def _relational_tqi(self, data: Dict) -> float:
        tqi = data.get("tqi", data.get("tqiScore"))
        if kind_of(tqi) is JsonKind.OBJECT:
            return self._nested_tqi({"tqi": tqi})
        return to_float(tqi)

    # -------------------------------------------------------------------------
    # Build from Files
    # -------------------------------------------------------------------------

    def build_from_json(self, filepath: str) -> NormalizedReport:
        """
        Build a NormalizedReport from a JSON file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ReportSchemaError: If the file is not valid JSON or not a report
        """
        self.logger.info(f"Extracting report from JSON: {filepath}")

        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ReportSchemaError(f"{filepath}: invalid JSON ({e})") from e

        return self.build_from_dict(data, name=path.stem)

    def build_from_yaml(self, filepath: str) -> NormalizedReport:
        """
        Build a NormalizedReport from a YAML file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ReportSchemaError: If the file is not valid YAML or not a report
        """
        import yaml

        self.logger.info(f"Extracting report from YAML: {filepath}")

        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        with open(path, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ReportSchemaError(f"{filepath}: invalid YAML ({e})") from e

        return self.build_from_dict(data, name=path.stem)

    def auto_build(self, filepath: str) -> NormalizedReport:
        """Pick the loader by file suffix (.yaml/.yml, else JSON)."""
        if Path(filepath).suffix.lower() in ('.yaml', '.yml'):
            return self.build_from_yaml(filepath)
        return self.build_from_json(filepath)

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _log_summary(self, report: NormalizedReport) -> None:
        stats = report.get_statistics()
        self.logger.info(
            f"Extracted report: {stats['productFactorCount']} product factors, "
            f"{stats['measureCount']} measures, {stats['cweCount']} diagnostics, "
            f"{stats['findingCount']} findings"
        )
        if self.validation.warnings:
            self.logger.debug(f"Extraction produced {len(self.validation.warnings)} warnings")


# =============================================================================
# Module Functions
# =============================================================================

def extract(document: Any, pillar_pattern: Union[str, Pattern, None] = None) -> NormalizedReport:
    """Normalize one raw report document (either shape)."""
    return ReportExtractor(pillar_pattern).build_from_dict(document)


def parse_tqi_qa_scores(document: Any) -> Dict[str, Any]:
    """
    Lightweight score summary: the TQI score and the quality-aspect scores.

    Returns:
        {"tqiScore": float, "aspects": [{"name": str, "value": float}, ...]}
    """
    if kind_of(document) is not JsonKind.OBJECT:
        raise ReportSchemaError(f"Expected object, got {type(document).__name__}")
    factors = as_mapping(document.get("factors"))
    return {
        "tqiScore": ReportExtractor._nested_tqi(factors),
        "aspects": [
            {"name": str(name), "value": to_float(as_mapping(node).get("value"))}
            for name, node in as_mapping(factors.get("quality_aspects")).items()
        ],
    }
