"""
piquediff Core Module

Normalization of PIQUE quality-assessment reports.

Report Model:
    Entities: QualityAspect, ProductFactor, Measure, Diagnostic, Finding
    Edges: PF_MEASURE (weighted), MEASURE_DIAGNOSTIC
    Implicit: Diagnostic -> Finding via Finding.diagnostic_id

Usage:
    # Extract a report
    from piquediff.core import ReportExtractor
    report = ReportExtractor().auto_build("report.json")
    print(report.summary())

    # From an already-parsed document
    from piquediff.core import extract
    report = extract(document)

    # Export the entity graph
    from piquediff.core import ReportExporter
    ReportExporter(report).export_graphml("report.graphml")
"""

# Report Model - Data structures
from .report_model import (
    # Enums
    FixStatus,
    EntityType,
    EdgeType,
    # Entities
    QualityAspect,
    ProductFactor,
    Measure,
    Diagnostic,
    Finding,
    ToolScore,
    # Edges
    PFMeasureEdge,
    MeasureDiagnosticEdge,
    # Model
    RelationalTables,
    NormalizedReport,
    # Helpers
    is_vuln_id,
    to_optional_float,
)

# Report Extractor - Build models from documents
from .report_extractor import (
    ReportExtractor,
    ReportSchemaError,
    ValidationResult,
    extract,
    parse_tqi_qa_scores,
)

# Report Exporter - JSON / NetworkX / GraphML
from .report_exporter import (
    ReportExporter,
)

from .labels import (
    clean_assoc_label,
    parse_diagnostic_name,
)

__all__ = [
    # Enums
    "FixStatus",
    "EntityType",
    "EdgeType",
    # Entities
    "QualityAspect",
    "ProductFactor",
    "Measure",
    "Diagnostic",
    "Finding",
    "ToolScore",
    # Edges
    "PFMeasureEdge",
    "MeasureDiagnosticEdge",
    # Model
    "RelationalTables",
    "NormalizedReport",
    "is_vuln_id",
    "to_optional_float",
    # Extractor
    "ReportExtractor",
    "ReportSchemaError",
    "ValidationResult",
    "extract",
    "parse_tqi_qa_scores",
    # Exporter
    "ReportExporter",
    # Labels
    "clean_assoc_label",
    "parse_diagnostic_name",
]
