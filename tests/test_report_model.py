"""
Unit Tests for piquediff.core.report_model and piquediff.core.labels
"""

import math

import pytest

from piquediff.core.labels import clean_assoc_label, format_tool_list, parse_diagnostic_name
from piquediff.core.report_model import (
    Finding,
    FixStatus,
    Measure,
    NormalizedReport,
    PFMeasureEdge,
    ProductFactor,
    RelationalTables,
    ToolScore,
    first_thresholds_len,
    is_vuln_id,
    to_float,
    to_optional_float,
    to_text,
)


# =============================================================================
# Coercion Tests
# =============================================================================

class TestCoercion:
    """Loosely-typed values coerce to safe defaults."""

    @pytest.mark.parametrize("raw,expected", [
        (0.5, 0.5),
        (1, 1.0),
        ("0.5", None),
        (None, None),
        (True, None),
        ([0.5], None),
        (math.nan, None),
        (math.inf, None),
    ])
    def test_to_optional_float(self, raw, expected):
        assert to_optional_float(raw) == expected

    def test_to_float_default(self):
        assert to_float("high") == 0.0
        assert to_float(None, default=-1.0) == -1.0
        assert to_float(1.25) == 1.25

    def test_to_text(self):
        assert to_text(None) == ""
        assert to_text("x") == "x"
        assert to_text(3) == "3"
        assert to_text({"a": 1}) == ""


class TestVulnId:
    """CVE / GHSA identifier recognition."""

    @pytest.mark.parametrize("value", ["CVE-2024-1", "cve-2021-44228", "GHSA-abcd-1234-wxyz", " CVE-1 "])
    def test_recognized(self, value):
        assert is_vuln_id(value)

    @pytest.mark.parametrize("value", ["CWE-79", "Product_Factor CVE-1", "", None, 2024])
    def test_rejected(self, value):
        assert not is_vuln_id(value)


# =============================================================================
# FixStatus Tests
# =============================================================================

class TestFixStatus:
    """Tri-state normalization of the fixed flag."""

    @pytest.mark.parametrize("raw", [True, "true", "TRUE", " fixed ", "Fixed"])
    def test_fixed(self, raw):
        assert FixStatus.from_raw(raw) is FixStatus.FIXED

    @pytest.mark.parametrize("raw", [False, "false", "Not Fixed", " not fixed"])
    def test_not_fixed(self, raw):
        assert FixStatus.from_raw(raw) is FixStatus.NOT_FIXED

    @pytest.mark.parametrize("raw", [None, "", "maybe", 1, 0, "notfixed"])
    def test_unknown(self, raw):
        assert FixStatus.from_raw(raw) is FixStatus.UNKNOWN


# =============================================================================
# Entity Tests
# =============================================================================

class TestFinding:
    """Tests for Finding merging and serialization."""

    def test_merge_fills_empty_fields_and_unions_tools(self):
        first = Finding(id="CVE-1", vuln_source="openssl", by_tool=(ToolScore("grype", 0.9),))
        later = Finding(id="CVE-1", vuln_source="other", fixed_version="3.0.8",
                        by_tool=(ToolScore("grype", 0.9), ToolScore("trivy", 0.7)))

        merged = first.merged_with(later)

        assert merged.vuln_source == "openssl"
        assert merged.fixed_version == "3.0.8"
        assert merged.by_tool == (ToolScore("grype", 0.9), ToolScore("trivy", 0.7))

    def test_same_tool_different_score_kept(self):
        first = Finding(id="CVE-1", by_tool=(ToolScore("grype", 0.9),))
        merged = first.merged_with(Finding(id="CVE-1", by_tool=(ToolScore("grype", 0.5),)))
        assert len(merged.by_tool) == 2
        assert merged.tool_names == frozenset({"grype"})

    def test_to_dict_uses_camel_case(self):
        finding = Finding(id="CVE-1", diagnostic_id="d1", vuln_source_version="1.0", fixed="true")
        data = finding.to_dict()
        assert data["diagnosticId"] == "d1"
        assert data["vulnSourceVersion"] == "1.0"
        assert data["fixStatus"] == "fixed"
        assert data["byTool"] == []


class TestBenchmarkSize:
    """Benchmark size from the first non-empty thresholds list."""

    def test_first_non_empty(self):
        measures = [Measure("a", "a"), Measure("b", "b", thresholds=(1.0, 2.0)),
                    Measure("c", "c", thresholds=(1.0, 2.0, 3.0))]
        assert first_thresholds_len(measures) == 2

    def test_no_thresholds(self):
        assert first_thresholds_len([Measure("a", "a")]) == 0
        assert first_thresholds_len([]) == 0


# =============================================================================
# NormalizedReport Tests
# =============================================================================

class TestNormalizedReport:
    """Tests for report lookups."""

    def _lazy_report(self) -> NormalizedReport:
        tables = RelationalTables(
            product_factors=(ProductFactor(id="pf1", name="Factor A", value=0.5),),
            measures=(Measure("m1", "Completeness", score=0.4), Measure("m2", "Accuracy", score=0.6)),
            pf_measures=(PFMeasureEdge("pf1", "m1", 0.25), PFMeasureEdge("Factor A", "m2", 0.75),
                         PFMeasureEdge("pf1", "missing", 1.0)),
        )
        return NormalizedReport(name="lazy", relational=tables)

    def test_measures_for_edge_fallback(self):
        """Without nested measures the edge tables supply them, with edge weights."""
        report = self._lazy_report()
        pf = report.get_product_factor("Factor A")

        measures = report.measures_for(pf)

        assert [m.name for m in measures] == ["Completeness", "Accuracy"]
        assert [m.weight for m in measures] == [0.25, 0.75]

    def test_table_rows_keep_no_weight(self):
        report = self._lazy_report()
        assert all(m.weight is None for m in report.relational.measures)

    def test_measures_for_prefers_nested(self):
        nested = (Measure("m9", "Nested", score=0.1, weight=0.5),)
        pf = ProductFactor(id="pf1", name="Factor A", measures=nested)
        assert self._lazy_report().measures_for(pf) == nested

    def test_get_product_factor_unknown(self):
        assert self._lazy_report().get_product_factor("nope") is None

    def test_statistics_and_to_dict(self):
        report = self._lazy_report()
        stats = report.get_statistics()
        assert stats["productFactorCount"] == 1
        assert stats["measureCount"] == 2
        assert stats["cweCount"] == 0

        data = report.to_dict()
        assert set(data) == {"name", "tqiScore", "aspectScores", "productFactorsByAspect", "relational", "counts"}
        assert data["relational"]["pfMeasures"][0] == {"pfId": "pf1", "measureId": "m1", "weight": 0.25}
        assert "Product factors: 1" in report.summary()


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Tests for display label helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("Product_Factor CWE-664", "CWE-664"),
        ("CWE-79 Measure", "CWE-79"),
        ("Pillar Code_Quality", "Code-Quality"),
        ("Product Factor   Resource   Use Measure", "Resource Use"),
        ("  ", ""),
        (None, ""),
    ])
    def test_clean_assoc_label(self, raw, expected):
        assert clean_assoc_label(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("Null Dereference Diagnostic SpotBugs", ("Null Dereference", "SpotBugs")),
        ("CWE-400 diagnostic grype", ("CWE-400", "grype")),
        ("Plain name", ("Plain name", "")),
        ("", ("", "")),
    ])
    def test_parse_diagnostic_name(self, raw, expected):
        assert parse_diagnostic_name(raw) == expected

    def test_format_tool_list(self):
        assert format_tool_list(["trivy", " grype", "trivy", "", None]) == "grype, trivy"
