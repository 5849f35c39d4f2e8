"""
Unit Tests for piquediff.core.report_exporter
"""

import json

import networkx as nx
import pytest

from piquediff.core.report_exporter import ReportExporter, node_id
from piquediff.core.report_extractor import extract
from piquediff.core.report_model import EntityType


@pytest.fixture
def exporter(nested_report_data):
    return ReportExporter(extract(nested_report_data))


class TestEntityGraph:
    """Tests for the NetworkX entity graph."""

    def test_node_and_edge_counts(self, exporter):
        G = exporter.to_networkx()
        assert G.number_of_nodes() == 15
        assert G.number_of_edges() == 12

    def test_nodes_are_type_prefixed(self, exporter):
        G = exporter.to_networkx()
        types = {data["type"] for _, data in G.nodes(data=True)}
        assert types == {"QUALITY_ASPECT", "PRODUCT_FACTOR", "MEASURE", "DIAGNOSTIC", "FINDING"}
        assert "qa:Security" in G
        assert "pf:Product_Factor CWE-664" in G
        assert "m:CWE-400 Measure" in G
        assert "d:CWE-400 Diagnostic grype" in G
        assert "f:CVE-2024-0001" in G

    def test_node_id(self):
        assert node_id(EntityType.MEASURE, "Naming") == "m:Naming"

    def test_edges(self, exporter):
        G = exporter.to_networkx()
        assert G.has_edge("qa:Maintainability", "pf:Code Style")
        assert G.edges["pf:Product_Factor CWE-664", "m:CWE-400 Measure"]["weight"] == pytest.approx(0.6)
        assert G.has_edge("m:CWE-404 Measure", "d:CWE-404 Diagnostic trivy")
        assert G.has_edge("d:CWE-404 Diagnostic trivy", "f:GHSA-abcd-1234-wxyz")

    def test_graph_is_cached(self, exporter):
        assert exporter.to_networkx() is exporter.to_networkx()

    def test_reachable_findings(self, exporter):
        assert exporter.reachable_findings("Product_Factor CWE-664") == [
            "CVE-2024-0001", "GHSA-abcd-1234-wxyz",
        ]
        assert exporter.reachable_findings("Code Style") == []
        assert exporter.reachable_findings("Unknown") == []

    def test_dangling_edges_left_out(self, relational_report_data):
        relational_report_data["edges"]["pfMeasures"].append({"pfId": "pf9", "measureId": "CWE-20 Measure"})
        G = ReportExporter(extract(relational_report_data)).to_networkx()
        assert "pf:pf9" not in G
        assert G.number_of_edges() == 2 + 3 + 1 + 1

    def test_relational_factor_nodes_use_ids(self, relational_report_data):
        exporter = ReportExporter(extract(relational_report_data))
        G = exporter.to_networkx()
        assert G.nodes["pf:pf1"]["label"] == "Product_Factor CWE-664"
        assert exporter.reachable_findings("Product_Factor CWE-664") == ["CVE-2024-0001"]


class TestFileExport:
    """Tests for JSON and GraphML files."""

    def test_export_json(self, exporter, tmp_path):
        path = exporter.export_json(str(tmp_path / "out" / "report.json"))

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        assert data["name"] == "webgoat-v1"
        assert data["tqiScore"] == pytest.approx(0.62)
        assert data["counts"]["productFactorCount"] == 3
        assert data["_export"]["source_shape"] == "nested"

    def test_export_graphml(self, exporter, tmp_path):
        path = exporter.export_graphml(str(tmp_path / "report.graphml"))

        G = nx.read_graphml(path)

        assert G.number_of_nodes() == 15
        assert G.nodes["f:CVE-2024-0001"]["fix_status"] == "fixed"
