"""
Report Exporter

Exports NormalizedReport instances:
- JSON (the normalized model with counts)
- NetworkX DiGraph: aspect -> product factor -> measure -> diagnostic -> finding
- GraphML (via NetworkX)

Node ids carry a type prefix (qa:, pf:, m:, d:, f:) so that entities of
different types with equal names stay distinct.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import networkx as nx

from .report_model import EdgeType, EntityType, NormalizedReport

NODE_PREFIX = {
    EntityType.QUALITY_ASPECT: "qa:",
    EntityType.PRODUCT_FACTOR: "pf:",
    EntityType.MEASURE: "m:",
    EntityType.DIAGNOSTIC: "d:",
    EntityType.FINDING: "f:",
}


def node_id(entity_type: EntityType, key: str) -> str:
    return NODE_PREFIX[entity_type] + key


def _optional(**attrs: Any) -> Dict[str, Any]:
    """Drop None-valued attributes; GraphML cannot store None."""
    return {k: v for k, v in attrs.items() if v is not None}


class ReportExporter:
    """
    Exports a NormalizedReport to JSON, NetworkX and GraphML
    """

    def __init__(self, report: NormalizedReport, indent: Optional[int] = 2):
        self.report = report
        self.indent = indent
        self.logger = logging.getLogger(__name__)
        self._graph: Optional[nx.DiGraph] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.report.to_dict()
        data['_export'] = {
            'format': 'json',
            'source_shape': self.report.source_shape,
            'exported_at': datetime.now(timezone.utc).isoformat(),
        }
        return data

    def export_json(self, filepath: str) -> str:
        """Write the normalized model to a JSON file and return its path"""
        self.logger.info(f"Exporting report to JSON: {filepath}")
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=self.indent)
        return str(path)

    def export_graphml(self, filepath: str) -> str:
        """Write the entity graph to a GraphML file and return its path"""
        self.logger.info(f"Exporting report to GraphML: {filepath}")
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        nx.write_graphml(self.to_networkx(), str(path))
        return str(path)

    def to_networkx(self) -> nx.DiGraph:
        """
        Build the typed entity graph.

        Edges whose endpoints are not in the report tables are left out.
        """
        if self._graph is not None:
            return self._graph

        report = self.report
        rel = report.relational
        G = nx.DiGraph(name=report.name, tqi_score=report.tqi_score)

        for aspect in report.aspect_scores:
            G.add_node(node_id(EntityType.QUALITY_ASPECT, aspect.name),
                       label=aspect.name, type=EntityType.QUALITY_ASPECT.value, score=aspect.score)

        factor_nodes: Dict[str, str] = {}
        for pf in rel.product_factors:
            pf_node = node_id(EntityType.PRODUCT_FACTOR, pf.id)
            factor_nodes.setdefault(pf.id, pf_node)
            factor_nodes.setdefault(pf.name, pf_node)
            G.add_node(pf_node, label=pf.name, type=EntityType.PRODUCT_FACTOR.value,
                       value=pf.value, benchmark_size=pf.benchmark_size, aspect=pf.aspect_name)
            qa_node = node_id(EntityType.QUALITY_ASPECT, pf.aspect_name)
            if pf.aspect_name and qa_node in G:
                G.add_edge(qa_node, pf_node, edge_type=EdgeType.HAS_FACTOR.value)

        for measure in rel.measures:
            G.add_node(node_id(EntityType.MEASURE, measure.id), label=measure.name,
                       type=EntityType.MEASURE.value, score=measure.score,
                       benchmark_size=measure.benchmark_size)

        for diagnostic in rel.diagnostics:
            G.add_node(node_id(EntityType.DIAGNOSTIC, diagnostic.id), label=diagnostic.name,
                       type=EntityType.DIAGNOSTIC.value, tool=diagnostic.tool_name,
                       **_optional(value=diagnostic.value))

        for finding in rel.findings:
            G.add_node(node_id(EntityType.FINDING, finding.id), label=finding.id,
                       type=EntityType.FINDING.value, package=finding.vuln_source,
                       fix_status=finding.fix_status.value)

        for edge in rel.pf_measures:
            source = factor_nodes.get(edge.pf_id)
            target = node_id(EntityType.MEASURE, edge.measure_id)
            if source and target in G:
                G.add_edge(source, target, edge_type=EdgeType.PF_MEASURE.value,
                           **_optional(weight=edge.weight))

        for edge in rel.measure_diagnostics:
            source = node_id(EntityType.MEASURE, edge.measure_id)
            target = node_id(EntityType.DIAGNOSTIC, edge.diagnostic_id)
            if source in G and target in G:
                G.add_edge(source, target, edge_type=EdgeType.MEASURE_DIAGNOSTIC.value)

        for finding in rel.findings:
            source = node_id(EntityType.DIAGNOSTIC, finding.diagnostic_id)
            if finding.diagnostic_id and source in G:
                G.add_edge(source, node_id(EntityType.FINDING, finding.id),
                           edge_type=EdgeType.DIAGNOSTIC_FINDING.value)

        self.logger.debug(f"Entity graph: {G.number_of_nodes()} nodes, {G.number_of_edges()} edges")
        self._graph = G
        return G

    def reachable_findings(self, pf_name: str) -> List[str]:
        """Ids of the findings reachable from a product factor, sorted"""
        pf = self.report.get_product_factor(pf_name)
        if pf is None:
            return []
        G = self.to_networkx()
        descendants = nx.descendants(G, node_id(EntityType.PRODUCT_FACTOR, pf.id))
        prefix = NODE_PREFIX[EntityType.FINDING]
        return sorted(n[len(prefix):] for n in descendants if n.startswith(prefix))
