"""
Test Configuration and Fixtures
================================

Shared pytest fixtures for the piquediff test suite.

Usage:
    pytest tests/                    # Run all tests
    pytest tests/ -v                 # Verbose output
    pytest tests/ -k "reconciler"    # Run only reconciler tests
"""

import copy
import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import pytest
import yaml


# =============================================================================
# Custom Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "cli: marks command-line entry point tests")


# =============================================================================
# Report Documents
# =============================================================================

NESTED_REPORT: Dict[str, Any] = {
    "name": "webgoat-v1",
    "factors": {
        "tqi": {
            "Binary Security Quality": {"name": "Binary Security Quality", "value": 0.62},
        },
        "quality_aspects": {
            "Security": {
                "name": "Security",
                "value": 0.55,
                "children": ["Product_Factor CWE-664", "Product_Factor CWE-707"],
            },
            "Maintainability": {"name": "Maintainability", "value": 0.8, "children": ["Code Style"]},
        },
        "product_factors": {
            "Product_Factor CWE-664": {
                "name": "Product_Factor CWE-664",
                "value": 0.4,
                "description": "Improper Control of a Resource Through its Lifetime",
                "weights": {"CWE-400 Measure": 0.6, "CWE-404 Measure": 0.4},
                "children": {
                    "CWE-400 Measure": {
                        "name": "CWE-400 Measure",
                        "value": 0.3,
                        "thresholds": [0.0, 1.0, 4.0, 9.0],
                        "children": {
                            "CWE-400 Diagnostic grype": {
                                "name": "CWE-400 Diagnostic grype",
                                "toolName": "grype",
                                "value": 2.0,
                                "children": {
                                    "CVE-2024-0001": {
                                        "name": "CVE-2024-0001",
                                        "value": 0.9,
                                        "vulnSource": "log4j-core",
                                        "vulnSourceVersion": "2.14.0 ",
                                        "fixed": "true",
                                        "fixedVersion": "2.17.1",
                                        "description": "Remote code execution",
                                    },
                                },
                            },
                        },
                    },
                    "CWE-404 Measure": {
                        "name": "CWE-404 Measure",
                        "value": 0.55,
                        "thresholds": [0.0, 2.0],
                        "children": ["CWE-404 Diagnostic trivy"],
                    },
                },
            },
            "Product_Factor CWE-707": {
                "name": "Product_Factor CWE-707",
                "value": 0.7,
                "children": ["CWE-20 Measure"],
            },
            "Code Style": {
                "name": "Code Style",
                "value": 0.8,
                "children": {
                    "Naming": {
                        "name": "Naming",
                        "value": 0.9,
                        "weight": 1.0,
                        "children": {"Nested": {"name": "Nested", "value": 0.1}},
                    },
                },
            },
        },
        "measures": {
            "CWE-20 Measure": {
                "name": "CWE-20 Measure",
                "value": 0.7,
                "thresholds": [1.0, 2.0, 3.0],
                "children": ["CWE-20 Diagnostic trivy"],
            },
            "Orphan Measure": {"name": "Orphan Measure", "value": 0.2},
        },
        "diagnostics": {
            "CWE-404 Diagnostic trivy": {
                "name": "CWE-404 Diagnostic trivy",
                "toolName": "trivy",
                "value": 1.0,
                "children": {
                    "GHSA-abcd-1234-wxyz": {
                        "name": "GHSA-abcd-1234-wxyz",
                        "value": 0.4,
                        "vulnSource": "commons-text",
                        "fixed": False,
                    },
                },
            },
            "CWE-20 Diagnostic trivy": {
                "name": "CWE-20 Diagnostic trivy",
                "toolName": "trivy",
                "value": 0.0,
                "children": {
                    "CVE-2024-0001": {"name": "CVE-2024-0001", "value": 0.8, "vulnSource": "log4j-core"},
                },
            },
        },
    },
}


RELATIONAL_REPORT: Dict[str, Any] = {
    "name": "webgoat-v1-tables",
    "tqi": 0.62,
    "qualityAspects": [{"name": "Security", "score": 0.55}],
    "productFactors": [
        {"id": "pf1", "name": "Product_Factor CWE-664", "value": 0.4, "aspectName": "Security"},
        {"id": "pf2", "name": "Product_Factor CWE-707", "value": 0.7, "aspectName": "Security"},
    ],
    "measures": {
        "CWE-400 Measure": {"name": "CWE-400 Measure", "score": 0.3, "thresholds": [0.0, 1.0, 4.0, 9.0]},
        "CWE-404 Measure": {"name": "CWE-404 Measure", "score": 0.55, "thresholds": [0.0, 2.0]},
        "CWE-20 Measure": {"name": "CWE-20 Measure", "score": 0.7, "thresholds": [1.0, 2.0, 3.0]},
    },
    "diagnostics": [
        {"id": "CWE-400 Diagnostic grype", "toolName": "grype", "value": 2.0},
    ],
    "findings": [
        {
            "id": "CVE-2024-0001",
            "diagnosticId": "CWE-400 Diagnostic grype",
            "vulnSource": "log4j-core",
            "vulnSourceVersion": "2.14.0",
            "fixed": True,
            "fixedVersion": "2.17.1",
            "byTool": [{"tool": "grype", "score": 0.9}, {"tool": "trivy", "score": 0.8}],
        },
    ],
    "edges": {
        "pfMeasures": [
            {"pfId": "pf1", "measureId": "CWE-400 Measure", "weight": 0.6},
            {"pfId": "pf1", "measureId": "CWE-404 Measure", "weight": 0.4},
            {"pfId": "pf2", "measureId": "CWE-20 Measure"},
        ],
        "measureDiagnostics": [
            {"measureId": "CWE-400 Measure", "diagnosticId": "CWE-400 Diagnostic grype"},
        ],
    },
}


@pytest.fixture
def nested_report_data() -> Dict[str, Any]:
    """PIQUE-shaped report with pillar and non-pillar factors"""
    return copy.deepcopy(NESTED_REPORT)


@pytest.fixture
def relational_report_data() -> Dict[str, Any]:
    """The Security half of the nested report, as separated tables"""
    return copy.deepcopy(RELATIONAL_REPORT)


def make_nested_doc(factors: Dict[str, Dict[str, Any]],
                    findings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Small nested report.

    factors: {pf_name: {"value": v, "measures": {name: {"value", "weight", "thresholds"}}}}
    findings: {finding_id: node}, placed under one diagnostic of tool "scanner"
    """
    product_factors = {}
    for pf_name, factor in factors.items():
        children = {}
        weights = {}
        for measure_name, measure in factor.get("measures", {}).items():
            children[measure_name] = {
                "name": measure_name,
                "value": measure.get("value", 0.5),
                "thresholds": measure.get("thresholds", []),
            }
            if "weight" in measure:
                weights[measure_name] = measure["weight"]
        product_factors[pf_name] = {
            "name": pf_name,
            "value": factor.get("value", 0.5),
            "weights": weights,
            "children": children,
        }

    diagnostics = {}
    if findings:
        diagnostics["Dependency Diagnostic scanner"] = {
            "name": "Dependency Diagnostic scanner",
            "toolName": "scanner",
            "children": findings,
        }

    return {
        "factors": {
            "tqi": {"TQI": {"value": 0.5}},
            "quality_aspects": {"Security": {"value": 0.5, "children": list(product_factors)}},
            "product_factors": product_factors,
            "diagnostics": diagnostics,
        },
    }


@pytest.fixture
def doc_factory() -> Callable[..., Dict[str, Any]]:
    return make_nested_doc


# =============================================================================
# File Fixtures
# =============================================================================

@pytest.fixture
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write data as JSON under tmp_path and return the path"""
    def _write(filename: str, data: Any) -> Path:
        path = tmp_path / filename
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_yaml(tmp_path: Path) -> Callable[[str, Any], Path]:
    """Write data as YAML under tmp_path and return the path"""
    def _write(filename: str, data: Any) -> Path:
        path = tmp_path / filename
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path
    return _write
