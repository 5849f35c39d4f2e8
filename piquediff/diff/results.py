"""
Diff Results

Immutable, directional results of reconciling a "left" report against a
"right" one. Keys are natural keys: product factor names, compound
"<factor>::<measure>" measure keys, finding ids and diagnostic ids.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Tuple


@dataclass(frozen=True)
class EntityDiff:
    """Differing fields of one matched entity and the peer's values"""
    key: str
    fields: Tuple[str, ...] = ()
    peer: Dict[str, Any] = field(default_factory=dict)

    @property
    def differs(self) -> bool:
        return bool(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": list(self.fields), "peer": dict(self.peer)}


@dataclass(frozen=True)
class FamilyDiff:
    """
    Reconciliation of one entity family.

    ``missing`` holds keys present on this (left) side only, ``peer_only``
    keys present on the other side only. ``details`` is keyed by every
    matched key for families that track peer values, and by the
    differing keys otherwise.
    """
    differing: FrozenSet[str] = frozenset()
    missing: FrozenSet[str] = frozenset()
    peer_only: FrozenSet[str] = frozenset()
    details: Dict[str, EntityDiff] = field(default_factory=dict)

    @property
    def has_changes(self) -> bool:
        return bool(self.differing or self.missing or self.peer_only)

    def fields_for(self, key: str) -> Tuple[str, ...]:
        detail = self.details.get(key)
        return detail.fields if detail else ()

    def peer_for(self, key: str) -> Dict[str, Any]:
        detail = self.details.get(key)
        return dict(detail.peer) if detail else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "differing": sorted(self.differing),
            "missing": sorted(self.missing),
            "peerOnly": sorted(self.peer_only),
            "details": {k: self.details[k].to_dict() for k in sorted(self.details)},
        }


# (attribute, serialized stem, summary label)
FAMILIES = (
    ("product_factors", "ProductFactors", "Product factors"),
    ("measures", "Measures", "Measures"),
    ("findings", "Findings", "Findings"),
    ("diagnostics", "Diagnostics", "Diagnostics"),
)


@dataclass(frozen=True)
class DiffResult:
    """How the left report differs from the right one"""
    left_name: str = ""
    right_name: str = ""
    product_factors: FamilyDiff = field(default_factory=FamilyDiff)
    measures: FamilyDiff = field(default_factory=FamilyDiff)
    findings: FamilyDiff = field(default_factory=FamilyDiff)
    diagnostics: FamilyDiff = field(default_factory=FamilyDiff)
    differing_tool_scores: FrozenSet[str] = frozenset()

    # Product factors
    @property
    def differing_product_factors(self) -> FrozenSet[str]:
        return self.product_factors.differing

    @property
    def missing_product_factors(self) -> FrozenSet[str]:
        return self.product_factors.missing

    @property
    def peer_only_product_factors(self) -> FrozenSet[str]:
        return self.product_factors.peer_only

    # Measures
    @property
    def differing_measures(self) -> FrozenSet[str]:
        return self.measures.differing

    @property
    def missing_measures(self) -> FrozenSet[str]:
        return self.measures.missing

    @property
    def peer_only_measures(self) -> FrozenSet[str]:
        return self.measures.peer_only

    # Findings
    @property
    def differing_findings(self) -> FrozenSet[str]:
        return self.findings.differing

    @property
    def missing_findings(self) -> FrozenSet[str]:
        return self.findings.missing

    @property
    def peer_only_findings(self) -> FrozenSet[str]:
        return self.findings.peer_only

    # Diagnostics
    @property
    def differing_diagnostics(self) -> FrozenSet[str]:
        return self.diagnostics.differing

    @property
    def missing_diagnostics(self) -> FrozenSet[str]:
        return self.diagnostics.missing

    @property
    def peer_only_diagnostics(self) -> FrozenSet[str]:
        return self.diagnostics.peer_only

    @property
    def has_changes(self) -> bool:
        """Tool-score differences alone do not count as a change."""
        return any(getattr(self, attr).has_changes for attr, _, _ in FAMILIES)

    def summary(self) -> str:
        """Get a summary of changes"""
        title = "Report Diff Summary"
        if self.left_name or self.right_name:
            title += f": {self.left_name or 'left'} vs {self.right_name or 'right'}"
        lines = [title, "=" * 40]

        for attr, _, label in FAMILIES:
            family = getattr(self, attr)
            if family.has_changes:
                lines.append(f"{label}: ~{len(family.differing)} "
                             f"-{len(family.missing)} +{len(family.peer_only)}")

        if self.differing_tool_scores:
            lines.append(f"Tool scores differing: {len(self.differing_tool_scores)}")

        if not self.has_changes:
            lines.append("No changes detected")

        return '\n'.join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary with sorted key lists"""
        data: Dict[str, Any] = {
            "left": self.left_name,
            "right": self.right_name,
            "hasChanges": self.has_changes,
        }
        for attr, stem, _ in FAMILIES:
            family = getattr(self, attr).to_dict()
            data[f"differing{stem}"] = family["differing"]
            data[f"missing{stem}"] = family["missing"]
            data[f"peerOnly{stem}"] = family["peerOnly"]
            data[f"{stem[0].lower()}{stem[1:-1]}Details"] = family["details"]
        data["differingToolScores"] = sorted(self.differing_tool_scores)
        return data
