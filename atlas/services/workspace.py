"""
Workspace Service.

In-process workspace: one topology tree, its schema and the override set.
API endpoints go through this service; the core modules stay free of any
ambient state (schema / columns / overrides are passed explicitly).

Single event loop, no awaits inside core calls → each request's mutation is
atomic with respect to other requests.
"""
from __future__ import annotations

import logging
from typing import Any

from atlas.compliance.aggregation import aggregate_security
from atlas.compliance.overrides import (
    cycle_risk_override,
    set_risk_override,
    toggle_override,
)
from atlas.compliance.report import build_audit_report
from atlas.core.enums import FilterType, NodeType, RiskLevel
from atlas.schemas.security import AuditReport, SecurityAuditResult, SecurityNode
from atlas.schemas.topology import AuditColumn, BlueprintAttribute, InfraNode, Link, Pop
from atlas.services.audit_columns import columns_from_schema
from atlas.services.change_cache import DocumentChangeCache
from atlas.topology.normalizer import load_document
from atlas.topology.stats import CapacityStats, compute_capacity_stats
from atlas.topology.tree import TopologyTree

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_ID = "default"


class WorkspaceService:
    """拓撲工作區服務（tree + schema + overrides）。"""

    def __init__(self, workspace_id: str = DEFAULT_WORKSPACE_ID) -> None:
        self.workspace_id = workspace_id
        self.tree = TopologyTree()
        self.schema: list[BlueprintAttribute] = []
        self.overrides: dict[str, Any] = {}
        self.change_cache = DocumentChangeCache()
        self._document: dict[str, Any] | None = None

    # ── Document ─────────────────────────────────────────────────

    def load(self, raw: Any) -> None:
        """
        Replace the workspace with a raw document (full rebuild).

        Raises:
            DocumentParseError: the document cannot be normalized; the
                current workspace is left untouched
        """
        document = load_document(raw)
        self.tree = TopologyTree.from_document(document)
        self.schema = document.schema_attributes
        self._document = None
        self.change_cache.clear()
        logger.info(
            "Loaded workspace %s: %d pops, %d links",
            self.workspace_id, len(self.tree.pops), len(self.tree.links),
        )

    def document(self) -> dict[str, Any]:
        """Serialized document; re-serialized only when the tree changed."""
        changed = self.change_cache.has_changed(
            self.workspace_id, self.tree.pops, self.tree.links,
        )
        if changed or self._document is None:
            self._document = self.tree.to_document(self.schema)
        return self._document

    # ── Mutations ────────────────────────────────────────────────

    def add_pop(self, name: str | None = None, city: str | None = None) -> Pop:
        return self.tree.add_pop(name=name, city=city)

    def remove_pop(self, pop_id: str) -> bool:
        return self.tree.remove_pop(pop_id)

    def add_node(self, parent_id: str, node_type: NodeType | str) -> InfraNode | None:
        return self.tree.add_node(parent_id, node_type)

    def remove_node(self, node_id: str) -> bool:
        return self.tree.remove_node(node_id)

    def update_node(self, node_id: str, updates: dict[str, Any]) -> bool:
        return self.tree.update_node(node_id, updates)

    def update_node_attribute(self, node_id: str, attribute_id: str, value: Any) -> bool:
        return self.tree.update_node_attribute(node_id, attribute_id, value)

    def set_links(self, links: list[Link]) -> None:
        self.tree.set_links(links)
        logger.debug("Workspace %s: %d links", self.workspace_id, len(links))

    # ── Security audit ───────────────────────────────────────────

    def columns(self) -> list[AuditColumn]:
        return columns_from_schema(self.schema)

    def audit(self, filter_type: FilterType = FilterType.ALL) -> SecurityAuditResult:
        return aggregate_security(
            self.tree.pops, self.columns(), self.overrides, filter_type,
        )

    def toggle_override(self, node_id: str, column_key: str) -> dict[str, Any]:
        self.overrides = toggle_override(self.overrides, node_id, column_key)
        return self.overrides

    def set_risk_override(self, node_id: str, level: RiskLevel | None) -> dict[str, Any]:
        """Set a risk level, or cycle from the computed risk when ``level`` is None."""
        if level is not None:
            self.overrides = set_risk_override(self.overrides, node_id, level)
            return self.overrides

        computed = _find_result_node(self.audit().nodes, node_id)
        risk = computed.risk_level if computed is not None else RiskLevel.MEDIUM
        self.overrides = cycle_risk_override(self.overrides, node_id, risk)
        return self.overrides

    def report(
        self,
        filter_type: FilterType = FilterType.ALL,
        generated_by: str = "System",
    ) -> AuditReport:
        report = build_audit_report(self.audit(filter_type), self.overrides, generated_by)
        logger.info(
            "Security audit report generated: %s (score %s, %d nodes)",
            report.metadata.timestamp,
            report.metadata.compliance_score,
            report.metadata.node_count,
        )
        return report

    def capacity_stats(self, selected_id: str | None = None) -> CapacityStats:
        return compute_capacity_stats(self.tree.pops, selected_id)


def _find_result_node(nodes: list[SecurityNode], node_id: str) -> SecurityNode | None:
    for node in nodes:
        if node.id == node_id:
            return node
        found = _find_result_node(node.children, node_id)
        if found is not None:
            return found
    return None


# ── Singleton ────────────────────────────────────────────────────

_workspace_service: WorkspaceService | None = None


def get_workspace_service() -> WorkspaceService:
    """Get the process-wide workspace service."""
    global _workspace_service
    if _workspace_service is None:
        _workspace_service = WorkspaceService()
    return _workspace_service
