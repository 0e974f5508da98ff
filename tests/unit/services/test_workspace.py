"""Tests for atlas.services.workspace."""
from __future__ import annotations

import pytest

from atlas.core.enums import FilterType, NodeType, RiskLevel
from atlas.core.exceptions import DocumentParseError
from atlas.services.workspace import WorkspaceService, get_workspace_service


class TestLoad:
    def test_loads_tree_and_schema(self, workspace):
        assert [p.id for p in workspace.tree.pops] == ["eu-west"]
        assert len(workspace.schema) == 3

    def test_invalid_document_keeps_workspace(self, workspace):
        snapshot = workspace.tree.pops
        with pytest.raises(DocumentParseError):
            workspace.load("{broken")
        assert workspace.tree.pops is snapshot

    def test_columns_from_schema(self, workspace):
        assert [c.key for c in workspace.columns()] == ["zabbix", "av"]


class TestDocument:
    def test_cached_until_mutation(self, workspace):
        first = workspace.document()
        assert workspace.document() is first
        workspace.update_node_attribute("p1", "ip", "10.9.9.9")
        second = workspace.document()
        assert second is not first
        p1 = second["pops"][0]["nodes"][0]["connected_servers"][0]
        assert p1["ip"] == "10.9.9.9"

    def test_noop_mutation_keeps_document(self, workspace):
        first = workspace.document()
        workspace.remove_node("ghost")
        assert workspace.document() is first

    def test_schema_aliases_written(self, workspace):
        p1 = workspace.document()["pops"][0]["nodes"][0]["connected_servers"][0]
        assert p1["zabbix"] is True
        assert p1["anti_virus"] is False
        assert p1["ram"] == "64 GB"


class TestMutations:
    def test_add_and_remove(self, workspace):
        pop = workspace.add_pop(name="APAC")
        node = workspace.add_node(pop.id, NodeType.SWITCH)
        assert workspace.tree.find_node(node.id) is not None
        assert workspace.remove_node(node.id) is True
        assert workspace.remove_pop(pop.id) is True

    def test_update_node(self, workspace):
        assert workspace.update_node("v1", {"name": "vm-01"}) is True
        assert workspace.tree.find_node("v1").name == "vm-01"


class TestAudit:
    def test_audit(self, workspace):
        result = workspace.audit()
        assert result.stats.total == 2
        assert result.stats.avg_score == 25

    def test_filtered_audit(self, workspace):
        assert workspace.audit(FilterType.SWITCH).stats.total == 1

    def test_toggle_override_changes_score(self, workspace):
        workspace.toggle_override("p1", "av")
        assert workspace.overrides == {"p1_av": True}
        assert workspace.audit().stats.avg_score == 50
        workspace.toggle_override("p1", "av")
        assert workspace.overrides == {}

    def test_set_risk_override(self, workspace):
        workspace.set_risk_override("p1", RiskLevel.HIGH)
        assert workspace.overrides == {"p1_risk_override": "HIGH"}

    def test_cycle_from_computed_risk(self, workspace):
        # P1 computes MEDIUM, V1 computes CRITICAL
        workspace.set_risk_override("p1", None)
        workspace.set_risk_override("v1", None)
        assert workspace.overrides == {
            "p1_risk_override": "HIGH",
            "v1_risk_override": "LOW",
        }

    def test_report(self, workspace):
        report = workspace.report(generated_by="bob")
        assert report.metadata.generated_by == "bob"
        assert [a.id for a in report.assets] == ["p1", "v1"]

    def test_capacity_stats(self, workspace):
        stats = workspace.capacity_stats()
        assert (stats.physical_ram, stats.virtual_ram) == (64, 16)


class TestSingleton:
    def test_same_instance(self):
        assert get_workspace_service() is get_workspace_service()
        assert isinstance(get_workspace_service(), WorkspaceService)
