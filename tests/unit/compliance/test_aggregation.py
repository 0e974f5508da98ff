"""Tests for atlas.compliance.aggregation - hierarchical compliance engine."""
from __future__ import annotations

import pytest

from atlas.compliance.aggregation import (
    aggregate_risk,
    aggregate_score,
    aggregate_security,
    flatten_leaves,
)
from atlas.core.enums import FilterType, RiskLevel
from atlas.schemas.security import SecurityNode
from atlas.topology.tree import TopologyTree


# ══════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════


def _find(nodes: list[SecurityNode], node_id: str) -> SecurityNode | None:
    for node in nodes:
        if node.id == node_id:
            return node
        found = _find(node.children, node_id)
        if found is not None:
            return found
    return None


def _leaf(score: int, risk: RiskLevel) -> SecurityNode:
    return SecurityNode(id=f"n{score}", type="PHYSICAL_SERVER", score=score, risk_level=risk)


# Server → VM chain, no switch anywhere
SERVERS_ONLY = [{
    "id": "dc", "name": "DC", "nodes": [
        {"id": "p1", "type": "physical_server", "virtual_machines": [
            {"id": "v1", "type": "virtual_machine", "attributes": [{"attributeId": "zabbix", "value": "yes"}]},
        ]},
    ],
}]


# ══════════════════════════════════════════════════════════════════
# Group rules
# ══════════════════════════════════════════════════════════════════


class TestGroupRules:
    def test_any_critical_child(self):
        children = [_leaf(100, RiskLevel.LOW), _leaf(10, RiskLevel.CRITICAL)]
        assert aggregate_risk(children) is RiskLevel.CRITICAL

    def test_medium_child(self):
        children = [_leaf(100, RiskLevel.LOW), _leaf(60, RiskLevel.MEDIUM)]
        assert aggregate_risk(children) is RiskLevel.MEDIUM

    def test_all_low(self):
        assert aggregate_risk([_leaf(100, RiskLevel.LOW)]) is RiskLevel.LOW

    def test_empty_group_is_medium(self):
        assert aggregate_risk([]) is RiskLevel.MEDIUM

    def test_mean_rounds_half_up(self):
        assert aggregate_score([_leaf(50, RiskLevel.MEDIUM), _leaf(0, RiskLevel.CRITICAL)]) == 25
        assert aggregate_score([_leaf(50, RiskLevel.MEDIUM), _leaf(1, RiskLevel.CRITICAL)]) == 26
        assert aggregate_score([]) == 0


# ══════════════════════════════════════════════════════════════════
# EU-WEST scenario
# ══════════════════════════════════════════════════════════════════


class TestEuWestScenario:
    @pytest.fixture
    def result(self, eu_west_tree, audit_columns):
        return aggregate_security(eu_west_tree.pops, audit_columns, {}, FilterType.ALL)

    def test_leaves(self, result):
        p1 = _find(result.nodes, "p1")
        v1 = _find(result.nodes, "v1")
        assert (p1.score, p1.risk_level, p1.is_group) == (50, RiskLevel.MEDIUM, False)
        assert (v1.score, v1.risk_level, v1.is_group) == (0, RiskLevel.CRITICAL, False)

    def test_switch_group(self, result):
        s1 = _find(result.nodes, "s1")
        assert s1.is_group
        assert s1.score == 25
        assert s1.risk_level is RiskLevel.CRITICAL

    def test_region_group(self, result):
        region = result.nodes[0]
        assert (region.id, region.type, region.is_group) == ("eu-west", "POP", True)
        assert region.score == 25
        assert region.risk_level is RiskLevel.CRITICAL

    def test_global_stats(self, result):
        assert result.stats.total == 2
        assert result.stats.protected_nodes == 0
        assert result.stats.critical_gaps == 1
        assert result.stats.avg_score == 25
        assert result.global_score == 25
        assert result.global_risk_level is RiskLevel.CRITICAL

    def test_compliance_cells(self, result):
        p1 = _find(result.nodes, "p1")
        assert p1.compliance["zabbix"].current is True
        assert p1.compliance["av"].current is False
        assert p1.compliance["av"].value is False

    def test_inputs_not_mutated(self, eu_west_tree, audit_columns):
        snapshot = eu_west_tree.pops
        overrides = {"p1_av": True}
        aggregate_security(snapshot, audit_columns, overrides)
        assert eu_west_tree.pops is snapshot
        assert overrides == {"p1_av": True}

    def test_override_changes_scores(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, {"p1_av": True, "v1_zabbix": True})
        assert _find(result.nodes, "p1").score == 100
        assert _find(result.nodes, "v1").score == 50
        assert _find(result.nodes, "s1").score == 75
        assert _find(result.nodes, "s1").risk_level is RiskLevel.MEDIUM
        assert result.stats.protected_nodes == 1


# ══════════════════════════════════════════════════════════════════
# Leaf / group rule
# ══════════════════════════════════════════════════════════════════


class TestLeafRule:
    def test_device_with_children_is_group(self, audit_columns):
        tree = TopologyTree.load(SERVERS_ONLY)
        result = aggregate_security(tree.pops, audit_columns)
        p1 = _find(result.nodes, "p1")
        assert p1.is_group
        assert p1.score == 50
        assert result.stats.total == 1

    def test_device_becomes_leaf_when_children_pruned(self, audit_columns):
        tree = TopologyTree.load([{"id": "dc", "nodes": [
            {"id": "s1", "type": "switch", "connected_servers": [
                {"id": "p1", "type": "physical_server"},
            ]},
        ]}])
        result = aggregate_security(tree.pops, audit_columns, filter_type=FilterType.SWITCH)
        s1 = _find(result.nodes, "s1")
        assert not s1.is_group
        assert s1.children == []
        assert result.stats.total == 1

    def test_empty_pop(self, audit_columns):
        tree = TopologyTree()
        tree.add_pop(name="Empty")
        result = aggregate_security(tree.pops, audit_columns)
        pop = result.nodes[0]
        assert pop.is_group
        assert (pop.score, pop.risk_level) == (0, RiskLevel.MEDIUM)
        assert result.stats.total == 0
        assert result.global_risk_level is RiskLevel.CRITICAL

    def test_empty_forest(self, audit_columns):
        result = aggregate_security([], audit_columns)
        assert result.nodes == []
        assert result.stats.total == 0
        assert result.stats.avg_score == 0


# ══════════════════════════════════════════════════════════════════
# Type filter
# ══════════════════════════════════════════════════════════════════


class TestFilter:
    def test_switch_filter_prunes_everything(self, audit_columns):
        tree = TopologyTree.load(SERVERS_ONLY)
        result = aggregate_security(tree.pops, audit_columns, filter_type=FilterType.SWITCH)
        assert result.nodes == []
        assert result.stats.total == 0

    def test_empty_pop_pruned_under_filter(self, audit_columns):
        tree = TopologyTree()
        tree.add_pop()
        assert aggregate_security(tree.pops, audit_columns, filter_type="server").nodes == []

    def test_server_filter_counts_both(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, filter_type=FilterType.SERVER)
        assert result.stats.total == 2
        # Switch kept as a group for its matching descendants
        assert _find(result.nodes, "s1").is_group

    def test_vm_filter_only_vms(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, filter_type=FilterType.VM)
        assert result.stats.total == 1
        assert _find(result.nodes, "p1") is None
        s1 = _find(result.nodes, "s1")
        assert [c.id for c in s1.children] == ["v1"]
        assert s1.score == 0

    def test_string_filter(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, filter_type=" vm ")
        assert result.filter_type is FilterType.VM

    def test_flatten_leaves(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns)
        assert [n.id for n in flatten_leaves(result.nodes)] == ["p1", "v1"]
        assert [n.id for n in flatten_leaves(result.nodes, FilterType.VM)] == ["v1"]


# ══════════════════════════════════════════════════════════════════
# Risk override
# ══════════════════════════════════════════════════════════════════


class TestRiskOverride:
    def test_effective_risk(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, {"p1_risk_override": "HIGH"})
        p1 = _find(result.nodes, "p1")
        assert p1.risk_level is RiskLevel.MEDIUM
        assert p1.risk_override is RiskLevel.HIGH
        assert p1.effective_risk is RiskLevel.HIGH

    def test_override_does_not_feed_group(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns, {"v1_risk_override": "LOW"})
        assert _find(result.nodes, "v1").effective_risk is RiskLevel.LOW
        assert _find(result.nodes, "s1").risk_level is RiskLevel.CRITICAL

    def test_no_override(self, eu_west_tree, audit_columns):
        result = aggregate_security(eu_west_tree.pops, audit_columns)
        v1 = _find(result.nodes, "v1")
        assert v1.risk_override is None
        assert v1.effective_risk is RiskLevel.CRITICAL
