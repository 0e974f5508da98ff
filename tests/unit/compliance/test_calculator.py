"""Tests for atlas.compliance.calculator."""
from __future__ import annotations

import pytest

from atlas.compliance.calculator import (
    calculate_node_compliance,
    is_value_compliant,
    risk_for_score,
    round_half_up,
)
from atlas.core.enums import MatchStrategy, RiskLevel
from atlas.schemas.topology import AuditColumn, InfraNode


# ══════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════


def _columns(count: int) -> list[AuditColumn]:
    return [AuditColumn(id=f"c{i}", label=f"Check {i}", key=f"c{i}") for i in range(count)]


def _node_with(values: list) -> InfraNode:
    return InfraNode.model_validate({
        "id": "n1",
        "type": "physical_server",
        "attributes": [
            {"attributeId": f"c{i}", "value": v} for i, v in enumerate(values)
        ],
    })


# ══════════════════════════════════════════════════════════════════
# Vocabulary / rounding / bands
# ══════════════════════════════════════════════════════════════════


class TestIsValueCompliant:
    @pytest.mark.parametrize("value", [
        True, 1, 1.0, "sim", "YES", " true ", "Ativo", "active", "ON",
        "ligado", "1", "ok", "Compliant", "conformidade", "conforme",
    ])
    def test_compliant(self, value):
        assert is_value_compliant(value)

    @pytest.mark.parametrize("value", [
        False, 0, 2, -1, None, "", "no", "off", "false", "0", "yes please", [], {},
    ])
    def test_not_compliant(self, value):
        assert not is_value_compliant(value)


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(33.5) == 34
        assert round_half_up(66.66) == 67
        assert round_half_up(33.33) == 33


class TestRiskForScore:
    def test_bands(self):
        assert risk_for_score(100) is RiskLevel.LOW
        assert risk_for_score(91) is RiskLevel.LOW
        assert risk_for_score(90) is RiskLevel.MEDIUM
        assert risk_for_score(50) is RiskLevel.MEDIUM
        assert risk_for_score(49) is RiskLevel.CRITICAL
        assert risk_for_score(0) is RiskLevel.CRITICAL

    def test_never_high(self):
        assert all(risk_for_score(s) is not RiskLevel.HIGH for s in range(101))


# ══════════════════════════════════════════════════════════════════
# calculate_node_compliance
# ══════════════════════════════════════════════════════════════════


class TestCalculateNodeCompliance:
    def test_all_compliant_is_low(self):
        result = calculate_node_compliance(_node_with(["yes"] * 4), _columns(4), {})
        assert result.score == 100
        assert result.risk_level is RiskLevel.LOW

    def test_ninety_is_medium(self):
        result = calculate_node_compliance(_node_with(["yes"] * 9 + ["no"]), _columns(10), {})
        assert result.score == 90
        assert result.risk_level is RiskLevel.MEDIUM

    def test_thirds_round(self):
        result = calculate_node_compliance(_node_with(["yes", "yes", "no"]), _columns(3), {})
        assert result.score == 67

    def test_no_columns_scores_zero(self):
        result = calculate_node_compliance(_node_with([]), [], {})
        assert result.score == 0
        assert result.compliance == {}
        assert result.risk_level is RiskLevel.CRITICAL

    def test_compliance_records(self):
        result = calculate_node_compliance(_node_with(["yes", "no"]), _columns(3), {})
        c0, c1, c2 = (result.compliance[f"c{i}"] for i in range(3))
        assert (c0.native, c0.current, c0.override) == (True, True, False)
        assert c0.match_strategy is MatchStrategy.ATTR_BY_ID
        assert (c1.value, c1.native, c1.current) == ("no", False, False)
        assert c2.match_strategy is MatchStrategy.NONE
        assert c2.value is None

    def test_override_grants_credit(self):
        node = _node_with(["no", "no"])
        result = calculate_node_compliance(node, _columns(2), {"n1_c1": True})
        record = result.compliance["c1"]
        assert record.native is False
        assert record.override is True
        assert record.current is True
        assert result.score == 50

    def test_override_without_match(self):
        result = calculate_node_compliance(_node_with([]), _columns(1), {"n1_c0": True})
        assert result.score == 100
        assert result.compliance["c0"].match_strategy is MatchStrategy.NONE

    def test_false_override_is_no_override(self):
        result = calculate_node_compliance(_node_with(["no"]), _columns(1), {"n1_c0": False})
        assert result.score == 0
        assert result.compliance["c0"].override is False

    def test_other_node_override_ignored(self):
        result = calculate_node_compliance(_node_with(["no"]), _columns(1), {"n2_c0": True})
        assert result.score == 0

    def test_deterministic(self):
        node = _node_with(["yes", "no", "on"])
        first = calculate_node_compliance(node, _columns(3), {})
        second = calculate_node_compliance(node, _columns(3), {})
        assert first == second
