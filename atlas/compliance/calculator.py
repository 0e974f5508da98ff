"""
Compliance calculator.

Scores one device against an ordered list of audit columns. Each column is
worth ``100 / N`` points; a column earns its points when a manual override
is present or the matched value is in the compliance vocabulary.

Risk bands（預設）：
    score > 90        → LOW
    50 <= score <= 90 → MEDIUM（90 屬於 MEDIUM）
    score < 50        → CRITICAL
"""
from __future__ import annotations

import math
from typing import Any

from atlas.compliance.matcher import match_attribute
from atlas.compliance.overrides import OverrideSet, has_column_override
from atlas.core.config import settings
from atlas.core.enums import RiskLevel
from atlas.schemas.security import ComplianceData, NodeCompliance
from atlas.schemas.topology import AuditColumn, InfraNode, Pop


def round_half_up(value: float) -> int:
    """Round like the dashboard does (0.5 always rounds up)."""
    return int(math.floor(value + 0.5))


def is_value_compliant(value: Any) -> bool:
    """Whether a raw attribute value means "true / active / compliant"."""
    if value is True:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in settings.compliance_truthy_set
    return False


def risk_for_score(score: int) -> RiskLevel:
    """Per-device risk band."""
    if score > settings.risk.low_above:
        return RiskLevel.LOW
    if score >= settings.risk.medium_from:
        return RiskLevel.MEDIUM
    return RiskLevel.CRITICAL


def calculate_node_compliance(
    node: InfraNode | Pop,
    columns: list[AuditColumn],
    overrides: OverrideSet,
) -> NodeCompliance:
    """
    Score one node.

    Args:
        node: device (or pop, for the group compliance cells)
        columns: ordered audit columns
        overrides: caller-supplied override set (read only)

    Returns:
        NodeCompliance: rounded score, risk band and per-column records
    """
    score_per_column = 100 / (len(columns) or 1)
    score = 0.0
    compliance: dict[str, ComplianceData] = {}

    for column in columns:
        match = match_attribute(node, column)
        native = match.found and is_value_compliant(match.value)
        overridden = has_column_override(overrides, node.id, column.key)
        current = overridden or native

        compliance[column.key] = ComplianceData(
            value=match.value,
            native=native,
            current=current,
            override=overridden,
            match_strategy=match.strategy,
        )
        if current:
            score += score_per_column

    final_score = round_half_up(score)
    return NodeCompliance(
        score=final_score,
        risk_level=risk_for_score(final_score),
        compliance=compliance,
    )
