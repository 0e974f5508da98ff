"""
Compliance package.

Attribute matching, per-device scoring, hierarchical aggregation, manual
overrides and the audit report.
"""
from atlas.compliance.aggregation import (
    ComplianceAggregator,
    aggregate_security,
    flatten_leaves,
)
from atlas.compliance.calculator import (
    calculate_node_compliance,
    is_value_compliant,
    risk_for_score,
)
from atlas.compliance.matcher import MatchResult, match_attribute, normalize_string
from atlas.compliance.overrides import (
    cycle_risk_override,
    get_risk_override,
    set_risk_override,
    toggle_override,
)
from atlas.compliance.report import build_audit_report

__all__ = [
    "ComplianceAggregator",
    "aggregate_security",
    "flatten_leaves",
    "calculate_node_compliance",
    "is_value_compliant",
    "risk_for_score",
    "MatchResult",
    "match_attribute",
    "normalize_string",
    "cycle_risk_override",
    "get_risk_override",
    "set_risk_override",
    "toggle_override",
    "build_audit_report",
]
