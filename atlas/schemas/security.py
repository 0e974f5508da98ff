"""
Pydantic schemas for the security audit (compliance results and reports).
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from atlas.core.enums import FilterType, MatchStrategy, RiskLevel
from atlas.schemas.topology import AuditColumn


class ComplianceData(BaseModel):
    """單一稽核欄位的合規結果。"""
    value: Any = Field(default=None, description="Matched raw value")
    native: bool = Field(default=False, description="Value itself is compliant")
    current: bool = Field(default=False, description="Compliant after overrides")
    override: bool = Field(default=False, description="Manual override applied")
    match_strategy: MatchStrategy = Field(default=MatchStrategy.NONE)


class NodeCompliance(BaseModel):
    """Per-device score."""
    score: int
    risk_level: RiskLevel
    compliance: dict[str, ComplianceData]


class SecurityNode(BaseModel):
    """Annotated node of the audit result tree (pop or device)."""
    id: str
    name: str = ""
    type: str
    ip: str | None = None
    status: str | None = None
    criticality: str | None = None
    is_group: bool = False
    score: int = 0
    risk_level: RiskLevel = RiskLevel.MEDIUM
    risk_override: RiskLevel | None = None
    effective_risk: RiskLevel = RiskLevel.MEDIUM
    compliance: dict[str, ComplianceData] = Field(default_factory=dict)
    children: list[SecurityNode] = Field(default_factory=list)


class SecurityStats(BaseModel):
    """Global statistics over filtered leaf devices."""
    total: int = 0
    protected_nodes: int = 0
    critical_gaps: int = 0
    avg_score: int = 0


class SecurityAuditResult(BaseModel):
    """Aggregation engine output."""
    filter_type: FilterType = FilterType.ALL
    columns: list[AuditColumn] = Field(default_factory=list)
    nodes: list[SecurityNode] = Field(default_factory=list)
    stats: SecurityStats = Field(default_factory=SecurityStats)
    global_score: int = 0
    global_risk_level: RiskLevel = RiskLevel.CRITICAL


# ── Report ───────────────────────────────────────────────────────


class ReportMetadata(BaseModel):
    title: str
    timestamp: str
    generated_by: str
    compliance_score: str
    node_count: int
    correlated_attributes: list[AuditColumn]


class ReportSummary(BaseModel):
    protected: int
    critical: int
    overrides: int
    average_score: int


class AttributeBreakdown(BaseModel):
    """每個稽核欄位的合規統計。"""
    attribute: str
    attribute_id: str
    compliant: int
    native_compliant: int
    manual_overrides: int
    total: int
    compliance_rate: str


class AssetAttributeReport(BaseModel):
    compliant: bool
    value: Any = "N/A"
    native: bool
    match_strategy: MatchStrategy
    override: bool


class AssetReport(BaseModel):
    id: str
    name: str
    type: str
    ip: str
    score: str
    status: RiskLevel
    attributes: dict[str, AssetAttributeReport]


class OverrideReport(BaseModel):
    node_id: str
    node_name: str
    attribute: str
    value: Any = True
    applied_at: str = "N/A"


class AuditReport(BaseModel):
    """Security audit manifest."""
    metadata: ReportMetadata
    summary: ReportSummary
    attribute_breakdown: list[AttributeBreakdown]
    assets: list[AssetReport]
    overrides: list[OverrideReport]
