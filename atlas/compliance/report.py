"""
Audit report builder.

把聚合結果整理成稽核報告（metadata / summary / 欄位統計 / 資產明細 / 覆寫清單）。
File generation and download are left to the caller.
"""
from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

from atlas.compliance.aggregation import flatten_leaves
from atlas.compliance.overrides import (
    RISK_OVERRIDE_SUFFIX,
    OverrideSet,
    has_column_override,
    parse_override_key,
)
from atlas.schemas.security import (
    AssetAttributeReport,
    AssetReport,
    AttributeBreakdown,
    AuditReport,
    OverrideReport,
    ReportMetadata,
    ReportSummary,
    SecurityAuditResult,
    SecurityNode,
)

REPORT_TITLE = "Strategic Security Audit Manifest"


def _iter_tree(nodes: list[SecurityNode]) -> Iterator[SecurityNode]:
    for node in nodes:
        yield node
        yield from _iter_tree(node.children)


def _percent(part: int, total: int) -> str:
    if total <= 0:
        return "0%"
    return f"{int(part / total * 100 + 0.5)}%"


def build_audit_report(
    result: SecurityAuditResult,
    overrides: OverrideSet,
    generated_by: str = "System",
    now: datetime | None = None,
) -> AuditReport:
    """
    生成稽核報告。

    Args:
        result: aggregation engine output
        overrides: override set used for the aggregation
        generated_by: display name of the requesting user
        now: report time (defaults to current UTC time)

    Returns:
        AuditReport: assets are the monitored leaf devices of ``result``
    """
    now = now or datetime.now(timezone.utc)
    timestamp = now.isoformat().replace(":", "-").replace(".", "-")
    stats = result.stats
    columns = result.columns
    assets = flatten_leaves(result.nodes, result.filter_type)

    breakdown = []
    for column in columns:
        compliant = [a for a in assets if _cell(a, column.key, "current")]
        native = [a for a in assets if _cell(a, column.key, "native")]
        overridden = [
            a for a in assets if has_column_override(overrides, a.id, column.key)
        ]
        breakdown.append(
            AttributeBreakdown(
                attribute=column.label,
                attribute_id=column.id,
                compliant=len(compliant),
                native_compliant=len(native),
                manual_overrides=len(overridden),
                total=stats.total,
                compliance_rate=_percent(len(compliant), stats.total),
            )
        )

    asset_reports = []
    for asset in assets:
        attributes = {}
        for column in columns:
            data = asset.compliance.get(column.key)
            attributes[column.label] = AssetAttributeReport(
                compliant=bool(data and data.current),
                value=data.value if data and data.value is not None else "N/A",
                native=bool(data and data.native),
                match_strategy=data.match_strategy if data else "none",
                override=has_column_override(overrides, asset.id, column.key),
            )
        asset_reports.append(
            AssetReport(
                id=asset.id,
                name=asset.name,
                type=asset.type,
                ip=asset.ip or "N/A",
                score=f"{asset.score}%",
                status=asset.effective_risk,
                attributes=attributes,
            )
        )

    names = {node.id: node.name for node in _iter_tree(result.nodes)}
    labels = {column.key: column.label for column in columns}
    override_reports = []
    for key, value in overrides.items():
        if not value:
            continue
        node_id, column_key = parse_override_key(key, labels)
        attribute = "Risk Level" if column_key == RISK_OVERRIDE_SUFFIX else labels.get(column_key, column_key)
        override_reports.append(
            OverrideReport(
                node_id=node_id,
                node_name=names.get(node_id, "Unknown"),
                attribute=attribute,
                value=value,
            )
        )

    return AuditReport(
        metadata=ReportMetadata(
            title=REPORT_TITLE,
            timestamp=timestamp,
            generated_by=generated_by,
            compliance_score=f"{stats.avg_score}%",
            node_count=stats.total,
            correlated_attributes=list(columns),
        ),
        summary=ReportSummary(
            protected=stats.protected_nodes,
            critical=stats.critical_gaps,
            overrides=len(override_reports),
            average_score=stats.avg_score,
        ),
        attribute_breakdown=breakdown,
        assets=asset_reports,
        overrides=override_reports,
    )


def _cell(node: SecurityNode, column_key: str, field: str) -> bool:
    data = node.compliance.get(column_key)
    return bool(data is not None and getattr(data, field))
