"""
Security audit API endpoints.

提供稽核矩陣（聚合結果）、覆寫切換與稽核報告。
"""
from __future__ import annotations

from typing import Any, Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from atlas.core.enums import FilterType, RiskLevel
from atlas.schemas.security import AuditReport, SecurityAuditResult
from atlas.schemas.topology import AuditColumn
from atlas.services.workspace import WorkspaceService, get_workspace_service

router = APIRouter()

Workspace = Annotated[WorkspaceService, Depends(get_workspace_service)]


class OverrideToggleRequest(BaseModel):
    """欄位覆寫切換請求。"""
    node_id: str
    column_key: str


class RiskOverrideRequest(BaseModel):
    """風險覆寫請求；level 省略時依 LOW → MEDIUM → HIGH 循環。"""
    node_id: str
    level: RiskLevel | None = Field(default=None, description="LOW / MEDIUM / HIGH")


@router.get("/audit")
async def get_audit(
    workspace: Workspace,
    filter_type: FilterType = Query(FilterType.ALL, description="ALL / SERVER / SWITCH / VM"),
) -> SecurityAuditResult:
    """
    計算稽核矩陣。

    Returns:
        SecurityAuditResult: 已過濾（結構裁剪）的結果樹與全域統計
    """
    return workspace.audit(filter_type)


@router.get("/columns")
async def get_columns(workspace: Workspace) -> list[AuditColumn]:
    return workspace.columns()


@router.get("/overrides")
async def get_overrides(workspace: Workspace) -> dict[str, Any]:
    return workspace.overrides


@router.post("/overrides/toggle")
async def toggle_column_override(
    body: OverrideToggleRequest,
    workspace: Workspace,
) -> dict[str, Any]:
    return workspace.toggle_override(body.node_id, body.column_key)


@router.post("/overrides/risk")
async def set_risk_override(
    body: RiskOverrideRequest,
    workspace: Workspace,
) -> dict[str, Any]:
    try:
        return workspace.set_risk_override(body.node_id, body.level)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/report")
async def get_report(
    workspace: Workspace,
    filter_type: FilterType = Query(FilterType.ALL),
    generated_by: str = Query("System"),
) -> AuditReport:
    """生成稽核報告（檔案下載由前端處理）。"""
    return workspace.report(filter_type, generated_by)
