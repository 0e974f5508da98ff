"""
Topology API endpoints.

文件載入 / 序列化，以及 pop / node 的結構操作。
Mutations on unknown ids are no-ops and answer ``changed: false``.
"""
from __future__ import annotations

from typing import Any, Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from atlas.core.enums import Criticality, NodeStatus, NodeType
from atlas.core.exceptions import DocumentParseError
from atlas.schemas.topology import InfraNode, Link, NetworkInterface, Pop
from atlas.services.workspace import WorkspaceService, get_workspace_service

router = APIRouter()

Workspace = Annotated[WorkspaceService, Depends(get_workspace_service)]


# ── Request Models ───────────────────────────────────────────────


class PopCreate(BaseModel):
    """新增 POP 請求（皆可省略，使用預設名稱）。"""
    name: str | None = None
    city: str | None = None


class NodeCreate(BaseModel):
    """新增節點請求。"""
    parent_id: str = Field(..., description="POP 或父節點 id")
    type: str = Field(default=NodeType.PHYSICAL_SERVER.value, description="節點類型")


class NodeUpdate(BaseModel):
    """節點純量欄位更新。只需包含要修改的欄位；未知欄位視為 legacy 欄位。"""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    ip: str | None = None
    type: str | None = None
    status: NodeStatus | None = None
    criticality: Criticality | None = None
    interfaces: list[NetworkInterface] | None = None


class AttributeValueUpdate(BaseModel):
    value: Any = None


class MutationResponse(BaseModel):
    changed: bool


# ── Document ─────────────────────────────────────────────────────


@router.put("/document")
async def load_document(
    workspace: Workspace,
    payload: Annotated[Any, Body(...)],
) -> dict[str, Any]:
    """載入原始文件（完整重建，不做差異比對）。"""
    try:
        workspace.load(payload)
    except DocumentParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.reason,
        ) from exc
    return {
        "pops": len(workspace.tree.pops),
        "links": len(workspace.tree.links),
        "schema": len(workspace.schema),
    }


@router.get("/document")
async def get_document(workspace: Workspace) -> dict[str, Any]:
    """序列化目前的拓撲（legacy 格式）。"""
    return workspace.document()


# ── Pops ─────────────────────────────────────────────────────────


@router.post("/pops", status_code=status.HTTP_201_CREATED)
async def create_pop(workspace: Workspace, body: PopCreate | None = None) -> Pop:
    body = body or PopCreate()
    return workspace.add_pop(name=body.name, city=body.city)


@router.delete("/pops/{pop_id}")
async def delete_pop(pop_id: str, workspace: Workspace) -> MutationResponse:
    return MutationResponse(changed=workspace.remove_pop(pop_id))


@router.patch("/pops/{pop_id}/attributes/{attribute_id}")
async def update_pop_attribute(
    pop_id: str,
    attribute_id: str,
    body: AttributeValueUpdate,
    workspace: Workspace,
) -> MutationResponse:
    changed = workspace.update_node_attribute(pop_id, attribute_id, body.value)
    return MutationResponse(changed=changed)


# ── Nodes ────────────────────────────────────────────────────────


@router.post("/nodes")
async def create_node(body: NodeCreate, workspace: Workspace) -> dict[str, Any]:
    """在 POP 或節點下新增預設節點；父節點不存在時 node 為 null。"""
    node = workspace.add_node(body.parent_id, body.type)
    return {
        "changed": node is not None,
        "node": node.model_dump(mode="json") if node is not None else None,
    }


@router.get("/nodes/{node_id}")
async def get_node(node_id: str, workspace: Workspace) -> InfraNode:
    node = workspace.tree.find_node(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
    return node


@router.patch("/nodes/{node_id}")
async def update_node(
    node_id: str,
    body: NodeUpdate,
    workspace: Workspace,
) -> MutationResponse:
    # null means "leave as is"
    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        changed = workspace.update_node(node_id, updates)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return MutationResponse(changed=changed)


@router.delete("/nodes/{node_id}")
async def delete_node(node_id: str, workspace: Workspace) -> MutationResponse:
    return MutationResponse(changed=workspace.remove_node(node_id))


@router.put("/nodes/{node_id}/attributes/{attribute_id}")
async def set_node_attribute(
    node_id: str,
    attribute_id: str,
    body: AttributeValueUpdate,
    workspace: Workspace,
) -> MutationResponse:
    changed = workspace.update_node_attribute(node_id, attribute_id, body.value)
    return MutationResponse(changed=changed)


# ── Read-only views ──────────────────────────────────────────────


@router.get("/stats")
async def get_capacity_stats(
    workspace: Workspace,
    selected_id: str | None = Query(None, description="POP 或節點 id；省略為全部"),
) -> dict[str, Any]:
    stats = workspace.capacity_stats(selected_id)
    return {
        "physical_ram": stats.physical_ram,
        "virtual_ram": stats.virtual_ram,
        "efficiency": stats.efficiency,
    }


@router.put("/links")
async def replace_links(links: list[Link], workspace: Workspace) -> dict[str, Any]:
    """替換連線清單（端點不存在的連線照樣保留）。"""
    workspace.set_links(links)
    return {"links": len(links), "dangling": len(workspace.tree.dangling_links())}


@router.get("/links/dangling")
async def get_dangling_links(workspace: Workspace) -> list[Link]:
    return workspace.tree.dangling_links()
