"""
Topology models: the canonical in-memory tree.

架構總覽：
    Raw document (legacy JSON, 多種 children 欄位名稱)
        ↓ atlas.topology.normalizer
    Pop / InfraNode (本模組，canonical tree)
        ↓ atlas.topology.tree (copy-on-write mutations)
        ↓ atlas.compliance.aggregation

Models are frozen: every mutation goes through ``model_copy`` so untouched
subtrees stay shared by reference. Device and Pop keep unknown legacy fields
as extras; those feed the attribute matcher's direct/fuzzy strategies.
"""
from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from atlas.core.enums import (
    AttributeValueType,
    Criticality,
    InterfaceStatus,
    InterfaceType,
    LinkType,
    NodeStatus,
    NodeType,
)


# ── Helper ───────────────────────────────────────────────────────


def _normalize_node_type(v: Any) -> NodeType | str:
    """將 type 正規化為 NodeType；未知類型保留為大寫字串（不拋錯）。"""
    if v is None:
        return ""
    if isinstance(v, NodeType):
        return v
    v = str(v).strip().upper()
    try:
        return NodeType(v)
    except ValueError:
        return v


def _normalize_enum(v: Any, enum_cls: type, default: Any) -> Any:
    """大小寫不敏感的枚舉正規化；無法匹配時回傳 default。"""
    if v is None:
        return default
    if isinstance(v, enum_cls):
        return v
    try:
        return enum_cls(str(v).strip().upper())
    except ValueError:
        return default


def _coerce_id(v: Any) -> Any:
    """Legacy documents sometimes carry numeric ids."""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


def _coerce_text(v: Any) -> Any:
    """Null text fields read as empty; numeric ones as their string form."""
    if v is None:
        return ""
    return _coerce_id(v)


def kind_value(node_type: NodeType | str) -> str:
    """Plain string form of a node kind (enum member or pass-through string)."""
    if isinstance(node_type, NodeType):
        return node_type.value
    return node_type


# ── Tree Models ──────────────────────────────────────────────────


class NodeAttributeValue(BaseModel):
    """Attribute value attached to a device (one per attribute id)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    attribute_id: str = Field(alias="attributeId")
    value: Any = None
    # Legacy denormalized label (matcher strategy attrByLabel)
    label: str | None = None

    @field_validator("attribute_id", mode="before")
    @classmethod
    def coerce_attribute_id(cls, v: Any) -> Any:
        return _coerce_id(v)


class NetworkInterface(BaseModel):
    """Network interface of a device."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    type: InterfaceType = InterfaceType.COPPER
    status: InterfaceStatus = InterfaceStatus.INACTIVE

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class InfraNode(BaseModel):
    """Device in the topology tree.

    ``children`` is the single canonical child list; legacy aliases never
    reach this model.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    type: Union[NodeType, str] = Field(default="", union_mode="left_to_right")
    name: str = ""
    ip: str = ""
    status: NodeStatus = NodeStatus.OFF
    criticality: Criticality = Criticality.MEDIUM
    children: list[InfraNode] = Field(default_factory=list)
    attributes: list[NodeAttributeValue] = Field(default_factory=list)
    interfaces: list[NetworkInterface] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("name", "ip", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> NodeType | str:
        return _normalize_node_type(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> NodeStatus:
        return _normalize_enum(v, NodeStatus, NodeStatus.OFF)

    @field_validator("criticality", mode="before")
    @classmethod
    def normalize_criticality(cls, v: Any) -> Criticality:
        return _normalize_enum(v, Criticality, Criticality.MEDIUM)

    @field_validator("children", "attributes", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def kind(self) -> str:
        return kind_value(self.type)

    def get_attribute(self, attribute_id: str) -> NodeAttributeValue | None:
        for attr in self.attributes:
            if attr.attribute_id == attribute_id:
                return attr
        return None


class Pop(BaseModel):
    """Region (point of presence) holding root devices."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    name: str = ""
    city: str = ""
    nodes: list[InfraNode] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("name", "city", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator("nodes", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


# ── Links ────────────────────────────────────────────────────────


class Waypoint(BaseModel):
    """Diagram routing point (presentation geometry, passed through)."""

    x: float
    y: float


class Link(BaseModel):
    """Non-hierarchical relation between two device ids.

    Endpoints may reference devices that no longer exist.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")
    label: str = ""
    type: LinkType = LinkType.DATA
    route_name: str | None = Field(default=None, alias="routeName")
    color: str | None = None
    source_handle: str | None = Field(default=None, alias="sourceHandle")
    target_handle: str | None = Field(default=None, alias="targetHandle")
    waypoints: list[Waypoint] | None = None

    @field_validator("source_id", "target_id", mode="before")
    @classmethod
    def coerce_endpoint(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("label", mode="before")
    @classmethod
    def coerce_label(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_enum(v, LinkType, LinkType.DATA)


# ── Schema (caller supplied) ─────────────────────────────────────


class BlueprintAttribute(BaseModel):
    """Attribute definition from the editable schema."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    label: str
    type: AttributeValueType = AttributeValueType.TEXT
    required: bool | None = None
    default_value: Any = Field(default=None, alias="defaultValue")
    options: list[str] | None = None
    description: str | None = None
    is_inherited: bool | None = Field(default=None, alias="isInherited")
    applies_to: list[str] | None = Field(default=None, alias="appliesTo")
    enabled: bool = True
    show_in_security: bool = Field(default=False, alias="showInSecurity")

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_enum(v, AttributeValueType, AttributeValueType.TEXT)

    @property
    def alias_key(self) -> str:
        """Flat legacy field name written next to ``attributes``."""
        return self.label.lower().replace(" ", "_")

    def applies_to_kind(self, node_type: NodeType | str) -> bool:
        if not self.applies_to:
            return True
        return kind_value(node_type) in {k.upper() for k in self.applies_to}


class AuditColumn(BaseModel):
    """Caller-side projection of an attribute to audit.

    ``id`` is the schema attribute id, ``key`` the column key used in
    override keys and compliance maps.
    """

    id: str
    label: str
    key: str


class BlueprintDocument(BaseModel):
    """Normalized form of a whole raw document."""

    model_config = ConfigDict(populate_by_name=True)

    pops: list[Pop] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    schema_attributes: list[BlueprintAttribute] = Field(
        default_factory=list, alias="schema",
    )
