"""
Tree normalizer / serializer.

Legacy documents spell a device's child list in several ways
(``children``, ``connected_devices``, ``connected_servers``,
``virtual_machines``, ``systems``). Normalization folds them into the single
canonical ``children`` list; serialization writes them back under the key
derived from the device kind, plus flat label aliases for older consumers.
Alias names never leave this module.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from atlas.core.enums import NodeType
from atlas.core.exceptions import DocumentParseError
from atlas.schemas.topology import (
    BlueprintAttribute,
    BlueprintDocument,
    InfraNode,
    Link,
    Pop,
    kind_value,
)

logger = logging.getLogger(__name__)

# 優先順序固定：第一個存在且非 null 的欄位勝出
CHILD_KEYS: tuple[str, ...] = (
    "children",
    "connected_devices",
    "connected_servers",
    "virtual_machines",
    "systems",
)

# Canonical device fields; everything else on a raw device is a legacy extra
_NODE_FIELDS = ("id", "name", "ip", "status", "criticality")

# Keys a serialized device owns; label aliases and extras never overwrite them
_RESERVED_KEYS = frozenset({*CHILD_KEYS, *_NODE_FIELDS, "type", "attributes", "interfaces"})


# ── Normalize ────────────────────────────────────────────────────


def _resolve_children(raw: dict[str, Any]) -> list[Any]:
    for key in CHILD_KEYS:
        value = raw.get(key)
        # "" / false / 0 read as absent; an empty list still wins
        if value is None or (not value and not isinstance(value, list)):
            continue
        if not isinstance(value, list):
            raise DocumentParseError(
                f"node {raw.get('id')!r}: {key} is not a list"
            )
        return value
    return []


def _normalize_node_dict(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise DocumentParseError(f"node entry is not an object: {raw!r}")
    data = {k: v for k, v in raw.items() if k not in CHILD_KEYS}
    data["attributes"] = raw.get("attributes") or []
    data["children"] = [_normalize_node_dict(c) for c in _resolve_children(raw)]
    return data


def normalize_nodes(raw_nodes: list[Any]) -> list[InfraNode]:
    """Normalize a list of raw devices (any nesting depth)."""
    if not isinstance(raw_nodes, list):
        raise DocumentParseError("nodes is not a list")
    payload = [_normalize_node_dict(n) for n in raw_nodes]
    try:
        return [InfraNode.model_validate(n) for n in payload]
    except ValidationError as exc:
        raise DocumentParseError(str(exc)) from exc


def normalize_pops(raw_pops: list[Any]) -> list[Pop]:
    """Normalize raw pops into the canonical forest."""
    if not isinstance(raw_pops, list):
        raise DocumentParseError("pops is not a list")
    pops: list[Pop] = []
    for raw in raw_pops:
        if not isinstance(raw, dict):
            raise DocumentParseError(f"pop entry is not an object: {raw!r}")
        nodes = normalize_nodes(raw.get("nodes") or [])
        data = {k: v for k, v in raw.items() if k != "nodes"}
        try:
            pop = Pop.model_validate(data)
        except ValidationError as exc:
            raise DocumentParseError(str(exc)) from exc
        pops.append(pop.model_copy(update={"nodes": nodes}))
    return pops


def load_document(raw: str | bytes | dict[str, Any] | list[Any]) -> BlueprintDocument:
    """
    Parse and normalize a raw document.

    Accepts JSON text or an already-decoded object. A top-level array is read
    as the pop list. Missing ``pops`` yields an empty (valid) document.

    Raises:
        DocumentParseError: the input cannot be normalized at all
    """
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            logger.warning("Failed to parse raw document: %s", exc)
            raise DocumentParseError(f"invalid JSON: {exc}") from exc
    else:
        parsed = raw

    if isinstance(parsed, list):
        raw_pops, raw_links, raw_schema = parsed, [], []
    elif isinstance(parsed, dict):
        raw_pops = parsed.get("pops") or []
        raw_links = parsed.get("links") or []
        raw_schema = parsed.get("schema") or []
    else:
        raise DocumentParseError(
            f"document root must be an object or array, got {type(parsed).__name__}"
        )

    pops = normalize_pops(raw_pops)
    if not isinstance(raw_links, list) or not isinstance(raw_schema, list):
        raise DocumentParseError("links and schema must be lists")
    try:
        links = [Link.model_validate(lk) for lk in raw_links]
        schema = [BlueprintAttribute.model_validate(a) for a in raw_schema]
    except ValidationError as exc:
        raise DocumentParseError(str(exc)) from exc

    logger.debug(
        "Normalized document: %d pops, %d links, %d schema attributes",
        len(pops), len(links), len(schema),
    )
    return BlueprintDocument(pops=pops, links=links, schema=schema)


# ── Serialize ────────────────────────────────────────────────────


def _children_key(node: InfraNode) -> str:
    if isinstance(node.type, NodeType):
        return node.type.legacy_children_key
    return "children"


def serialize_node(node: InfraNode, schema: list[BlueprintAttribute]) -> dict[str, Any]:
    """Serialize one device (recursively) into the legacy wire shape."""
    labels = {attr.id: attr.alias_key for attr in schema}

    data: dict[str, Any] = {
        k: v for k, v in (node.model_extra or {}).items() if k not in _RESERVED_KEYS
    }
    for av in node.attributes:
        alias = labels.get(av.attribute_id)
        if alias and alias not in _RESERVED_KEYS:
            data[alias] = av.value

    for field in _NODE_FIELDS:
        data[field] = getattr(node, field)
    data["status"] = node.status.value
    data["criticality"] = node.criticality.value
    data["type"] = kind_value(node.type).lower()
    data["attributes"] = [
        _serialize_attribute_value(av) for av in node.attributes
    ]
    if node.interfaces is not None:
        data["interfaces"] = [i.model_dump(mode="json") for i in node.interfaces]
    data[_children_key(node)] = [serialize_node(c, schema) for c in node.children]
    return data


def _serialize_attribute_value(av: Any) -> dict[str, Any]:
    out = {"attributeId": av.attribute_id, "value": av.value}
    if av.label is not None:
        out["label"] = av.label
    return out


def serialize_pop(pop: Pop, schema: list[BlueprintAttribute]) -> dict[str, Any]:
    data: dict[str, Any] = dict(pop.model_extra or {})
    data.update({"id": pop.id, "name": pop.name, "city": pop.city})
    data["nodes"] = [serialize_node(n, schema) for n in pop.nodes]
    return data


def serialize_document(
    pops: list[Pop],
    schema: list[BlueprintAttribute] | None = None,
    links: list[Link] | None = None,
) -> dict[str, Any]:
    """Serialize the forest (plus links and schema) into a raw document."""
    schema = schema or []
    return {
        "pops": [serialize_pop(p, schema) for p in pops],
        "links": [
            lk.model_dump(mode="json", by_alias=True, exclude_none=True)
            for lk in (links or [])
        ],
        "schema": [
            a.model_dump(mode="json", by_alias=True, exclude_none=True)
            for a in schema
        ],
    }


def dump_document(
    pops: list[Pop],
    schema: list[BlueprintAttribute] | None = None,
    links: list[Link] | None = None,
) -> str:
    """JSON text form of :func:`serialize_document`."""
    return json.dumps(
        serialize_document(pops, schema, links), ensure_ascii=False, indent=2,
    )


# ── Structural comparison ────────────────────────────────────────


def canonical_node(node: InfraNode) -> dict[str, Any]:
    """Canonical fields only (legacy extras and alias fields dropped)."""
    return {
        "id": node.id,
        "type": kind_value(node.type),
        "name": node.name,
        "ip": node.ip,
        "status": node.status.value,
        "criticality": node.criticality.value,
        "attributes": [
            _serialize_attribute_value(av) for av in node.attributes
        ],
        "interfaces": (
            [i.model_dump(mode="json") for i in node.interfaces]
            if node.interfaces is not None else None
        ),
        "children": [canonical_node(c) for c in node.children],
    }


def canonical_dump(pops: list[Pop]) -> list[dict[str, Any]]:
    """Structural form of a forest, used for round-trip equality and hashing."""
    return [
        {
            "id": p.id,
            "name": p.name,
            "city": p.city,
            "nodes": [canonical_node(n) for n in p.nodes],
        }
        for p in pops
    ]
