"""
Node tree mutator.

``TopologyTree`` owns the canonical forest (list of pops) and applies
structural operations copy-on-write: only the pops/devices on the path to the
mutated node are rebuilt, every other subtree is shared by reference with the
previous snapshot. A mutation that finds nothing to change keeps the previous
``pops`` object, so ``tree.pops is snapshot`` is a valid "unchanged" test.

Unknown identities are never an error; the operation is a silent no-op.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterator
from typing import Any

from atlas.core.config import settings
from atlas.core.enums import Criticality, NodeStatus, NodeType
from atlas.schemas.topology import (
    BlueprintAttribute,
    BlueprintDocument,
    InfraNode,
    Link,
    NodeAttributeValue,
    Pop,
)
from atlas.topology.normalizer import CHILD_KEYS, load_document, serialize_document

logger = logging.getLogger(__name__)

# Fields update_node() must never replace; attribute values go through
# update_node_attribute() to keep one value per attribute id
_PROTECTED_FIELDS = frozenset({"id", "children", "attributes", *CHILD_KEYS})

NodeTransform = Callable[[InfraNode], InfraNode]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _map_nodes(
    nodes: list[InfraNode],
    node_id: str,
    transform: NodeTransform,
) -> list[InfraNode]:
    """Apply ``transform`` to every node with ``node_id``; share the rest.

    Returns the original list object when nothing changed.
    """
    changed = False
    result: list[InfraNode] = []
    for node in nodes:
        new_node = node
        if node.id == node_id:
            new_node = transform(node)
        # Duplicates may also sit below a matched node
        if new_node.children:
            children = _map_nodes(new_node.children, node_id, transform)
            if children is not new_node.children:
                new_node = new_node.model_copy(update={"children": children})
        if new_node is not node:
            changed = True
        result.append(new_node)
    return result if changed else nodes


def _remove_nodes(nodes: list[InfraNode], node_id: str) -> list[InfraNode]:
    changed = False
    result: list[InfraNode] = []
    for node in nodes:
        if node.id == node_id:
            changed = True
            continue
        new_node = node
        if node.children:
            children = _remove_nodes(node.children, node_id)
            if children is not node.children:
                new_node = node.model_copy(update={"children": children})
                changed = True
        result.append(new_node)
    return result if changed else nodes


def find_node_by_id(node_id: str, nodes: list[InfraNode]) -> InfraNode | None:
    """Depth-first search through a node list."""
    for node in nodes:
        if node.id == node_id:
            return node
        if node.children:
            found = find_node_by_id(node_id, node.children)
            if found is not None:
                return found
    return None


def iter_nodes(nodes: list[InfraNode]) -> Iterator[InfraNode]:
    """Depth-first pre-order traversal."""
    for node in nodes:
        yield node
        yield from iter_nodes(node.children)


def build_default_node(node_type: NodeType | str) -> InfraNode:
    """New device with editor defaults."""
    kind = node_type.value if isinstance(node_type, NodeType) else str(node_type).upper()
    return InfraNode(
        id=_new_id(settings.node_id_prefix),
        name=f"New {kind.replace('_', ' ', 1)}",
        type=node_type,
        ip=settings.default_node_ip,
        status=NodeStatus.OFF,
        criticality=Criticality.MEDIUM,
        attributes=[],
        interfaces=[],
    )


def upsert_attribute(node: InfraNode, attribute_id: str, value: Any) -> InfraNode:
    """Create or replace the attribute value, keeping one per attribute id."""
    existing = node.get_attribute(attribute_id)
    if existing is None:
        attributes = [
            *node.attributes,
            NodeAttributeValue(attribute_id=attribute_id, value=value),
        ]
    else:
        attributes = [
            a.model_copy(update={"value": value}) if a.attribute_id == attribute_id else a
            for a in node.attributes
            # 清除重複的舊值（legacy 資料可能同 id 多筆）
            if a.attribute_id != attribute_id or a is existing
        ]
    return node.model_copy(update={"attributes": attributes})


class TopologyTree:
    """Canonical forest of pops plus the links that reference its devices."""

    def __init__(
        self,
        pops: list[Pop] | None = None,
        links: list[Link] | None = None,
    ) -> None:
        self._pops: list[Pop] = list(pops or [])
        self._links: list[Link] = list(links or [])

    # ── Snapshots ────────────────────────────────────────────────

    @property
    def pops(self) -> list[Pop]:
        """Current forest snapshot. Treat as read-only."""
        return self._pops

    @property
    def links(self) -> list[Link]:
        return self._links

    def set_links(self, links: list[Link]) -> None:
        self._links = list(links)

    @classmethod
    def from_document(cls, document: BlueprintDocument) -> TopologyTree:
        return cls(pops=document.pops, links=document.links)

    @classmethod
    def load(cls, raw: Any) -> TopologyTree:
        """Rebuild a tree from a raw document (full rebuild, no diffing)."""
        return cls.from_document(load_document(raw))

    def to_document(self, schema: list[BlueprintAttribute] | None = None) -> dict[str, Any]:
        return serialize_document(self._pops, schema, self._links)

    # ── Pops ─────────────────────────────────────────────────────

    def add_pop(
        self,
        name: str | None = None,
        city: str | None = None,
    ) -> Pop:
        pop = Pop(
            id=_new_id(settings.pop_id_prefix),
            name=name if name is not None else settings.default_pop_name,
            city=city if city is not None else settings.default_pop_city,
            nodes=[],
        )
        self._pops = [*self._pops, pop]
        logger.info("Added pop %s", pop.id)
        return pop

    def remove_pop(self, pop_id: str) -> bool:
        pops = [p for p in self._pops if p.id != pop_id]
        if len(pops) == len(self._pops):
            return False
        self._pops = pops
        logger.info("Removed pop %s", pop_id)
        return True

    def find_pop(self, pop_id: str) -> Pop | None:
        for pop in self._pops:
            if pop.id == pop_id:
                return pop
        return None

    # ── Nodes ────────────────────────────────────────────────────

    def find_node(self, node_id: str) -> InfraNode | None:
        for pop in self._pops:
            found = find_node_by_id(node_id, pop.nodes)
            if found is not None:
                return found
        return None

    def add_node(
        self,
        parent_id: str,
        node_type: NodeType | str = NodeType.PHYSICAL_SERVER,
    ) -> InfraNode | None:
        """Append a new default device under a pop or device.

        Returns ``None`` (and changes nothing) when the parent is unknown.
        """
        new_node = build_default_node(node_type)

        for index, pop in enumerate(self._pops):
            if pop.id == parent_id:
                updated = pop.model_copy(update={"nodes": [*pop.nodes, new_node]})
                self._replace_pop(index, updated)
                logger.debug("Added node %s to pop %s", new_node.id, parent_id)
                return new_node

        appended = False

        def append_child(node: InfraNode) -> InfraNode:
            nonlocal appended
            # Only the first occurrence of a duplicated parent receives the node
            if appended:
                return node
            appended = True
            return node.model_copy(update={"children": [*node.children, new_node]})

        if self._apply_first(parent_id, append_child):
            logger.debug("Added node %s under %s", new_node.id, parent_id)
            return new_node
        logger.debug("add_node: parent %s not found", parent_id)
        return None

    def remove_node(self, node_id: str) -> bool:
        """Remove every occurrence of ``node_id`` together with its subtree."""
        changed = False
        pops: list[Pop] = []
        for pop in self._pops:
            nodes = _remove_nodes(pop.nodes, node_id)
            if nodes is not pop.nodes:
                pop = pop.model_copy(update={"nodes": nodes})
                changed = True
            pops.append(pop)
        if changed:
            self._pops = pops
            logger.debug("Removed node %s", node_id)
        return changed

    def update_node(self, node_id: str, updates: dict[str, Any]) -> bool:
        """Replace scalar fields on the matched device (children untouched)."""
        fields = {k: v for k, v in updates.items() if k not in _PROTECTED_FIELDS}
        if not fields:
            return False
        # 透過 validate 轉換 enum / interfaces，再合併回原節點
        validated = _validate_partial(fields)

        def apply(node: InfraNode) -> InfraNode:
            return node.model_copy(update=validated)

        return self._apply_all(node_id, apply)

    def update_node_attribute(self, node_id: str, attribute_id: str, value: Any) -> bool:
        """
        Set a scalar or attribute value on a pop or device.

        - pop: ``name`` / ``city`` map to the pop's own fields
        - device: ``name`` / ``ip`` map to scalars, anything else upserts
          the attribute value (one per attribute id)
        """
        if attribute_id in ("name", "city"):
            for index, pop in enumerate(self._pops):
                if pop.id == node_id:
                    self._replace_pop(index, pop.model_copy(update={attribute_id: value}))
                    return True

        if attribute_id in ("name", "ip"):
            def apply(node: InfraNode) -> InfraNode:
                return node.model_copy(update={attribute_id: value})
        else:
            def apply(node: InfraNode) -> InfraNode:
                return upsert_attribute(node, attribute_id, value)

        return self._apply_all(node_id, apply)

    def dangling_links(self) -> list[Link]:
        """Links with at least one endpoint missing from the forest."""
        known = {n.id for pop in self._pops for n in iter_nodes(pop.nodes)}
        return [
            lk for lk in self._links
            if lk.source_id not in known or lk.target_id not in known
        ]

    # ── Internals ────────────────────────────────────────────────

    def _replace_pop(self, index: int, pop: Pop) -> None:
        pops = list(self._pops)
        pops[index] = pop
        self._pops = pops

    def _apply_all(self, node_id: str, transform: NodeTransform) -> bool:
        changed = False
        pops: list[Pop] = []
        for pop in self._pops:
            nodes = _map_nodes(pop.nodes, node_id, transform)
            if nodes is not pop.nodes:
                pop = pop.model_copy(update={"nodes": nodes})
                changed = True
            pops.append(pop)
        if changed:
            self._pops = pops
        return changed

    def _apply_first(self, node_id: str, transform: NodeTransform) -> bool:
        for index, pop in enumerate(self._pops):
            if find_node_by_id(node_id, pop.nodes) is None:
                continue
            nodes = _map_nodes(pop.nodes, node_id, transform)
            self._replace_pop(index, pop.model_copy(update={"nodes": nodes}))
            return True
        return False


def _validate_partial(fields: dict[str, Any]) -> dict[str, Any]:
    """Run declared fields through InfraNode validation; extras pass as-is."""
    partial = InfraNode.model_validate({"id": "_", **fields})
    result: dict[str, Any] = {}
    for key in fields:
        if key in InfraNode.model_fields:
            result[key] = getattr(partial, key)
        else:
            result[key] = fields[key]
    return result
