"""
Capacity statistics over the topology tree.

Physical vs virtual RAM allocation, scoped to a pop, a device subtree or the
whole forest.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from atlas.core.enums import NodeType
from atlas.schemas.topology import InfraNode, Pop
from atlas.topology.tree import find_node_by_id, iter_nodes

RAM_ATTRIBUTE_ID = "attr-ram-val-1"

_DIGITS = re.compile(r"\d+")


@dataclass
class CapacityStats:
    """RAM totals (in whatever unit the attribute values use)."""

    physical_ram: int = 0
    virtual_ram: int = 0

    @property
    def efficiency(self) -> float:
        """Virtual allocation as a percentage of physical RAM."""
        if self.physical_ram <= 0:
            return 0.0
        return self.virtual_ram / self.physical_ram * 100


def ram_amount(node: InfraNode) -> int:
    """
    RAM value of a device.

    先找固定 id，再以 id / label 含 "ram" 模糊比對；取第一段數字。
    """
    attr = node.get_attribute(RAM_ATTRIBUTE_ID)
    value = attr.value if attr is not None else None
    if value is None:
        for candidate in node.attributes:
            if "ram" in candidate.attribute_id.lower() or (
                candidate.label and "ram" in candidate.label.lower()
            ):
                value = candidate.value
                break
    match = _DIGITS.search(str(value or "0"))
    return int(match.group(0)) if match else 0


def compute_capacity_stats(
    pops: list[Pop],
    selected_id: str | None = None,
) -> CapacityStats:
    """Sum RAM over the selection (pop id, device id, or everything).

    An unknown ``selected_id`` yields empty stats.
    """
    roots: list[InfraNode] = []
    if selected_id is None:
        roots = [n for pop in pops for n in pop.nodes]
    else:
        pop = next((p for p in pops if p.id == selected_id), None)
        if pop is not None:
            roots = list(pop.nodes)
        else:
            target = find_node_by_id(selected_id, [n for p in pops for n in p.nodes])
            if target is not None:
                roots = [target]

    stats = CapacityStats()
    for node in iter_nodes(roots):
        amount = ram_amount(node)
        if node.type == NodeType.PHYSICAL_SERVER:
            stats.physical_ram += amount
        elif node.type == NodeType.VIRTUAL_MACHINE:
            stats.virtual_ram += amount
    return stats
