"""
Topology package.

Canonical device tree: legacy normalization/serialization, copy-on-write
mutations and capacity statistics.
"""
from atlas.topology.normalizer import (
    CHILD_KEYS,
    canonical_dump,
    dump_document,
    load_document,
    normalize_nodes,
    normalize_pops,
    serialize_document,
    serialize_node,
)
from atlas.topology.stats import CapacityStats, compute_capacity_stats
from atlas.topology.tree import TopologyTree, find_node_by_id, iter_nodes

__all__ = [
    "CHILD_KEYS",
    "canonical_dump",
    "dump_document",
    "load_document",
    "normalize_nodes",
    "normalize_pops",
    "serialize_document",
    "serialize_node",
    "CapacityStats",
    "compute_capacity_stats",
    "TopologyTree",
    "find_node_by_id",
    "iter_nodes",
]
