"""
Compliance aggregation engine.

Walks the canonical forest bottom-up:

- A node without surviving children is a **leaf**: scored directly by the
  calculator; counted in the global stats when it passes the type filter.
- A node with surviving children (and every pop) is a **group**: score is the
  rounded mean of its children, risk is CRITICAL if any child is CRITICAL,
  else MEDIUM if any child is MEDIUM or there are no children, else LOW.
- A node that fails the filter and has no surviving descendants is pruned
  from the result tree.

Schema-derived columns and the override set are passed in on every call;
recomputation is always full.
"""
from __future__ import annotations

import logging
import time

from atlas.compliance.calculator import (
    calculate_node_compliance,
    risk_for_score,
    round_half_up,
)
from atlas.compliance.overrides import OverrideSet, get_risk_override
from atlas.core.config import settings
from atlas.core.enums import FilterType, RiskLevel
from atlas.schemas.security import SecurityAuditResult, SecurityNode, SecurityStats
from atlas.schemas.topology import AuditColumn, InfraNode, Pop

logger = logging.getLogger(__name__)

POP_TYPE = "POP"


def aggregate_risk(children: list[SecurityNode]) -> RiskLevel:
    """Group risk from child risk tags (computed tags, not manual overrides)."""
    risks = {child.risk_level for child in children}
    if RiskLevel.CRITICAL in risks:
        return RiskLevel.CRITICAL
    if RiskLevel.MEDIUM in risks or not children:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def aggregate_score(children: list[SecurityNode]) -> int:
    if not children:
        return 0
    return round_half_up(sum(child.score for child in children) / len(children))


class _StatsAccumulator:
    """Running totals over filtered leaves."""

    def __init__(self) -> None:
        self.total_score = 0
        self.monitored = 0
        self.protected = 0
        self.critical_gaps = 0

    def add(self, score: int) -> None:
        self.total_score += score
        self.monitored += 1
        if score >= settings.stats.protected_from:
            self.protected += 1
        if score < settings.stats.critical_below:
            self.critical_gaps += 1

    def to_stats(self) -> SecurityStats:
        avg = round_half_up(self.total_score / self.monitored) if self.monitored else 0
        return SecurityStats(
            total=self.monitored,
            protected_nodes=self.protected,
            critical_gaps=self.critical_gaps,
            avg_score=avg,
        )


class ComplianceAggregator:
    """
    One aggregation pass over a forest.

    The instance binds the columns, overrides and filter for the pass; inputs
    are only read, never mutated.
    """

    def __init__(
        self,
        columns: list[AuditColumn],
        overrides: OverrideSet,
        filter_type: FilterType = FilterType.ALL,
    ) -> None:
        self.columns = columns
        self.overrides = overrides
        self.filter_type = filter_type

    def run(self, pops: list[Pop]) -> SecurityAuditResult:
        t0 = time.monotonic()
        acc = _StatsAccumulator()
        nodes = [
            processed
            for processed in (self._process_pop(pop, acc) for pop in pops)
            if processed is not None
        ]
        stats = acc.to_stats()

        logger.debug(
            "Aggregated %d pops (filter=%s): %d leaves, avg %d (%.3fs)",
            len(pops), self.filter_type.value, stats.total, stats.avg_score,
            time.monotonic() - t0,
        )
        return SecurityAuditResult(
            filter_type=self.filter_type,
            columns=list(self.columns),
            nodes=nodes,
            stats=stats,
            global_score=stats.avg_score,
            global_risk_level=risk_for_score(stats.avg_score),
        )

    def _process_pop(self, pop: Pop, acc: _StatsAccumulator) -> SecurityNode | None:
        children = self._process_children(pop.nodes, acc)
        # Pops only ever match the ALL filter
        if self.filter_type is not FilterType.ALL and not children:
            return None

        local = calculate_node_compliance(pop, self.columns, self.overrides)
        return self._annotate(
            SecurityNode(
                id=pop.id,
                name=pop.name,
                type=POP_TYPE,
                is_group=True,
                score=aggregate_score(children),
                risk_level=aggregate_risk(children),
                compliance=local.compliance,
                children=children,
            )
        )

    def _process_node(self, node: InfraNode, acc: _StatsAccumulator) -> SecurityNode | None:
        children = self._process_children(node.children, acc)
        is_match = self.filter_type.matches(node.kind)
        if not is_match and not children:
            return None

        local = calculate_node_compliance(node, self.columns, self.overrides)
        annotated = SecurityNode(
            id=node.id,
            name=node.name,
            type=node.kind,
            ip=node.ip,
            status=node.status.value,
            criticality=node.criticality.value,
            compliance=local.compliance,
            children=children,
        )
        if children:
            annotated.is_group = True
            annotated.score = aggregate_score(children)
            annotated.risk_level = aggregate_risk(children)
        else:
            annotated.score = local.score
            annotated.risk_level = local.risk_level
            if is_match:
                acc.add(local.score)
        return self._annotate(annotated)

    def _process_children(
        self,
        nodes: list[InfraNode],
        acc: _StatsAccumulator,
    ) -> list[SecurityNode]:
        return [
            processed
            for processed in (self._process_node(child, acc) for child in nodes)
            if processed is not None
        ]

    def _annotate(self, node: SecurityNode) -> SecurityNode:
        node.risk_override = get_risk_override(self.overrides, node.id)
        node.effective_risk = node.risk_override or node.risk_level
        return node


def aggregate_security(
    pops: list[Pop],
    columns: list[AuditColumn],
    overrides: OverrideSet | None = None,
    filter_type: FilterType | str = FilterType.ALL,
) -> SecurityAuditResult:
    """Run the aggregation engine over a forest."""
    if not isinstance(filter_type, FilterType):
        filter_type = FilterType(filter_type.strip().upper())
    return ComplianceAggregator(
        columns=columns,
        overrides=overrides or {},
        filter_type=filter_type,
    ).run(pops)


def flatten_leaves(nodes: list[SecurityNode], filter_type: FilterType = FilterType.ALL) -> list[SecurityNode]:
    """Leaf devices of a result tree that count toward the global stats."""
    leaves: list[SecurityNode] = []
    for node in nodes:
        if node.children:
            leaves.extend(flatten_leaves(node.children, filter_type))
        elif node.type != POP_TYPE and filter_type.matches(node.type):
            leaves.append(node)
    return leaves
