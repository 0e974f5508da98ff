"""Pydantic schemas for the topology tree and security audit models."""
from .topology import (
    AuditColumn,
    BlueprintAttribute,
    BlueprintDocument,
    InfraNode,
    Link,
    NetworkInterface,
    NodeAttributeValue,
    Pop,
    Waypoint,
)
from .security import (
    AuditReport,
    ComplianceData,
    NodeCompliance,
    SecurityAuditResult,
    SecurityNode,
    SecurityStats,
)

__all__ = [
    "AuditColumn",
    "BlueprintAttribute",
    "BlueprintDocument",
    "InfraNode",
    "Link",
    "NetworkInterface",
    "NodeAttributeValue",
    "Pop",
    "Waypoint",
    "AuditReport",
    "ComplianceData",
    "NodeCompliance",
    "SecurityAuditResult",
    "SecurityNode",
    "SecurityStats",
]
