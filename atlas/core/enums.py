"""
Enumeration definitions for the application.

All enums are defined here to maintain consistency and type safety.
"""
from enum import Enum


class NodeType(str, Enum):
    """
    Device kinds: the closed set of infrastructure node types.

    Legacy documents may carry other kinds; those pass through as
    upper-cased strings and are never coerced into this enum.
    """

    SWITCH = "SWITCH"
    PHYSICAL_SERVER = "PHYSICAL_SERVER"
    VIRTUAL_MACHINE = "VIRTUAL_MACHINE"
    SYSTEM = "SYSTEM"
    ROUTER = "ROUTER"

    @property
    def legacy_children_key(self) -> str:
        """Child array field name written for this kind on serialization."""
        return {
            "SWITCH": "connected_servers",
            "PHYSICAL_SERVER": "virtual_machines",
            "VIRTUAL_MACHINE": "systems",
        }.get(self.value, "children")


class NodeStatus(str, Enum):
    """Operational state of a device."""

    ON = "ON"
    OFF = "OFF"
    MAINTENANCE = "MAINTENANCE"


class Criticality(str, Enum):
    """Business criticality tag of a device."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AttributeValueType(str, Enum):
    """Value kinds for schema attribute definitions."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    SELECT = "SELECT"
    LIST = "LIST"


class InterfaceType(str, Enum):
    """Network interface media."""

    COPPER = "COPPER"
    FIBER = "FIBER"
    VIRTUAL = "VIRTUAL"


class InterfaceStatus(str, Enum):
    """Network interface state."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class LinkType(str, Enum):
    """Non-hierarchical relation kinds between two devices."""

    DATA = "DATA"
    BACKBONE = "BACKBONE"
    LOGICAL = "LOGICAL"


class RiskLevel(str, Enum):
    """
    Risk tags.

    - LOW / MEDIUM / CRITICAL: computed from scores or child risk
    - HIGH: only ever set through a manual risk override
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FilterType(str, Enum):
    """
    Audit type filter.

    SERVER 同時涵蓋 PHYSICAL_SERVER 與 VIRTUAL_MACHINE，與 VM 重疊（既有行為）。
    """

    ALL = "ALL"
    SERVER = "SERVER"
    SWITCH = "SWITCH"
    VM = "VM"

    def matches(self, node_type: str) -> bool:
        """Whether a device kind falls into this filter bucket."""
        kind = (node_type or "").upper().strip()
        if self is FilterType.ALL:
            return True
        if self is FilterType.SERVER:
            return kind in {"PHYSICAL_SERVER", "VIRTUAL_MACHINE", "SERVER"}
        if self is FilterType.SWITCH:
            return kind == "SWITCH"
        return kind in {"VIRTUAL_MACHINE", "VM"}


class MatchStrategy(str, Enum):
    """Which matcher strategy produced an attribute value."""

    ATTR_BY_ID = "attrById"
    ATTR_BY_LABEL = "attrByLabel"
    DIRECT_BY_ID = "directById"
    DIRECT_BY_KEY = "directByKey"
    FUZZY = "fuzzy"
    NONE = "none"
