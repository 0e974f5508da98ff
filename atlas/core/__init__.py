"""Core module - contains enums, exceptions, and configuration."""
from .enums import (
    AttributeValueType,
    Criticality,
    FilterType,
    MatchStrategy,
    NodeStatus,
    NodeType,
    RiskLevel,
)
from .config import settings
from .exceptions import AtlasError, DocumentParseError

__all__ = [
    "AttributeValueType",
    "Criticality",
    "FilterType",
    "MatchStrategy",
    "NodeStatus",
    "NodeType",
    "RiskLevel",
    "AtlasError",
    "DocumentParseError",
    "settings",
]
