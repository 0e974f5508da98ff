"""
Attribute matcher.

Resolves an audit column to a value on a device. Strategies are tried in a
fixed order and the first hit wins:

    1. attrById    : attribute value with attributeId == column.id
    2. attrByLabel : attribute value whose legacy label == column.label (ci)
    3. directById  : scalar field named column.id
    4. directByKey : scalar field named column.key
    5. fuzzy       : normalized column.label == normalized scalar field name

"Not found" (``MatchStrategy.NONE``) is a normal outcome, not an error.
"""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Any

from atlas.core.enums import MatchStrategy
from atlas.schemas.topology import AuditColumn, InfraNode, Pop

# Container fields are never scalar candidates
_STRUCTURAL_FIELDS = frozenset({"children", "nodes", "attributes", "interfaces"})

_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class MatchResult:
    """Tagged matcher outcome."""

    value: Any
    strategy: MatchStrategy

    @property
    def found(self) -> bool:
        return self.strategy is not MatchStrategy.NONE


NOT_FOUND = MatchResult(value=None, strategy=MatchStrategy.NONE)


def normalize_string(text: str) -> str:
    """去除重音符號、轉小寫、移除所有非英數字元。"""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("", stripped.lower())


def scalar_fields(item: InfraNode | Pop) -> dict[str, Any]:
    """Scalar view of a node: declared fields (enums as values) then extras."""
    fields: dict[str, Any] = {}
    for name in type(item).model_fields:
        if name in _STRUCTURAL_FIELDS:
            continue
        value = getattr(item, name)
        fields[name] = value.value if isinstance(value, Enum) else value
    for name, value in (item.model_extra or {}).items():
        if name not in _STRUCTURAL_FIELDS:
            fields[name] = value
    return fields


def match_attribute(item: InfraNode | Pop, column: AuditColumn) -> MatchResult:
    """Run the strategy chain for one column."""
    attributes = getattr(item, "attributes", None) or []

    for attr in attributes:
        if attr.attribute_id == column.id:
            return MatchResult(attr.value, MatchStrategy.ATTR_BY_ID)

    wanted_label = column.label.lower()
    for attr in attributes:
        if attr.label is not None and attr.label.lower() == wanted_label:
            return MatchResult(attr.value, MatchStrategy.ATTR_BY_LABEL)

    fields = scalar_fields(item)
    if column.id in fields:
        return MatchResult(fields[column.id], MatchStrategy.DIRECT_BY_ID)
    if column.key in fields:
        return MatchResult(fields[column.key], MatchStrategy.DIRECT_BY_KEY)

    target = normalize_string(column.label)
    if not target:
        return NOT_FOUND
    for name, value in fields.items():
        if normalize_string(name) == target:
            return MatchResult(value, MatchStrategy.FUZZY)

    return NOT_FOUND
