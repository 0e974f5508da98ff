"""
Manual compliance overrides.

Override set 格式（由呼叫端提供，core 不持有任何全域狀態）::

    {
        "node-1_attr-av": True,            # 欄位覆寫：該欄位視為合規
        "node-1_risk_override": "HIGH",    # 風險覆寫：LOW / MEDIUM / HIGH
    }

All helpers return a new dict; the caller's mapping is never mutated.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from atlas.core.enums import RiskLevel

logger = logging.getLogger(__name__)

RISK_OVERRIDE_SUFFIX = "risk_override"

# Cycle order used by the audit matrix risk toggle
RISK_OVERRIDE_LEVELS: tuple[RiskLevel, ...] = (
    RiskLevel.LOW,
    RiskLevel.MEDIUM,
    RiskLevel.HIGH,
)

OverrideSet = Mapping[str, Any]


def override_key(node_id: str, column_key: str) -> str:
    return f"{node_id}_{column_key}"


def risk_override_key(node_id: str) -> str:
    return override_key(node_id, RISK_OVERRIDE_SUFFIX)


def has_column_override(overrides: OverrideSet, node_id: str, column_key: str) -> bool:
    """Override grants compliance only; absent or falsy means no override."""
    return bool(overrides.get(override_key(node_id, column_key)))


def get_risk_override(overrides: OverrideSet, node_id: str) -> RiskLevel | None:
    raw = overrides.get(risk_override_key(node_id))
    if not isinstance(raw, str):
        return None
    try:
        level = RiskLevel(raw.strip().upper())
    except ValueError:
        return None
    return level if level in RISK_OVERRIDE_LEVELS else None


def toggle_override(overrides: OverrideSet, node_id: str, column_key: str) -> dict[str, Any]:
    """Add the column override if absent, remove it if present."""
    key = override_key(node_id, column_key)
    updated = dict(overrides)
    if updated.get(key):
        del updated[key]
        logger.info("Manual override removed for node %s in column %s", node_id, column_key)
    else:
        updated[key] = True
        logger.warning("Manual override applied for node %s in column %s", node_id, column_key)
    return updated


def set_risk_override(
    overrides: OverrideSet,
    node_id: str,
    level: RiskLevel | str,
) -> dict[str, Any]:
    """Set the risk override; choosing the level already set clears it."""
    level = RiskLevel(str(getattr(level, "value", level)).strip().upper())
    if level not in RISK_OVERRIDE_LEVELS:
        raise ValueError(f"Risk override must be one of LOW/MEDIUM/HIGH, got {level.value}")

    key = risk_override_key(node_id)
    updated = dict(overrides)
    if get_risk_override(overrides, node_id) is level:
        updated.pop(key, None)
        logger.info("Risk override cleared for node %s", node_id)
    else:
        updated[key] = level.value
        logger.warning("Risk override set to %s for node %s", level.value, node_id)
    return updated


def cycle_risk_override(
    overrides: OverrideSet,
    node_id: str,
    computed_risk: RiskLevel,
) -> dict[str, Any]:
    """Advance LOW → MEDIUM → HIGH → LOW from the node's effective risk.

    A computed CRITICAL (not in the cycle) starts at LOW.
    """
    current = get_risk_override(overrides, node_id) or computed_risk
    if current in RISK_OVERRIDE_LEVELS:
        index = RISK_OVERRIDE_LEVELS.index(current)
    else:
        index = -1
    next_level = RISK_OVERRIDE_LEVELS[(index + 1) % len(RISK_OVERRIDE_LEVELS)]
    return set_risk_override(overrides, node_id, next_level)


def parse_override_key(key: str, column_keys: Iterable[str] = ()) -> tuple[str, str]:
    """
    Split an override key into ``(node_id, column_key)``.

    Known column keys (and the risk suffix) are matched as suffixes first so
    node ids containing underscores survive; otherwise split on the first ``_``.
    """
    candidates = sorted({*column_keys, RISK_OVERRIDE_SUFFIX}, key=len, reverse=True)
    for column_key in candidates:
        suffix = f"_{column_key}"
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)], column_key
    node_id, _, column_key = key.partition("_")
    return node_id, column_key
