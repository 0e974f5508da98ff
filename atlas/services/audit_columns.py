"""
Audit column derivation.

Columns come from schema attributes flagged ``showInSecurity``
(``key = id``). When none are flagged, the defaults from
``config/audit_columns.yaml`` apply.
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from atlas.core.config import settings
from atlas.schemas.topology import AuditColumn, BlueprintAttribute

logger = logging.getLogger(__name__)

# Used only when the YAML file is missing
_BUILTIN_DEFAULTS: list[dict[str, str]] = [
    {"id": "attr-tanium", "label": "Tanium Hub", "key": "attr-tanium"},
    {"id": "attr-av", "label": "Anti-Virus", "key": "attr-av"},
    {"id": "attr-backup", "label": "Backup Redundancy", "key": "attr-backup"},
]


def load_default_columns(path: str | Path | None = None) -> list[AuditColumn]:
    """
    Load default audit columns from YAML.

    Returns:
        list of AuditColumn; built-in defaults when the file does not exist.
    """
    config_path = Path(path or settings.audit_columns_path)
    if not config_path.exists():
        logger.warning("%s not found, using built-in audit columns", config_path)
        return [AuditColumn(**c) for c in _BUILTIN_DEFAULTS]

    with open(config_path, encoding="utf-8") as f:
        config = yaml.safe_load(f)

    if not config:
        return []

    return [AuditColumn(**c) for c in (config.get("columns") or [])]


def columns_from_schema(
    schema: list[BlueprintAttribute],
    defaults: list[AuditColumn] | None = None,
) -> list[AuditColumn]:
    """Audit columns for a schema, falling back to the defaults."""
    columns = [
        AuditColumn(id=attr.id, label=attr.label, key=attr.id)
        for attr in schema
        if attr.show_in_security
    ]
    if columns:
        return columns
    return defaults if defaults is not None else load_default_columns()
