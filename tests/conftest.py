"""Root conftest - shared fixtures for all tests."""
from __future__ import annotations

import copy
from typing import Any

import pytest

from atlas.schemas.topology import AuditColumn
from atlas.services.workspace import WorkspaceService
from atlas.topology.tree import TopologyTree


# ══════════════════════════════════════════════════════════════════
# Raw documents
# ══════════════════════════════════════════════════════════════════

# EU-WEST: one switch with a physical server and a VM connected to it
EU_WEST_DOCUMENT: dict[str, Any] = {
    "pops": [
        {
            "id": "eu-west",
            "name": "EU-WEST",
            "city": "Frankfurt",
            "nodes": [
                {
                    "id": "s1",
                    "type": "switch",
                    "name": "S1",
                    "ip": "10.0.0.1",
                    "status": "on",
                    "connected_servers": [
                        {
                            "id": "p1",
                            "type": "physical_server",
                            "name": "P1",
                            "status": "on",
                            "criticality": "high",
                            "attributes": [
                                {"attributeId": "zabbix", "value": True},
                                {"attributeId": "av", "value": False},
                                {"attributeId": "attr-ram-val-1", "value": "64 GB"},
                            ],
                        },
                        {
                            "id": "v1",
                            "type": "virtual_machine",
                            "name": "V1",
                            "ip": "10.0.1.10",
                            "attributes": [
                                {"attributeId": "zabbix", "value": False},
                                {"attributeId": "attr-ram-val-1", "value": "16GB"},
                            ],
                        },
                    ],
                }
            ],
        }
    ],
    "links": [
        {"sourceId": "s1", "targetId": "p1", "type": "backbone"},
        {"sourceId": "p1", "targetId": "ghost", "label": "old uplink"},
    ],
    "schema": [
        {"id": "zabbix", "label": "Zabbix", "type": "boolean", "showInSecurity": True},
        {"id": "av", "label": "Anti Virus", "type": "boolean", "showInSecurity": True},
        {"id": "attr-ram-val-1", "label": "RAM", "type": "text"},
    ],
}


@pytest.fixture
def eu_west_raw() -> dict[str, Any]:
    """Deep copy of the EU-WEST document (tests may mutate it)."""
    return copy.deepcopy(EU_WEST_DOCUMENT)


@pytest.fixture
def eu_west_tree(eu_west_raw) -> TopologyTree:
    return TopologyTree.load(eu_west_raw)


@pytest.fixture
def audit_columns() -> list[AuditColumn]:
    """zabbix / av columns (key = id)."""
    return [
        AuditColumn(id="zabbix", label="Zabbix", key="zabbix"),
        AuditColumn(id="av", label="Anti Virus", key="av"),
    ]


@pytest.fixture
def workspace(eu_west_raw) -> WorkspaceService:
    """Workspace pre-loaded with EU-WEST."""
    service = WorkspaceService(workspace_id="test")
    service.load(eu_west_raw)
    return service
