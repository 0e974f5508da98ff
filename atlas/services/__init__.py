"""
Services package.

Provides the workspace service, audit column derivation and change detection.
"""
from atlas.services.audit_columns import columns_from_schema, load_default_columns
from atlas.services.change_cache import DocumentChangeCache, compute_topology_hash
from atlas.services.workspace import WorkspaceService, get_workspace_service

__all__ = [
    # Audit columns
    "columns_from_schema",
    "load_default_columns",
    # Change detection
    "DocumentChangeCache",
    "compute_topology_hash",
    # Workspace
    "WorkspaceService",
    "get_workspace_service",
]
