"""
API router configuration.

Aggregates all endpoint routers.
"""
from __future__ import annotations

from fastapi import APIRouter

from atlas.api.endpoints import security, topology

api_router = APIRouter()

# Include routers
api_router.include_router(
    topology.router,
    prefix="/topology",
    tags=["Topology"],
)

api_router.include_router(
    security.router,
    prefix="/security",
    tags=["Security"],
)
