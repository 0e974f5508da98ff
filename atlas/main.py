"""
Atlas - FastAPI Application Entry Point.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from atlas import __version__
from atlas.api.routes import api_router
from atlas.core.config import settings
from atlas.core.exceptions import AtlasError, DocumentParseError
from atlas.services.workspace import get_workspace_service

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.app_debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def load_initial_document() -> None:
    """
    Load the startup document into the workspace, if configured.

    檔案不存在或解析失敗時以空的工作區啟動。
    """
    if not settings.initial_document_path:
        return
    path = Path(settings.initial_document_path)
    if not path.exists():
        logger.warning("%s not found, starting with an empty workspace", path)
        return
    try:
        get_workspace_service().load(path.read_text(encoding="utf-8"))
    except DocumentParseError as e:
        logger.warning("Initial document rejected, starting empty: %s", e.reason)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan management.

    Startup: load the initial document.
    """
    logger.info("Starting application...")
    load_initial_document()
    yield
    logger.info("Shutting down application...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Infrastructure topology & security compliance API",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AtlasError)
    async def atlas_error_handler(request: Request, exc: AtlasError) -> JSONResponse:
        """Convert domain errors (e.g. unparseable documents) to 400."""
        logger.warning(
            "%s on %s %s: %s",
            type(exc).__name__, request.method, request.url.path, exc,
        )
        detail = exc.reason if isinstance(exc, DocumentParseError) else str(exc)
        return JSONResponse(status_code=400, content={"detail": detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """攔截所有未處理的 500 錯誤並記錄。"""
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method, request.url.path, exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router, prefix=settings.api_prefix)

    # Health check endpoint
    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint."""
        workspace = get_workspace_service()
        return {
            "status": "ok",
            "version": __version__,
            "pops": len(workspace.tree.pops),
        }

    return app


app = create_app()
