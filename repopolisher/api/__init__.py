"""RepoPolisher REST API — FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repopolisher.api.deps import Container, build_container
from repopolisher.api.errors import register_error_handlers
from repopolisher.api.middleware.request_id import RequestIDMiddleware
from repopolisher.api.routers import analysis, drafts, projects
from repopolisher.core.logging import setup_logging

log = structlog.get_logger("repopolisher.api")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: connect DB and create tables. Shutdown: close clients and DB."""
    container: Container = app.state.container
    await container.database.connect()
    await container.database.create_schema()
    log.info("app.started", database=container.database.url)
    yield
    await container.aclose()


def create_app(container: Container | None = None) -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="RepoPolisher",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )
    app.state.container = container or build_container()

    register_error_handlers(app)

    cors_origins = os.environ.get("REPOPOLISHER_CORS_ORIGINS", "http://localhost:5173")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(projects.router, prefix="/api/v1/projects", tags=["projects"])
    app.include_router(analysis.router, prefix="/api/v1/analysis", tags=["analysis"])
    app.include_router(drafts.router, prefix="/api/v1/drafts", tags=["drafts"])

    return app
