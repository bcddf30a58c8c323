"""
Impact RAG — Application Entry Point

FastAPI application exposing document ingestion, semantic search and
retrieval-grounded analysis.

Start locally:
    uvicorn impact_rag.main:app --host 0.0.0.0 --port 8001 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from impact_rag.api.v1.analysis import router as analysis_router
from impact_rag.core.config import get_settings
from impact_rag.core.container import ServiceContainer, build_container
from impact_rag.core.database import check_connection
from impact_rag.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Load settings (missing credentials abort startup).
        2. Build the service container.
        3. Validate database connectivity when the pgvector store is used.

    Shutdown:
        1. Dispose the database engine.

    A container already placed on ``app.state`` (tests) is used as-is.
    """
    container: ServiceContainer | None = getattr(app.state, "container", None)
    owns_container = container is None

    if owns_container:
        settings = get_settings()
        setup_logging(settings.LOG_LEVEL)
        logger.info("Starting %s...", settings.PROJECT_NAME)

        container = build_container(settings)
        if container.engine is not None:
            try:
                await check_connection(container.engine)
            except Exception:
                logger.exception("Database connection failed")
                await container.aclose()
                raise
        app.state.container = container

    yield

    if owns_container:
        await container.aclose()
        logger.info("Shutdown complete")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        container: Prebuilt services. When omitted, the lifespan handler
            builds them from the environment at startup.
    """
    app = FastAPI(
        title="Impact RAG",
        description="Document ingestion, chunking, embedding, semantic retrieval and analysis.",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.include_router(analysis_router, prefix="/api/v1", tags=["Analysis"])
    app.add_api_route("/health", health_check, methods=["GET"])
    return app


async def health_check(request: Request) -> dict[str, str | bool]:
    """Health check for load balancers and orchestrators."""
    container: ServiceContainer = request.app.state.container
    generation_ok = await container.completion_client.health_check()
    return {
        "status": "ok",
        "service": "impact-rag",
        "generation": generation_ok,
    }


app = create_app()
