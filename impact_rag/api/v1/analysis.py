"""
Analysis API Router

HTTP endpoints for the retrieval pipeline.

Endpoints:
    POST /documents — Sanitize, chunk, embed and store documents.
    POST /search    — Ranked chunks for a query (threshold fallback applied).
    POST /analyze   — Store documents, retrieve context, structured analysis.

Failure mapping:
    - Ingestion failure  → 502 "Could not process your documents: ..."
    - Retrieval failure  → 502 "Search failed: ..."
    - Generation failure → 502 "Failed to analyze documents: ..."
    - Nothing relevant   → 200 with an empty list (search) or a
      full-document analysis (analyze); never an error.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from impact_rag.core.container import ServiceContainer
from impact_rag.core.exceptions import (
    AnalysisParseError,
    CompletionError,
    DocumentStoreError,
    EmbeddingError,
    IngestionError,
)
from impact_rag.schemas.analysis import (
    AnalysisResult,
    AnalyzeRequest,
    SearchRequest,
    SearchResponse,
    StoreDocumentsRequest,
    StoreDocumentsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency — the container built in the lifespan handler."""
    return request.app.state.container


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/documents",
    response_model=StoreDocumentsResponse,
    summary="Store documents for retrieval",
)
async def store_documents(
    request: StoreDocumentsRequest,
    container: ServiceContainer = Depends(get_container),
) -> StoreDocumentsResponse:
    """
    Ingest documents into the vector store.

    Documents with no indexable text are reported with ``indexed=false``.
    The first failing document aborts the request.
    """
    try:
        results = await container.orchestrator.store_documents(request.documents)
    except IngestionError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not process your documents: {e.message}",
        ) from e
    return StoreDocumentsResponse(results=results)


@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Semantic search across stored chunks",
)
async def search(
    request: SearchRequest,
    container: ServiceContainer = Depends(get_container),
) -> SearchResponse:
    """
    Return the chunks most similar to the query.

    An empty ``chunks`` list means no chunk reached even the fallback
    threshold.
    """
    try:
        chunks = await container.orchestrator.search(request.query)
    except (EmbeddingError, DocumentStoreError) as e:
        logger.error("Search failed for query '%s': %s", request.query[:50], e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Search failed: {e.message}",
        ) from e
    return SearchResponse(query=request.query, chunks=chunks)


@router.post(
    "/analyze",
    response_model=AnalysisResult,
    summary="Analyze documents with retrieval-grounded generation",
)
async def analyze(
    request: AnalyzeRequest,
    container: ServiceContainer = Depends(get_container),
) -> AnalysisResult:
    """
    Analyze documents for a query.

    Process:
        1. Store the submitted documents.
        2. Retrieve the most relevant chunks (with threshold fallback).
        3. Generate a structured analysis from the chunks, or from the
           first document in full when nothing relevant was retrieved.
    """
    logger.info(
        "Analyze request: query='%s', documents=%d",
        request.query[:50],
        len(request.documents),
    )
    try:
        return await container.analyzer.analyze(request.query, request.documents)
    except IngestionError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not process your documents: {e.message}",
        ) from e
    except (EmbeddingError, DocumentStoreError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Search failed: {e.message}",
        ) from e
    except (CompletionError, AnalysisParseError) as e:
        logger.error("Document analysis failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to analyze documents: {e.message}",
        ) from e
