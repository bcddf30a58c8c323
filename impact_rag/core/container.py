"""
Composition Root

The single place where concrete services are wired together from
``Settings``. Built once per process (FastAPI lifespan, CLI scripts) and
passed down explicitly, so there is exactly one rate limiter guarding the
shared embedding quota and one database engine.

Tests build the same ``ServiceContainer`` by hand from fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from impact_rag.core.config import Settings
from impact_rag.core.database import create_engine, create_session_factory
from impact_rag.core.exceptions import ConfigurationError
from impact_rag.models.orm import EMBEDDING_DIMENSION
from impact_rag.repositories import (
    DocumentStore,
    InMemoryDocumentStore,
    PgVectorDocumentStore,
)
from impact_rag.services.analysis import DocumentAnalyzer
from impact_rag.services.chunking import SentenceChunker
from impact_rag.services.completion import CompletionClient, OllamaCompletionClient
from impact_rag.services.embeddings import (
    CohereEmbeddingBackend,
    EmbeddingBackend,
    EmbeddingClient,
    LocalEmbeddingBackend,
    OpenAIEmbeddingBackend,
)
from impact_rag.services.rate_limit import MinIntervalRateLimiter
from impact_rag.services.retrieval import RetrievalOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Runtime services shared by every request.

    Attributes:
        orchestrator: Store-and-search pipeline.
        analyzer: Retrieval-grounded analysis consumer.
        completion_client: Generative model client.
        engine: Database engine when the pgvector store is used.
    """

    orchestrator: RetrievalOrchestrator
    analyzer: DocumentAnalyzer
    completion_client: CompletionClient
    engine: AsyncEngine | None = None

    async def aclose(self) -> None:
        """Release pooled connections."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            logger.info("Database engine disposed")


def build_embedding_backend(settings: Settings) -> EmbeddingBackend:
    """Instantiate the configured embedding provider."""
    provider = settings.EMBEDDING_PROVIDER
    if provider == "cohere":
        if not settings.COHERE_API_KEY:
            raise ConfigurationError("Cohere API key is not set")
        return CohereEmbeddingBackend(
            api_key=settings.COHERE_API_KEY,
            model=settings.EMBEDDING_MODEL,
            base_url=settings.COHERE_BASE_URL,
            timeout=settings.EMBEDDING_TIMEOUT,
        )
    if provider == "openai":
        if not settings.OPENAI_API_KEY:
            raise ConfigurationError("OpenAI API key is not set")
        return OpenAIEmbeddingBackend(
            api_key=settings.OPENAI_API_KEY,
            model=settings.EMBEDDING_MODEL,
        )
    if provider == "local":
        return LocalEmbeddingBackend(model=settings.EMBEDDING_MODEL)
    raise ConfigurationError(f"Unknown embedding provider: {provider}")


def build_embedding_client(settings: Settings) -> EmbeddingClient:
    """Embedding client behind a fresh process-wide rate limiter."""
    limiter = MinIntervalRateLimiter(settings.EMBEDDING_MIN_INTERVAL_MS / 1000)
    return EmbeddingClient(
        build_embedding_backend(settings),
        limiter,
        dimension=settings.EMBEDDING_DIMENSION,
        max_retries=settings.EMBEDDING_MAX_RETRIES,
        initial_retry_delay=settings.EMBEDDING_INITIAL_RETRY_DELAY_MS / 1000,
    )


def build_document_store(settings: Settings) -> tuple[DocumentStore, AsyncEngine | None]:
    """Instantiate the configured store and, for pgvector, its engine."""
    if settings.DOCUMENT_STORE == "memory":
        logger.warning("Using in-memory document store (data is not persisted)")
        return InMemoryDocumentStore(dimension=settings.EMBEDDING_DIMENSION), None

    if settings.EMBEDDING_DIMENSION != EMBEDDING_DIMENSION:
        raise ConfigurationError(
            "EMBEDDING_DIMENSION does not match the document_chunks.embedding column",
            {"configured": settings.EMBEDDING_DIMENSION, "column": EMBEDDING_DIMENSION},
        )
    engine = create_engine(settings)
    store = PgVectorDocumentStore(
        create_session_factory(engine),
        dimension=settings.EMBEDDING_DIMENSION,
    )
    return store, engine


def build_container(settings: Settings) -> ServiceContainer:
    """
    Wire every service from configuration.

    Performs no network I/O; connectivity is checked by the caller.

    Raises:
        ConfigurationError: If a selected backend lacks its credentials.
    """
    embedding_client = build_embedding_client(settings)
    store, engine = build_document_store(settings)

    orchestrator = RetrievalOrchestrator(
        embedding_client,
        store,
        SentenceChunker(settings.CHUNK_SIZE),
        primary_threshold=settings.PRIMARY_THRESHOLD,
        fallback_threshold=settings.FALLBACK_THRESHOLD,
        match_count=settings.MATCH_COUNT,
    )
    completion_client = OllamaCompletionClient(
        base_url=settings.OLLAMA_BASE_URL,
        model=settings.OLLAMA_MODEL,
        timeout=settings.OLLAMA_TIMEOUT,
    )

    logger.info(
        "Services ready (store=%s, embeddings=%s/%s, generation=%s)",
        settings.DOCUMENT_STORE,
        settings.EMBEDDING_PROVIDER,
        settings.EMBEDDING_MODEL,
        settings.OLLAMA_MODEL,
    )
    return ServiceContainer(
        orchestrator=orchestrator,
        analyzer=DocumentAnalyzer(orchestrator, completion_client),
        completion_client=completion_client,
        engine=engine,
    )
