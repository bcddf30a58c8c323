"""
Retrieval Orchestrator

Coordinates one store-and-query cycle over the injected services.

**Ingestion** (``store_documents``):
    Document → sanitize → SentenceChunker → EmbeddingClient (one batch
    per document) → Chunk records → DocumentStore.put

**Search** (``search``):
    Query → sanitize → EmbeddingClient → similarity search at the primary
    threshold → one retry at the fallback threshold when nothing matched.

The orchestrator holds no state of its own besides the id clock; the
document store is the only persistence.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from impact_rag.core.exceptions import (
    DocumentStoreError,
    EmbeddingError,
    IngestionError,
)
from impact_rag.models.schemas import (
    Chunk,
    ChunkMetadata,
    Document,
    IngestResult,
    RankedChunk,
)
from impact_rag.repositories.base import DocumentStore
from impact_rag.services.chunking import SentenceChunker
from impact_rag.services.embeddings import EmbeddingClient
from impact_rag.services.sanitizer import sanitize

logger = logging.getLogger(__name__)

DEFAULT_PRIMARY_THRESHOLD: float = 0.5
DEFAULT_FALLBACK_THRESHOLD: float = 0.3
DEFAULT_MATCH_COUNT: int = 5


def make_chunk_id(title: str, chunk_index: int, timestamp_us: int) -> str:
    """Derive a chunk id from its document title, position and creation time."""
    return f"{title}-{chunk_index}-{timestamp_us}"


class RetrievalOrchestrator:
    """
    Sanitize/chunk/embed/store pipeline with threshold-relaxation search.

    Usage::

        orchestrator = RetrievalOrchestrator(embedding_client, store)
        await orchestrator.store_documents([Document(title="a.txt", content=...)])
        chunks = await orchestrator.search("donor retention")
        if not chunks:
            ...  # normal outcome: nothing relevant

    Args:
        embedding_client: Rate-limited embedding client.
        store: Chunk store.
        chunker: Sentence chunker (defaults to 1000-char target).
        primary_threshold: Similarity required on the first search.
        fallback_threshold: Relaxed similarity for the single retry.
        match_count: Maximum chunks returned.
        clock: Nanosecond wall clock used to timestamp chunk ids.
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        store: DocumentStore,
        chunker: SentenceChunker | None = None,
        *,
        primary_threshold: float = DEFAULT_PRIMARY_THRESHOLD,
        fallback_threshold: float = DEFAULT_FALLBACK_THRESHOLD,
        match_count: int = DEFAULT_MATCH_COUNT,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        if not 0.0 <= fallback_threshold <= primary_threshold <= 1.0:
            raise ValueError(
                f"Expected 0 <= fallback ({fallback_threshold}) "
                f"<= primary ({primary_threshold}) <= 1"
            )
        self._embedding_client = embedding_client
        self._store = store
        self._chunker = chunker or SentenceChunker()
        self._primary_threshold = primary_threshold
        self._fallback_threshold = fallback_threshold
        self._match_count = match_count
        self._clock = clock
        self._last_timestamp_us = 0

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest_document(self, document: Document) -> IngestResult:
        """
        Sanitize, chunk, embed and persist a single document.

        A document that sanitizes to zero chunks is skipped and reported
        with ``indexed=False``; this is not an error.

        Raises:
            EmbeddingError: Embedding failed after retries.
            DocumentStoreError: Insert failed or collided.
        """
        content = sanitize(document.content)
        logger.info(
            "Ingesting '%s' (type=%s, %d chars after sanitizing)",
            document.title,
            document.type,
            len(content),
        )

        texts = self._chunker.split(content)
        if not texts:
            logger.warning("Document '%s' has no indexable text, skipping", document.title)
            return IngestResult(title=document.title, indexed=False)

        embeddings = await self._embedding_client.embed(texts)
        logger.info("Generated %d embeddings for '%s'", len(embeddings), document.title)

        timestamp = self._next_timestamp()
        chunks = [
            Chunk(
                id=make_chunk_id(document.title, i, timestamp),
                content=text,
                metadata=ChunkMetadata(
                    title=document.title,
                    type=document.type,
                    chunk_index=i,
                ),
                embedding=embedding,
            )
            for i, (text, embedding) in enumerate(zip(texts, embeddings, strict=True))
        ]

        await self._store.put(chunks)
        return IngestResult(
            title=document.title,
            chunk_ids=[c.id for c in chunks],
            indexed=True,
        )

    async def store_documents(self, documents: Sequence[Document]) -> list[IngestResult]:
        """
        Ingest documents in order, failing fast.

        The first document that fails aborts the whole call. Chunks of
        documents ingested before the failure stay in the store.

        Raises:
            IngestionError: Wraps the embedding or store failure, naming
                the document that failed.
        """
        results: list[IngestResult] = []
        for document in documents:
            try:
                results.append(await self.ingest_document(document))
            except (EmbeddingError, DocumentStoreError) as e:
                logger.error("Error storing document '%s': %s", document.title, e)
                raise IngestionError(document.title, str(e)) from e

        indexed = sum(1 for r in results if r.indexed)
        logger.info("Stored %d/%d documents", indexed, len(results))
        return results

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[RankedChunk]:
        """
        Resolve a query to the most relevant stored chunks.

        Searches at the primary threshold first and, only if that finds
        nothing, once more at the fallback threshold. An empty list means
        "no relevant chunks" and is a normal outcome.

        Raises:
            EmbeddingError: Query embedding failed after retries.
            DocumentStoreError: Search failed.
        """
        sanitized = sanitize(query)
        if not sanitized:
            logger.info("Empty query after sanitizing, nothing to search")
            return []

        query_vector = await self._embedding_client.embed_query(sanitized)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Searching %d stored chunks", await self._store.count())

        results = await self._store.similarity_search(
            query_vector,
            self._primary_threshold,
            self._match_count,
        )
        if results:
            logger.info(
                "Found %d chunks at threshold %.2f",
                len(results),
                self._primary_threshold,
            )
            return results

        logger.info(
            "No results at threshold %.2f, retrying at %.2f",
            self._primary_threshold,
            self._fallback_threshold,
        )
        results = await self._store.similarity_search(
            query_vector,
            self._fallback_threshold,
            self._match_count,
        )
        if not results:
            logger.info("No similar chunks found even with lower threshold")
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _next_timestamp(self) -> int:
        """Microsecond timestamp, strictly increasing per orchestrator."""
        now_us = self._clock() // 1000
        self._last_timestamp_us = max(now_us, self._last_timestamp_us + 1)
        return self._last_timestamp_us
