"""
In-Memory Document Store

Process-local chunk store with exact (brute-force) cosine search.
Selected with ``DOCUMENT_STORE=memory`` for development, and used by the
offline test suite in place of PostgreSQL.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from impact_rag.core.exceptions import DocumentStoreError, DuplicateChunkError
from impact_rag.models.schemas import Chunk, RankedChunk
from impact_rag.repositories.base import (
    clamp_similarity,
    cosine_similarity,
    find_duplicate_ids,
    report_similarity,
)

logger = logging.getLogger(__name__)


class InMemoryDocumentStore:
    """
    Dict-backed chunk store.

    Inserts are serialized with an ``asyncio.Lock`` so that the collision
    check and the write happen atomically for a batch.

    Args:
        dimension: Required vector length, or ``None`` to fix it from the
            first inserted chunk.
    """

    def __init__(self, dimension: int | None = None) -> None:
        self._chunks: dict[str, Chunk] = {}
        self._dimension = dimension
        self._lock = asyncio.Lock()

    async def put(self, chunks: Sequence[Chunk]) -> None:
        """
        Insert chunks, rejecting any id collision.

        Raises:
            DuplicateChunkError: If an id exists or repeats in the batch.
            DocumentStoreError: If a vector has the wrong dimension.
        """
        if not chunks:
            return

        async with self._lock:
            duplicates = find_duplicate_ids(chunks)
            duplicates += [c.id for c in chunks if c.id in self._chunks]
            if duplicates:
                raise DuplicateChunkError(sorted(set(duplicates)))

            dimension = self._dimension or len(chunks[0].embedding)
            wrong = [c.id for c in chunks if len(c.embedding) != dimension]
            if wrong:
                raise DocumentStoreError(
                    "Embedding dimension mismatch",
                    {"expected": dimension, "chunk_ids": wrong},
                )

            self._dimension = dimension
            for chunk in chunks:
                self._chunks[chunk.id] = chunk

        logger.info("Stored %d chunks in memory", len(chunks))

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[RankedChunk]:
        if limit <= 0 or not self._chunks:
            return []
        if self._dimension is not None and len(query_vector) != self._dimension:
            raise DocumentStoreError(
                "Query vector dimension mismatch",
                {"expected": self._dimension, "received": len(query_vector)},
            )

        scored = [
            (clamp_similarity(cosine_similarity(query_vector, c.embedding)), c)
            for c in list(self._chunks.values())
        ]
        ranked = sorted(
            (pair for pair in scored if pair[0] >= threshold),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return [
            RankedChunk(
                content=c.content,
                metadata=c.metadata,
                similarity=report_similarity(score),
            )
            for score, c in ranked[:limit]
        ]

    async def count(self) -> int:
        return len(self._chunks)
