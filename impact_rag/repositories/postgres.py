"""
pgvector Document Store

Data access layer for chunk persistence and vector similarity search via
pgvector cosine distance on PostgreSQL.

Each operation opens its own short-lived session from the injected
factory, so the store can be shared across concurrent requests.
Consistency of concurrent inserts is delegated to the database: the
primary key on ``document_chunks.id`` rejects collisions.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from impact_rag.core.exceptions import DocumentStoreError, DuplicateChunkError
from impact_rag.models.orm import EMBEDDING_DIMENSION, DocumentChunkRecord
from impact_rag.models.schemas import Chunk, ChunkMetadata, RankedChunk
from impact_rag.repositories.base import find_duplicate_ids, report_similarity

logger = logging.getLogger(__name__)


class PgVectorDocumentStore:
    """
    Chunk store backed by the ``document_chunks`` table.

    Key guarantees:
        - ``put``: atomic. Either every chunk of the batch is committed or
          none is; an existing id raises ``DuplicateChunkError``.
        - ``similarity_search``: threshold applied in SQL, results ordered
          by cosine distance (the HNSW index serves the ordering).

    Args:
        session_factory: Async session maker bound to the engine.
        dimension: Vector length of the ``embedding`` column.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dimension: int = EMBEDDING_DIMENSION,
    ) -> None:
        self._session_factory = session_factory
        self._dimension = dimension

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    async def put(self, chunks: Sequence[Chunk]) -> None:
        """
        Insert chunks in a single transaction.

        Raises:
            DuplicateChunkError: If an id is repeated or already stored.
            DocumentStoreError: On dimension mismatch or database failure.
        """
        if not chunks:
            return

        duplicates = find_duplicate_ids(chunks)
        if duplicates:
            raise DuplicateChunkError(duplicates)
        self._check_dimensions([len(c.embedding) for c in chunks])

        records = [
            DocumentChunkRecord(
                id=chunk.id,
                content=chunk.content,
                chunk_metadata=chunk.metadata.model_dump(),
                embedding=chunk.embedding,
            )
            for chunk in chunks
        ]
        ids = [record.id for record in records]

        async with self._session_factory() as session:
            try:
                session.add_all(records)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                existing = await self._existing_ids(session, ids)
                logger.error("Chunk id collision on insert: %s", existing or ids)
                raise DuplicateChunkError(existing or ids) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise DocumentStoreError(f"Chunk insert failed: {e}") from e

        logger.info("Stored %d chunks (first id=%s)", len(records), ids[0])

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[RankedChunk]:
        """
        Search chunks by cosine similarity against a query vector.

        The cosine distance is converted to a similarity score
        ``1 - distance``, clamped to [0, 1] and rounded, as in every store.

        Args:
            query_vector: Embedding of the sanitized query.
            threshold: Minimum similarity for a chunk to be returned.
            limit: Maximum number of results.

        Returns:
            RankedChunks ordered by similarity (highest first).
        """
        if limit <= 0:
            return []
        self._check_dimensions([len(query_vector)])

        vector = list(query_vector)
        distance_expr = DocumentChunkRecord.embedding.cosine_distance(vector)
        distance = distance_expr.label("distance")

        stmt = (
            select(
                DocumentChunkRecord.content,
                DocumentChunkRecord.chunk_metadata,
                distance,
            )
            .order_by(distance)
            .limit(limit)
        )
        # Clamped similarity >= threshold; at 0 that includes opposite vectors
        if threshold > 0.0:
            stmt = stmt.where(distance_expr <= 1.0 - threshold)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Similarity search failed: {e}") from e

        return [
            RankedChunk(
                content=content,
                metadata=ChunkMetadata.model_validate(metadata),
                similarity=report_similarity(1.0 - float(dist)),
            )
            for content, metadata, dist in rows
        ]

    async def count(self) -> int:
        """Total number of stored chunks."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(DocumentChunkRecord)
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise DocumentStoreError(f"Chunk count failed: {e}") from e

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_dimensions(self, lengths: list[int]) -> None:
        wrong = sorted({n for n in lengths if n != self._dimension})
        if wrong:
            raise DocumentStoreError(
                "Embedding dimension mismatch",
                {"expected": self._dimension, "received": wrong},
            )

    @staticmethod
    async def _existing_ids(session: AsyncSession, ids: list[str]) -> list[str]:
        stmt = select(DocumentChunkRecord.id).where(DocumentChunkRecord.id.in_(ids))
        result = await session.execute(stmt)
        return sorted(result.scalars().all())
