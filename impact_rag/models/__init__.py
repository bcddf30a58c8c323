"""Models package — Pydantic schemas and SQLAlchemy ORM for the retrieval pipeline."""

from impact_rag.models.orm import EMBEDDING_DIMENSION, DocumentChunkRecord
from impact_rag.models.schemas import (
    Chunk,
    ChunkMetadata,
    Document,
    IngestResult,
    RankedChunk,
)

__all__ = [
    # Pydantic schemas (pipeline)
    "Chunk",
    "ChunkMetadata",
    "Document",
    "IngestResult",
    "RankedChunk",
    # SQLAlchemy ORM (persistence layer)
    "DocumentChunkRecord",
    "EMBEDDING_DIMENSION",
]
