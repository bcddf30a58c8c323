"""
Document Chunk Database Model

SQLAlchemy 2.0 ORM model for the chunk storage layer.
Uses pgvector for cosine similarity search on chunk embeddings.

Tables:
    document_chunks — Sanitized document segments with their embeddings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from impact_rag.models.base import Base

# Output size of Cohere embed-english-v3.0
EMBEDDING_DIMENSION: int = 1024


class DocumentChunkRecord(Base):
    """
    Persistent storage for document chunks with vector embeddings.

    Rows are insert-only: there is no update path, re-ingesting a document
    creates new rows with new ids. The primary key enforces id uniqueness
    at the database level, so a collision surfaces as an IntegrityError
    instead of overwriting an existing chunk.

    Attributes:
        id: ``{title}-{chunk_index}-{timestamp}`` key; unbounded, since titles are.
        content: Sanitized chunk text (never empty).
        chunk_metadata: JSONB ``{title, type, chunk_index}``.
        embedding: Fixed-dimension vector from the embedding service.
        created_at: Insertion timestamp (server-side default).
    """

    __tablename__ = "document_chunks"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
    )
    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSION),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<DocumentChunkRecord(id='{self.id}')>"
