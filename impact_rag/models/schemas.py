"""
Pipeline Schemas

Pydantic models for the retrieval pipeline. Defines the data structures
for documents and chunks flowing through sanitize → chunk → embed → store,
and for the ranked results coming back from a similarity search.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Document(BaseModel):
    """
    Raw input document for a single store-and-query cycle.

    Not persisted as a whole: it is discarded once chunked.

    Attributes:
        title: Display name, also the prefix of derived chunk ids.
        type: Format tag, typically the file extension.
        content: Raw, unsanitized text. May be empty.
    """

    title: str = Field(min_length=1, description="Document title or filename")
    type: str = Field(default="txt", description="Format tag, e.g. 'txt', 'pdf'")
    content: str = Field(default="", description="Raw document text")


class ChunkMetadata(BaseModel):
    """
    Closed metadata record attached to every chunk.

    ``chunk_index`` is kept for traceability only; query results are
    ordered by similarity, never by index.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: str
    type: str
    chunk_index: int = Field(ge=0, description="Position in document (0-based)")


class Chunk(BaseModel):
    """
    Persisted retrievable unit.

    Immutable once built. Every chunk has non-empty content and a
    non-empty embedding.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    content: str = Field(min_length=1, description="Sanitized chunk text")
    metadata: ChunkMetadata
    embedding: list[float] = Field(min_length=1)


class RankedChunk(BaseModel):
    """Chunk content joined with its similarity to a query vector."""

    content: str
    metadata: ChunkMetadata
    similarity: float = Field(ge=0.0, le=1.0)


class IngestResult(BaseModel):
    """Outcome of ingesting a single document."""

    title: str
    chunk_ids: list[str] = Field(default_factory=list)
    indexed: bool = Field(
        description="False when the document sanitized to zero chunks",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def chunks_count(self) -> int:
        return len(self.chunk_ids)
