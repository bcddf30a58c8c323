"""
Exception Hierarchy

Domain errors for the retrieval pipeline. Local operations (sanitizing,
chunking) never raise; network-backed operations (embedding, storage,
completion) raise subclasses of ``ImpactRAGError`` so callers can tell
"we could not process your documents" apart from other failures.

An empty retrieval result is not an error and has no exception type.
"""

from __future__ import annotations

from typing import Any


class ImpactRAGError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ImpactRAGError):
    """Missing or invalid service credentials/endpoints. Fatal at startup."""


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------


class EmbeddingError(ImpactRAGError):
    """Base class for embedding failures."""


class EmbeddingServiceError(EmbeddingError):
    """The embedding service was unreachable or answered with an error status."""


class EmbeddingResponseError(EmbeddingError):
    """The embedding service answered, but the payload is empty or malformed."""


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


class DocumentStoreError(ImpactRAGError):
    """Insert or search against the document store failed."""


class DuplicateChunkError(DocumentStoreError):
    """A chunk id already exists in the store."""

    def __init__(
        self,
        chunk_ids: list[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["chunk_ids"] = chunk_ids
        self.chunk_ids = chunk_ids
        super().__init__("Chunk id collision", details)


# ---------------------------------------------------------------------------
# Orchestration / analysis
# ---------------------------------------------------------------------------


class IngestionError(ImpactRAGError):
    """A document could not be sanitized, embedded, or persisted."""

    def __init__(self, title: str, reason: str) -> None:
        self.title = title
        super().__init__(
            f"Failed to ingest document '{title}': {reason}",
            {"title": title},
        )


class CompletionError(ImpactRAGError):
    """The generative completion service failed."""


class AnalysisParseError(ImpactRAGError):
    """The completion did not contain a valid structured analysis."""
