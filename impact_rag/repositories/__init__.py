"""Repository layer — chunk stores implementing the ``DocumentStore`` protocol."""

from impact_rag.repositories.base import DocumentStore, cosine_similarity
from impact_rag.repositories.memory import InMemoryDocumentStore
from impact_rag.repositories.postgres import PgVectorDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "PgVectorDocumentStore",
    "cosine_similarity",
]
