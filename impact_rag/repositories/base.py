"""
Document Store Interface

Contract shared by every chunk store:

    - ``put``: additive bulk insert. An id that already exists (or is
      repeated inside the batch) is a ``DuplicateChunkError``; nothing is
      ever overwritten and the batch is all-or-nothing.
    - ``similarity_search``: chunks whose cosine similarity to the query
      vector is at least ``threshold``, best first, at most ``limit``.
      Similarity is the cosine similarity clamped to [0, 1]; the threshold
      is compared against that clamped value (so threshold 0 matches every
      chunk) and the reported score is rounded to ``SIMILARITY_DECIMALS``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol

from impact_rag.models.schemas import Chunk, RankedChunk


class DocumentStore(Protocol):
    """Persistence and approximate similarity search for chunks."""

    async def put(self, chunks: Sequence[Chunk]) -> None: ...

    async def similarity_search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[RankedChunk]: ...

    async def count(self) -> int: ...


SIMILARITY_DECIMALS: int = 4


def clamp_similarity(value: float) -> float:
    """Map a raw cosine score onto [0, 1]."""
    return max(0.0, min(1.0, value))


def report_similarity(value: float) -> float:
    """Clamped similarity, rounded for presentation."""
    return round(clamp_similarity(value), SIMILARITY_DECIMALS)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns ``0.0`` when either vector has zero norm.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


def find_duplicate_ids(chunks: Sequence[Chunk]) -> list[str]:
    """Ids that occur more than once inside a batch, in first-seen order."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for chunk in chunks:
        if chunk.id in seen and chunk.id not in duplicates:
            duplicates.append(chunk.id)
        seen.add(chunk.id)
    return duplicates
