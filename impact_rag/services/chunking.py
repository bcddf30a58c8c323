"""
Chunking Service

Splits sanitized document text into sentence-respecting chunks for
embedding and vector retrieval.

Sentences end at a run of ``.``, ``!`` or ``?`` followed by whitespace or
the end of the text. Sentences are accumulated greedily until the next one
would push the chunk past the target size. Chunks never overlap and a
boundary never falls inside a sentence: a single sentence longer than the
target becomes its own oversized chunk rather than being truncated.
"""

from __future__ import annotations

import logging
import re
from typing import Final

logger = logging.getLogger(__name__)

DEFAULT_TARGET_SIZE: int = 1000

_SENTENCE_BOUNDARY: Final[re.Pattern[str]] = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    """
    Split text at end-of-sentence punctuation.

    A trailing fragment without a terminator is returned as the last
    sentence, so text with no terminator at all yields one sentence.
    """
    return [s for s in (part.strip() for part in _SENTENCE_BOUNDARY.split(text)) if s]


def chunk_text(text: str, target_size: int = DEFAULT_TARGET_SIZE) -> list[str]:
    """
    Split text into chunks of whole sentences bounded by ``target_size``.

    Args:
        text: Sanitized text.
        target_size: Target maximum characters per chunk.

    Returns:
        Ordered chunk texts. Empty or whitespace-only input yields ``[]``.
    """
    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        if current and len(current) + 1 + len(sentence) > target_size:
            chunks.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current:
        chunks.append(current)

    return chunks


class SentenceChunker:
    """
    Configured sentence chunker.

    Usage::

        chunker = SentenceChunker(target_size=1000)
        texts = chunker.split(sanitized_text)

    Args:
        target_size: Target maximum characters per chunk.
    """

    def __init__(self, target_size: int = DEFAULT_TARGET_SIZE) -> None:
        if target_size <= 0:
            raise ValueError(f"target_size must be positive, got {target_size}")
        self._target_size = target_size

    @property
    def target_size(self) -> int:
        """Target maximum characters per chunk."""
        return self._target_size

    def split(self, text: str) -> list[str]:
        """Split ``text`` into sentence-respecting chunks."""
        chunks = chunk_text(text, self._target_size)
        logger.debug(
            "Split %d chars into %d chunks (target=%d)",
            len(text),
            len(chunks),
            self._target_size,
        )
        return chunks
