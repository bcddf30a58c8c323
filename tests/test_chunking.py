"""
Chunking Service Unit Tests

Verifies sentence splitting and greedy sentence accumulation: sentence
integrity, target-size boundaries, edge cases and configuration.

No external services required — runs entirely offline.
"""

from __future__ import annotations

import pytest

from impact_rag.services.chunking import (
    DEFAULT_TARGET_SIZE,
    SentenceChunker,
    chunk_text,
    split_sentences,
)

POLICY_TEXT = (
    "Donor retention improved. Grants increased 20%. Volunteer hours doubled."
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def long_text() -> str:
    """~3000 chars of short sentences, several chunks at the default size."""
    return " ".join(
        f"Sentence number {i} talks about fundraising progress and outcomes."
        for i in range(50)
    )


# ---------------------------------------------------------------------------
# Sentence splitting
# ---------------------------------------------------------------------------


class TestSplitSentences:
    """Tests for end-of-sentence detection."""

    def test_splits_on_terminal_punctuation(self) -> None:
        assert split_sentences("One. Two! Three? Four.") == [
            "One.",
            "Two!",
            "Three?",
            "Four.",
        ]

    def test_keeps_punctuation_runs_together(self) -> None:
        assert split_sentences("Really?! Yes... Done.") == ["Really?!", "Yes...", "Done."]

    def test_decimal_points_are_not_boundaries(self) -> None:
        assert split_sentences("Revenue grew 2.5 times. Costs fell.") == [
            "Revenue grew 2.5 times.",
            "Costs fell.",
        ]

    def test_trailing_fragment_is_a_sentence(self) -> None:
        assert split_sentences("Complete. Unfinished thought") == [
            "Complete.",
            "Unfinished thought",
        ]


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------


class TestChunkText:
    """Tests for greedy sentence accumulation."""

    def test_policy_document_yields_one_chunk_per_sentence(self) -> None:
        chunks = chunk_text(POLICY_TEXT, target_size=30)

        assert chunks == [
            "Donor retention improved.",
            "Grants increased 20%.",
            "Volunteer hours doubled.",
        ]

    def test_sentences_fitting_together_share_a_chunk(self) -> None:
        chunks = chunk_text("Short one. Short two. Short three.", target_size=25)

        assert chunks == ["Short one. Short two.", "Short three."]

    def test_long_text_produces_multiple_chunks(self, long_text: str) -> None:
        chunks = chunk_text(long_text)

        assert len(chunks) > 1
        assert all(len(c) <= DEFAULT_TARGET_SIZE for c in chunks)

    def test_never_splits_inside_a_sentence(self, long_text: str) -> None:
        sentences = set(split_sentences(long_text))

        for chunk in chunk_text(long_text, target_size=200):
            for sentence in split_sentences(chunk):
                assert sentence in sentences

    def test_joined_chunks_reproduce_sentence_sequence(self, long_text: str) -> None:
        chunks = chunk_text(long_text, target_size=150)

        assert " ".join(chunks) == long_text
        assert split_sentences(" ".join(chunks)) == split_sentences(long_text)

    def test_whitespace_between_sentences_is_normalized(self) -> None:
        chunks = chunk_text("First.   Second.  Third.", target_size=1000)

        assert chunks == ["First. Second. Third."]

    def test_chunk_exactly_at_target_is_kept_together(self) -> None:
        # "Aaaa. Bbbb." is 11 chars
        assert chunk_text("Aaaa. Bbbb.", target_size=11) == ["Aaaa. Bbbb."]
        assert chunk_text("Aaaa. Bbbb.", target_size=10) == ["Aaaa.", "Bbbb."]


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------


class TestEdgeCases:
    """Tests for boundary conditions."""

    def test_empty_input_yields_no_chunks(self) -> None:
        assert chunk_text("") == []

    def test_whitespace_only_yields_no_chunks(self) -> None:
        assert chunk_text("   ") == []

    def test_single_long_sentence_is_never_truncated(self) -> None:
        sentence = "This sentence " + "keeps going " * 200 + "until it ends."

        chunks = chunk_text(sentence, target_size=100)

        assert chunks == [sentence]

    def test_oversized_sentence_gets_its_own_chunk(self) -> None:
        big = "Big " * 40 + "sentence."
        text = f"Small start. {big} Small end."

        chunks = chunk_text(text, target_size=50)

        assert chunks == ["Small start.", big, "Small end."]

    def test_text_without_terminators_is_one_chunk(self) -> None:
        text = "no punctuation at all " * 100

        chunks = chunk_text(text.strip(), target_size=50)

        assert chunks == [text.strip()]


# ---------------------------------------------------------------------------
# SentenceChunker
# ---------------------------------------------------------------------------


class TestSentenceChunker:
    """Tests for the configured chunker."""

    def test_default_target_size(self) -> None:
        assert SentenceChunker().target_size == DEFAULT_TARGET_SIZE == 1000

    def test_split_uses_configured_target(self) -> None:
        chunker = SentenceChunker(target_size=30)

        assert len(chunker.split(POLICY_TEXT)) == 3

    @pytest.mark.parametrize("size", [0, -5])
    def test_non_positive_target_raises(self, size: int) -> None:
        with pytest.raises(ValueError, match="target_size"):
            SentenceChunker(target_size=size)
