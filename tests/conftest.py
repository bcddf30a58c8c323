"""
Pytest Configuration and Fixtures

Shared fakes for the offline test suite: a keyword-count embedding
backend, a recording sleep, a manual clock and a canned completion client.
No network, database or API key is needed.
"""

import os

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Test environment defaults — MUST be before any impact_rag imports.
#
# load_dotenv fills os.environ from a local .env (no-op if missing); the
# defaults below keep Settings validation happy on fresh clones and CI.
# ---------------------------------------------------------------------------
load_dotenv()

_test_env = {
    "DOCUMENT_STORE": "memory",
    "EMBEDDING_PROVIDER": "cohere",
    "COHERE_API_KEY": "test-key",
}
for _key, _value in _test_env.items():
    os.environ.setdefault(_key, _value)

# ---------------------------------------------------------------------------
# Imports (safe now that env vars are set)
# ---------------------------------------------------------------------------
from collections.abc import Callable, Sequence  # noqa: E402

import pytest  # noqa: E402

from impact_rag.repositories import InMemoryDocumentStore  # noqa: E402
from impact_rag.services.chunking import SentenceChunker  # noqa: E402
from impact_rag.services.embeddings import EmbeddingClient  # noqa: E402
from impact_rag.services.rate_limit import MinIntervalRateLimiter  # noqa: E402
from impact_rag.services.retrieval import RetrievalOrchestrator  # noqa: E402

VOCABULARY = ["donor", "grant", "volunteer", "retention", "budget", "event"]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class KeywordEmbeddingBackend:
    """
    Deterministic embedding: one dimension per vocabulary word (occurrence
    count) plus a small constant bias so no vector has zero norm.

    ``overrides`` maps exact texts to fixed vectors.
    """

    def __init__(
        self,
        vocabulary: Sequence[str] = VOCABULARY,
        overrides: dict[str, list[float]] | None = None,
    ) -> None:
        self.vocabulary = list(vocabulary)
        self.overrides = overrides or {}
        self.calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return len(self.vocabulary) + 1

    def vector(self, text: str) -> list[float]:
        if text in self.overrides:
            return list(self.overrides[text])
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary] + [0.1]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vector(t) for t in texts]


class FlakyBackend:
    """Raises the queued errors first, then delegates to ``backend``."""

    def __init__(self, errors: Sequence[Exception], backend) -> None:
        self.errors = list(errors)
        self.backend = backend
        self.attempts = 0

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return await self.backend.embed_batch(texts)


class RecordingSleep:
    """Async sleep stand-in that records requested delays (and advances a clock)."""

    def __init__(self, clock: "ManualClock | None" = None) -> None:
        self.delays: list[float] = []
        self.clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.now += seconds


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeCompletionClient:
    """Returns a canned completion and records every prompt."""

    def __init__(self, response: str) -> None:
        self.response = response
        self.prompts: list[str] = []
        self.systems: list[str] = []

    async def complete(self, prompt: str, *, system: str) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        return self.response

    async def health_check(self) -> bool:
        return True


VALID_ANALYSIS_JSON = """{
  "keyFindings": [{"category": "Volunteers", "findings": ["Hours doubled"]}],
  "insights": [{"category": "Engagement", "insights": ["Momentum is strong"]}],
  "recommendations": [
    {"recommendation": "Recruit team leads", "rationale": "Sustain growth", "priority": "high"}
  ]
}"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def keyword_backend() -> KeywordEmbeddingBackend:
    return KeywordEmbeddingBackend()


@pytest.fixture
def no_wait_limiter() -> MinIntervalRateLimiter:
    """Zero-interval limiter: never sleeps."""
    return MinIntervalRateLimiter(min_interval=0.0)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def embedding_client(
    keyword_backend: KeywordEmbeddingBackend,
    no_wait_limiter: MinIntervalRateLimiter,
    recording_sleep: RecordingSleep,
) -> EmbeddingClient:
    return EmbeddingClient(
        keyword_backend,
        no_wait_limiter,
        dimension=keyword_backend.dimension,
        sleep=recording_sleep,
    )


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def make_orchestrator(
    embedding_client: EmbeddingClient,
    memory_store: InMemoryDocumentStore,
) -> Callable[..., RetrievalOrchestrator]:
    """Factory for orchestrators over the keyword backend and memory store."""

    def _make(target_size: int = 1000, **kwargs) -> RetrievalOrchestrator:
        kwargs.setdefault("clock", lambda: 1_700_000_000_000_000_000)
        return RetrievalOrchestrator(
            embedding_client,
            memory_store,
            SentenceChunker(target_size),
            **kwargs,
        )

    return _make
