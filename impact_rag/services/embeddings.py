"""
Embedding Service

Converts batches of text into fixed-length vectors through an external
embedding provider, under a shared minimum-interval rate limiter and a
bounded exponential-backoff retry.

Providers:
    - Cohere (default): REST ``/v1/embed`` via httpx.
    - OpenAI: ``AsyncOpenAI().embeddings.create``.
    - Local: sentence-transformers, inference offloaded to a thread.

Design choices:
    - Backends only translate one request. Rate limiting, retries and
      response validation live in ``EmbeddingClient`` so every provider
      gets the same discipline.
    - A malformed or empty response is a failure even on HTTP 200, and is
      retried like a transport error. There is no zero-vector fallback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, ClassVar, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from impact_rag.core.exceptions import (
    EmbeddingError,
    EmbeddingResponseError,
    EmbeddingServiceError,
)
from impact_rag.services.rate_limit import MinIntervalRateLimiter, SleepFunc

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES: int = 3
DEFAULT_INITIAL_RETRY_DELAY: float = 1.0  # seconds, doubled after each failure


class EmbeddingBackend(Protocol):
    """One round-trip to an embedding provider."""

    async def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class CohereEmbeddingBackend:
    """
    Cohere embed API over httpx.

    Args:
        api_key: Cohere API token.
        model: Embedding model identifier.
        base_url: API root, without the ``/v1`` suffix.
        input_type: Cohere input type; documents and queries share
            ``search_document`` so both sides live in the same space.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "embed-english-v3.0",
        base_url: str = "https://api.cohere.com",
        input_type: str = "search_document",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._url = f"{base_url.rstrip('/')}/v1/embed"
        self._input_type = input_type
        self._timeout = timeout
        self._transport = transport

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        payload = {
            "texts": texts,
            "model": self._model,
            "input_type": self._input_type,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self._url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise EmbeddingServiceError(
                f"Cohere API returned {e.response.status_code}",
                {"body": e.response.text[:200]},
            ) from e
        except httpx.HTTPError as e:
            raise EmbeddingServiceError(f"Cohere API unreachable: {e}") from e
        except ValueError as e:
            raise EmbeddingResponseError("Cohere API returned invalid JSON") from e

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        # Typed responses wrap vectors per type: {"float": [[...]]}
        if isinstance(embeddings, dict):
            embeddings = embeddings.get("float")
        if not isinstance(embeddings, list):
            raise EmbeddingResponseError("Invalid response from Cohere API")
        return embeddings


class OpenAIEmbeddingBackend:
    """
    OpenAI embeddings endpoint via the official async SDK.

    Args:
        api_key: OpenAI API key.
        model: Embedding model identifier.
        client: Preconfigured client (tests inject a mock).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key)
        self._model = model

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(
                input=texts,
                model=self._model,
            )
        except OpenAIError as e:
            raise EmbeddingServiceError(f"OpenAI embeddings failed: {e}") from e

        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]


class LocalEmbeddingBackend:
    """
    Local sentence-transformers model.

    The model is loaded lazily on first use and cached at class level.
    The import is deferred so ``sentence_transformers`` is only required
    when this backend is actually selected.
    """

    _models: ClassVar[dict[str, Any]] = {}

    def __init__(self, model: str = "all-MiniLM-L6-v2") -> None:
        self._model_name = model

    def _get_model(self) -> Any:
        model = self._models.get(self._model_name)
        if model is None:
            from sentence_transformers import SentenceTransformer

            logger.info("Loading embedding model: %s ...", self._model_name)
            model = SentenceTransformer(self._model_name)
            self._models[self._model_name] = model
        return model

    def _encode_sync(self, texts: list[str]) -> list[list[float]]:
        # Always call via asyncio.to_thread: CPU-bound
        embeddings = self._get_model().encode(texts, normalize_embeddings=True)
        result: list[list[float]] = embeddings.tolist()
        return result

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        try:
            return await asyncio.to_thread(self._encode_sync, texts)
        except (OSError, RuntimeError, ValueError) as e:
            raise EmbeddingServiceError(f"Local embedding model failed: {e}") from e


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class EmbeddingClient:
    """
    Rate-limited, retrying embedding client.

    Every attempt first passes through the shared rate limiter. Failed
    attempts are retried up to ``max_retries`` times with exponential
    backoff (``initial_retry_delay``, then doubled). When retries are
    exhausted the last error is re-raised unchanged.

    Usage::

        client = EmbeddingClient(backend, limiter, dimension=1024)
        vectors = await client.embed(["first chunk", "second chunk"])
        assert len(vectors) == 2

    Args:
        backend: Provider performing a single request.
        rate_limiter: Process-wide limiter shared with other clients.
        dimension: Expected vector length, or ``None`` to accept any
            consistent length.
        max_retries: Retries after the first attempt.
        initial_retry_delay: First backoff delay in seconds.
        sleep: Awaitable sleep used for backoff.
    """

    def __init__(
        self,
        backend: EmbeddingBackend,
        rate_limiter: MinIntervalRateLimiter,
        *,
        dimension: int | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_retry_delay: float = DEFAULT_INITIAL_RETRY_DELAY,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {max_retries}")
        self._backend = backend
        self._rate_limiter = rate_limiter
        self._dimension = dimension
        self._max_retries = max_retries
        self._initial_retry_delay = initial_retry_delay
        self._sleep = sleep

    @property
    def dimension(self) -> int | None:
        return self._dimension

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed a batch of texts, preserving order.

        Args:
            texts: Texts to embed. Vector ``i`` corresponds to text ``i``.

        Returns:
            One vector per input text. An empty input returns ``[]``
            without contacting the provider.

        Raises:
            EmbeddingError: The last failure once retries are exhausted.
        """
        batch = list(texts)
        if not batch:
            return []

        delay = self._initial_retry_delay
        attempt = 0
        while True:
            await self._rate_limiter.acquire()
            try:
                vectors = await self._backend.embed_batch(batch)
                self._validate(vectors, expected=len(batch))
                logger.debug("Embedded %d texts (attempt %d)", len(batch), attempt + 1)
                return vectors
            except EmbeddingError as e:
                if attempt >= self._max_retries:
                    logger.error(
                        "Embedding failed after %d attempts: %s",
                        attempt + 1,
                        e,
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Embedding attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt,
                    self._max_retries + 1,
                    e,
                    delay,
                )
                await self._sleep(delay)
                delay *= 2

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query text."""
        vectors = await self.embed([text])
        return vectors[0]

    def _validate(self, vectors: Any, *, expected: int) -> None:
        """Reject empty, short, ragged, or wrongly sized responses."""
        if not vectors:
            raise EmbeddingResponseError("Embedding service returned no vectors")
        if len(vectors) != expected:
            raise EmbeddingResponseError(
                "Embedding count mismatch",
                {"expected": expected, "received": len(vectors)},
            )

        if not all(isinstance(v, list) for v in vectors):
            raise EmbeddingResponseError("Embedding service returned non-list vectors")

        lengths = {len(v) for v in vectors}
        if 0 in lengths:
            raise EmbeddingResponseError("Embedding service returned an empty vector")
        if len(lengths) != 1:
            raise EmbeddingResponseError(
                "Embedding vectors have inconsistent lengths",
                {"lengths": sorted(lengths)},
            )

        length = lengths.pop()
        if self._dimension is not None and length != self._dimension:
            raise EmbeddingResponseError(
                "Embedding dimension mismatch",
                {"expected": self._dimension, "received": length},
            )
