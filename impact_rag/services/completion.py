"""
Completion Service

Text-in/text-out access to a generative model. The retrieval core treats
generation as an opaque capability behind the ``CompletionClient``
protocol; the default implementation calls a local Ollama server.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from impact_rag.core.exceptions import CompletionError

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Generate a completion for ``prompt`` under a system prompt."""

    async def complete(self, prompt: str, *, system: str) -> str: ...

    async def health_check(self) -> bool: ...


class OllamaCompletionClient:
    """
    Async Ollama client (``/api/generate``, non-streaming).

    Usage::

        client = OllamaCompletionClient("http://localhost:11434", "mistral")
        text = await client.complete("Summarize ...", system="You are ...")

    Args:
        base_url: Ollama API base URL.
        model: Model name to use for generation.
        timeout: Request timeout in seconds.
        temperature: Sampling temperature.
        transport: Optional httpx transport (tests use ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        temperature: float = 0.7,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._temperature = temperature
        self._transport = transport

    async def complete(self, prompt: str, *, system: str) -> str:
        """
        Run one generation.

        Raises:
            CompletionError: On connection failure, timeout, error status,
                or an empty response.
        """
        payload = {
            "model": self._model,
            "system": system,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": self._temperature},
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self._base_url}/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.warning("Ollama unreachable (%s): %s", type(e).__name__, e)
            raise CompletionError(f"Completion service unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error("Ollama API error: %s", e.response.text)
            raise CompletionError(
                f"Completion service returned {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise CompletionError(f"Completion request failed: {e}") from e

        content = data.get("response", "") if isinstance(data, dict) else ""
        if not content:
            raise CompletionError("Invalid response from completion service")

        logger.info(
            "Ollama response generated (model=%s, length=%d)",
            self._model,
            len(content),
        )
        return content

    async def health_check(self) -> bool:
        """Return True if the Ollama API responds."""
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self._transport) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
