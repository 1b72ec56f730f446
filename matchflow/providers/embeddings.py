"""
Embedding client.

Wraps the provider's ``/embeddings`` endpoint.  Every failure mode is
reported as :class:`~matchflow.errors.EmbeddingUnavailable` so callers
only have to handle one exception type; a missing credential raises the
:class:`~matchflow.errors.ProviderNotConfigured` subclass before any
request is made.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Optional

import openai

from ..config import Settings
from ..errors import EmbeddingUnavailable, ProviderNotConfigured
from ..schema import EmbeddingVector
from .openai_client import build_async_client
from .policy import is_credential_usable

logger = logging.getLogger(__name__)


def _extract_embedding(response: Any) -> EmbeddingVector:
    try:
        vector = response.data[0].embedding
        embedding = [float(x) for x in vector]
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
        raise EmbeddingUnavailable("Malformed embedding response", cause=exc) from exc
    if not embedding:
        raise EmbeddingUnavailable("Malformed embedding response: empty vector")
    if not all(math.isfinite(x) for x in embedding):
        raise EmbeddingUnavailable("Malformed embedding response: non-finite component")
    return embedding


class EmbeddingClient:
    """Turns text into an embedding vector using an OpenAI compatible API."""

    def __init__(self, settings: Settings, client: Optional[openai.AsyncOpenAI] = None) -> None:
        self.settings = settings
        self.model = settings.embedding_model
        self._client = client

    @property
    def configured(self) -> bool:
        return is_credential_usable(self.settings.api_key, self.settings)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = build_async_client(self.settings)
        return self._client

    async def embed(self, text: str) -> EmbeddingVector:
        """Return the embedding for ``text``.

        Raises:
            ProviderNotConfigured: no usable API key; nothing was sent.
            EmbeddingUnavailable: timeout, transport or HTTP error, or a
                response without ``data[0].embedding``.
        """
        if not self.configured:
            logger.warning("OpenAI API key not configured; skipping embedding request")
            raise ProviderNotConfigured("Embedding provider is not configured")
        client = self._get_client()
        timeout = self.settings.request_timeout
        try:
            response = await asyncio.wait_for(
                client.embeddings.create(model=self.model, input=text),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Embedding request timed out after %.1fs", timeout)
            raise EmbeddingUnavailable(f"Embedding request timed out after {timeout}s", cause=exc) from exc
        except openai.OpenAIError as exc:
            logger.error("Error generating embedding: %s", exc)
            raise EmbeddingUnavailable(f"Embedding request failed: {exc}", cause=exc) from exc
        embedding = _extract_embedding(response)
        logger.debug("Embedded %d chars into %d dimensions", len(text), len(embedding))
        return embedding
