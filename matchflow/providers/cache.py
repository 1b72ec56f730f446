"""
Optional embedding cache.

Ranking a page scores every posting against the same résumé, so without
a cache the résumé is embedded once per posting.  ``CachingEmbeddingClient``
sits in front of an :class:`~matchflow.providers.embeddings.EmbeddingClient`
and remembers vectors keyed by a hash of model and text.  Concurrent
requests for the same text share one in-flight call.  Failures are never
cached.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections import OrderedDict
from typing import Any, Dict

from ..schema import EmbeddingVector

logger = logging.getLogger(__name__)


def content_key(model: str, text: str) -> str:
    return hashlib.sha256(f"{model}\x00{text}".encode("utf-8")).hexdigest()


class CachingEmbeddingClient:
    """LRU cache wrapper exposing the same ``embed`` coroutine as the wrapped client."""

    def __init__(self, inner: Any, max_entries: int = 1024) -> None:
        self.inner = inner
        self.model = getattr(inner, "model", "")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, EmbeddingVector]" = OrderedDict()
        self._pending: "Dict[str, asyncio.Future[EmbeddingVector]]" = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    async def embed(self, text: str) -> EmbeddingVector:
        key = content_key(self.model, text)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            return list(cached)
        pending = self._pending.get(key)
        if pending is None:
            self.misses += 1
            pending = asyncio.ensure_future(self.inner.embed(text))
            self._pending[key] = pending
            pending.add_done_callback(lambda task: self._settle(key, task))
        else:
            self.hits += 1
        # a cancelled waiter must not cancel the call other waiters share
        vector = await asyncio.shield(pending)
        return list(vector)

    def _settle(self, key: str, task: "asyncio.Future[EmbeddingVector]") -> None:
        self._pending.pop(key, None)
        if task.cancelled() or task.exception() is not None:
            return
        self._entries[key] = list(task.result())
        if len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        logger.debug("Embedding cache: %d hits, %d misses, %d entries", self.hits, self.misses, len(self._entries))
