"""
Provider subsystem for matchflow.

Thin asynchronous clients for the external AI provider plus the policy
that decides whether the provider may be used at all:

* `embeddings` – text to vector, failing with ``EmbeddingUnavailable``.
* `completions` – free-text generation with a fixed fallback string.
* `cache` – optional content-hash cache in front of the embedding client.
* `policy` – the "is the provider configured?" decision and the
  diagnostic explanations used when it is not.
"""

from .cache import CachingEmbeddingClient  # noqa: F401
from .completions import CompletionClient  # noqa: F401
from .embeddings import EmbeddingClient  # noqa: F401
from .policy import DegradationPolicy  # noqa: F401
