"""
Exception hierarchy for matchflow.

Provider failures (``EmbeddingUnavailable`` and ``CompletionUnavailable``)
are recoverable: the scorer and orchestrator absorb them into a zero score
or a fallback explanation.  ``DimensionMismatch`` signals a configuration
bug, such as mixing two embedding models, and is allowed to propagate.
"""

from __future__ import annotations

from typing import Optional


class MatchflowError(Exception):
    """Base class for all matchflow errors."""


class ConfigError(MatchflowError):
    """Raised when settings cannot be parsed."""


class DimensionMismatch(MatchflowError):
    """Two embedding vectors of different length were compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same dimension ({left} != {right})")
        self.left = left
        self.right = right


class ProviderError(MatchflowError):
    """An external provider call failed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class EmbeddingUnavailable(ProviderError):
    """No embedding could be obtained from the provider."""


class ProviderNotConfigured(EmbeddingUnavailable):
    """No usable credential is configured; no request was attempted."""


class CompletionUnavailable(ProviderError):
    """The text-generation provider could not produce a completion."""
