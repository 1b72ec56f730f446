"""
Degradation policy.

A single place that decides whether the AI provider can be used at all.
The orchestrator asks once per call rather than letting every item
discover the missing credential on its own.
"""

from __future__ import annotations

import logging

from ..config import Settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED_EXPLANATION = "AI service not configured"
NO_SOURCE_EXPLANATION = "No resume uploaded"
SOURCE_NOT_EXTRACTED_EXPLANATION = "Resume text not extracted"
EMPTY_SOURCE_EXPLANATION = "source text not extracted"
ERROR_EXPLANATION = "Error calculating match"
FALLBACK_EXPLANATION = "Match score calculated based on content similarity"


def is_credential_usable(api_key: str | None, settings: Settings) -> bool:
    if api_key is None or not api_key.strip():
        return False
    return api_key.strip() not in settings.placeholder_keys


class DegradationPolicy:
    """Decides how matchflow behaves when the provider is unusable."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def is_provider_configured(self) -> bool:
        configured = is_credential_usable(self.settings.api_key, self.settings)
        if not configured:
            logger.warning("OpenAI API key not configured; AI matching is disabled")
        return configured
