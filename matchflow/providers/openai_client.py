"""Shared OpenAI SDK client construction."""

from __future__ import annotations

import logging

import openai

from ..config import Settings

logger = logging.getLogger(__name__)


def build_async_client(settings: Settings) -> openai.AsyncOpenAI:
    """Create the async client shared by the embedding and completion clients.

    Retries are disabled: a failed call is reported to the caller straight
    away and degrades to a zero score or a fallback explanation.
    """
    logger.debug("Creating AsyncOpenAI client for %s", settings.api_base_url)
    return openai.AsyncOpenAI(
        api_key=settings.api_key,
        base_url=settings.api_base_url,
        timeout=settings.request_timeout,
        max_retries=0,
    )
