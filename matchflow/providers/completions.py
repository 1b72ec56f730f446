"""
Completion client.

Wraps the provider's ``/chat/completions`` endpoint.  Two flavours are
offered:

* :meth:`CompletionClient.generate` raises
  :class:`~matchflow.errors.CompletionUnavailable` on any failure and is
  used by the text-generation helpers (job descriptions, ATS feedback,
  rejection reasons) whose callers need to know the call failed.
* :meth:`CompletionClient.complete` never raises.  It returns
  :data:`~matchflow.providers.policy.FALLBACK_EXPLANATION` instead and
  is used for match explanations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import openai

from ..config import Settings
from ..errors import CompletionUnavailable
from .openai_client import build_async_client
from .policy import FALLBACK_EXPLANATION, is_credential_usable

logger = logging.getLogger(__name__)


def _extract_content(response: Any) -> str:
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError) as exc:
        raise CompletionUnavailable("Malformed completion response", cause=exc) from exc
    if not isinstance(content, str):
        raise CompletionUnavailable("Malformed completion response: no message content")
    return content.strip()


class CompletionClient:
    """Free-text generation through an OpenAI compatible chat API."""

    def __init__(self, settings: Settings, client: Optional[openai.AsyncOpenAI] = None) -> None:
        self.settings = settings
        self.model = settings.completion_model
        self._client = client

    @property
    def configured(self) -> bool:
        return is_credential_usable(self.settings.api_key, self.settings)

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = build_async_client(self.settings)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def generate(self, prompt: str) -> str:
        if not self.configured:
            raise CompletionUnavailable("Completion provider is not configured")
        client = self._get_client()
        timeout = self.settings.request_timeout
        logger.debug("Sending prompt to %s: %s", self.model, prompt[:200])
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self.settings.max_tokens,
                    temperature=self.settings.temperature,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Chat completion timed out after %.1fs", timeout)
            raise CompletionUnavailable(f"Chat completion timed out after {timeout}s", cause=exc) from exc
        except openai.OpenAIError as exc:
            logger.error("Error generating chat completion: %s", exc)
            raise CompletionUnavailable(f"Chat completion failed: {exc}", cause=exc) from exc
        return _extract_content(response)

    async def complete(self, prompt: str) -> str:
        """Return a completion for ``prompt`` or the fixed fallback string."""
        if not self.configured:
            logger.warning("OpenAI API key not configured; returning fallback explanation")
            return FALLBACK_EXPLANATION
        try:
            return await self.generate(prompt)
        except CompletionUnavailable as exc:
            logger.warning("Using fallback explanation: %s", exc)
            return FALLBACK_EXPLANATION

    async def generate_job_description(self, job_title: str, company: str, requirements: str) -> str:
        prompt = (
            f"Create a professional job description for the position of {job_title} at {company}. "
            f"Requirements: {requirements}. "
            "Include job summary, key responsibilities, qualifications, and benefits. "
            "Make it engaging and comprehensive."
        )
        return await self.generate(prompt)

    async def generate_ats_feedback(self, resume_text: str, job_description: str, score: float) -> str:
        prompt = (
            "Analyze this resume against the job description and provide constructive ATS feedback. "
            f"ATS Score: {score:.1f}/100. "
            f"Resume: {resume_text} "
            f"Job Description: {job_description} "
            "Provide specific feedback on skills match, experience relevance, and improvement suggestions."
        )
        return await self.generate(prompt)

    async def generate_rejection_reason(self, resume_text: str, job_description: str) -> str:
        prompt = (
            "Generate a professional and constructive rejection reason for this candidate. "
            f"Resume: {resume_text} "
            f"Job Description: {job_description} "
            "Be specific about skills gaps but encouraging for future applications."
        )
        return await self.generate(prompt)
