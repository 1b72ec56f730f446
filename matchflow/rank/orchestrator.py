"""
Match orchestrator.

Fans the scorer out over a corpus, waits for every item, then ranks.
Two modes are supported:

* résumé → jobs (:meth:`MatchOrchestrator.rank_corpus_for_source`),
  returning a :class:`~matchflow.schema.RankedPage` of scored matches;
* job → similar jobs (:meth:`MatchOrchestrator.rank_similar_items`),
  returning the top postings only.

Each call is a single pass: dispatch, await all, sort, truncate.  The
provider configuration is checked once per call, not per item.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

import openai

from ..config import Settings, load_settings
from ..errors import DimensionMismatch, EmbeddingUnavailable
from ..providers.cache import CachingEmbeddingClient
from ..providers.completions import CompletionClient
from ..providers.embeddings import EmbeddingClient
from ..providers.openai_client import build_async_client
from ..providers.policy import (
    ERROR_EXPLANATION,
    NO_SOURCE_EXPLANATION,
    NOT_CONFIGURED_EXPLANATION,
    SOURCE_NOT_EXTRACTED_EXPLANATION,
    DegradationPolicy,
)
from ..schema import JobPosting, MatchResult, PairScore, RankedPage
from .scorer import MatchScorer

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def _fan_out(
    items: Sequence[T],
    work: Callable[[T], Awaitable[R]],
    on_error: Callable[[T, BaseException], R],
    max_concurrency: int,
) -> List[R]:
    """Run ``work`` for every item concurrently and return results in input order.

    Every task is awaited before anything is returned.  Exceptions other
    than ``DimensionMismatch`` are mapped through ``on_error``; a
    ``DimensionMismatch`` is re-raised once all siblings have finished.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _bounded(item: T) -> R:
        async with semaphore:
            return await work(item)

    outcomes = await asyncio.gather(*(_bounded(item) for item in items), return_exceptions=True)
    results: List[R] = []
    fatal: Optional[DimensionMismatch] = None
    for item, outcome in zip(items, outcomes):
        if isinstance(outcome, DimensionMismatch):
            fatal = fatal or outcome
        elif isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            results.append(on_error(item, outcome))
        else:
            results.append(outcome)
    if fatal is not None:
        raise fatal
    return results


class MatchOrchestrator:
    """Ranks a corpus of job postings against a résumé or another posting."""

    def __init__(
        self,
        scorer: MatchScorer,
        policy: DegradationPolicy,
        max_concurrency: Optional[int] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self.scorer = scorer
        self.policy = policy
        self.max_concurrency = max_concurrency or policy.settings.max_concurrency
        self.client = client

    async def aclose(self) -> None:
        """Close the SDK client created by :func:`get_default_orchestrator`, if any."""
        if self.client is not None:
            await self.client.close()
            self.client = None

    async def rank_corpus_for_source(
        self,
        source_text: Optional[str],
        corpus: Sequence[JobPosting],
        page: int = 0,
        page_size: Optional[int] = None,
        total_count: Optional[int] = None,
    ) -> RankedPage:
        """Score every posting against the résumé text and sort by score.

        Args:
            source_text: Extracted résumé text.  ``None`` means no résumé
                was uploaded; an empty string means text extraction failed.
            corpus: The already paginated slice of postings to rank.
            page: Page number, passed through.
            page_size: Page size, passed through (defaults to ``len(corpus)``).
            total_count: Total number of postings across all pages, passed
                through (defaults to ``len(corpus)``).

        Returns:
            A ``RankedPage`` with exactly one ``MatchResult`` per posting,
            highest score first; ties keep corpus order.
        """
        corpus = list(corpus)

        def _page(results: Sequence[MatchResult]) -> RankedPage:
            return RankedPage(
                items=tuple(results),
                page_number=page,
                page_size=len(corpus) if page_size is None else page_size,
                total_count=len(corpus) if total_count is None else total_count,
            )

        if source_text is None:
            return _page([MatchResult.zero(job, NO_SOURCE_EXPLANATION) for job in corpus])
        if not source_text.strip():
            return _page([MatchResult.zero(job, SOURCE_NOT_EXTRACTED_EXPLANATION) for job in corpus])
        if not self.policy.is_provider_configured():
            return _page([MatchResult.zero(job, NOT_CONFIGURED_EXPLANATION) for job in corpus])

        def _on_error(job: JobPosting, exc: BaseException) -> MatchResult:
            logger.error("Unexpected error scoring job %s", job.id, exc_info=exc)
            return MatchResult.zero(job, ERROR_EXPLANATION)

        logger.info("Scoring %d jobs (max %d concurrent)", len(corpus), self.max_concurrency)
        results = await _fan_out(
            corpus,
            lambda job: self.scorer.score(source_text, job),
            _on_error,
            self.max_concurrency,
        )
        ranked = sorted(results, key=lambda m: m.score, reverse=True)
        logger.info("Ranked %d jobs; top score %.1f", len(ranked), ranked[0].score if ranked else 0.0)
        return _page(ranked)

    async def rank_similar_items(self, target: JobPosting, corpus: Sequence[JobPosting], limit: int = 5) -> List[JobPosting]:
        """Return up to ``limit`` postings most similar to ``target``.

        Similarity uses description, requirements and skills only; titles
        are ignored.  Without a configured provider, or with an empty
        corpus, the first ``limit`` postings are returned as given.
        """
        others = [job for job in corpus if target.id is None or job.id != target.id]
        if limit <= 0:
            return []
        if not others or not self.policy.is_provider_configured():
            return others[:limit]

        target_text = target.similarity_text()

        async def _similarity(job: JobPosting) -> float:
            try:
                return await self.scorer.similarity(target_text, job.similarity_text())
            except EmbeddingUnavailable as exc:
                logger.warning("Similarity for job %s failed: %s", job.id, exc)
                return 0.0

        def _on_error(job: JobPosting, exc: BaseException) -> float:
            logger.error("Unexpected error comparing job %s", job.id, exc_info=exc)
            return 0.0

        scores = await _fan_out(others, _similarity, _on_error, self.max_concurrency)
        ranked = sorted(zip(others, scores), key=lambda pair: pair[1], reverse=True)
        logger.debug("Similar jobs for %s: %s", target.id, [(job.id, round(score, 2)) for job, score in ranked[:limit]])
        return [job for job, _ in ranked[:limit]]

    async def score_single_pair(self, source_text: str, target_text: str, skills: Optional[str] = None) -> PairScore:
        """Score one résumé against one job text, bypassing batching."""
        if source_text and source_text.strip() and not self.policy.is_provider_configured():
            return PairScore(score=0.0, explanation=NOT_CONFIGURED_EXPLANATION)
        return await self.scorer.score_pair(source_text, target_text, skills)


def get_default_orchestrator(
    settings: Optional[Settings] = None,
    embedder: Any = None,
    completer: Any = None,
) -> MatchOrchestrator:
    """Return a ``MatchOrchestrator`` wired from configuration.

    The resolution order is:

    1. ``settings`` if given, otherwise :func:`~matchflow.config.load_settings`
       (YAML-free: ``.env`` file and environment variables).
    2. ``embedder`` / ``completer`` if given, otherwise OpenAI clients that
       share one connection pool.  No client is created when the provider
       is not configured.
    3. With ``cache_embeddings`` enabled the embedder is wrapped in a
       :class:`~matchflow.providers.cache.CachingEmbeddingClient`.

    Await :meth:`MatchOrchestrator.aclose` once done to release the
    connection pool.
    """
    settings = settings or load_settings()
    policy = DegradationPolicy(settings)
    client = None
    if embedder is None or completer is None:
        client = build_async_client(settings) if policy.is_provider_configured() else None
        embedder = embedder or EmbeddingClient(settings, client=client)
        completer = completer or CompletionClient(settings, client=client)
    if settings.cache_embeddings:
        embedder = CachingEmbeddingClient(embedder, max_entries=settings.cache_size)
    return MatchOrchestrator(MatchScorer(embedder, completer), policy, client=client)
