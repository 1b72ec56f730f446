"""
Match scorer.

Scores one (source text, target) pair: embedding similarity, matched
skills and a model written explanation.  Provider failures are isolated
to the pair being scored and turned into a zero score with a diagnostic
explanation, so a batch never loses an item.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Tuple

from ..errors import EmbeddingUnavailable, ProviderNotConfigured
from ..providers.policy import (
    EMPTY_SOURCE_EXPLANATION,
    ERROR_EXPLANATION,
    NOT_CONFIGURED_EXPLANATION,
)
from ..schema import JobPosting, MatchResult, PairScore, split_skills
from .vector_math import cosine_similarity, to_score

logger = logging.getLogger(__name__)

MAX_MATCHING_SKILLS = 5
PROMPT_TEXT_LIMIT = 1000


def truncate(text: str, limit: int = PROMPT_TEXT_LIMIT) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def extract_skill_matches(source_text: str, skills: Optional[str], limit: int = MAX_MATCHING_SKILLS) -> Tuple[str, ...]:
    """Return the job skills mentioned in ``source_text``.

    Skills are comma separated.  Each trimmed skill is matched as a
    case-insensitive substring; the order of ``skills`` is kept, duplicates are
    dropped and at most ``limit`` skills are returned.
    """
    haystack = source_text.lower()
    matches: List[str] = []
    for skill in split_skills(skills):
        if skill in matches:
            continue
        if skill.lower() in haystack:
            matches.append(skill)
            if len(matches) == limit:
                break
    return tuple(matches)


def build_explanation_prompt(source_text: str, target_text: str, score: float) -> str:
    return (
        f"Explain why this resume matches this job with a score of {score:.1f}/100. "
        "Provide specific reasons for the match/mismatch. "
        "Keep it concise (2-3 sentences). "
        f"Resume: {truncate(source_text)} "
        f"Job: {truncate(target_text)}"
    )


class MatchScorer:
    """Computes a single match using an embedding client and a completion client."""

    def __init__(self, embedder: Any, completer: Any) -> None:
        self.embedder = embedder
        self.completer = completer

    async def similarity(self, source_text: str, target_text: str) -> float:
        """ATS score of two texts.

        Raises:
            EmbeddingUnavailable: either embedding could not be produced.
            DimensionMismatch: the two vectors differ in length.
        """
        vectors = await asyncio.gather(
            self.embedder.embed(source_text),
            self.embedder.embed(target_text),
            return_exceptions=True,
        )
        for outcome in vectors:
            if isinstance(outcome, BaseException):
                raise outcome
        source_vec, target_vec = vectors
        return to_score(cosine_similarity(source_vec, target_vec))

    async def score_pair(self, source_text: str, target_text: str, skills: Optional[str] = None) -> PairScore:
        if not source_text or not source_text.strip():
            return PairScore(score=0.0, explanation=EMPTY_SOURCE_EXPLANATION)
        try:
            score = await self.similarity(source_text, target_text)
        except ProviderNotConfigured:
            return PairScore(score=0.0, explanation=NOT_CONFIGURED_EXPLANATION)
        except EmbeddingUnavailable as exc:
            logger.warning("Match calculation failed: %s", exc)
            return PairScore(score=0.0, explanation=ERROR_EXPLANATION)
        explanation = await self.completer.complete(build_explanation_prompt(source_text, target_text, score))
        return PairScore(
            score=score,
            matching_skills=extract_skill_matches(source_text, skills),
            explanation=explanation,
        )

    async def score(self, source_text: str, item: JobPosting) -> MatchResult:
        document = item.as_document()
        pair = await self.score_pair(source_text, document.raw_text, item.skills)
        logger.debug("Scored job %s: %.2f", item.id, pair.score)
        return MatchResult.from_pair(item, pair)
