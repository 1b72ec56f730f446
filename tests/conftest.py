"""Shared fixtures and provider test doubles.

No test talks to a real provider: the embedding and completion clients
are replaced by small in-memory fakes that record every call, so tests
can assert on call counts as well as results.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from matchflow.config import Settings
from matchflow.errors import EmbeddingUnavailable
from matchflow.providers.policy import DegradationPolicy
from matchflow.rank.orchestrator import MatchOrchestrator
from matchflow.rank.scorer import MatchScorer
from matchflow.schema import JobPosting


class FakeEmbedder:
    """Maps text to a vector by the first keyword it contains."""

    def __init__(
        self,
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        default: Sequence[float] = (1.0, 0.0),
        fail_on: Iterable[str] = (),
        delay: float = 0.0,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.fail_on = list(fail_on)
        self.delay = delay
        self.model = "fake-embedding"
        self.calls: List[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if any(marker in text for marker in self.fail_on):
                raise EmbeddingUnavailable("simulated provider outage")
            for keyword, vector in self.vectors.items():
                if keyword in text:
                    return list(vector)
            return list(self.default)
        finally:
            self.in_flight -= 1


class FakeCompleter:
    def __init__(self, reply: str = "Strong overlap in core skills.") -> None:
        self.reply = reply
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="sk-test", request_timeout=1.0, max_concurrency=4)


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(api_key="demo-key-replace-with-real")


@pytest.fixture
def completer() -> FakeCompleter:
    return FakeCompleter()


def make_orchestrator(settings: Settings, embedder: FakeEmbedder, completer: FakeCompleter) -> MatchOrchestrator:
    return MatchOrchestrator(MatchScorer(embedder, completer), DegradationPolicy(settings))


def make_job(job_id: int, title: str = "Engineer", description: str = "", requirements: str = "", skills: str = "") -> JobPosting:
    return JobPosting(id=job_id, title=title, description=description, requirements=requirements, skills=skills)
