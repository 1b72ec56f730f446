"""Tests for the embedding and completion clients and the degradation policy.

The OpenAI SDK client is replaced with ``AsyncMock`` objects shaped like
``AsyncOpenAI`` so no request ever leaves the process.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from matchflow.config import Settings
from matchflow.errors import CompletionUnavailable, EmbeddingUnavailable, ProviderNotConfigured
from matchflow.providers.cache import CachingEmbeddingClient
from matchflow.providers.completions import CompletionClient
from matchflow.providers.embeddings import EmbeddingClient
from matchflow.providers.policy import FALLBACK_EXPLANATION, DegradationPolicy


def _embedding_response(vector):
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _mock_sdk(embedding=None, chat=None) -> MagicMock:
    sdk = MagicMock()
    sdk.embeddings.create = AsyncMock(return_value=embedding)
    sdk.chat.completions.create = AsyncMock(return_value=chat)
    return sdk


# Degradation policy ---------------------------------------------------------


@pytest.mark.parametrize("api_key", [None, "", "   ", "demo-key-replace-with-real", "your-api-key-here"])
def test_policy_rejects_missing_or_placeholder_keys(api_key) -> None:
    assert DegradationPolicy(Settings(api_key=api_key)).is_provider_configured() is False


def test_policy_accepts_real_key() -> None:
    assert DegradationPolicy(Settings(api_key="sk-abc123")).is_provider_configured() is True


# Embedding client -----------------------------------------------------------


def test_embed_returns_vector_and_sends_model(settings: Settings) -> None:
    sdk = _mock_sdk(embedding=_embedding_response([0.1, 0.2, 0.3]))
    client = EmbeddingClient(settings, client=sdk)
    vector = asyncio.run(client.embed("Python developer"))
    assert vector == [0.1, 0.2, 0.3]
    sdk.embeddings.create.assert_awaited_once_with(model="text-embedding-ada-002", input="Python developer")


def test_embed_unconfigured_makes_no_request(unconfigured_settings: Settings) -> None:
    sdk = _mock_sdk(embedding=_embedding_response([1.0]))
    client = EmbeddingClient(unconfigured_settings, client=sdk)
    with pytest.raises(ProviderNotConfigured):
        asyncio.run(client.embed("anything"))
    sdk.embeddings.create.assert_not_called()


def test_not_configured_is_an_embedding_failure() -> None:
    assert issubclass(ProviderNotConfigured, EmbeddingUnavailable)


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(data=[]),
        SimpleNamespace(data=None),
        SimpleNamespace(),
        _embedding_response(None),
        _embedding_response([]),
        _embedding_response(["not-a-number"]),
        _embedding_response([float("nan"), 1.0]),
        _embedding_response([0.5, float("inf")]),
    ],
)
def test_embed_malformed_response(settings: Settings, response) -> None:
    client = EmbeddingClient(settings, client=_mock_sdk(embedding=response))
    with pytest.raises(EmbeddingUnavailable, match="Malformed"):
        asyncio.run(client.embed("text"))


def test_embed_provider_error_keeps_cause(settings: Settings) -> None:
    sdk = _mock_sdk()
    error = openai.OpenAIError("connection refused")
    sdk.embeddings.create.side_effect = error
    client = EmbeddingClient(settings, client=sdk)
    with pytest.raises(EmbeddingUnavailable) as excinfo:
        asyncio.run(client.embed(""))
    assert excinfo.value.cause is error
    assert excinfo.value.__cause__ is error


def test_embed_timeout(settings: Settings) -> None:
    async def _hang(**kwargs):
        await asyncio.sleep(5)

    sdk = _mock_sdk()
    sdk.embeddings.create = _hang
    client = EmbeddingClient(settings.with_overrides(request_timeout=0.01), client=sdk)
    with pytest.raises(EmbeddingUnavailable, match="timed out"):
        asyncio.run(client.embed("slow"))


# Completion client ----------------------------------------------------------


def test_complete_returns_message_content(settings: Settings) -> None:
    sdk = _mock_sdk(chat=_chat_response("  Good fit.  "))
    client = CompletionClient(settings, client=sdk)
    assert asyncio.run(client.complete("Explain")) == "Good fit."
    sdk.chat.completions.create.assert_awaited_once_with(
        model="gpt-3.5-turbo",
        messages=[{"role": "user", "content": "Explain"}],
        max_tokens=500,
        temperature=0.7,
    )


def test_complete_falls_back_on_provider_error(settings: Settings) -> None:
    sdk = _mock_sdk()
    sdk.chat.completions.create.side_effect = openai.OpenAIError("503")
    client = CompletionClient(settings, client=sdk)
    assert asyncio.run(client.complete("Explain")) == FALLBACK_EXPLANATION


def test_complete_falls_back_on_malformed_response(settings: Settings) -> None:
    client = CompletionClient(settings, client=_mock_sdk(chat=SimpleNamespace(choices=[])))
    assert asyncio.run(client.complete("Explain")) == FALLBACK_EXPLANATION


def test_complete_unconfigured_makes_no_request(unconfigured_settings: Settings) -> None:
    sdk = _mock_sdk(chat=_chat_response("unused"))
    client = CompletionClient(unconfigured_settings, client=sdk)
    assert asyncio.run(client.complete("Explain")) == FALLBACK_EXPLANATION
    sdk.chat.completions.create.assert_not_called()


def test_generate_raises_completion_unavailable(settings: Settings) -> None:
    sdk = _mock_sdk()
    sdk.chat.completions.create.side_effect = openai.OpenAIError("boom")
    client = CompletionClient(settings, client=sdk)
    with pytest.raises(CompletionUnavailable):
        asyncio.run(client.generate_job_description("Data Engineer", "Acme", "Python"))


def test_generation_helpers_build_prompts(settings: Settings) -> None:
    sdk = _mock_sdk(chat=_chat_response("text"))
    client = CompletionClient(settings, client=sdk)
    asyncio.run(client.generate_ats_feedback("resume body", "job body", 87.26))
    asyncio.run(client.generate_rejection_reason("resume body", "job body"))
    asyncio.run(client.generate_job_description("Data Engineer", "Acme", "Python, SQL"))
    prompts = [c.kwargs["messages"][0]["content"] for c in sdk.chat.completions.create.await_args_list]
    assert "ATS Score: 87.3/100." in prompts[0]
    assert "rejection reason" in prompts[1]
    assert "position of Data Engineer at Acme" in prompts[2]
    assert "Requirements: Python, SQL." in prompts[2]


# Embedding cache ------------------------------------------------------------


class _CountingEmbedder:
    model = "m"

    def __init__(self, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    async def embed(self, text: str):
        self.calls += 1
        if self.fail:
            raise EmbeddingUnavailable("down")
        return [float(len(text)), 1.0]


def test_cache_reuses_vectors_for_same_text() -> None:
    inner = _CountingEmbedder()
    cache = CachingEmbeddingClient(inner, max_entries=8)

    async def _run():
        first = await cache.embed("resume")
        second = await cache.embed("resume")
        other = await cache.embed("job")
        return first, second, other

    first, second, other = asyncio.run(_run())
    assert first == second == [6.0, 1.0]
    assert other == [3.0, 1.0]
    assert inner.calls == 2
    assert (cache.hits, cache.misses) == (1, 2)


def test_cache_does_not_store_failures() -> None:
    inner = _CountingEmbedder(fail=True)
    cache = CachingEmbeddingClient(inner)
    for _ in range(2):
        with pytest.raises(EmbeddingUnavailable):
            asyncio.run(cache.embed("resume"))
    assert inner.calls == 2
    assert len(cache) == 0


def test_cache_evicts_least_recently_used() -> None:
    inner = _CountingEmbedder()
    cache = CachingEmbeddingClient(inner, max_entries=2)

    async def _run():
        await cache.embed("a")
        await cache.embed("b")
        await cache.embed("a")
        await cache.embed("c")  # evicts "b"
        await cache.embed("b")

    asyncio.run(_run())
    assert inner.calls == 4
    assert len(cache) == 2


def test_cache_shares_in_flight_requests() -> None:
    inner = _CountingEmbedder()
    cache = CachingEmbeddingClient(inner)

    async def _run():
        return await asyncio.gather(*(cache.embed("resume") for _ in range(4)))

    vectors = asyncio.run(_run())
    assert vectors == [[6.0, 1.0]] * 4
    assert inner.calls == 1
    assert (cache.hits, cache.misses) == (3, 1)
    assert len(cache) == 1


def test_cache_shared_failure_is_retried_later() -> None:
    inner = _CountingEmbedder(fail=True)
    cache = CachingEmbeddingClient(inner)

    async def _run():
        return await asyncio.gather(cache.embed("resume"), cache.embed("resume"), return_exceptions=True)

    outcomes = asyncio.run(_run())
    assert all(isinstance(outcome, EmbeddingUnavailable) for outcome in outcomes)
    assert inner.calls == 1

    inner.fail = False
    assert asyncio.run(cache.embed("resume")) == [6.0, 1.0]
    assert inner.calls == 2


def test_completion_client_closes_sdk_client(settings: Settings) -> None:
    sdk = _mock_sdk(chat=_chat_response("text"))
    sdk.close = AsyncMock()
    client = CompletionClient(settings, client=sdk)
    asyncio.run(client.aclose())
    asyncio.run(client.aclose())
    sdk.close.assert_awaited_once()
