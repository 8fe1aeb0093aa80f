"""Tests for generation-cost lookup retries and the cost ledger."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from news_digest.errors import GenerationLookupError
from news_digest.llm.costs import CostLedger, GenerationStats, fetch_generation_stats


BASE_URL = "https://openrouter.test/api/v1"

GENERATION = {
    "data": {
        "id": "gen-1",
        "model": "google/gemini-2.0-flash-001",
        "total_cost": 0.0015,
        "tokens_prompt": 1200,
        "tokens_completion": 300,
        "latency": 850,
    }
}


def _lookup(responses, sleeps, attempts=3):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        outcome = responses[len(requests) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_generation_stats(
                client,
                BASE_URL,
                "test-key",
                "gen-1",
                attempts=attempts,
                backoff=1.0,
                sleep=fake_sleep,
            )

    return asyncio.run(_run()), requests


def test_lookup_retries_with_exponential_backoff_then_succeeds():
    sleeps: list[float] = []
    stats, requests = _lookup(
        [httpx.Response(500), httpx.Response(502), httpx.Response(200, json=GENERATION)],
        sleeps,
    )

    assert sleeps == [1.0, 2.0]
    assert len(requests) == 3
    assert requests[0].url.params["id"] == "gen-1"
    assert requests[0].headers["Authorization"] == "Bearer test-key"
    assert stats.model == "google/gemini-2.0-flash-001"
    assert stats.total_cost == pytest.approx(0.0015)
    assert stats.prompt_tokens == 1200
    assert stats.completion_tokens == 300


def test_lookup_retries_after_transport_error():
    sleeps: list[float] = []
    request = httpx.Request("GET", f"{BASE_URL}/generation")
    stats, requests = _lookup(
        [httpx.ConnectError("connection refused", request=request), httpx.Response(200, json=GENERATION)],
        sleeps,
    )

    assert sleeps == [1.0]
    assert len(requests) == 2
    assert stats.generation_id == "gen-1"


@pytest.mark.parametrize("status", [404, 401])
def test_lookup_fails_immediately_on_not_found_or_unauthorized(status):
    sleeps: list[float] = []

    with pytest.raises(GenerationLookupError) as excinfo:
        _lookup([httpx.Response(status)], sleeps)

    assert excinfo.value.status_code == status
    assert sleeps == []


def test_lookup_raises_after_exhausting_attempts():
    sleeps: list[float] = []

    with pytest.raises(GenerationLookupError) as excinfo:
        _lookup([httpx.Response(503)] * 3, sleeps)

    assert sleeps == [1.0, 2.0]
    assert excinfo.value.status_code == 503
    assert "after 3 attempts" in str(excinfo.value)


def test_ledger_aggregates_by_model():
    ledger = CostLedger()
    ledger.record("extract", "NOS", GenerationStats("g1", "model-a", 0.001, 100, 10))
    ledger.record("extract", "NRC", GenerationStats("g2", "model-a", 0.002, 200, 20))
    ledger.record("summarize", "digest", GenerationStats("g3", "model-b", 0.010, 1000, 300))

    assert ledger.models["model-a"].requests == 2
    assert ledger.models["model-a"].prompt_tokens == 300
    assert ledger.models["model-b"].completion_tokens == 300
    assert ledger.total_cost == pytest.approx(0.013)
    assert ledger.total_tokens == 1630
    assert ledger.total_requests == 3
    assert [op.label for op in ledger.operations] == ["NOS", "NRC", "digest"]
