"""Tests for the OpenRouter provider, using httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from news_digest.config import AppConfig
from news_digest.errors import ExtractionError, GenerationLookupError, SummarizationError
from news_digest.llm.costs import CostLedger
from news_digest.llm.providers.factory import available_providers, create_provider
from news_digest.llm.providers.openrouter import FALLBACK_CATEGORY, OpenRouterProvider
from news_digest.types import Article, Source


SOURCE = Source(name="Hacker News", url="https://news.ycombinator.com")


def _completion(content: str, generation_id: str = "gen-1") -> httpx.Response:
    return httpx.Response(
        200,
        json={"id": generation_id, "choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def _generation(model: str = "google/gemini-2.0-flash-001") -> httpx.Response:
    return httpx.Response(
        200,
        json={"data": {"id": "gen-1", "model": model, "total_cost": 0.002, "tokens_prompt": 500, "tokens_completion": 50}},
    )


def _provider(handler, cfg: AppConfig | None = None, ledger: CostLedger | None = None) -> OpenRouterProvider:
    async def no_sleep(delay: float) -> None:
        return None

    return OpenRouterProvider(
        cfg or AppConfig(),
        "test-key",
        ledger or CostLedger(),
        transport=httpx.MockTransport(handler),
        sleep=no_sleep,
    )


def _articles() -> list[Article]:
    return [
        Article(title="A", url="https://example.com/a", content="a", source="NOS", category="Politics"),
        Article(title="B", url="https://example.com/b", content="b", source="NRC", category="Business"),
    ]


def test_extract_tags_source_and_records_cost():
    payload = {
        "articles": [
            {"title": "Show HN: Thing", "url": "item?id=1", "content": "A thing.", "category": "Technology"},
            {"title": "Ask HN: Other", "url": "https://news.ycombinator.com/item?id=2", "content": "Q.", "category": "Technology"},
        ]
    }
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            seen.append({"body": json.loads(request.content), "headers": dict(request.headers)})
            return _completion(json.dumps(payload))
        return _generation()

    cfg = AppConfig()
    cfg.provider.app_url = "https://github.com/example/news-digest"
    ledger = CostLedger()
    articles = asyncio.run(_provider(handler, cfg, ledger).extract("<h2>HN</h2>", SOURCE))

    assert [a.source for a in articles] == ["Hacker News", "Hacker News"]
    assert articles[0].url == "https://news.ycombinator.com/item?id=1"
    assert articles[0].category == "Technology"

    body = seen[0]["body"]
    assert body["model"] == "google/gemini-2.0-flash-001"
    assert body["response_format"]["type"] == "json_schema"
    assert body["response_format"]["json_schema"]["strict"] is True
    assert "Hacker News" in body["messages"][0]["content"]
    assert seen[0]["headers"]["authorization"] == "Bearer test-key"
    assert seen[0]["headers"]["http-referer"] == "https://github.com/example/news-digest"

    assert ledger.total_requests == 1
    assert ledger.operations[0].operation == "extract"
    assert ledger.operations[0].label == "Hacker News"


def test_extract_caps_article_count():
    items = [
        {"title": f"Story {i}", "url": f"https://example.com/{i}", "content": "x", "category": "News"}
        for i in range(5)
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return _completion(json.dumps({"articles": items}))

    cfg = AppConfig()
    cfg.costs.enabled = False
    cfg.pipeline.max_articles_per_source = 2

    articles = asyncio.run(_provider(handler, cfg).extract("<p>x</p>", SOURCE))

    assert [a.title for a in articles] == ["Story 0", "Story 1"]


def test_extract_raises_on_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(ExtractionError) as excinfo:
        asyncio.run(_provider(handler).extract("<p>x</p>", SOURCE))

    assert excinfo.value.source == "Hacker News"


def test_extract_raises_on_malformed_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion("definitely not json")
        return _generation()

    with pytest.raises(ExtractionError, match="invalid JSON"):
        asyncio.run(_provider(handler).extract("<p>x</p>", SOURCE))


def test_extract_propagates_cost_lookup_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion(json.dumps({"articles": []}))
        return httpx.Response(404)

    with pytest.raises(GenerationLookupError):
        asyncio.run(_provider(handler).extract("<p>x</p>", SOURCE))


def test_cost_lookup_uses_its_own_timeout():
    lookups: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion(json.dumps({"articles": []}))
        lookups.append(request)
        return _generation()

    cfg = AppConfig()
    cfg.costs.timeout_seconds = 7.5
    asyncio.run(_provider(handler, cfg).extract("<p>x</p>", SOURCE))

    assert lookups[0].extensions["timeout"]["read"] == 7.5


def test_summarize_parses_categories_and_intro():
    payload = {
        "introText": "Two stories today.",
        "categories": [
            {
                "category": "Netherlands",
                "commentary": "Dutch news.",
                "articles": [
                    {"title": "A", "url": "https://example.com/a", "source": "NOS", "summary": "A happened."},
                    {"title": "B", "url": "https://example.com/b", "source": "NRC", "summary": "B happened."},
                ],
            }
        ],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion(json.dumps(payload))
        return _generation()

    summary = asyncio.run(_provider(handler).summarize(_articles()))

    assert summary.intro_text == "Two stories today."
    assert summary.categories[0].category == "Netherlands"
    assert summary.categories[0].commentary == "Dutch news."
    assert summary.categories[0].articles[1].summary == "B happened."


def test_summarize_falls_back_to_single_category_on_invalid_json():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion("{broken")
        return _generation()

    cfg = AppConfig()
    summary = asyncio.run(_provider(handler, cfg).summarize(_articles()))

    assert summary.intro_text == cfg.summary.default_intro
    assert len(summary.categories) == 1
    category = summary.categories[0]
    assert category.category == FALLBACK_CATEGORY == "Today's News"
    assert category.commentary is None
    assert [(a.title, a.url, a.source) for a in category.articles] == [
        ("A", "https://example.com/a", "NOS"),
        ("B", "https://example.com/b", "NRC"),
    ]
    assert all(a.summary is None for a in category.articles)


def test_summarize_falls_back_when_categories_missing():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/chat/completions"):
            return _completion(json.dumps({"introText": "Hi"}))
        return _generation()

    summary = asyncio.run(_provider(handler).summarize(_articles()))

    assert summary.categories[0].category == "Today's News"


def test_summarize_raises_on_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    with pytest.raises(SummarizationError):
        asyncio.run(_provider(handler).summarize(_articles()))


def test_factory_builds_openrouter_provider():
    cfg = AppConfig()
    cfg.provider.api_key = "test-key"

    assert "openrouter" in available_providers()
    assert isinstance(create_provider(cfg, CostLedger()), OpenRouterProvider)


def test_factory_rejects_unknown_backend():
    cfg = AppConfig()
    cfg.provider.name = "unknown-provider"
    cfg.provider.api_key = "test-key"

    with pytest.raises(ValueError, match="Unsupported provider"):
        create_provider(cfg, CostLedger())


def test_factory_requires_api_key_from_config(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "env-key")

    with pytest.raises(ValueError, match="API key"):
        create_provider(AppConfig(), CostLedger())
