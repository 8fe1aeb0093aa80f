"""OpenRouter chat-completions provider with strict JSON-schema responses."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urljoin

import httpx

from ...config import AppConfig
from ...errors import ExtractionError, SummarizationError
from ...logging_utils import log_event, redact_text, truncate_text
from ...types import Article, Category, DigestArticle, DigestSummary, Source
from ..costs import CostLedger, Sleep, fetch_generation_stats
from ..json_parser import completion_content, parse_json_payload
from ..prompts import build_extraction_prompt, build_summary_prompt
from ..schemas import EXTRACTION_SCHEMA, SUMMARY_SCHEMA, response_format
from .base import DigestProvider


logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "Today's News"


class OpenRouterProvider(DigestProvider):
    """OpenRouter-backed provider for article extraction and digest summarization."""

    def __init__(
        self,
        cfg: AppConfig,
        api_key: str | None,
        ledger: CostLedger,
        llm_logger: logging.Logger | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if not api_key:
            raise ValueError("Missing OpenRouter API key")
        self.cfg = cfg.provider
        self.pipeline_cfg = cfg.pipeline
        self.summary_cfg = cfg.summary
        self.cost_cfg = cfg.costs
        self.fetch_cfg = cfg.fetch
        self.log_cfg = cfg.logging
        self.api_key = api_key
        self.ledger = ledger
        self.llm_logger = llm_logger
        self.transport = transport
        self.sleep = sleep

    async def extract(self, html: str, source: Source) -> list[Article]:
        max_articles = self.pipeline_cfg.max_articles_per_source
        prompt = build_extraction_prompt(source, html[: self.fetch_cfg.max_html_chars], max_articles)
        payload = {
            "model": self.cfg.extraction_model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": response_format(EXTRACTION_SCHEMA),
        }
        try:
            content = await self._complete(payload, operation="extract", label=source.name)
        except httpx.HTTPError as exc:
            self._log_llm_response("llm_extract", source.name, "provider_error", str(exc), prompt)
            raise ExtractionError(source.name, f"{type(exc).__name__}: {exc}") from exc

        try:
            obj = parse_json_payload(content)
        except json.JSONDecodeError as exc:
            self._log_llm_response("llm_extract", source.name, "parse_error", content, prompt)
            raise ExtractionError(source.name, f"invalid JSON payload: {exc}") from exc
        self._log_llm_response("llm_extract", source.name, "ok", content, prompt)

        items = obj.get("articles") if isinstance(obj, dict) else None
        if not isinstance(items, list):
            raise ExtractionError(source.name, "payload has no 'articles' list")

        articles: list[Article] = []
        for item in items:
            if len(articles) >= max_articles:
                break
            if not isinstance(item, dict):
                continue
            title = str(item.get("title") or "").strip()
            url = str(item.get("url") or "").strip()
            if not title or not url:
                continue
            articles.append(
                Article(
                    title=title,
                    url=urljoin(source.url, url),
                    content=str(item.get("content") or "").strip(),
                    source=source.name,
                    category=str(item.get("category") or "").strip() or "General",
                )
            )
        return articles

    async def summarize(self, articles: list[Article]) -> DigestSummary:
        prompt = build_summary_prompt(articles, self.summary_cfg)
        payload = {
            "model": self.cfg.summary_model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": response_format(SUMMARY_SCHEMA),
        }
        try:
            content = await self._complete(payload, operation="summarize", label="digest")
        except httpx.HTTPError as exc:
            self._log_llm_response("llm_summarize", "digest", "provider_error", str(exc), prompt)
            raise SummarizationError(f"Summarization request failed: {type(exc).__name__}: {exc}") from exc

        try:
            summary = self._parse_summary(content)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            self._log_llm_response("llm_summarize", "digest", "parse_error", content, prompt)
            logger.warning(
                "Could not parse summarization output, using fallback digest",
                extra={"event": "summary_fallback", "error": f"{type(exc).__name__}: {exc}"},
            )
            return fallback_summary(articles, self.summary_cfg.default_intro)
        self._log_llm_response("llm_summarize", "digest", "ok", content, prompt)
        return summary

    def _parse_summary(self, content: str) -> DigestSummary:
        obj = parse_json_payload(content)
        if not isinstance(obj, dict) or not isinstance(obj.get("categories"), list):
            raise ValueError("payload has no 'categories' list")
        categories = [Category.from_dict(item) for item in obj["categories"]]
        intro = str(obj.get("introText") or "").strip() or self.summary_cfg.default_intro
        return DigestSummary(intro_text=intro, categories=categories)

    async def _complete(self, payload: dict[str, Any], operation: str, label: str) -> str:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self.transport,
        ) as client:
            resp = await client.post(url, json=payload, headers=self._headers())
            resp.raise_for_status()
            try:
                data = resp.json()
                if not isinstance(data, dict):
                    raise ValueError("completion envelope is not an object")
            except ValueError:
                logger.warning(
                    "Completion response was not JSON",
                    extra={"event": "llm_bad_envelope", "operation": operation, "label": label},
                )
                return ""

            if self.cost_cfg.enabled and data.get("id"):
                stats = await fetch_generation_stats(
                    client,
                    self.cfg.base_url,
                    self.api_key,
                    str(data["id"]),
                    attempts=self.cost_cfg.lookup_attempts,
                    backoff=self.cost_cfg.backoff_seconds,
                    sleep=self.sleep,
                    timeout=self.cost_cfg.timeout_seconds,
                )
                self.ledger.record(operation, label, stats)
                log_event(
                    logger,
                    "Recorded generation cost",
                    event="llm_cost",
                    operation=operation,
                    label=label,
                    model=stats.model,
                    cost=stats.total_cost,
                    prompt_tokens=stats.prompt_tokens,
                    completion_tokens=stats.completion_tokens,
                )
            return completion_content(data)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.cfg.app_url:
            headers["HTTP-Referer"] = self.cfg.app_url
        if self.cfg.app_title:
            headers["X-Title"] = self.cfg.app_title
        return headers

    def _log_llm_response(
        self,
        event: str,
        label: str,
        status: str,
        content: str,
        prompt: str,
    ) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": event,
            "status": status,
            "label": label,
            "model": self.cfg.summary_model if event == "llm_summarize" else self.cfg.extraction_model,
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        payload["raw_response"] = truncate_text(redact_text(content, redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def fallback_summary(articles: list[Article], intro_text: str) -> DigestSummary:
    """Single-category digest listing every article, used when model output is unusable."""
    return DigestSummary(
        intro_text=intro_text,
        categories=[
            Category(
                category=FALLBACK_CATEGORY,
                articles=[
                    DigestArticle(title=a.title, url=a.url, source=a.source) for a in articles
                ],
            )
        ],
    )
