"""Prompt loading and rendering helpers for LLM providers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from ..config import SummaryConfig
from ..types import Article, Source


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_extraction_prompt(source: Source, html: str, max_articles: int) -> str:
    return _render_template(
        "extraction",
        source_name=source.name,
        source_url=source.url,
        max_articles=str(max_articles),
        html=html,
    )


def build_summary_prompt(articles: list[Article], cfg: SummaryConfig) -> str:
    blocks = []
    for article in articles:
        blocks.append(
            f"Title: {article.title}\n"
            f"Source: {article.source}\n"
            f"Category: {article.category}\n"
            f"Content: {article.content}\n"
            f"URL: {article.url}\n"
            "---"
        )
    return _render_template(
        "summary",
        max_per_category=str(cfg.max_articles_per_category),
        style_rules=_style_rules(cfg),
        articles="\n".join(blocks),
    )


def _style_rules(cfg: SummaryConfig) -> str:
    if not cfg.factual_only:
        return ""
    lines = [
        "5. Keep summaries and commentary strictly factual: report what happened, "
        "without speculation, opinion or analysis of significance."
    ]
    if cfg.banned_phrases:
        phrases = ", ".join(f'"{phrase}"' for phrase in cfg.banned_phrases)
        lines.append(f"   Never use phrases such as {phrases}.")
    return "\n".join(lines) + "\n"
