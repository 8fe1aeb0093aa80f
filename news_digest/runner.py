"""
Main pipeline orchestration for the News Digest.

This module coordinates the entire workflow:
1. Fetch each source's front page (fixed-size concurrent batches)
2. Extract articles per source with the LLM provider
3. Summarize the combined articles into themed categories
4. Upsert the digest into the rolling history file
5. Publish the static archive (digest page, index, RSS)
6. Email the digest

A failing source contributes zero articles and never stops the run.
Everything after extraction propagates errors to the caller.
"""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Callable

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .config import AppConfig
from .dates import format_display_date, to_timestamp_ms
from .errors import ExtractionError
from .fetch.fetcher import fetch_source
from .llm.costs import CostLedger, Sleep
from .llm.providers import DigestProvider, create_provider
from .logging_utils import log_event, setup_llm_logger
from .mailer import Mailer
from .output.publisher import PublishedSite, publish_site
from .store import DigestStore
from .types import Article, Digest, Source


logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Statistics collected during the fetch/extract stage.

    Attributes:
        sources_total: Number of configured sources
        sources_ok: Sources that produced an extraction result
        sources_failed: Sources whose fetch or extraction failed
        articles: Articles collected across all sources
    """

    sources_total: int = 0
    sources_ok: int = 0
    sources_failed: int = 0
    articles: int = 0


@dataclass
class RunResult:
    digest: Digest
    digests: list[Digest]
    site: PublishedSite | None
    emailed: bool
    stats: RunStats
    ledger: CostLedger


async def process_source(source: Source, cfg: AppConfig, provider: DigestProvider) -> list[Article]:
    """Fetch one source and extract its articles.

    Raises:
        ExtractionError: If the page could not be fetched or extraction failed
    """
    log_event(logger, "Fetch start", event="fetch_start", source=source.name, url=source.url, mode=cfg.fetch.mode)
    result = await fetch_source(source, cfg.fetch)
    if not result.ok:
        raise ExtractionError(source.name, result.error or "empty page")

    articles = await provider.extract(result.text, source)
    log_event(
        logger,
        "Extracted articles",
        event="extract_ok",
        source=source.name,
        count=len(articles),
    )
    return articles


async def collect_articles(
    sources: list[Source],
    cfg: AppConfig,
    provider: DigestProvider,
    stats: RunStats,
    sleep: Sleep = asyncio.sleep,
    on_source_done: Callable[[], None] | None = None,
) -> list[Article]:
    """Run every source through fetch and extraction in fixed-size batches.

    Sources within a batch run concurrently and the batch completes when all
    of them have settled. Batches are separated by
    ``pipeline.batch_delay_seconds``. Articles keep source order.
    """
    batch_size = max(1, cfg.pipeline.batch_size)
    stats.sources_total = len(sources)
    articles: list[Article] = []

    for start in range(0, len(sources), batch_size):
        if start:
            await sleep(cfg.pipeline.batch_delay_seconds)
        batch = sources[start : start + batch_size]
        outcomes = await asyncio.gather(
            *(process_source(source, cfg, provider) for source in batch),
            return_exceptions=True,
        )
        for source, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                stats.sources_failed += 1
                logger.error(
                    "Source failed: %s",
                    outcome,
                    extra={
                        "event": "source_failed",
                        "source": source.name,
                        "error_type": type(outcome).__name__,
                    },
                )
            else:
                stats.sources_ok += 1
                articles.extend(outcome)
            if on_source_done is not None:
                on_source_done()

    stats.articles = len(articles)
    return articles


def run_pipeline(
    cfg: AppConfig,
    show_progress: bool = True,
    console: Console | None = None,
    now: datetime | None = None,
) -> RunResult | None:
    """Run the complete digest pipeline.

    Args:
        cfg: Validated application configuration
        show_progress: Whether to display a progress bar for the source stage
        console: Rich console for output (creates default if None)
        now: Digest creation time (defaults to the current local time)

    Returns:
        RunResult, or None when no source produced any article
    """
    console = console or Console()
    ledger = CostLedger()
    llm_logger = setup_llm_logger(cfg.logging)
    provider = _build_provider(cfg, ledger, llm_logger)
    stats = RunStats()
    sources = list(cfg.sources)

    log_event(
        logger,
        "Pipeline start",
        event="pipeline_start",
        sources=len(sources),
        batch_size=cfg.pipeline.batch_size,
        fetch_mode=cfg.fetch.mode,
    )

    if show_progress:
        progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        )
    else:
        progress = None

    with progress if progress is not None else nullcontext():
        source_task = progress.add_task("Sources", total=len(sources)) if progress is not None else None

        def _advance() -> None:
            if progress is not None and source_task is not None:
                progress.advance(source_task, 1)

        articles = asyncio.run(collect_articles(sources, cfg, provider, stats, on_source_done=_advance))

    _render_run_stats(stats, console)

    if not articles:
        logger.warning("No articles found, nothing to summarize", extra={"event": "no_articles"})
        _render_cost_summary(ledger, console)
        return None

    summary = asyncio.run(provider.summarize(articles))

    created = now or datetime.now()
    digest = Digest(
        date=format_display_date(created),
        intro_text=summary.intro_text,
        categories=summary.categories,
        timestamp=to_timestamp_ms(created),
    )
    log_event(
        logger,
        "Digest compiled",
        event="digest_compiled",
        date=digest.date,
        categories=len(digest.categories),
        articles=digest.article_count,
    )

    store = DigestStore(cfg.store.path, max_entries=cfg.store.max_entries)
    digests = store.upsert(digest)

    site = publish_site(digest, digests, cfg.publish) if cfg.publish.enabled else None
    web_url = site.web_url if site is not None else None

    emailed = False
    if cfg.mail.enabled:
        Mailer(cfg.mail).send(digest, web_url=web_url)
        emailed = True

    _render_cost_summary(ledger, console)
    log_event(
        logger,
        "Pipeline complete",
        event="pipeline_complete",
        date=digest.date,
        published=site is not None,
        emailed=emailed,
        total_cost=ledger.total_cost,
    )
    return RunResult(
        digest=digest,
        digests=digests,
        site=site,
        emailed=emailed,
        stats=stats,
        ledger=ledger,
    )


def _render_run_stats(stats: RunStats, console: Console) -> None:
    console.print(
        "[bold]Source summary[/bold]: "
        f"total={stats.sources_total}, ok={stats.sources_ok}, failed={stats.sources_failed}, "
        f"articles={stats.articles}"
    )


def _render_cost_summary(ledger: CostLedger, console: Console) -> None:
    if not ledger.models:
        return
    table = Table(title="LLM usage")
    table.add_column("Model")
    table.add_column("Requests", justify="right")
    table.add_column("Prompt tokens", justify="right")
    table.add_column("Completion tokens", justify="right")
    table.add_column("Cost (USD)", justify="right")
    for model, usage in sorted(ledger.models.items()):
        table.add_row(
            model,
            str(usage.requests),
            str(usage.prompt_tokens),
            str(usage.completion_tokens),
            f"{usage.cost:.6f}",
        )
    table.add_row(
        "[bold]Total[/bold]",
        str(ledger.total_requests),
        "",
        "",
        f"[bold]{ledger.total_cost:.6f}[/bold]",
    )
    console.print(table)


def _build_provider(cfg: AppConfig, ledger: CostLedger, llm_logger) -> DigestProvider:
    """Build a pluggable LLM provider instance based on configuration."""
    return create_provider(cfg, ledger, llm_logger)
