"""Write the static archive: per-digest pages, the index and the RSS feed."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from pathlib import Path

from ..config import PublishConfig
from ..logging_utils import log_event
from ..types import Digest
from .renderer import render_digest_page, render_index, render_rss


logger = logging.getLogger(__name__)


@dataclass
class PublishedSite:
    """Paths written by a publish step."""

    digest_page: Path
    index_page: Path
    rss_feed: Path
    web_url: str | None


def digest_web_url(digest: Digest, site_url: str | None) -> str | None:
    """Return the public URL of a digest's archive page, or None without a site URL."""
    if not site_url:
        return None
    return f"{site_url.rstrip('/')}/digests/{digest.slug}.html"


def publish_site(
    digest: Digest,
    digests: list[Digest],
    cfg: PublishConfig,
    now: datetime | None = None,
) -> PublishedSite:
    """Write the archive page for ``digest`` and regenerate the index and feed from ``digests``."""
    output_dir = Path(cfg.output_dir)
    digests_dir = output_dir / "digests"
    digests_dir.mkdir(parents=True, exist_ok=True)

    page_path = digests_dir / f"{digest.slug}.html"
    page_path.write_text(render_digest_page(digest), encoding="utf-8")

    index_path = output_dir / "index.html"
    index_path.write_text(render_index(digests, cfg.site_url), encoding="utf-8")

    rss_path = output_dir / "rss.xml"
    rss_path.write_text(render_rss(digests, cfg.site_url, now=now), encoding="utf-8")

    web_url = digest_web_url(digest, cfg.site_url)
    log_event(
        logger,
        "Published digest archive",
        event="publish_ok",
        output_dir=str(output_dir),
        slug=digest.slug,
        digests=len(digests),
        web_url=web_url,
    )
    return PublishedSite(digest_page=page_path, index_page=index_path, rss_feed=rss_path, web_url=web_url)
