"""Rendering and publishing of digests."""

from .publisher import PublishedSite, digest_web_url, publish_site
from .renderer import render_digest_page, render_email, render_index, render_rss

__all__ = [
    "PublishedSite",
    "digest_web_url",
    "publish_site",
    "render_digest_page",
    "render_email",
    "render_index",
    "render_rss",
]
