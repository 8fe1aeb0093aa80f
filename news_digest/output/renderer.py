"""
Digest rendering with Jinja2 templates.

Produces the email body, the standalone archive page that wraps it, the
archive index and the RSS 2.0 feed. All templates are autoescaped; the RSS
description is emitted as CDATA.
"""

from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from functools import lru_cache
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from ..dates import local_datetime
from ..types import Digest


def _cdata(value: str) -> Markup:
    """Wrap text in a CDATA section, splitting any embedded terminator."""
    safe = str(value).replace("]]>", "]]]]><![CDATA[>")
    return Markup(f"<![CDATA[{safe}]]>")


@lru_cache(maxsize=None)
def _environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["cdata"] = _cdata
    return env


def render_email(digest: Digest, web_url: str | None = None) -> str:
    """Render the email-safe HTML body.

    The "View this newsletter in your browser" link is only included when
    ``web_url`` is given.
    """
    template = _environment().get_template("email.html")
    return template.render(digest=digest, web_url=web_url)


def render_digest_page(digest: Digest, index_url: str = "../index.html") -> str:
    """Render the archive page for one digest, wrapping the email body."""
    template = _environment().get_template("digest_page.html")
    return template.render(
        digest=digest,
        email_html=Markup(render_email(digest)),
        index_url=index_url,
    )


def render_index(digests: list[Digest], site_url: str | None) -> str:
    """Render the archive index, newest digest first."""
    base = _base_url(site_url)
    items = [{"digest": digest} for digest in _newest_first(digests)]
    template = _environment().get_template("index.html")
    return template.render(
        items=items,
        site_url=site_url,
        rss_url=f"{base}/rss.xml",
    )


def render_rss(digests: list[Digest], site_url: str | None, now: datetime | None = None) -> str:
    """Render an RSS 2.0 feed with one item per digest, newest first.

    Without ``site_url`` the item links are relative, so guids are marked
    as non-permalinks and the ``atom:link`` self reference is left out.
    """
    base = _base_url(site_url)
    build_time = now or datetime.now(timezone.utc)
    items = []
    for digest in _newest_first(digests):
        url = f"{base}/digests/{digest.slug}.html"
        items.append(
            {
                "digest": digest,
                "url": url,
                "description": rss_description(digest),
                "pub_date": _rfc822(local_datetime(digest.timestamp)),
            }
        )
    template = _environment().get_template("rss.xml")
    return template.render(
        items=items,
        site_url=base,
        absolute=bool(site_url),
        build_date=_rfc822(build_time),
    )


def rss_description(digest: Digest) -> str:
    counts = ", ".join(
        f"{category.category}: {len(category.articles)} articles" for category in digest.categories
    )
    return f"{digest.intro_text}\n\nCategories: {counts}"


def _newest_first(digests: list[Digest]) -> list[Digest]:
    return sorted(digests, key=lambda digest: digest.timestamp, reverse=True)


def _base_url(site_url: str | None) -> str:
    return site_url.rstrip("/") if site_url else "."


def _rfc822(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.astimezone()
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
