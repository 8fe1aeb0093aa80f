"""
Front page fetching with two backends.

1. http: plain httpx GET with a browser user agent (default)
2. browser: remote Crawl4AI API, which renders JavaScript before returning markup

Neither backend raises; failures are reported through FetchResult.error so a
single broken site never stops the run.
"""

from __future__ import annotations

from dataclasses import dataclass
import base64
import json
import logging

import httpx

from ..config import FetchConfig, get_browser_api_auth
from ..logging_utils import log_event
from ..types import Source
from .sanitizer import sanitize_html


logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Result of a page fetch.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The page markup, or None on error
        error: Error message if fetch failed, None on success
    """

    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text)


class WaitConditionNotMet(Exception):
    """The rendering service gave up waiting for the content selectors."""


async def fetch_page(
    url: str,
    cfg: FetchConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a URL with a plain GET, following redirects."""
    headers = {"User-Agent": cfg.user_agent, "Accept": "text/html,application/xhtml+xml"}
    try:
        async with httpx.AsyncClient(
            timeout=cfg.timeout_seconds,
            headers=headers,
            follow_redirects=True,
            trust_env=cfg.trust_env,
            transport=transport,
        ) as client:
            resp = await client.get(url)
    except httpx.HTTPError as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"{type(exc).__name__}: {exc}")

    if resp.status_code < 200 or resp.status_code >= 300:
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            text=None,
            error=f"HTTP {resp.status_code}",
        )
    if not resp.text.strip():
        return FetchResult(url=url, status_code=resp.status_code, text=None, error="empty response")
    return FetchResult(url=url, status_code=resp.status_code, text=resp.text, error=None)


async def fetch_page_browser(
    url: str,
    cfg: FetchConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a URL through the remote Crawl4AI API.

    The request waits for any of ``cfg.wait_for_selectors``. When the service
    reports that the wait condition timed out, the page is requested once more
    without it.

    Args:
        url: The URL to fetch
        cfg: Fetch configuration (service URL, credentials, timeouts)
        transport: Optional httpx transport, used by tests

    Returns:
        FetchResult with rendered HTML on success or an error message on failure
    """
    if not cfg.browser_api_url:
        return FetchResult(url=url, status_code=None, text=None, error="browser API URL not configured")

    wait_for = _wait_condition(cfg.wait_for_selectors)
    try:
        return await _crawl(url, cfg, wait_for, transport)
    except WaitConditionNotMet as exc:
        logger.warning(
            "Content selectors not found, retrying without wait condition",
            extra={"event": "fetch_wait_timeout", "url": url, "detail": str(exc)},
        )
    try:
        return await _crawl(url, cfg, None, transport)
    except WaitConditionNotMet as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"Crawl4AI API Error: {exc}")


async def _crawl(
    url: str,
    cfg: FetchConfig,
    wait_for: str | None,
    transport: httpx.AsyncBaseTransport | None,
) -> FetchResult:
    endpoint = f"{cfg.browser_api_url.rstrip('/')}/crawl"

    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    auth = get_browser_api_auth(cfg)
    if auth:
        username, password = auth
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
        headers["Authorization"] = f"Basic {credentials}"

    payload = {
        "urls": [url],
        "page_timeout": int(cfg.navigation_timeout_seconds * 1000),
        "user_agent": cfg.user_agent,
    }
    if wait_for:
        payload["wait_for"] = wait_for
        payload["wait_for_timeout"] = int(cfg.wait_for_timeout_seconds * 1000)

    # Connect is short, read is long for slow renders
    timeout_config = httpx.Timeout(connect=10.0, read=120.0, write=10.0, pool=10.0)

    try:
        async with httpx.AsyncClient(
            timeout=timeout_config, trust_env=cfg.trust_env, transport=transport
        ) as client:
            resp = await client.post(endpoint, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"{type(exc).__name__}: {exc}")

    if resp.status_code != 200:
        return FetchResult(
            url=url,
            status_code=resp.status_code,
            text=None,
            error=f"Crawl4AI API HTTP Error: {resp.status_code} {resp.text[:200]}",
        )

    try:
        data = resp.json()
    except json.JSONDecodeError as exc:
        return FetchResult(url=url, status_code=None, text=None, error=f"JSONDecodeError: {exc}")

    # The API wraps per-URL results in a 'results' array when 'urls' is used
    if isinstance(data, dict) and "results" in data:
        results = data["results"]
        if not isinstance(results, list) or not results:
            return FetchResult(url=url, status_code=None, text=None, error="Crawl4AI API Error: empty results array")
        data = results[0]
    elif isinstance(data, list):
        if not data:
            return FetchResult(url=url, status_code=None, text=None, error="Crawl4AI API Error: empty response list")
        data = data[0]

    if not isinstance(data, dict):
        return FetchResult(url=url, status_code=None, text=None, error="Crawl4AI API Error: unexpected payload")

    if not data.get("success", True):
        error_msg = str(data.get("error_message") or data.get("error") or "Unknown API error")
        if wait_for and "wait" in error_msg.lower():
            raise WaitConditionNotMet(error_msg)
        return FetchResult(url=url, status_code=None, text=None, error=f"Crawl4AI API Error: {error_msg}")

    text = data.get("cleaned_html") or data.get("html")
    if not isinstance(text, str) or not text.strip():
        return FetchResult(url=url, status_code=None, text=None, error="Crawl4AI API Error: empty response")
    return FetchResult(url=url, status_code=data.get("status_code", 200), text=text, error=None)


def _wait_condition(selectors: list[str]) -> str | None:
    """Build a Crawl4AI CSS wait condition that is met when any selector matches."""
    selectors = [s.strip() for s in selectors if s.strip()]
    if not selectors:
        return None
    return "css:" + ", ".join(selectors)


async def fetch_source(
    source: Source,
    cfg: FetchConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FetchResult:
    """Fetch a source's front page with the configured backend and prepare it for extraction."""
    if cfg.mode == "browser":
        result = await fetch_page_browser(source.url, cfg, transport=transport)
    else:
        result = await fetch_page(source.url, cfg, transport=transport)

    if result.error is not None or result.text is None:
        return result

    text = result.text
    raw_chars = len(text)
    if cfg.sanitize:
        text = sanitize_html(text, source.url)
    if len(text) > cfg.max_html_chars:
        text = text[: cfg.max_html_chars]

    log_event(
        logger,
        "Fetched front page",
        event="fetch_ok",
        source=source.name,
        url=source.url,
        status_code=result.status_code,
        raw_chars=raw_chars,
        sent_chars=len(text),
    )
    return FetchResult(url=result.url, status_code=result.status_code, text=text, error=None)
