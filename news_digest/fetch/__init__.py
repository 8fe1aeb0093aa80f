"""
Front page fetching.

This package handles HTTP and browser-rendered fetching plus the
allow-list sanitizer applied before markup is sent to the model.
"""

from .fetcher import FetchResult, fetch_page, fetch_page_browser, fetch_source
from .sanitizer import sanitize_html

__all__ = [
    "FetchResult",
    "fetch_page",
    "fetch_page_browser",
    "fetch_source",
    "sanitize_html",
]
