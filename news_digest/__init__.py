"""
News Digest - AI-curated daily news digest.

This package polls a fixed list of news sites, lets an LLM extract and
categorize the day's articles, keeps a rolling JSON history of digests,
publishes a static archive with an RSS feed, and emails the result.

Main entry point is the CLI via `news-digest run` command.

Example:
    $ news-digest run --config config.yaml
"""

__all__ = ["__version__", "Digest", "DigestStore", "digest_slug", "load_config"]
__version__ = "0.1.0"

from .config import load_config
from .dates import digest_slug
from .store import DigestStore
from .types import Digest
