"""
Core data types for the News Digest pipeline.

This module defines the data structures passed between pipeline stages:
- Source: A configured news site to poll
- Article: One article extracted from a source's front page
- DigestArticle / Category: Themed groups produced by summarization
- DigestSummary: Raw summarization output (intro text + categories)
- Digest: One day's compiled digest, as persisted in the history file
"""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime
from typing import Any

from .dates import calendar_key, digest_slug, local_datetime


@dataclass(frozen=True)
class Source:
    """A news website polled for content.

    Attributes:
        name: Display name attached to every article from this site
        url: Front page URL, also the base for resolving relative links
    """
    name: str
    url: str


@dataclass
class Article:
    """An article extracted from one source's markup.

    Attributes:
        title: The article headline
        url: Absolute URL of the article
        content: Short excerpt written by the extraction model
        source: Display name of the originating Source
        category: Topic suggested by the extraction model
    """
    title: str
    url: str
    content: str
    source: str
    category: str


@dataclass
class DigestArticle:
    """An article as listed inside a digest category."""
    title: str
    url: str
    source: str
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"title": self.title, "url": self.url, "source": self.source}
        if self.summary:
            payload["summary"] = self.summary
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DigestArticle:
        return cls(
            title=str(data["title"]),
            url=str(data["url"]),
            source=str(data.get("source") or ""),
            summary=data.get("summary") or None,
        )


@dataclass
class Category:
    """A themed group of articles with optional commentary."""
    category: str
    articles: list[DigestArticle] = field(default_factory=list)
    commentary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "category": self.category,
            "articles": [article.to_dict() for article in self.articles],
        }
        if self.commentary:
            payload["commentary"] = self.commentary
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Category:
        articles = data.get("articles") or []
        if not isinstance(articles, list):
            raise TypeError("Category articles must be a list")
        return cls(
            category=str(data["category"]),
            articles=[DigestArticle.from_dict(item) for item in articles],
            commentary=data.get("commentary") or None,
        )


@dataclass
class DigestSummary:
    """Summarization output before it is stamped with a date."""
    intro_text: str
    categories: list[Category] = field(default_factory=list)


@dataclass
class Digest:
    """One day's compiled digest.

    Serialized with camelCase keys (``introText``) so history files written
    by earlier releases remain readable.

    Attributes:
        date: Human-readable date, e.g. "January 15th, 2024"
        intro_text: Opening paragraph written by the summarization model
        categories: Themed article groups
        timestamp: Creation time in epoch milliseconds
    """
    date: str
    intro_text: str
    categories: list[Category]
    timestamp: int

    @property
    def calendar_date(self) -> datetime.date:
        return calendar_key(self.timestamp)

    @property
    def slug(self) -> str:
        return digest_slug(local_datetime(self.timestamp))

    @property
    def article_count(self) -> int:
        return sum(len(category.articles) for category in self.categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "introText": self.intro_text,
            "categories": [category.to_dict() for category in self.categories],
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Digest:
        """Build a Digest from its JSON form.

        Raises:
            ValueError: If a required field is missing or empty
            TypeError: If a field has the wrong shape
        """
        if not isinstance(data, dict):
            raise TypeError(f"Digest entry must be an object, got {type(data).__name__}")
        if not data.get("date") or not data.get("timestamp") or data.get("categories") is None:
            raise ValueError(f"Invalid digest structure: {data!r}"[:300])
        categories = data["categories"]
        if not isinstance(categories, list):
            raise TypeError("Digest categories must be a list")
        return cls(
            date=str(data["date"]),
            intro_text=str(data.get("introText") or ""),
            categories=[Category.from_dict(item) for item in categories],
            timestamp=int(data["timestamp"]),
        )
