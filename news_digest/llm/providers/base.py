"""Abstract interface for the LLM steps of the digest pipeline."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...types import Article, DigestSummary, Source


class DigestProvider(ABC):
    """Provider interface for per-source extraction and digest summarization."""

    @abstractmethod
    async def extract(self, html: str, source: Source) -> list[Article]:
        """Return the articles found in a source's front page markup.

        Raises:
            ExtractionError: If the completion fails or returns an unusable payload
        """
        raise NotImplementedError

    @abstractmethod
    async def summarize(self, articles: list[Article]) -> DigestSummary:
        """Group articles into themed categories with an intro text.

        Raises:
            SummarizationError: If the completion request fails
        """
        raise NotImplementedError
