"""Exception types raised by the digest pipeline."""

from __future__ import annotations


class DigestError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(DigestError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid configuration: " + "; ".join(self.problems))


class ExtractionError(DigestError):
    """Raised when article extraction fails for a single source."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Extraction failed for {source}: {reason}")


class SummarizationError(DigestError):
    """Raised when the summarization call cannot be completed."""


class GenerationLookupError(DigestError):
    """Raised when usage metadata for a completion cannot be resolved.

    Attributes:
        generation_id: Completion id that was looked up
        status_code: Last HTTP status seen, or None for transport failures
    """

    def __init__(self, generation_id: str, message: str, status_code: int | None = None):
        self.generation_id = generation_id
        self.status_code = status_code
        super().__init__(f"Generation lookup failed for {generation_id}: {message}")
