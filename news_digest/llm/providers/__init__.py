"""LLM provider implementations for article extraction and summarization."""

from .base import DigestProvider
from .factory import available_providers, create_provider
from .openrouter import OpenRouterProvider, fallback_summary

__all__ = [
    "DigestProvider",
    "OpenRouterProvider",
    "available_providers",
    "create_provider",
    "fallback_summary",
]
