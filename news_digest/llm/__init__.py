"""LLM access and cost accounting."""

from .costs import CostLedger, GenerationStats, fetch_generation_stats
from .providers import DigestProvider, OpenRouterProvider, available_providers, create_provider

__all__ = [
    "CostLedger",
    "DigestProvider",
    "GenerationStats",
    "OpenRouterProvider",
    "available_providers",
    "create_provider",
    "fetch_generation_stats",
]
