"""Provider factory and registry for LLM backends."""

from __future__ import annotations

import logging

from ...config import AppConfig
from ..costs import CostLedger
from .base import DigestProvider
from .openrouter import OpenRouterProvider


ProviderBuilder = type[DigestProvider]

_PROVIDER_REGISTRY: dict[str, ProviderBuilder] = {
    "openrouter": OpenRouterProvider,
}


def available_providers() -> list[str]:
    """Return the set of registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_provider(
    cfg: AppConfig,
    ledger: CostLedger,
    llm_logger: logging.Logger | None = None,
) -> DigestProvider:
    """Build a provider instance from runtime config."""
    name = cfg.provider.name.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {cfg.provider.name}. Supported: {supported}")
    if not cfg.provider.api_key:
        raise ValueError("Provider API key is not configured")
    return builder(cfg, cfg.provider.api_key, ledger, llm_logger)
