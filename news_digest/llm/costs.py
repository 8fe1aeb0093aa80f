"""
Run-scoped LLM cost accounting.

After each completion the generation id is looked up on the provider's
``/generation`` endpoint and the reported cost and token counts are folded
into a CostLedger:
- per-model totals (cost, prompt tokens, completion tokens, requests)
- an append-only list of operation records in call order

The ledger lives for one run and is never persisted.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Awaitable, Callable

import httpx

from ..errors import GenerationLookupError
from ..logging_utils import log_event


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

# Lookups that cannot succeed on a retry
_FATAL_STATUSES = (401, 404)


@dataclass
class GenerationStats:
    """Usage metadata reported for one generation."""

    generation_id: str
    model: str
    total_cost: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float | None = None

    @classmethod
    def from_payload(cls, generation_id: str, payload: dict[str, Any]) -> "GenerationStats":
        data = payload.get("data", payload) if isinstance(payload, dict) else {}
        if not isinstance(data, dict):
            data = {}
        return cls(
            generation_id=str(data.get("id") or generation_id),
            model=str(data.get("model") or "unknown"),
            total_cost=float(data.get("total_cost") or 0.0),
            prompt_tokens=int(data.get("tokens_prompt") or data.get("native_tokens_prompt") or 0),
            completion_tokens=int(
                data.get("tokens_completion") or data.get("native_tokens_completion") or 0
            ),
            latency_ms=_optional_float(data.get("latency")),
        )


@dataclass
class ModelUsage:
    cost: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    requests: int = 0


@dataclass
class OperationRecord:
    operation: str
    label: str
    stats: GenerationStats


@dataclass
class CostLedger:
    """Accumulates usage for every completion made during a run."""

    models: dict[str, ModelUsage] = field(default_factory=dict)
    operations: list[OperationRecord] = field(default_factory=list)

    def record(self, operation: str, label: str, stats: GenerationStats) -> None:
        usage = self.models.setdefault(stats.model, ModelUsage())
        usage.cost += stats.total_cost
        usage.prompt_tokens += stats.prompt_tokens
        usage.completion_tokens += stats.completion_tokens
        usage.requests += 1
        self.operations.append(OperationRecord(operation=operation, label=label, stats=stats))

    @property
    def total_cost(self) -> float:
        return sum(usage.cost for usage in self.models.values())

    @property
    def total_tokens(self) -> int:
        return sum(usage.prompt_tokens + usage.completion_tokens for usage in self.models.values())

    @property
    def total_requests(self) -> int:
        return sum(usage.requests for usage in self.models.values())


async def fetch_generation_stats(
    client: httpx.AsyncClient,
    base_url: str,
    api_key: str,
    generation_id: str,
    attempts: int = 3,
    backoff: float = 1.0,
    sleep: Sleep = asyncio.sleep,
    timeout: float = 15.0,
) -> GenerationStats:
    """Look up usage metadata for a generation with bounded retries.

    401 and 404 fail immediately. Any other failure waits
    ``backoff * 2**attempt`` seconds before the next attempt, and
    GenerationLookupError is raised once all attempts are used. ``timeout``
    applies to each lookup request, independent of the client default.
    """
    url = f"{base_url.rstrip('/')}/generation"
    headers = {"Authorization": f"Bearer {api_key}"}
    last_error = "no attempts made"
    last_status: int | None = None

    for attempt in range(attempts):
        try:
            resp = await client.get(
                url, params={"id": generation_id}, headers=headers, timeout=timeout
            )
        except httpx.HTTPError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            last_status = None
        else:
            if resp.status_code in _FATAL_STATUSES:
                raise GenerationLookupError(
                    generation_id,
                    f"lookup rejected with HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )
            if 200 <= resp.status_code < 300:
                try:
                    payload = resp.json()
                except ValueError as exc:
                    last_error = f"invalid JSON: {exc}"
                    last_status = resp.status_code
                else:
                    return GenerationStats.from_payload(generation_id, payload)
            else:
                last_error = f"HTTP {resp.status_code}"
                last_status = resp.status_code

        if attempt < attempts - 1:
            delay = backoff * 2**attempt
            log_event(
                logger,
                "Generation lookup failed, retrying",
                event="generation_lookup_retry",
                generation_id=generation_id,
                attempt=attempt + 1,
                delay_seconds=delay,
                error=last_error,
            )
            await sleep(delay)

    raise GenerationLookupError(
        generation_id,
        f"lookup failed after {attempts} attempts: {last_error}",
        status_code=last_status,
    )


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
