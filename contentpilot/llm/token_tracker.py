"""Token-level cost tracking for provider calls.

Records (input_tokens, output_tokens, cost) for every successful provider
call, attributed to the active task. Supports JSONL shadow-logging.
UsageMonitor keeps per-provider health counters for the dispatcher.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional

from contentpilot.core.models import TokenCostRecord
from contentpilot.llm.pricing import calculate_cost

logger = logging.getLogger("contentpilot.llm.token_tracker")


def _empty_totals() -> dict[str, Any]:
    return {
        "total_input_tokens": 0,
        "total_output_tokens": 0,
        "total_tokens": 0,
        "total_cost_usd": 0.0,
        "call_count": 0,
    }


class TokenTracker:
    """Accumulates per-call token costs and optionally appends them to JSONL.

    Usage:
        tracker = TokenTracker(jsonl_path="logs/tokens.jsonl")
        tracker.set_context(task_id="generate")
        # After each provider call:
        tracker.record(model="deepseek-chat", provider="deepseek",
                       input_tokens=100, output_tokens=200)

    The attribution context is per thread, so tasks running in parallel
    workers are attributed correctly.
    """

    def __init__(self, jsonl_path: Optional[str] = None, enabled: bool = True):
        self.jsonl_path = jsonl_path
        self.enabled = enabled
        self._context = threading.local()
        self._lock = threading.Lock()
        self._session_totals = _empty_totals()
        self._task_totals: dict[str, dict[str, Any]] = {}
        self._records: list[TokenCostRecord] = []

    def set_context(self, task_id: Optional[str] = None) -> None:
        """Set the attribution context for subsequent records on this thread."""
        self._context.task_id = task_id

    @property
    def current_task_id(self) -> Optional[str]:
        return getattr(self._context, "task_id", None)

    def record(
        self,
        model: str,
        provider: str = "",
        input_tokens: int = 0,
        output_tokens: int = 0,
        total_tokens: int = 0,
        cost_usd: Optional[float] = None,
    ) -> Optional[TokenCostRecord]:
        """Record a single provider call's token usage and cost.

        If cost_usd is not provided it is computed from the pricing table.
        Returns None when tracking is disabled.
        """
        if not self.enabled:
            return None
        if total_tokens == 0:
            total_tokens = input_tokens + output_tokens
        if cost_usd is None:
            cost_usd = calculate_cost(model, input_tokens, output_tokens)

        task_id = self.current_task_id
        record = TokenCostRecord(
            task_id=task_id,
            provider=provider,
            model_used=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            cost_usd=cost_usd,
        )

        with self._lock:
            self._add(self._session_totals, record)
            if task_id is not None:
                self._add(self._task_totals.setdefault(task_id, _empty_totals()), record)
            self._records.append(record)

        self._persist_to_jsonl(record)

        logger.debug(
            "Token cost recorded: provider=%s model=%s in=%d out=%d cost=$%.6f task=%s",
            provider, model, input_tokens, output_tokens, cost_usd, task_id,
        )
        return record

    @staticmethod
    def _add(totals: dict[str, Any], record: TokenCostRecord) -> None:
        totals["total_input_tokens"] += record.input_tokens
        totals["total_output_tokens"] += record.output_tokens
        totals["total_tokens"] += record.total_tokens
        totals["total_cost_usd"] += record.cost_usd
        totals["call_count"] += 1

    def get_session_totals(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._session_totals)

    def get_task_totals(self, task_id: str) -> dict[str, Any]:
        with self._lock:
            return dict(self._task_totals.get(task_id, _empty_totals()))

    @property
    def records(self) -> list[TokenCostRecord]:
        with self._lock:
            return list(self._records)

    def _persist_to_jsonl(self, record: TokenCostRecord) -> None:
        if not self.jsonl_path:
            return
        try:
            path = Path(self.jsonl_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock, open(path, "a") as f:
                f.write(record.model_dump_json() + "\n")
        except OSError as e:
            logger.warning("Failed to write token cost to JSONL: %s", e)


@dataclass
class ProviderUsage:
    requests: int = 0
    successes: int = 0
    errors: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    total_latency_ms: float = 0.0
    last_used: Optional[datetime] = None
    last_error: str = ""

    @property
    def success_rate(self) -> float:
        return self.successes / self.requests if self.requests else 0.0

    @property
    def average_latency_ms(self) -> float:
        return self.total_latency_ms / self.successes if self.successes else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "successes": self.successes,
            "errors": self.errors,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd, 6),
            "average_latency_ms": round(self.average_latency_ms, 2),
            "success_rate": round(self.success_rate, 3),
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "last_error": self.last_error,
        }


class UsageMonitor:
    """Per-provider request, error, latency and cost counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._usage: dict[str, ProviderUsage] = {}

    def record_success(self, provider: str, tokens: int, cost_usd: float, latency_ms: float) -> None:
        with self._lock:
            usage = self._usage.setdefault(provider, ProviderUsage())
            usage.requests += 1
            usage.successes += 1
            usage.total_tokens += tokens
            usage.cost_usd += cost_usd
            usage.total_latency_ms += latency_ms
            usage.last_used = datetime.now(UTC)

    def record_failure(self, provider: str, error: Exception) -> None:
        with self._lock:
            usage = self._usage.setdefault(provider, ProviderUsage())
            usage.requests += 1
            usage.errors += 1
            usage.last_used = datetime.now(UTC)
            usage.last_error = f"{type(error).__name__}: {error}"

    def stats(self, provider: str) -> dict[str, Any]:
        with self._lock:
            return self._usage.get(provider, ProviderUsage()).as_dict()

    def snapshot(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {name: usage.as_dict() for name, usage in self._usage.items()}
