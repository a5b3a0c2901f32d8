"""Provider dispatcher: priority-ordered fallback over the degradation chain.

Providers are tried strictly one at a time, cheapest first. A provider that
reports itself unavailable is skipped without counting as a failure. Each
failure increments the degradation counter; once it reaches the cap the
chain is abandoned even if untried providers remain.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from contentpilot.core.config import DispatcherConfig
from contentpilot.core.exceptions import AllProvidersFailedError, ProviderError
from contentpilot.core.models import GenerationRequest, ProviderResponse
from contentpilot.llm.providers import ProviderHandle
from contentpilot.llm.token_tracker import TokenTracker, UsageMonitor

logger = logging.getLogger("contentpilot.llm.dispatcher")


class ProviderDispatcher:
    """Single generate() entry point over an ordered list of providers."""

    def __init__(
        self,
        providers: list[ProviderHandle],
        config: Optional[DispatcherConfig] = None,
        token_tracker: Optional[TokenTracker] = None,
        monitor: Optional[UsageMonitor] = None,
    ):
        self.providers = sorted(providers, key=lambda p: p.priority)
        self.config = config or DispatcherConfig()
        self.token_tracker = token_tracker
        self.monitor = monitor or UsageMonitor()
        self._lock = threading.Lock()
        self._current_provider: Optional[str] = None
        self._degradation_count = 0
        self._total_degradations = 0

    @property
    def current_provider(self) -> Optional[str]:
        """Name of the provider that answered the most recent successful call."""
        with self._lock:
            return self._current_provider

    @property
    def degradation_count(self) -> int:
        """Failures during the most recent generate() call."""
        with self._lock:
            return self._degradation_count

    @property
    def total_degradations(self) -> int:
        with self._lock:
            return self._total_degradations

    def generate(self, request: GenerationRequest) -> ProviderResponse:
        """Return the first successful provider response.

        Raises:
            AllProvidersFailedError: When every provider was skipped or failed,
                or the degradation cap was reached. Carries the last error of
                each attempted provider.
        """
        cap = max(1, self.config.max_degradation_attempts)
        attempts: dict[str, Exception] = {}
        failures = 0

        for provider in self.providers:
            if failures >= cap:
                logger.warning(
                    "Degradation cap of %d reached; abandoning chain before '%s'",
                    cap, provider.name,
                )
                break
            if not provider.is_available():
                logger.debug("Skipping unavailable provider '%s'", provider.name)
                continue

            try:
                response = provider.generate(request)
            except ProviderError as e:
                failures += 1
                attempts[provider.name] = e
                self.monitor.record_failure(provider.name, e)
                logger.warning(
                    "Provider '%s' failed (%s: %s); degrading to next provider",
                    provider.name, type(e).__name__, e,
                )
                continue

            with self._lock:
                self._current_provider = provider.name
                self._degradation_count = failures
                self._total_degradations += failures
            self.monitor.record_success(
                provider.name,
                tokens=response.usage.total_tokens,
                cost_usd=response.cost_usd,
                latency_ms=response.latency_ms,
            )
            if self.token_tracker is not None:
                self.token_tracker.record(
                    model=response.model,
                    provider=provider.name,
                    input_tokens=response.usage.prompt_tokens,
                    output_tokens=response.usage.completion_tokens,
                    total_tokens=response.usage.total_tokens,
                    cost_usd=response.cost_usd,
                )
            if failures:
                logger.info("Served by '%s' after %d degradation(s)", provider.name, failures)
            return response

        with self._lock:
            self._degradation_count = failures
            self._total_degradations += failures
        raise AllProvidersFailedError(attempts)

    def available_providers(self) -> list[str]:
        return [p.name for p in self.providers if p.is_available()]

    def health_check(self) -> dict[str, Any]:
        """Summarize chain health: healthy with >= 2 available providers."""
        available = self.available_providers()
        if len(available) >= 2:
            status = "healthy"
        elif len(available) == 1:
            status = "degraded"
        else:
            status = "unhealthy"
        return {
            "status": status,
            "available": available,
            "providers": [
                {
                    "name": p.name,
                    "kind": p.kind.value,
                    "priority": p.priority,
                    "available": p.is_available(),
                    "usage": self.monitor.stats(p.name),
                }
                for p in self.providers
            ],
            "current_provider": self.current_provider,
        }

    def estimate_cost(self, tokens: int) -> float:
        """Cost estimate for the first available provider in the chain."""
        for provider in self.providers:
            if provider.is_available():
                return provider.estimate_cost(tokens)
        return 0.0

    def close(self) -> None:
        for provider in self.providers:
            provider.close()
