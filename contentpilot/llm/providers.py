"""LLM provider handles for ContentPilot.

Every backend in the degradation chain implements ProviderHandle. Cloud
providers share one httpx client for OpenAI-compatible chat-completions
endpoints; the offline stub answers locally (see llm/offline.py).

A provider call makes exactly one HTTP request. Retries and fallback are the
dispatcher's and quality gate's job, never the provider's.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from contentpilot.core.config import ProviderDescriptor, ProviderKind
from contentpilot.core.exceptions import (
    AuthenticationError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    ResponseParseError,
)
from contentpilot.core.models import GenerationRequest, ProviderResponse, TokenUsage
from contentpilot.llm.pricing import calculate_cost

logger = logging.getLogger("contentpilot.llm.providers")


@dataclass
class ProviderStats:
    """Running usage counters for one provider."""
    requests: int = 0
    errors: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    last_used: Optional[datetime] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "errors": self.errors,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd, 6),
            "last_used": self.last_used.isoformat() if self.last_used else None,
        }


class ProviderHandle(ABC):
    """Capability interface shared by every backend: generate + is_available.

    Subclasses implement _generate(). generate() wraps it with availability
    checks, latency measurement and usage counters.
    """

    kind: ProviderKind

    def __init__(self, descriptor: ProviderDescriptor):
        self.descriptor = descriptor
        self.name = descriptor.name
        self.priority = descriptor.priority
        self._stats = ProviderStats()
        self._stats_lock = threading.Lock()

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider can accept a request right now."""

    @abstractmethod
    def _generate(self, request: GenerationRequest, timeout: float) -> ProviderResponse:
        """Perform one generation call."""

    def generate(self, request: GenerationRequest) -> ProviderResponse:
        """Generate a completion for the request.

        Raises:
            ProviderUnavailableError: If the provider is disabled or unconfigured.
            ProviderError: Any provider-level failure (timeout, auth, rate limit,
                malformed response).
        """
        if not self.is_available():
            raise ProviderUnavailableError(f"Provider '{self.name}' is not available", provider=self.name)

        timeout = request.timeout_seconds or self.descriptor.timeout_seconds
        with self._stats_lock:
            self._stats.requests += 1
        start = time.monotonic()
        try:
            response = self._generate(request, timeout)
        except ProviderError:
            self._record_error()
            raise
        except Exception as e:
            self._record_error()
            raise ProviderError(
                f"{self.name} failed unexpectedly: {type(e).__name__}: {e}", provider=self.name
            ) from e

        response.latency_ms = round((time.monotonic() - start) * 1000, 2)
        with self._stats_lock:
            self._stats.input_tokens += response.usage.prompt_tokens
            self._stats.output_tokens += response.usage.completion_tokens
            self._stats.total_tokens += response.usage.total_tokens
            self._stats.cost_usd += response.cost_usd
            self._stats.last_used = datetime.now(UTC)
        return response

    def _record_error(self) -> None:
        with self._stats_lock:
            self._stats.errors += 1

    def usage_stats(self) -> dict[str, Any]:
        with self._stats_lock:
            return self._stats.as_dict()

    def estimate_cost(self, tokens: int) -> float:
        """Rough cost of a call using `tokens` total tokens, split evenly in/out."""
        model = self.descriptor.model or ""
        half = tokens // 2
        return calculate_cost(model, half, tokens - half)

    def close(self) -> None:
        """Release network resources, if any."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


class OpenAICompatibleProvider(ProviderHandle):
    """HTTP client for OpenAI-compatible chat-completions APIs."""

    DEFAULT_ENDPOINT = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        super().__init__(descriptor)
        self.api_key = api_key if api_key is not None else descriptor.resolve_api_key()
        self.base_url = (descriptor.endpoint_ref or self.DEFAULT_ENDPOINT).rstrip("/")
        self.model = descriptor.model or self.DEFAULT_MODEL
        self._client: Optional[httpx.Client] = http_client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.descriptor.timeout_seconds),
            )
        return self._client

    def is_available(self) -> bool:
        return bool(self.descriptor.enabled and self.api_key and self.base_url)

    def _generate(self, request: GenerationRequest, timeout: float) -> ProviderResponse:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.model_dump() for m in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            resp = self.client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.name} timed out after {timeout:.1f}s: {e}", provider=self.name
            ) from e
        except httpx.TransportError as e:
            raise ProviderError(f"{self.name} network error: {e}", provider=self.name) from e

        self._raise_for_status(resp)
        return self._parse(resp)

    def _raise_for_status(self, resp: httpx.Response) -> None:
        status = resp.status_code
        if status in (401, 403):
            raise AuthenticationError(f"{self.name} rejected the API key ({status})", provider=self.name)
        if status == 429:
            raise RateLimitError(f"{self.name} rate limit exceeded", provider=self.name)
        if status == 404:
            raise ProviderError(
                f"{self.name} model or endpoint not found: {self.model}",
                provider=self.name,
                retryable=False,
            )
        if status >= 500:
            raise ProviderError(f"{self.name} server error {status}", provider=self.name)
        if status >= 400:
            raise ProviderError(
                f"{self.name} request rejected ({status}): {resp.text[:200]}",
                provider=self.name,
                retryable=False,
            )

    def _parse(self, resp: httpx.Response) -> ProviderResponse:
        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
            usage_data = data.get("usage") or {}
            usage = TokenUsage(
                prompt_tokens=usage_data.get("prompt_tokens") or 0,
                completion_tokens=usage_data.get("completion_tokens") or 0,
                total_tokens=usage_data.get("total_tokens") or 0,
            )
            model = data.get("model") or self.model
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ResponseParseError(
                f"{self.name} returned a malformed response: {e}", provider=self.name
            ) from e
        if not isinstance(content, str):
            raise ResponseParseError(f"{self.name} returned non-text content", provider=self.name)
        if not usage.total_tokens:
            usage.total_tokens = usage.prompt_tokens + usage.completion_tokens

        try:
            response = ProviderResponse(
                content=content,
                model=model,
                provider=self.name,
                usage=usage,
                cost_usd=calculate_cost(self.model, usage.prompt_tokens, usage.completion_tokens),
            )
        except ValidationError as e:
            raise ResponseParseError(
                f"{self.name} returned a malformed response: {e}", provider=self.name
            ) from e
        logger.debug("%s response: model=%s tokens=%d", self.name, model, usage.total_tokens)
        return response

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None


class CostOptimizedProvider(OpenAICompatibleProvider):
    """Cheapest backend, always tried first."""

    kind = ProviderKind.COST_OPTIMIZED
    DEFAULT_ENDPOINT = "https://api.deepseek.com/v1"
    DEFAULT_MODEL = "deepseek-chat"


class QualityFallbackProvider(OpenAICompatibleProvider):
    """Higher-cost backend used when the cheap one fails."""

    kind = ProviderKind.QUALITY_FALLBACK
    DEFAULT_ENDPOINT = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"


def build_provider(descriptor: ProviderDescriptor) -> ProviderHandle:
    """Instantiate the handle for a descriptor's kind."""
    from contentpilot.llm.offline import OfflineStubProvider

    if descriptor.kind is ProviderKind.COST_OPTIMIZED:
        return CostOptimizedProvider(descriptor)
    if descriptor.kind is ProviderKind.QUALITY_FALLBACK:
        return QualityFallbackProvider(descriptor)
    if descriptor.kind is ProviderKind.OFFLINE_STUB:
        return OfflineStubProvider(descriptor)
    raise ValueError(f"Unhandled provider kind: {descriptor.kind}")


def build_degradation_chain(descriptors: list[ProviderDescriptor]) -> list[ProviderHandle]:
    """Build provider handles ordered by ascending priority."""
    ordered = sorted(descriptors, key=lambda d: d.priority)
    return [build_provider(d) for d in ordered]
