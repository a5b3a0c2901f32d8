"""Custom exception hierarchy for ContentPilot.

All exceptions inherit from ContentPilotError so callers can catch broadly
or narrowly as needed. Configuration and orchestration errors abort a run;
provider errors are absorbed by the dispatcher's degradation chain and only
surface as AllProvidersFailedError once every backend is exhausted.
"""

from __future__ import annotations

from typing import Optional


class ContentPilotError(Exception):
    """Base exception for all ContentPilot errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigError(ContentPilotError):
    """Invalid or missing configuration."""


class UnknownTaskTypeError(ConfigError):
    """No selection strategy is registered for the requested task type."""

    def __init__(self, task_type: str, available: Optional[list[str]] = None):
        self.task_type = task_type
        self.available = list(available or [])
        message = f"No selection strategy registered for task type '{task_type}'"
        if self.available:
            message += f" (available: {', '.join(sorted(self.available))})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class OrchestrationError(ContentPilotError):
    """Task graph or run-level failure. Always fatal to the run."""


class DuplicateTaskError(OrchestrationError):
    """A task with the same id was already declared."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' is already declared")


class UnknownDependencyError(OrchestrationError):
    """A task depends on an id that was not declared before it."""

    def __init__(self, task_id: str, dependency: str):
        self.task_id = task_id
        self.dependency = dependency
        super().__init__(
            f"Task '{task_id}' depends on undeclared task '{dependency}'"
        )


class CyclicDependencyError(OrchestrationError):
    """The task graph has no valid topological order."""

    def __init__(self, remaining: list[str]):
        self.remaining = list(remaining)
        super().__init__(
            "Cyclic dependency among tasks: " + ", ".join(self.remaining)
        )


class HandlerNotFoundError(OrchestrationError):
    """A task names a handler that was never registered."""

    def __init__(self, task_id: str, handler_name: str):
        self.task_id = task_id
        self.handler_name = handler_name
        super().__init__(
            f"No handler '{handler_name}' registered (required by task '{task_id}')"
        )


class PipelineBusyError(OrchestrationError):
    """A pipeline run was requested while another run is in progress."""


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class ProviderError(ContentPilotError):
    """Failed provider call. Recoverable by falling back to the next provider."""

    def __init__(self, message: str, provider: str = "", retryable: bool = True):
        self.provider = provider
        self.retryable = retryable
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """Provider call exceeded its deadline or the network failed."""


class AuthenticationError(ProviderError):
    """Invalid or missing credentials."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message, provider=provider, retryable=False)


class RateLimitError(ProviderError):
    """Provider rejected the call with a rate limit."""


class ResponseParseError(ProviderError):
    """Provider answered with a malformed response."""


class ProviderUnavailableError(ProviderError):
    """Provider is disabled or not configured."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message, provider=provider, retryable=False)


class AllProvidersFailedError(ContentPilotError):
    """Every provider in the degradation chain failed or was skipped."""

    def __init__(self, attempts: dict[str, Exception], message: str = ""):
        self.attempts = dict(attempts)
        if not message:
            if self.attempts:
                details = "; ".join(
                    f"{name}: {type(err).__name__}: {err}" for name, err in self.attempts.items()
                )
                message = f"All providers failed ({details})"
            else:
                message = "All providers failed (no provider was available)"
        super().__init__(message)
