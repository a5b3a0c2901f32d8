"""Tests for contentpilot/core/exceptions.py: exception hierarchy."""

import pytest

from contentpilot.core.exceptions import (
    AllProvidersFailedError,
    AuthenticationError,
    ConfigError,
    ContentPilotError,
    CyclicDependencyError,
    DuplicateTaskError,
    HandlerNotFoundError,
    OrchestrationError,
    PipelineBusyError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    RateLimitError,
    ResponseParseError,
    UnknownDependencyError,
    UnknownTaskTypeError,
)


class TestExceptionHierarchy:
    def test_base_exception(self):
        with pytest.raises(ContentPilotError):
            raise ContentPilotError("test")

    def test_config_errors(self):
        assert issubclass(ConfigError, ContentPilotError)
        assert issubclass(UnknownTaskTypeError, ConfigError)

    def test_orchestration_errors(self):
        for cls in (DuplicateTaskError, UnknownDependencyError, CyclicDependencyError,
                    HandlerNotFoundError, PipelineBusyError):
            assert issubclass(cls, OrchestrationError)
        assert issubclass(OrchestrationError, ContentPilotError)

    def test_provider_errors(self):
        for cls in (ProviderTimeoutError, AuthenticationError, RateLimitError,
                    ResponseParseError, ProviderUnavailableError):
            assert issubclass(cls, ProviderError)

    def test_all_providers_failed_is_not_a_provider_error(self):
        assert issubclass(AllProvidersFailedError, ContentPilotError)
        assert not issubclass(AllProvidersFailedError, ProviderError)


class TestStructuredAttributes:
    def test_unknown_task_type_lists_available(self):
        err = UnknownTaskTypeError("poetry", available=["general", "changelog"])
        assert err.task_type == "poetry"
        assert "changelog, general" in str(err)

    def test_unknown_dependency(self):
        err = UnknownDependencyError("generate", "analyze")
        assert err.task_id == "generate"
        assert err.dependency == "analyze"
        assert "analyze" in str(err)

    def test_cycle_members(self):
        err = CyclicDependencyError(["a", "b"])
        assert err.remaining == ["a", "b"]
        assert "a, b" in str(err)

    def test_handler_not_found(self):
        err = HandlerNotFoundError("generate", "writer")
        assert err.handler_name == "writer"
        assert "generate" in str(err)

    def test_provider_error_defaults_retryable(self):
        err = ProviderError("boom", provider="deepseek")
        assert err.retryable is True
        assert err.provider == "deepseek"

    def test_auth_error_not_retryable(self):
        assert AuthenticationError("bad key", provider="openai").retryable is False


class TestAllProvidersFailedError:
    def test_message_lists_attempts(self):
        err = AllProvidersFailedError({
            "deepseek": ProviderTimeoutError("timed out"),
            "openai": RateLimitError("slow down"),
        })
        assert set(err.attempts) == {"deepseek", "openai"}
        assert "deepseek: ProviderTimeoutError: timed out" in str(err)
        assert "openai: RateLimitError" in str(err)

    def test_message_without_attempts(self):
        err = AllProvidersFailedError({})
        assert "no provider was available" in str(err)
