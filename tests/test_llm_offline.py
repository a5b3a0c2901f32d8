"""Tests for contentpilot/llm/offline.py: deterministic local provider."""

import json

import pytest

from contentpilot.core.config import ProviderDescriptor, ProviderKind
from contentpilot.core.exceptions import ProviderUnavailableError
from contentpilot.core.models import GenerationRequest
from contentpilot.llm.offline import OFFLINE_MODEL, OfflineStubProvider
from contentpilot.quality.validator import ContentValidator

from tests.conftest import README_TEXT


@pytest.fixture
def stub() -> OfflineStubProvider:
    return OfflineStubProvider(ProviderDescriptor(name="offline", kind=ProviderKind.OFFLINE_STUB, priority=1000))


PROJECT = {
    "name": "Lumen",
    "summary": "Readable dashboards from raw telemetry.",
    "features": ["Live charts", "Alert rules"],
    "audience": "platform teams",
    "tech_stack": ["Python", "WebSockets"],
}


class TestOfflineStub:
    def test_always_available_when_enabled(self, stub):
        assert stub.is_available()

    def test_disabled(self):
        stub = OfflineStubProvider(
            ProviderDescriptor(name="offline", kind=ProviderKind.OFFLINE_STUB, enabled=False)
        )
        with pytest.raises(ProviderUnavailableError):
            stub.generate(GenerationRequest.from_prompt("hi"))

    def test_analysis_from_prompt_documents(self, stub):
        request = GenerationRequest.from_prompt(README_TEXT, metadata={"purpose": "analysis"})
        data = json.loads(stub.generate(request).content)
        assert data["name"] == "Lumen"
        assert data["features"][0].startswith("Live charts")
        assert set(data) == {"name", "summary", "features", "audience", "tech_stack"}

    def test_strategy_mentions_features(self, stub):
        request = GenerationRequest.from_prompt(
            "Plan the page",
            metadata={"purpose": "strategy", "content_type": "homepage", "project": PROJECT},
        )
        text = stub.generate(request).content
        assert "homepage of Lumen" in text
        assert "Live charts" in text

    @pytest.mark.parametrize("content_type", ["homepage", "about", "faq", "blog"])
    def test_content_passes_validation(self, stub, content_type):
        request = GenerationRequest.from_prompt(
            "Write it",
            metadata={"purpose": "content", "content_type": content_type, "project": PROJECT},
        )
        text = stub.generate(request).content
        assert text.startswith("# ")
        assert "Lumen" in text
        assert ContentValidator().validate(text, content_type).passed

    def test_guesses_purpose_without_metadata(self, stub):
        request = GenerationRequest.from_prompt("Analyze the project and answer with JSON features.")
        assert json.loads(stub.generate(request).content)["name"] == "Unnamed project"

    def test_deterministic(self, stub):
        request = GenerationRequest.from_prompt(README_TEXT, metadata={"content_type": "homepage"})
        assert stub.generate(request).content == stub.generate(request).content

    def test_usage_estimated(self, stub):
        response = stub.generate(GenerationRequest.from_prompt("x" * 40))
        assert response.model == OFFLINE_MODEL
        assert response.usage.prompt_tokens == 10
        assert response.usage.total_tokens == response.usage.prompt_tokens + response.usage.completion_tokens
        assert response.cost_usd == 0.0
