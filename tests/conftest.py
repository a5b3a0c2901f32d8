"""Shared fixtures for ContentPilot tests.

No mock libraries: providers are hand-written fakes implementing
ProviderHandle, and HTTP providers run against httpx.MockTransport.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Union

import pytest
from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / ".env")

from contentpilot.context.selector import ContextSelector
from contentpilot.core.config import (
    AppConfig,
    DispatcherConfig,
    ProviderDescriptor,
    ProviderKind,
    ProviderRegistry,
    QualityGateConfig,
    load_config,
    load_provider_registry,
)
from contentpilot.core.exceptions import ProviderError
from contentpilot.core.models import (
    Document,
    DocumentCategory,
    GenerationRequest,
    ProviderResponse,
    TokenUsage,
)
from contentpilot.llm.dispatcher import ProviderDispatcher
from contentpilot.llm.providers import ProviderHandle
from contentpilot.quality.fallbacks import render_fallback

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)

README_TEXT = """\
# Lumen

Lumen turns raw telemetry into readable dashboards in seconds.

## Features

- **Live charts**: stream metrics without polling
- **Alert rules**: YAML rules evaluated on every sample
- **Plugins**: extend Lumen with Python entry points

## Installation

pip install lumen
"""

GOOD_HOMEPAGE = render_fallback(
    "homepage",
    name="Lumen",
    description="Lumen turns raw telemetry into readable dashboards in seconds.",
    features=["Live charts: stream metrics", "Alert rules: YAML rules", "Plugins: Python entry points"],
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

Reply = Union[str, Exception, Callable[[GenerationRequest], str]]


class FakeProvider(ProviderHandle):
    """Scripted provider. Replies are consumed in order; the last one repeats."""

    kind = ProviderKind.COST_OPTIMIZED

    def __init__(
        self,
        name: str,
        replies: Optional[list[Reply]] = None,
        priority: int = 10,
        available: bool = True,
        model: str = "fake-model",
    ):
        super().__init__(ProviderDescriptor(name=name, kind=self.kind, priority=priority, model=model))
        self.replies = list(replies or ["ok"])
        self.available = available
        self.calls: list[GenerationRequest] = []

    def is_available(self) -> bool:
        return self.available

    def _generate(self, request: GenerationRequest, timeout: float) -> ProviderResponse:
        self.calls.append(request)
        reply = self.replies[min(len(self.calls) - 1, len(self.replies) - 1)]
        if isinstance(reply, Exception):
            raise reply
        text = reply(request) if callable(reply) else reply
        return ProviderResponse(
            content=text,
            model=self.descriptor.model or "fake-model",
            provider=self.name,
            usage=TokenUsage(prompt_tokens=10, completion_tokens=20, total_tokens=30),
        )


def failing(name: str, priority: int = 10) -> FakeProvider:
    return FakeProvider(name, [ProviderError(f"{name} down", provider=name)], priority=priority)


def make_doc(
    path: str,
    category: DocumentCategory,
    tokens: int = 100,
    age_days: float = 0.0,
    text: Optional[str] = None,
) -> Document:
    body = text if text is not None else "x" * (tokens * 4)
    return Document(
        path=path,
        raw_content=body,
        category=category,
        token_estimate=tokens if text is None else None,
        last_modified=NOW - timedelta(days=age_days),
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config_dir() -> Path:
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def app_config(config_dir: Path) -> AppConfig:
    return load_config(config_dir=config_dir)


@pytest.fixture
def provider_registry(config_dir: Path) -> ProviderRegistry:
    return load_provider_registry(config_dir=config_dir)


@pytest.fixture
def quality_config() -> QualityGateConfig:
    return QualityGateConfig()


@pytest.fixture
def offline_registry() -> ProviderRegistry:
    return ProviderRegistry.offline_only()


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def selector() -> ContextSelector:
    return ContextSelector()


@pytest.fixture
def offline_dispatcher() -> ProviderDispatcher:
    from contentpilot.llm.offline import OfflineStubProvider

    stub = OfflineStubProvider(ProviderDescriptor(name="offline", kind=ProviderKind.OFFLINE_STUB, priority=1000))
    return ProviderDispatcher([stub], config=DispatcherConfig())


@pytest.fixture
def readme_doc() -> Document:
    return Document(path="README.md", raw_content=README_TEXT, category=DocumentCategory.README, last_modified=NOW)


@pytest.fixture
def project_docs(readme_doc: Document) -> list[Document]:
    return [
        readme_doc,
        Document(
            path="docs/getting-started.md",
            raw_content="# Getting started\n\nRun `lumen serve` and open the dashboard.\n",
            category=DocumentCategory.GUIDE,
            last_modified=NOW - timedelta(days=30),
        ),
        Document(
            path="CHANGELOG.md",
            raw_content="# Changelog\n\n## 1.2.0\n\n- Added alert rules\n",
            category=DocumentCategory.CHANGELOG,
            last_modified=NOW - timedelta(days=400),
        ),
    ]


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    root = tmp_path / "lumen"
    (root / "docs").mkdir(parents=True)
    (root / "README.md").write_text(README_TEXT)
    (root / "docs" / "getting-started.md").write_text("# Getting started\n\nRun `lumen serve`.\n")
    (root / "CHANGELOG.md").write_text("# Changelog\n\n- Added alert rules\n")
    (root / "node_modules").mkdir()
    (root / "node_modules" / "README.md").write_text("# vendored\n")
    return root
