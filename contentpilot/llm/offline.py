"""Offline stub provider: the last link of every degradation chain.

Answers locally and deterministically, so a pipeline run always completes
even without network access or credentials. Output shape follows the
request's purpose (analysis, strategy or content) taken from request
metadata, or guessed from the prompt when metadata is absent.
"""

from __future__ import annotations

import json
import logging

from contentpilot.context.documents import extract_project_facts
from contentpilot.core.config import ProviderKind
from contentpilot.core.models import GenerationRequest, ProviderResponse, TokenUsage, estimate_tokens
from contentpilot.llm.providers import ProviderHandle
from contentpilot.quality.fallbacks import render_fallback

logger = logging.getLogger("contentpilot.llm.offline")

OFFLINE_MODEL = "offline-stub"


class OfflineStubProvider(ProviderHandle):
    """Deterministic local provider. Never fails unless disabled."""

    kind = ProviderKind.OFFLINE_STUB

    def is_available(self) -> bool:
        return self.descriptor.enabled

    def _generate(self, request: GenerationRequest, timeout: float) -> ProviderResponse:
        purpose = request.metadata.get("purpose") or self._guess_purpose(request)
        facts = self._facts(request)

        if purpose == "analysis":
            content = json.dumps(
                {
                    "name": facts.get("name") or "Unnamed project",
                    "summary": facts.get("description") or "",
                    "features": facts.get("features") or [],
                    "audience": facts.get("audience") or "developers",
                    "tech_stack": facts.get("tech_stack") or [],
                },
                indent=2,
            )
        elif purpose == "strategy":
            content = self._strategy(request, facts)
        else:
            content_type = request.metadata.get("content_type", "generic")
            content = render_fallback(content_type, **facts)

        logger.debug("Offline stub answered a %s request (%d chars)", purpose, len(content))
        prompt_tokens = estimate_tokens(request.prompt_text)
        completion_tokens = estimate_tokens(content)
        return ProviderResponse(
            content=content,
            model=OFFLINE_MODEL,
            provider=self.name,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    @staticmethod
    def _guess_purpose(request: GenerationRequest) -> str:
        text = request.prompt_text.lower()
        if "json" in text and ("analy" in text or "features" in text):
            return "analysis"
        if "strategy" in text:
            return "strategy"
        return "content"

    @staticmethod
    def _facts(request: GenerationRequest) -> dict:
        project = request.metadata.get("project")
        if isinstance(project, dict) and project:
            return {
                "name": project.get("name"),
                "description": project.get("summary") or project.get("description"),
                "features": project.get("features"),
                "audience": project.get("audience"),
                "tech_stack": project.get("tech_stack"),
            }
        return extract_project_facts(request.prompt_text)

    @staticmethod
    def _strategy(request: GenerationRequest, facts: dict) -> str:
        content_type = request.metadata.get("content_type", "generic")
        name = facts.get("name") or "the project"
        features = facts.get("features") or []
        lines = [
            f"Content strategy for the {content_type} of {name}:",
            f"- Lead with what {name} does in one sentence.",
            "- Present the key features as a short bulleted list.",
        ]
        if features:
            lines.append("- Emphasize: " + "; ".join(str(f) for f in features[:3]) + ".")
        lines.append("- Close with a clear call to action pointing to the getting started guide.")
        return "\n".join(lines)
