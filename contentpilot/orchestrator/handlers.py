"""Task handlers: the units of work the orchestrator invokes.

Every handler follows the same lifecycle:
1. Receive the task's resolved input and a read-only StateView
2. Process (context selection, provider calls, quality gate)
3. Return a TaskResult with payload, confidence and token usage

Subclasses implement `process()`. run() wraps it with timing, logging and
failure conversion: an exception inside process() becomes a failed
TaskResult. Configuration and orchestration errors are the exception: they
stop the run and propagate to the caller.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from contentpilot.context.documents import extract_project_facts
from contentpilot.context.selector import ContextSelector
from contentpilot.context.strategies import MARKETING_CONTENT, PROJECT_ANALYSIS
from contentpilot.core.config import PromptLoader
from contentpilot.core.exceptions import AllProvidersFailedError, ConfigError, OrchestrationError
from contentpilot.core.models import (
    Document,
    GenerationRequest,
    SelectedContext,
    Task,
    TaskMetadata,
    TaskResult,
)
from contentpilot.llm.dispatcher import ProviderDispatcher
from contentpilot.llm.response_parser import parse_json_payload
from contentpilot.orchestrator.state import StateView
from contentpilot.orchestrator.template import is_unresolved
from contentpilot.quality.gate import QualityGate

DEFAULT_ANALYSIS_SYSTEM = (
    "Describe the project in the documents as a JSON object with keys "
    '"name", "summary", "features", "audience" and "tech_stack".'
)
DEFAULT_STRATEGY_SYSTEM = "Propose a concise content strategy for the requested page."
DEFAULT_GENERATION_SYSTEM = (
    "Write structured markdown with a single H1 title and H2 sections. "
    "Never leave placeholder text."
)


class TaskHandler(ABC):
    """Base class for everything registered with the orchestrator."""

    name: str = "handler"

    def __init__(self, name: Optional[str] = None):
        if name:
            self.name = name
        self.logger = logging.getLogger(f"contentpilot.handler.{self.name.replace('-', '_')}")
        self._metrics: dict[str, Any] = {
            "total_processed": 0,
            "total_errors": 0,
            "last_duration_seconds": 0.0,
        }
        self._metrics_lock = threading.Lock()

    @abstractmethod
    def process(self, task_input: Any, state: StateView) -> TaskResult:
        """Do the work for one task.

        Use self.result() to build the return value; run() fills in the task
        id and latency.
        """

    def run(self, task: Task, task_input: Any, state: StateView) -> TaskResult:
        self.logger.info("[%s] Starting task '%s'", self.name, task.id)
        start = time.monotonic()
        try:
            result = self.process(task_input, state)
        except (ConfigError, OrchestrationError):
            self._count("total_errors", time.monotonic() - start)
            raise
        except Exception as e:
            duration = time.monotonic() - start
            self._count("total_errors", duration)
            self.logger.error("[%s] Task '%s' failed: %s", self.name, task.id, e, exc_info=True)
            return TaskResult(
                task_id=task.id,
                success=False,
                error=f"{type(e).__name__}: {e}",
                metadata=TaskMetadata(latency_ms=round(duration * 1000, 2)),
            )

        duration = time.monotonic() - start
        self._count("total_processed", duration)
        metadata = result.metadata.model_copy(update={"latency_ms": round(duration * 1000, 2)})
        result = result.model_copy(update={"task_id": task.id, "metadata": metadata})
        self.logger.info(
            "[%s] Task '%s' complete: success=%s (%.2fs)",
            self.name, task.id, result.success, duration,
        )
        return result

    @staticmethod
    def result(
        payload: Any,
        confidence: float = 1.0,
        tokens_used: int = 0,
        success: bool = True,
        error: Optional[str] = None,
        **extra: Any,
    ) -> TaskResult:
        return TaskResult(
            task_id="",
            success=success,
            payload=payload,
            error=error,
            metadata=TaskMetadata(confidence=confidence, tokens_used=tokens_used, extra=extra),
        )

    def _count(self, counter: str, duration: float) -> None:
        with self._metrics_lock:
            self._metrics[counter] += 1
            self._metrics["last_duration_seconds"] = duration

    def get_metrics(self) -> dict[str, Any]:
        with self._metrics_lock:
            return self._metrics.copy()


class FunctionHandler(TaskHandler):
    """Adapts a plain callable `fn(task_input, state) -> payload` to a handler."""

    def __init__(self, name: str, fn: Callable[[Any, StateView], Any]):
        super().__init__(name)
        self.fn = fn

    def process(self, task_input: Any, state: StateView) -> TaskResult:
        return self.result(self.fn(task_input, state))


# ---------------------------------------------------------------------------
# Content workflow handlers
# ---------------------------------------------------------------------------

def _documents(state: StateView) -> list[Document]:
    return list(state.var("documents") or [])


def _as_text(value: Any) -> str:
    if value is None or is_unresolved(value):
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str)


def _project_from(value: Any) -> dict[str, Any]:
    """Decode a project analysis passed in through a template."""
    if isinstance(value, dict):
        return value
    if not isinstance(value, str) or is_unresolved(value):
        return {}
    return parse_json_payload(value) or {}


def _fallback_values(project: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": project.get("name"),
        "description": project.get("summary") or project.get("description"),
        "features": project.get("features"),
        "audience": project.get("audience"),
        "tech_stack": project.get("tech_stack"),
    }


class ProjectAnalysisHandler(TaskHandler):
    """Summarizes the project as JSON facts: name, summary, features, audience, stack.

    Falls back to heuristics over the selected documents when the provider
    answer is not valid JSON or no provider answered at all.
    """

    name = "project-analysis"

    def __init__(
        self,
        selector: ContextSelector,
        dispatcher: ProviderDispatcher,
        prompt_loader: Optional[PromptLoader] = None,
        task_type: str = PROJECT_ANALYSIS,
        name: Optional[str] = None,
    ):
        super().__init__(name)
        self.selector = selector
        self.dispatcher = dispatcher
        self.prompt_loader = prompt_loader or PromptLoader()
        self.task_type = task_type

    def process(self, task_input: Any, state: StateView) -> TaskResult:
        context = self.selector.select_context(_documents(state), self.task_type)
        heuristic = self._heuristic(context)
        instructions = _as_text(task_input) or "Analyze this project."
        request = GenerationRequest.from_prompt(
            f"{instructions}\n\nProject documents:\n\n{context.to_prompt()}",
            system_prompt=self.prompt_loader.load("analysis_system.txt", DEFAULT_ANALYSIS_SYSTEM),
            temperature=0.2,
            metadata={"purpose": "analysis", "project": heuristic},
        )

        try:
            response = self.dispatcher.generate(request)
        except AllProvidersFailedError as e:
            self.logger.warning("No provider answered the analysis; using heuristics: %s", e)
            return self.result(
                heuristic, confidence=0.3,
                documents=len(context.selected_documents), source="heuristic",
            )

        data = parse_json_payload(response.content)
        tokens = response.usage.total_tokens
        if data is None:
            self.logger.warning("Analysis response from %s was not JSON; using heuristics", response.provider)
            return self.result(
                heuristic, confidence=0.5, tokens_used=tokens,
                documents=len(context.selected_documents), source="heuristic",
            )

        return self.result(
            self._normalize(data, heuristic), confidence=0.9, tokens_used=tokens,
            documents=len(context.selected_documents), source=response.provider,
        )

    def _heuristic(self, context: SelectedContext) -> dict[str, Any]:
        text = "\n\n".join(d.raw_content for d in context.selected_documents)
        facts = extract_project_facts(text)
        return {
            "name": facts["name"] or "Unnamed project",
            "summary": facts["description"],
            "features": facts["features"],
            "audience": "",
            "tech_stack": [],
        }

    @staticmethod
    def _normalize(data: dict[str, Any], fallback: dict[str, Any]) -> dict[str, Any]:
        def as_list(value: Any) -> list[str]:
            if isinstance(value, list):
                return [str(v) for v in value if v]
            if isinstance(value, str) and value:
                return [value]
            return []

        return {
            "name": str(data.get("name") or fallback["name"]),
            "summary": str(data.get("summary") or data.get("description") or fallback["summary"]),
            "features": as_list(data.get("features")) or fallback["features"],
            "audience": str(data.get("audience") or ""),
            "tech_stack": as_list(data.get("tech_stack")),
        }


class ContentStrategyHandler(TaskHandler):
    """Drafts a content strategy from the project analysis.

    Input: {"content_type": ..., "project": <analysis JSON or placeholder>}.
    """

    name = "content-strategy"

    def __init__(
        self,
        dispatcher: ProviderDispatcher,
        prompt_loader: Optional[PromptLoader] = None,
        name: Optional[str] = None,
    ):
        super().__init__(name)
        self.dispatcher = dispatcher
        self.prompt_loader = prompt_loader or PromptLoader()

    def process(self, task_input: Any, state: StateView) -> TaskResult:
        task_input = task_input if isinstance(task_input, dict) else {"project": task_input}
        content_type = _as_text(task_input.get("content_type")) or "homepage"
        project = _project_from(task_input.get("project"))
        partial = not project

        prompt = (
            f"Plan the {content_type} page for this project.\n\n"
            f"Project analysis:\n{json.dumps(project, indent=2) if project else '(not available)'}"
        )
        request = GenerationRequest.from_prompt(
            prompt,
            system_prompt=self.prompt_loader.load("strategy_system.txt", DEFAULT_STRATEGY_SYSTEM),
            temperature=0.5,
            metadata={"purpose": "strategy", "content_type": content_type, "project": project},
        )
        response = self.dispatcher.generate(request)
        confidence = 0.6 if partial else 0.85
        return self.result(
            response.content.strip(), confidence=confidence,
            tokens_used=response.usage.total_tokens, provider=response.provider, partial=partial,
        )


class ContentGenerationHandler(TaskHandler):
    """Generates validated content through the quality gate.

    Input: {"content_type", "task_type", "project", "strategy"}; any value
    may still be an unresolved placeholder when an upstream task failed, in
    which case generation proceeds with what is available.
    """

    name = "content-generation"

    def __init__(
        self,
        selector: ContextSelector,
        gate: QualityGate,
        prompt_loader: Optional[PromptLoader] = None,
        default_task_type: str = MARKETING_CONTENT,
        name: Optional[str] = None,
    ):
        super().__init__(name)
        self.selector = selector
        self.gate = gate
        self.prompt_loader = prompt_loader or PromptLoader()
        self.default_task_type = default_task_type

    def process(self, task_input: Any, state: StateView) -> TaskResult:
        task_input = task_input if isinstance(task_input, dict) else {"instructions": task_input}
        content_type = _as_text(task_input.get("content_type")) or "homepage"
        task_type = _as_text(task_input.get("task_type")) or self.default_task_type
        project = _project_from(task_input.get("project"))
        strategy = _as_text(task_input.get("strategy"))
        instructions = _as_text(task_input.get("instructions"))

        context = self.selector.select_context(_documents(state), task_type)
        prompt = self.build_prompt(content_type, project, strategy, instructions, context)
        max_retries = state.var("max_retries")

        content = self.gate.generate_validated(
            prompt,
            content_type,
            max_retries=max_retries,
            system_prompt=self.prompt_loader.load("generation_system.txt", DEFAULT_GENERATION_SYSTEM),
            fallback_values=_fallback_values(project),
            metadata={"project": project},
        )
        return self.result(
            content,
            confidence=content.confidence,
            tokens_used=content.tokens_used,
            passed=content.passed,
            used_fallback=content.used_fallback,
            attempts=content.attempts,
            documents=len(context.selected_documents),
            context_tokens=context.total_tokens,
        )

    @staticmethod
    def build_prompt(
        content_type: str,
        project: dict[str, Any],
        strategy: str,
        instructions: str,
        context: SelectedContext,
    ) -> str:
        sections = [f"Write the {content_type} content for this project."]
        if instructions:
            sections.append(instructions)
        if project:
            sections.append("Project analysis:\n" + json.dumps(project, indent=2))
        if strategy:
            sections.append("Content strategy:\n" + strategy)
        sections.append("Project documents:\n\n" + context.to_prompt())
        return "\n\n".join(sections)
