"""Standard content workflow: analyze -> strategy -> generate.

Wires the three content handlers into a TaskOrchestrator, runs the graph
for one document snapshot and summarizes performance and quality.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from contentpilot.context.selector import ContextSelector
from contentpilot.context.strategies import MARKETING_CONTENT
from contentpilot.core.config import OrchestratorConfig, PromptLoader
from contentpilot.core.exceptions import PipelineBusyError
from contentpilot.core.models import Content, Document, Task
from contentpilot.llm.dispatcher import ProviderDispatcher
from contentpilot.llm.token_tracker import TokenTracker
from contentpilot.orchestrator.executor import RunReport, TaskOrchestrator
from contentpilot.orchestrator.handlers import (
    ContentGenerationHandler,
    ContentStrategyHandler,
    ProjectAnalysisHandler,
)
from contentpilot.orchestrator.metrics import RunMetrics
from contentpilot.quality.gate import QualityGate

logger = logging.getLogger("contentpilot.orchestrator.pipeline")

ANALYZE = "analyze"
STRATEGY = "strategy"
GENERATE = "generate"

STANDARD_TASKS = [
    Task(
        id=ANALYZE,
        handler_name=ProjectAnalysisHandler.name,
        input_template="Analyze this project to prepare {state.content_type} content.",
        description="Extract name, summary, features, audience and stack",
    ),
    Task(
        id=STRATEGY,
        handler_name=ContentStrategyHandler.name,
        input_template={"content_type": "{state.content_type}", "project": "{taskResult:analyze}"},
        depends_on=[ANALYZE],
        description="Plan the page",
    ),
    Task(
        id=GENERATE,
        handler_name=ContentGenerationHandler.name,
        input_template={
            "content_type": "{state.content_type}",
            "task_type": "{state.task_type}",
            "project": "{taskResult:analyze}",
            "strategy": "{taskResult:strategy}",
        },
        depends_on=[ANALYZE, STRATEGY],
        description="Generate validated content",
    ),
]


@dataclass
class PipelineReport:
    """Result of one pipeline run with performance and quality summaries."""
    run: RunReport
    metrics: RunMetrics
    documents: int
    content_type: str

    @property
    def content(self) -> Optional[Content]:
        payload = self.run.payload(GENERATE)
        return payload if isinstance(payload, Content) else None

    @property
    def success(self) -> bool:
        return self.content is not None

    def performance(self) -> dict[str, Any]:
        return {
            "total_time_seconds": round(self.run.duration_seconds, 3),
            "documents": self.documents,
            "total_tokens": self.metrics.total_tokens,
            "bottleneck_task": self.metrics.bottleneck_task,
            "timed_out": self.run.timed_out,
            "skipped": list(self.run.skipped),
        }

    def quality(self) -> dict[str, Any]:
        content = self.content
        return {
            "confidence": {tid: r.metadata.confidence for tid, r in self.run.results.items()},
            "failed_tasks": self.run.failed,
            "passed": content.passed if content else False,
            "score": content.score if content else 0,
            "used_fallback": content.used_fallback if content else False,
            "attempts": content.attempts if content else 0,
            "provider": content.provider if content else None,
        }


class ContentPipeline:
    """Runs the standard analyze -> strategy -> generate graph.

    One run at a time: a second concurrent run() raises PipelineBusyError.
    """

    def __init__(
        self,
        selector: ContextSelector,
        dispatcher: ProviderDispatcher,
        gate: QualityGate,
        prompt_loader: Optional[PromptLoader] = None,
        config: Optional[OrchestratorConfig] = None,
        token_tracker: Optional[TokenTracker] = None,
    ):
        self.selector = selector
        self.dispatcher = dispatcher
        self.gate = gate
        self.prompt_loader = prompt_loader or PromptLoader()
        self.config = config or OrchestratorConfig()
        self.token_tracker = token_tracker
        self._lock = threading.Lock()

    def build_orchestrator(self) -> TaskOrchestrator:
        orchestrator = TaskOrchestrator(config=self.config, token_tracker=self.token_tracker)
        orchestrator.register_handler(
            ProjectAnalysisHandler.name,
            ProjectAnalysisHandler(self.selector, self.dispatcher, self.prompt_loader),
        )
        orchestrator.register_handler(
            ContentStrategyHandler.name,
            ContentStrategyHandler(self.dispatcher, self.prompt_loader),
        )
        orchestrator.register_handler(
            ContentGenerationHandler.name,
            ContentGenerationHandler(self.selector, self.gate, self.prompt_loader),
        )
        for task in STANDARD_TASKS:
            orchestrator.declare_task(task)
        return orchestrator

    def run(
        self,
        documents: Iterable[Document],
        content_type: str = "homepage",
        task_type: str = MARKETING_CONTENT,
        max_retries: Optional[int] = None,
        deadline_seconds: Optional[float] = None,
    ) -> PipelineReport:
        """Generate content of one type from a document snapshot.

        Raises:
            PipelineBusyError: If another run is in progress.
            UnknownTaskTypeError: If task_type has no selection strategy.
        """
        if not self._lock.acquire(blocking=False):
            raise PipelineBusyError("A pipeline run is already in progress")
        try:
            self.selector.get_strategy(task_type)
            docs = list(documents)
            orchestrator = self.build_orchestrator()
            metrics = RunMetrics().attach(orchestrator.events)
            logger.info(
                "Pipeline started: content_type=%s task_type=%s documents=%d",
                content_type, task_type, len(docs),
            )
            run = orchestrator.run(
                {
                    "documents": docs,
                    "content_type": content_type,
                    "task_type": task_type,
                    "max_retries": max_retries,
                },
                deadline_seconds=deadline_seconds,
            )
            report = PipelineReport(run=run, metrics=metrics, documents=len(docs), content_type=content_type)
            logger.info(
                "Pipeline finished: passed=%s score=%s tokens=%d",
                report.quality()["passed"], report.quality()["score"], metrics.total_tokens,
            )
            return report
        finally:
            self._lock.release()
