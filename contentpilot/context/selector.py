"""Context selector for ContentPilot.

Picks a token-bounded, prioritized subset of project documents for a task
type. Selection runs in four steps:

1. Filter documents to the strategy's required and optional categories.
2. Score each candidate: category weight x recency factor.
3. Admit required-category documents first (best of each category, then the
   rest), truncating one to the remaining budget when nothing else fits.
4. Greedily admit optional documents in score order until the budget would
   be exceeded.

The result always satisfies total_tokens <= strategy_used.max_tokens.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Iterable, Optional

from pydantic import ValidationError

from contentpilot.context.strategies import DEFAULT_STRATEGIES, custom_strategy
from contentpilot.core.config import ContextConfig
from contentpilot.core.exceptions import ConfigError, UnknownTaskTypeError
from contentpilot.core.models import (
    CHARS_PER_TOKEN,
    Document,
    SelectedContext,
    SelectionStrategy,
    estimate_tokens,
)

logger = logging.getLogger("contentpilot.context.selector")


class ContextSelector:
    """Token-budgeted document selection driven by per-task-type strategies.

    Strategies start from DEFAULT_STRATEGIES and may be replaced or extended
    through ContextConfig.strategy_overrides or register_strategy().
    """

    def __init__(
        self,
        config: Optional[ContextConfig] = None,
        strategies: Optional[dict[str, SelectionStrategy]] = None,
    ):
        self.config = config or ContextConfig()
        self._strategies: dict[str, SelectionStrategy] = dict(
            strategies if strategies is not None else DEFAULT_STRATEGIES
        )
        self._apply_overrides(self.config.strategy_overrides)

    # -- strategy registry ---------------------------------------------------

    def register_strategy(self, strategy: SelectionStrategy) -> None:
        if strategy.task_type in self._strategies:
            logger.info("Replacing selection strategy for '%s'", strategy.task_type)
        self._strategies[strategy.task_type] = strategy

    def get_strategy(self, task_type: str) -> SelectionStrategy:
        strategy = self._strategies.get(task_type)
        if strategy is None:
            raise UnknownTaskTypeError(task_type, available=list(self._strategies))
        return strategy

    def available_task_types(self) -> list[str]:
        return sorted(self._strategies)

    def _apply_overrides(self, overrides: dict[str, dict]) -> None:
        for task_type, fields in overrides.items():
            try:
                if task_type in self._strategies:
                    strategy = custom_strategy(self._strategies[task_type], **fields)
                else:
                    strategy = SelectionStrategy(task_type=task_type, **fields)
            except ValidationError as e:
                raise ConfigError(f"Invalid strategy override for '{task_type}': {e}") from e
            self._strategies[task_type] = strategy

    # -- selection -------------------------------------------------------------

    def select_context(
        self,
        documents: Iterable[Document],
        task_type: str,
        max_tokens: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SelectedContext:
        """Select a budgeted subset of documents for a task type.

        Args:
            documents: Full document snapshot from the document store.
            task_type: Key of a registered SelectionStrategy.
            max_tokens: Optional budget override for this call only.
            now: Reference time for recency scoring (defaults to current UTC).

        Returns:
            SelectedContext whose total_tokens never exceeds the budget.

        Raises:
            UnknownTaskTypeError: If no strategy is registered for task_type.
        """
        strategy = self.get_strategy(task_type)
        if max_tokens is not None and max_tokens != strategy.max_tokens:
            strategy = custom_strategy(strategy, max_tokens=max_tokens)
        budget = strategy.max_tokens
        now = now or datetime.now(UTC)
        docs = list(documents)

        if not docs:
            logger.info("No documents supplied for task type '%s'", task_type)
            return SelectedContext(
                strategy_used=strategy,
                selection_rationale=f"No input documents were supplied for task type '{task_type}'.",
                applied_max_tokens=budget,
            )

        eligible = strategy.eligible_categories
        candidates = [d for d in docs if d.category in eligible]
        excluded = [d for d in docs if d.category not in eligible]

        scores = {id(d): self.score(d, strategy, now) for d in candidates}
        ranked = sorted(candidates, key=lambda d: (-scores[id(d)], d.path))
        required = self._order_required(
            [d for d in ranked if strategy.is_required(d.category)], strategy
        )
        optional = [d for d in ranked if not strategy.is_required(d.category)]

        selected: list[Document] = []
        truncated: list[str] = []
        notes: list[str] = []
        running = 0

        for doc in required:
            if running + doc.token_estimate <= budget:
                selected.append(doc)
                running += doc.token_estimate
                notes.append(f"+ {doc.path} [{doc.category.value}, required] {doc.token_estimate} tokens")
                continue
            remaining = budget - running
            if remaining <= 0:
                notes.append(f"- {doc.path} [{doc.category.value}, required] excluded: budget exhausted")
                continue
            cut = self._truncate(doc, remaining)
            selected.append(cut)
            truncated.append(doc.path)
            running += cut.token_estimate
            notes.append(
                f"~ {doc.path} [{doc.category.value}, required] truncated "
                f"{doc.token_estimate} -> {cut.token_estimate} tokens"
            )
            if doc.token_estimate > budget:
                notes.append(f"! {doc.path} alone exceeds the {budget}-token budget")

        stopped = False
        for doc in optional:
            if stopped:
                notes.append(f"- {doc.path} [{doc.category.value}] excluded: budget reached")
                continue
            if running + doc.token_estimate <= budget:
                selected.append(doc)
                running += doc.token_estimate
                notes.append(
                    f"+ {doc.path} [{doc.category.value}] {doc.token_estimate} tokens "
                    f"(score {scores[id(doc)]:.3f})"
                )
            else:
                stopped = True
                notes.append(
                    f"- {doc.path} [{doc.category.value}] excluded: {doc.token_estimate} tokens "
                    f"would exceed the budget ({running}/{budget} used)"
                )

        for doc in excluded:
            notes.append(f"- {doc.path} [{doc.category.value}] excluded: category not used by '{task_type}'")

        missing = [
            c.value for c in strategy.required_categories
            if not any(d.category == c for d in docs)
        ]

        rationale = self._build_rationale(task_type, strategy, selected, running, missing, notes)
        logger.info(
            "Selected %d/%d documents for '%s' (%d/%d tokens, %d truncated)",
            len(selected), len(docs), task_type, running, budget, len(truncated),
        )
        return SelectedContext(
            selected_documents=selected,
            total_tokens=running,
            strategy_used=strategy,
            selection_rationale=rationale,
            truncated_paths=truncated,
            applied_max_tokens=budget,
        )

    def score(self, doc: Document, strategy: SelectionStrategy, now: datetime) -> float:
        return strategy.weight_for(doc.category) * self.recency_factor(doc.last_modified, now)

    def recency_factor(self, last_modified: datetime, now: datetime) -> float:
        """Exponential decay by age, bounded to (0, 1]. Future timestamps count as new."""
        half_life = self.config.recency_half_life_days
        if half_life <= 0:
            return 1.0
        if last_modified.tzinfo is None:
            last_modified = last_modified.replace(tzinfo=UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        age_days = max(0.0, (now - last_modified).total_seconds() / 86400.0)
        factor = 0.5 ** (age_days / half_life)
        floor = min(1.0, max(self.config.min_recency_factor, 1e-6))
        return max(floor, min(1.0, factor))

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _order_required(ranked: list[Document], strategy: SelectionStrategy) -> list[Document]:
        """Best document of each required category first, then the rest by score."""
        leaders: list[Document] = []
        for category in strategy.required_categories:
            for doc in ranked:
                if doc.category == category:
                    leaders.append(doc)
                    break
        leaders.sort(key=lambda d: ranked.index(d))
        rest = [d for d in ranked if not any(d is leader for leader in leaders)]
        return leaders + rest

    def _truncate(self, doc: Document, max_tokens: int) -> Document:
        """Keep the leading portion of a document within max_tokens."""
        max_chars = max_tokens * CHARS_PER_TOKEN
        marker = f"\n\n{self.config.truncation_marker}"
        body_chars = max_chars - len(marker)

        if body_chars <= 0:
            text = doc.raw_content[:max_chars]
        else:
            text = doc.raw_content[:body_chars]
            boundary = text.rfind("\n\n")
            if boundary >= int(body_chars * 0.7):
                text = text[:boundary]
            text = text.rstrip() + marker

        return doc.model_copy(update={
            "raw_content": text,
            "token_estimate": estimate_tokens(text),
        })

    @staticmethod
    def _build_rationale(
        task_type: str,
        strategy: SelectionStrategy,
        selected: list[Document],
        total: int,
        missing: list[str],
        notes: list[str],
    ) -> str:
        categories = []
        for doc in selected:
            if doc.category.value not in categories:
                categories.append(doc.category.value)
        lines = [
            f"Selected {len(selected)} document(s) for '{task_type}' "
            f"using {total}/{strategy.max_tokens} tokens.",
            "Required categories: "
            + (", ".join(c.value for c in strategy.required_categories) or "none") + ".",
            "Categories included: " + (", ".join(categories) or "none") + ".",
        ]
        if missing:
            lines.append("No documents found for required categories: " + ", ".join(missing) + ".")
        lines.extend(notes)
        return "\n".join(lines)
