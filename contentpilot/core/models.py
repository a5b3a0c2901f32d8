"""All Pydantic data models for ContentPilot.

Defines the data contracts shared by the context selector, provider
dispatcher, quality gate and task orchestrator. Every record that crosses a
component boundary has a model here.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

CHARS_PER_TOKEN = 4


def _new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(UTC)


def estimate_tokens(text: str) -> int:
    """Rough token count for budget packing (about four characters per token)."""
    if not text:
        return 0
    return max(1, (len(text) + CHARS_PER_TOKEN - 1) // CHARS_PER_TOKEN)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DocumentCategory(str, enum.Enum):
    README = "readme"
    CHANGELOG = "changelog"
    GUIDE = "guide"
    API_DOC = "api-doc"
    EXAMPLE = "example"
    OTHER = "other"


class Severity(str, enum.Enum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


# ---------------------------------------------------------------------------
# Documents and context selection
# ---------------------------------------------------------------------------

class Document(BaseModel):
    """Immutable snapshot of one project file supplied by a document store."""

    model_config = ConfigDict(frozen=True)

    path: str
    raw_content: str
    category: DocumentCategory = DocumentCategory.OTHER
    token_estimate: int = Field(default=0, ge=0)
    last_modified: datetime = Field(default_factory=_now)

    @model_validator(mode="before")
    @classmethod
    def _fill_token_estimate(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("token_estimate") is None:
            data = dict(data)
            data["token_estimate"] = estimate_tokens(data.get("raw_content", ""))
        return data


class SelectionStrategy(BaseModel):
    """Per-task-type rules for which documents are eligible and how they rank."""

    task_type: str
    max_tokens: int = Field(gt=0)
    required_categories: list[DocumentCategory] = Field(default_factory=list)
    optional_categories: list[DocumentCategory] = Field(default_factory=list)
    priority_weights: dict[DocumentCategory, float] = Field(default_factory=dict)

    @property
    def eligible_categories(self) -> set[DocumentCategory]:
        return set(self.required_categories) | set(self.optional_categories)

    def weight_for(self, category: DocumentCategory) -> float:
        return self.priority_weights.get(category, 0.1)

    def is_required(self, category: DocumentCategory) -> bool:
        return category in self.required_categories


class SelectedContext(BaseModel):
    """Output of the context selector. Consumed once by a task handler."""

    selected_documents: list[Document] = Field(default_factory=list)
    total_tokens: int = 0
    strategy_used: SelectionStrategy
    selection_rationale: str = ""
    truncated_paths: list[str] = Field(default_factory=list)
    applied_max_tokens: int = 0

    @property
    def categories(self) -> list[DocumentCategory]:
        seen: list[DocumentCategory] = []
        for doc in self.selected_documents:
            if doc.category not in seen:
                seen.append(doc.category)
        return seen

    def to_prompt(self) -> str:
        """Render the selected documents as a prompt section."""
        if not self.selected_documents:
            return "(no project documents available)"
        parts = []
        for doc in self.selected_documents:
            parts.append(f"### {doc.path} ({doc.category.value})\n{doc.raw_content.strip()}")
        return "\n\n".join(parts)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class Task(BaseModel):
    """A named unit of work with declared dependencies and a template input."""

    model_config = ConfigDict(frozen=True)

    id: str
    handler_name: str
    input_template: Any = ""
    depends_on: list[str] = Field(default_factory=list)
    description: str = ""


class TaskMetadata(BaseModel):
    latency_ms: float = 0.0
    confidence: float = 0.0
    tokens_used: int = 0
    extra: dict[str, Any] = Field(default_factory=dict)


class TaskResult(BaseModel):
    """Standardized output of one task execution."""

    task_id: str
    success: bool
    payload: Any = None
    error: Optional[str] = None
    metadata: TaskMetadata = Field(default_factory=TaskMetadata)


# ---------------------------------------------------------------------------
# Validation and generated content
# ---------------------------------------------------------------------------

class ValidationIssue(BaseModel):
    severity: Severity
    message: str
    kind: str = "content"  # "structure", "format", "content", "length"


class ValidationCriteria(BaseModel):
    """Caller-supplied rules for content types without built-in rules."""

    min_words: Optional[int] = None
    max_words: Optional[int] = None
    required_sections: list[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    score: int = 100
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    passed: bool = True

    @property
    def has_critical(self) -> bool:
        return any(e.severity == Severity.CRITICAL for e in self.errors)


class Content(BaseModel):
    """Result of the quality gate. Always usable, possibly low-confidence."""

    text: str
    content_type: str
    passed: bool
    score: int
    attempts: int = 0
    used_fallback: bool = False
    provider: Optional[str] = None
    tokens_used: int = 0
    validation: Optional[ValidationResult] = None
    best_attempt_score: Optional[int] = None

    @property
    def confidence(self) -> float:
        return round(self.score / 100.0, 2)


# ---------------------------------------------------------------------------
# Provider requests and responses
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    role: str  # "system", "user", "assistant"
    content: str


class GenerationRequest(BaseModel):
    messages: list[ChatMessage]
    temperature: float = 0.7
    max_tokens: int = 2000
    timeout_seconds: Optional[float] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_prompt(
        cls,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs: Any,
    ) -> "GenerationRequest":
        messages = []
        if system_prompt:
            messages.append(ChatMessage(role="system", content=system_prompt))
        messages.append(ChatMessage(role="user", content=prompt))
        return cls(messages=messages, **kwargs)

    @property
    def prompt_text(self) -> str:
        return "\n".join(m.content for m in self.messages)


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ProviderResponse(BaseModel):
    content: str
    model: str
    provider: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    cost_usd: float = 0.0
    latency_ms: float = 0.0
    created_at: datetime = Field(default_factory=_now)


class TokenCostRecord(BaseModel):
    """Per-call token usage and cost attribution."""

    model_config = ConfigDict(protected_namespaces=())

    id: uuid.UUID = Field(default_factory=_new_uuid)
    task_id: Optional[str] = None
    provider: str = ""
    model_used: str
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    created_at: datetime = Field(default_factory=_now)
