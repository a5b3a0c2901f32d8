"""Task input templates as a small typed AST.

A template string is parsed once into literal segments and typed references:

    "features: {taskResult:analyze} for {state.content_type}"
      -> [Literal("features: "), TaskResultRef("analyze"),
          Literal(" for "), StateRef("content_type")]

Resolution asks a lookup function for each reference. The lookup answers
Found(value) or NOT_FOUND; unresolved references keep their placeholder
text so a handler can see what was missing.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Union

from pydantic import BaseModel

PLACEHOLDER_RE = re.compile(r"\{taskResult:([^{}\s]+)\}|\{state\.([^{}\s]+)\}")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class TaskResultRef:
    task_id: str

    @property
    def placeholder(self) -> str:
        return "{taskResult:" + self.task_id + "}"


@dataclass(frozen=True)
class StateRef:
    key: str

    @property
    def placeholder(self) -> str:
        return "{state." + self.key + "}"


Reference = Union[TaskResultRef, StateRef]
Segment = Union[Literal, TaskResultRef, StateRef]


@dataclass(frozen=True)
class Found:
    value: Any


class NotFound:
    """Answer of a lookup that has no value for a reference."""

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = NotFound()

Lookup = Callable[[Reference], Union[Found, NotFound]]


def parse_template(text: str) -> list[Segment]:
    segments: list[Segment] = []
    position = 0
    for match in PLACEHOLDER_RE.finditer(text):
        if match.start() > position:
            segments.append(Literal(text[position:match.start()]))
        task_id, state_key = match.groups()
        segments.append(TaskResultRef(task_id) if task_id is not None else StateRef(state_key))
        position = match.end()
    if position < len(text):
        segments.append(Literal(text[position:]))
    return segments


def references(template: Any) -> list[Reference]:
    """Every reference in a (possibly nested) template, in order."""
    if isinstance(template, str):
        return [s for s in parse_template(template) if not isinstance(s, Literal)]
    if isinstance(template, dict):
        return [r for value in template.values() for r in references(value)]
    if isinstance(template, (list, tuple)):
        return [r for item in template for r in references(item)]
    return []


def serialize_value(value: Any) -> str:
    """Text form of a payload or state value. Strings pass through unchanged."""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def render(segments: list[Segment], lookup: Lookup) -> str:
    parts: list[str] = []
    for segment in segments:
        if isinstance(segment, Literal):
            parts.append(segment.text)
            continue
        answer = lookup(segment)
        if isinstance(answer, Found):
            parts.append(serialize_value(answer.value))
        else:
            parts.append(segment.placeholder)
    return "".join(parts)


def resolve(template: Any, lookup: Lookup) -> Any:
    """Resolve a template string, or strings nested in dicts and lists.

    Non-string leaves pass through untouched.
    """
    if isinstance(template, str):
        return render(parse_template(template), lookup)
    if isinstance(template, dict):
        return {key: resolve(value, lookup) for key, value in template.items()}
    if isinstance(template, (list, tuple)):
        return [resolve(item, lookup) for item in template]
    return template


def is_unresolved(value: Any) -> bool:
    """True for a string that is nothing but one unresolved placeholder."""
    return isinstance(value, str) and PLACEHOLDER_RE.fullmatch(value.strip()) is not None
