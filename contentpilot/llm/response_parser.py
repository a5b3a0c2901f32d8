"""Parsing helpers for raw model output."""

from __future__ import annotations

import json
import re
from typing import Any, Optional

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n(.*?)```", re.DOTALL)
_WRAPPED_RE = re.compile(r"```(?:markdown|md)?[ \t]*\n(.*?)\n?```", re.DOTALL)


def unwrap_markdown(text: str) -> str:
    """Strip a fence wrapping the whole response (```markdown ... ```)."""
    stripped = text.strip()
    match = _WRAPPED_RE.fullmatch(stripped)
    return match.group(1).strip() if match else stripped


def parse_json_payload(text: str) -> Optional[dict[str, Any]]:
    """Extract the first JSON object from model output.

    Tries, in order: a fenced ```json block, the whole text, and the
    outermost {...} span. Returns None when nothing parses to a dict.
    """
    if not text or not text.strip():
        return None

    candidates: list[str] = []
    match = _FENCE_RE.search(text)
    if match:
        candidates.append(match.group(1).strip())
    candidates.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None
