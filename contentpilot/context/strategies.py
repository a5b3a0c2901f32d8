"""Default context selection strategies, one per supported task type."""

from __future__ import annotations

from typing import Any

from contentpilot.core.models import DocumentCategory as C
from contentpilot.core.models import SelectionStrategy

MARKETING_CONTENT = "marketing-content"
TECHNICAL_DOCS = "technical-docs"
API_DOCUMENTATION = "api-documentation"
USER_GUIDE = "user-guide"
CHANGELOG = "changelog"
README_ENHANCEMENT = "readme-enhancement"
PROJECT_ANALYSIS = "project-analysis"
FEATURE_EXTRACTION = "feature-extraction"
GENERAL = "general"


DEFAULT_STRATEGIES: dict[str, SelectionStrategy] = {
    s.task_type: s
    for s in [
        SelectionStrategy(
            task_type=MARKETING_CONTENT,
            max_tokens=8000,
            required_categories=[C.README],
            optional_categories=[C.GUIDE, C.EXAMPLE, C.CHANGELOG],
            priority_weights={C.README: 1.0, C.GUIDE: 0.8, C.EXAMPLE: 0.6, C.CHANGELOG: 0.5,
                              C.API_DOC: 0.3, C.OTHER: 0.2},
        ),
        SelectionStrategy(
            task_type=TECHNICAL_DOCS,
            max_tokens=12000,
            required_categories=[C.GUIDE, C.API_DOC],
            optional_categories=[C.README, C.EXAMPLE, C.OTHER],
            priority_weights={C.GUIDE: 1.0, C.API_DOC: 0.9, C.README: 0.7, C.EXAMPLE: 0.6,
                              C.CHANGELOG: 0.3, C.OTHER: 0.2},
        ),
        SelectionStrategy(
            task_type=API_DOCUMENTATION,
            max_tokens=10000,
            required_categories=[C.API_DOC],
            optional_categories=[C.GUIDE, C.EXAMPLE, C.README],
            priority_weights={C.API_DOC: 1.0, C.GUIDE: 0.8, C.EXAMPLE: 0.7, C.README: 0.5,
                              C.CHANGELOG: 0.2, C.OTHER: 0.1},
        ),
        SelectionStrategy(
            task_type=USER_GUIDE,
            max_tokens=8000,
            required_categories=[C.GUIDE, C.README],
            optional_categories=[C.EXAMPLE],
            priority_weights={C.GUIDE: 1.0, C.README: 0.9, C.EXAMPLE: 0.8, C.API_DOC: 0.4,
                              C.CHANGELOG: 0.3, C.OTHER: 0.2},
        ),
        SelectionStrategy(
            task_type=CHANGELOG,
            max_tokens=6000,
            required_categories=[C.CHANGELOG],
            optional_categories=[C.README, C.GUIDE],
            priority_weights={C.CHANGELOG: 1.0, C.README: 0.6, C.GUIDE: 0.4, C.API_DOC: 0.2,
                              C.EXAMPLE: 0.2, C.OTHER: 0.1},
        ),
        SelectionStrategy(
            task_type=README_ENHANCEMENT,
            max_tokens=8000,
            required_categories=[C.README],
            optional_categories=[C.GUIDE, C.EXAMPLE, C.CHANGELOG],
            priority_weights={C.README: 1.0, C.GUIDE: 0.7, C.EXAMPLE: 0.5, C.CHANGELOG: 0.4,
                              C.API_DOC: 0.3, C.OTHER: 0.2},
        ),
        SelectionStrategy(
            task_type=PROJECT_ANALYSIS,
            max_tokens=16000,
            required_categories=[C.README],
            optional_categories=[C.GUIDE, C.API_DOC, C.EXAMPLE, C.CHANGELOG, C.OTHER],
            priority_weights={C.README: 1.0, C.GUIDE: 0.9, C.API_DOC: 0.6, C.EXAMPLE: 0.5,
                              C.CHANGELOG: 0.4, C.OTHER: 0.3},
        ),
        SelectionStrategy(
            task_type=FEATURE_EXTRACTION,
            max_tokens=10000,
            required_categories=[C.README],
            optional_categories=[C.GUIDE, C.EXAMPLE],
            priority_weights={C.README: 1.0, C.GUIDE: 0.8, C.EXAMPLE: 0.6, C.API_DOC: 0.4,
                              C.CHANGELOG: 0.3, C.OTHER: 0.2},
        ),
        SelectionStrategy(
            task_type=GENERAL,
            max_tokens=8000,
            required_categories=[C.README],
            optional_categories=[C.GUIDE, C.EXAMPLE, C.API_DOC, C.CHANGELOG],
            priority_weights={C.README: 1.0, C.GUIDE: 0.8, C.API_DOC: 0.6, C.EXAMPLE: 0.5,
                              C.CHANGELOG: 0.4, C.OTHER: 0.3},
        ),
    ]
}


def custom_strategy(base: SelectionStrategy, **overrides: Any) -> SelectionStrategy:
    """Derive a strategy from an existing one, replacing the given fields."""
    data = base.model_dump()
    data.update(overrides)
    return SelectionStrategy(**data)
