"""Structural and content-quality validation for generated markdown.

Each check that fails contributes an error (critical, major or minor) or a
warning. The score starts at 100 and loses a configured penalty per issue,
floored at 0. Content passes when the score reaches the threshold and no
critical error was found.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Callable, Optional

from contentpilot.core.config import QualityGateConfig
from contentpilot.core.models import Severity, ValidationCriteria, ValidationIssue, ValidationResult

logger = logging.getLogger("contentpilot.quality.validator")

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

# Recommended section keywords per page type ("." matches any whitespace).
RECOMMENDED_SECTIONS: dict[str, list[str]] = {
    "homepage": ["features", "getting started", "call.to.action"],
    "about": ["mission", "story", "technology"],
    "faq": ["questions", "answers"],
    "blog": ["introduction", "conclusion"],
}

CTA_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"get started", r"download", r"try now", r"learn more", r"view documentation")
]
STORY_KEYWORDS = ("story", "mission", "vision", "journey", "started", "founded")
TECH_KEYWORDS = ("technology", "built", "using", "stack", "framework")
QUESTION_MARKERS = ("?", "how", "what", "why", "when", "where")
CONCLUSION_KEYWORDS = ("conclusion", "summary", "wrap up", "final thoughts")

REPEATED_LINE_LIMIT = 3
REPEATED_LINE_MIN_CHARS = 20
DOMINANT_WORD_SHARE = 0.20
DOMINANT_WORD_MIN_TOTAL = 20

CONTENT_TYPE_ALIASES = {"blog-post": "blog"}


class _Collector:
    """Accumulates issues for one validation pass."""

    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[str] = []
        self.suggestions: list[str] = []

    def error(self, severity: Severity, message: str, kind: str = "content") -> None:
        self.errors.append(ValidationIssue(severity=severity, message=message, kind=kind))

    def warn(self, message: str, suggestion: str = "") -> None:
        self.warnings.append(message)
        if suggestion and suggestion not in self.suggestions:
            self.suggestions.append(suggestion)


def count_words(text: str) -> int:
    return len(text.split())


class ContentValidator:
    """Scores markdown content for a content type.

    Built-in rules exist for homepage, about, faq and blog. Any other
    content type is validated generically against optional
    ValidationCriteria.
    """

    def __init__(self, config: Optional[QualityGateConfig] = None):
        self.config = config or QualityGateConfig()
        self._type_rules: dict[str, Callable[[str, _Collector], None]] = {
            "homepage": self._check_homepage,
            "about": self._check_about,
            "faq": self._check_faq,
            "blog": self._check_blog,
        }

    def validate(
        self,
        content: str,
        content_type: str,
        criteria: Optional[ValidationCriteria] = None,
    ) -> ValidationResult:
        page_type = content_type.lower()
        page_type = CONTENT_TYPE_ALIASES.get(page_type, page_type)
        issues = _Collector()

        if not content or not content.strip():
            issues.error(Severity.CRITICAL, "Content is empty", kind="content")
            return self._finish(issues, page_type)

        self._check_structure(content, page_type, issues)
        rule = self._type_rules.get(page_type)
        if rule is not None:
            rule(content, issues)
        else:
            self._check_generic(content, criteria, issues)
        self._check_quality(content, issues)
        return self._finish(issues, page_type)

    def score(self, errors: list[ValidationIssue], warnings: list[str]) -> int:
        penalties = {
            Severity.CRITICAL: self.config.critical_penalty,
            Severity.MAJOR: self.config.major_penalty,
            Severity.MINOR: self.config.minor_penalty,
        }
        total = 100
        for error in errors:
            total -= penalties[error.severity]
        total -= self.config.warning_penalty * len(warnings)
        return max(0, total)

    def _finish(self, issues: _Collector, page_type: str) -> ValidationResult:
        score = self.score(issues.errors, issues.warnings)
        has_critical = any(e.severity == Severity.CRITICAL for e in issues.errors)
        passed = score >= self.config.pass_threshold and not has_critical
        logger.debug(
            "Validated %s: score=%d errors=%d warnings=%d passed=%s",
            page_type, score, len(issues.errors), len(issues.warnings), passed,
        )
        return ValidationResult(
            score=score,
            errors=issues.errors,
            warnings=issues.warnings,
            suggestions=issues.suggestions,
            passed=passed,
        )

    # -- structure -------------------------------------------------------------

    def _check_structure(self, content: str, page_type: str, issues: _Collector) -> None:
        lines = content.split("\n")
        h1_count = sum(1 for line in lines if line.startswith("# "))
        if h1_count == 0:
            issues.error(Severity.CRITICAL, "Missing H1 header (# title)", kind="structure")
        elif h1_count > 1:
            issues.warn(
                "Multiple H1 headers found. Consider using H2 for subsections.",
                "Use only one H1 header per page",
            )

        previous_level = 0
        for number, line in enumerate(lines, start=1):
            match = HEADING_RE.match(line)
            if not match:
                continue
            level = len(match.group(1))
            if previous_level and level > previous_level + 1:
                issues.warn(
                    f"Heading level skipped at line {number}: {match.group(2).strip()}",
                    "Use consecutive heading levels (H1, H2, H3) for better structure",
                )
            previous_level = level

        lowered = content.lower()
        for section in RECOMMENDED_SECTIONS.get(page_type, []):
            pattern = section.replace(".", r"\s+")
            if not re.search(pattern, lowered):
                label = section.replace(".", " ")
                issues.warn(
                    f"Missing recommended section: {label}",
                    f"Consider adding a {label} section",
                )

    # -- per content type ------------------------------------------------------

    def _check_homepage(self, content: str, issues: _Collector) -> None:
        if "##" not in content or "- **" not in content:
            issues.error(Severity.MAJOR, "Missing features section with bullet points", kind="structure")

        if not any(p.search(content) for p in CTA_PATTERNS):
            issues.warn(
                "No clear call-to-action found",
                "Add a compelling call-to-action to encourage user engagement",
            )

        words = count_words(content)
        if words < 200:
            issues.error(Severity.MAJOR, f"Content too short: {words} words (minimum 200)", kind="length")
        elif words > 600:
            issues.warn(
                f"Content might be too long: {words} words",
                "Consider breaking into smaller sections for better readability",
            )

    def _check_about(self, content: str, issues: _Collector) -> None:
        lowered = content.lower()
        if not any(k in lowered for k in STORY_KEYWORDS):
            issues.warn(
                "Missing story or mission elements",
                "Add a story or mission statement to build connection with readers",
            )
        if not any(k in lowered for k in TECH_KEYWORDS):
            issues.warn(
                "Missing technology information",
                "Mention the technologies used to build credibility",
            )

    def _check_faq(self, content: str, issues: _Collector) -> None:
        questions = [line for line in content.split("\n") if line.startswith("### ")]
        if len(questions) < 5:
            issues.warn(
                f"Only {len(questions)} questions found. Consider adding more FAQs",
                "Include at least 5-7 common questions",
            )
        for line in questions:
            if not any(marker in line.lower() for marker in QUESTION_MARKERS):
                issues.warn(
                    f'H3 header "{line.strip()}" does not appear to be a question',
                    "Format FAQ headers as clear questions",
                )

    def _check_blog(self, content: str, issues: _Collector) -> None:
        if not self._has_introduction(content):
            issues.warn(
                "Missing introduction paragraph",
                "Add an engaging introduction before the first section",
            )
        lowered = content.lower()
        if not any(k in lowered for k in CONCLUSION_KEYWORDS):
            issues.warn("Missing conclusion section", "Add a conclusion to summarize key points")

        words = count_words(content)
        if words < 400:
            issues.warn(
                f"Blog post might be too short: {words} words",
                "Consider expanding with more details and examples",
            )

    @staticmethod
    def _has_introduction(content: str) -> bool:
        before_sections: list[str] = []
        for line in content.split("\n"):
            match = HEADING_RE.match(line)
            if match and len(match.group(1)) >= 2:
                if "introduction" in match.group(2).lower():
                    return True
                break
            if not match and line.strip():
                before_sections.append(line)
        return bool(before_sections)

    def _check_generic(
        self,
        content: str,
        criteria: Optional[ValidationCriteria],
        issues: _Collector,
    ) -> None:
        if criteria is None:
            return
        words = count_words(content)
        if criteria.min_words and words < criteria.min_words:
            issues.error(
                Severity.MAJOR,
                f"Content too short: {words} words (minimum: {criteria.min_words})",
                kind="length",
            )
        if criteria.max_words and words > criteria.max_words:
            issues.warn(
                f"Content might be too long: {words} words (maximum: {criteria.max_words})",
                "Consider breaking into smaller sections",
            )
        lowered = content.lower()
        for section in criteria.required_sections:
            if section.lower() not in lowered:
                issues.error(Severity.MAJOR, f"Missing required section: {section}", kind="structure")

    # -- content independent ---------------------------------------------------

    def _check_quality(self, content: str, issues: _Collector) -> None:
        sections = re.split(r"^##", content, flags=re.MULTILINE)
        for section in sections[1:]:
            lines = [line for line in section.strip().split("\n") if line.strip()]
            if len(lines) <= 1:
                issues.warn("Empty or very short section found", "Ensure all sections have meaningful content")

        lowered = content.lower()
        for placeholder in self.config.banned_placeholders:
            if placeholder.lower() in lowered:
                issues.error(Severity.MAJOR, f"Placeholder text found: {placeholder}", kind="content")

        self._check_repetition(content, issues)
        self._check_formatting(content, issues)

    def _check_repetition(self, content: str, issues: _Collector) -> None:
        lines = Counter(
            line.strip().lower()
            for line in content.split("\n")
            if len(line.strip()) >= REPEATED_LINE_MIN_CHARS
        )
        for line, count in lines.items():
            if count >= REPEATED_LINE_LIMIT:
                issues.error(
                    Severity.MAJOR,
                    f"Line repeated {count} times: {line[:60]}",
                    kind="content",
                )
                break

        words = re.findall(r"[a-z0-9']+", content.lower())
        if len(words) >= DOMINANT_WORD_MIN_TOTAL:
            word, count = Counter(words).most_common(1)[0]
            if count / len(words) > DOMINANT_WORD_SHARE:
                issues.error(
                    Severity.MAJOR,
                    f"Excessive repetition: '{word}' is {count} of {len(words)} words",
                    kind="content",
                )

    @staticmethod
    def _check_formatting(content: str, issues: _Collector) -> None:
        for number, line in enumerate(content.split("\n"), start=1):
            if line.count("**") % 2:
                issues.warn(
                    f"Unmatched bold markers at line {number}",
                    "Ensure all ** markers are properly paired",
                )
            if len(re.findall(r"(?<!\*)\*(?!\*)", line)) % 2:
                issues.warn(
                    f"Unmatched italic markers at line {number}",
                    "Ensure all * markers are properly paired",
                )

    # -- reporting -------------------------------------------------------------

    def improvement_suggestions(self, result: ValidationResult) -> list[str]:
        """Human-readable next steps for a validation result."""
        suggestions: list[str] = []
        if result.errors:
            suggestions.append("Fix these errors first:")
            suggestions.extend(f"- [{e.severity.value}] {e.message}" for e in result.errors)
        if result.suggestions:
            suggestions.append("Consider these improvements:")
            suggestions.extend(f"- {s}" for s in result.suggestions)

        if result.passed and result.score >= 90:
            suggestions.append("Excellent content quality. Ready for publication.")
        elif result.passed:
            suggestions.append("Good content quality with room for minor improvements.")
        else:
            suggestions.append("Content needs significant improvements before publication.")
        return suggestions
