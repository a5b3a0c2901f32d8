"""Tests for contentpilot/quality/validator.py: structural and content checks."""

import pytest

from contentpilot.core.config import QualityGateConfig
from contentpilot.core.models import Severity, ValidationCriteria
from contentpilot.quality.fallbacks import render_fallback
from contentpilot.quality.validator import ContentValidator, count_words

from tests.conftest import GOOD_HOMEPAGE


@pytest.fixture
def validator() -> ContentValidator:
    return ContentValidator()


def _messages(result) -> list[str]:
    return [e.message for e in result.errors]


class TestScoring:
    def test_good_homepage_passes(self, validator):
        result = validator.validate(GOOD_HOMEPAGE, "homepage")
        assert result.passed
        assert result.score >= 90
        assert result.errors == []

    def test_empty_is_critical(self, validator):
        result = validator.validate("   \n", "homepage")
        assert not result.passed
        assert result.errors[0].severity is Severity.CRITICAL
        assert result.score == 75

    def test_penalties(self, validator):
        errors = validator.validate("", "generic").errors
        assert validator.score(errors, ["w1", "w2"]) == 100 - 25 - 2 * 2

    def test_score_floor_is_zero(self, validator):
        errors = validator.validate("", "generic").errors * 10
        assert validator.score(errors, []) == 0

    def test_critical_fails_even_with_high_score(self):
        validator = ContentValidator(QualityGateConfig(critical_penalty=0))
        result = validator.validate("No heading here, just a sentence.", "generic")
        assert result.score == 100
        assert not result.passed

    def test_threshold_configurable(self):
        strict = ContentValidator(QualityGateConfig(pass_threshold=101))
        assert not strict.validate(GOOD_HOMEPAGE, "homepage").passed


class TestStructure:
    def test_missing_h1(self, validator):
        result = validator.validate("## Section\n\nText here.", "generic")
        assert "Missing H1 header (# title)" in _messages(result)
        assert result.has_critical

    def test_multiple_h1(self, validator):
        result = validator.validate("# One\n\ntext\n\n# Two\n\ntext", "generic")
        assert any("Multiple H1" in w for w in result.warnings)

    def test_skipped_heading_level(self, validator):
        result = validator.validate("# Title\n\n### Deep\n\ntext", "generic")
        assert any("Heading level skipped at line 3" in w for w in result.warnings)

    def test_recommended_sections(self, validator):
        result = validator.validate("# Blog\n\nSome text.\n", "blog")
        assert "Missing recommended section: introduction" in result.warnings
        assert "Missing recommended section: conclusion" in result.warnings


class TestHomepage:
    def test_missing_features_and_short(self, validator):
        result = validator.validate("# Tool\n\nA tool. Get started now.\n", "homepage")
        messages = _messages(result)
        assert "Missing features section with bullet points" in messages
        assert any(m.startswith("Content too short") for m in messages)
        assert not result.passed

    def test_missing_cta(self, validator):
        text = GOOD_HOMEPAGE.replace("Get Started Today", "Next").replace("Getting Started", "Setup")
        text = text.replace("Get Started", "Begin")
        result = validator.validate(text, "homepage")
        assert "No clear call-to-action found" in result.warnings

    def test_too_long_is_a_warning(self, validator):
        filler = "\n\n".join(f"Paragraph {i} explains a distinct benefit in plain words." for i in range(80))
        result = validator.validate(GOOD_HOMEPAGE + "\n\n## More\n\n" + filler, "homepage")
        assert any(w.startswith("Content might be too long") for w in result.warnings)


class TestOtherTypes:
    def test_about_template_passes(self, validator):
        assert validator.validate(render_fallback("about", name="Lumen"), "about").passed

    def test_about_missing_story_and_tech(self, validator):
        result = validator.validate("# About\n\nWe like dashboards.\n", "about")
        assert "Missing story or mission elements" in result.warnings
        assert "Missing technology information" in result.warnings

    def test_faq_too_few_questions(self, validator):
        text = "# FAQ\n\n## Questions and answers\n\n### What is it?\n\nA tool.\n\n### Pricing\n\nFree.\n"
        result = validator.validate(text, "faq")
        assert any(w.startswith("Only 2 questions found") for w in result.warnings)
        assert any('"### Pricing" does not appear to be a question' in w for w in result.warnings)

    def test_blog_alias(self, validator):
        text = render_fallback("blog", name="Lumen")
        assert validator.validate(text, "blog-post").passed
        assert validator.validate(text, "blog-post").warnings == validator.validate(text, "blog").warnings

    def test_blog_intro_from_leading_prose(self, validator):
        text = "# Post\n\nOpening words.\n\n## Body\n\nMore words.\n\n## Conclusion\n\nDone here."
        result = validator.validate(text, "blog")
        assert "Missing introduction paragraph" not in result.warnings

    def test_blog_without_intro(self, validator):
        text = "# Post\n\n## Body\n\nMore words.\n\n## Conclusion\n\nDone."
        assert "Missing introduction paragraph" in validator.validate(text, "blog").warnings


class TestGenericCriteria:
    def test_without_criteria_only_common_checks(self, validator):
        assert validator.validate("# Title\n\nShort text.", "release-notes").passed

    def test_min_words_and_sections(self, validator):
        criteria = ValidationCriteria(min_words=50, required_sections=["Install", "Usage"])
        result = validator.validate("# Title\n\n## Install\n\npip install x\n", "readme", criteria)
        messages = _messages(result)
        assert any(m.startswith("Content too short") for m in messages)
        assert "Missing required section: Usage" in messages
        assert "Missing required section: Install" not in messages

    def test_max_words_warning(self, validator):
        criteria = ValidationCriteria(max_words=5)
        result = validator.validate("# Title\n\none two three four five six", "notes", criteria)
        assert any("too long" in w for w in result.warnings)


class TestContentQuality:
    def test_placeholders(self, validator):
        result = validator.validate("# Title\n\nLorem ipsum dolor [TODO] sit.", "generic")
        messages = _messages(result)
        assert "Placeholder text found: lorem ipsum" in messages
        assert "Placeholder text found: [todo]" in messages

    def test_repeated_lines(self, validator):
        line = "This sentence is repeated verbatim again."
        result = validator.validate("# Title\n\n" + "\n".join([line] * 3), "generic")
        assert any(m.startswith("Line repeated 3 times") for m in _messages(result))

    def test_short_repeated_lines_ignored(self, validator):
        result = validator.validate("# Title\n\n" + "\n".join(["- yes"] * 5), "generic")
        assert not any(m.startswith("Line repeated") for m in _messages(result))

    def test_dominant_word(self, validator):
        text = "# Title\n\n" + " ".join(["synergy"] * 10 + [f"word{i}" for i in range(20)])
        result = validator.validate(text, "generic")
        assert any(m.startswith("Excessive repetition: 'synergy'") for m in _messages(result))

    def test_empty_section(self, validator):
        result = validator.validate("# Title\n\nIntro.\n\n## Empty\n\n## Full\n\nText.", "generic")
        assert "Empty or very short section found" in result.warnings

    def test_unmatched_markers(self, validator):
        result = validator.validate("# Title\n\nThis is **bold and *italic.", "generic")
        assert "Unmatched bold markers at line 3" in result.warnings
        assert "Unmatched italic markers at line 3" in result.warnings


class TestSuggestions:
    def test_errors_listed_first(self, validator):
        result = validator.validate("", "homepage")
        lines = validator.improvement_suggestions(result)
        assert lines[0] == "Fix these errors first:"
        assert lines[-1] == "Content needs significant improvements before publication."

    def test_excellent(self, validator):
        result = validator.validate(GOOD_HOMEPAGE, "homepage")
        assert validator.improvement_suggestions(result)[-1].startswith("Excellent")


class TestCountWords:
    def test_whitespace_split(self):
        assert count_words("one  two\nthree") == 3
