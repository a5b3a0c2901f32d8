"""Tests for contentpilot/orchestrator/template.py: typed template resolution."""

from contentpilot.core.models import Content
from contentpilot.orchestrator.template import (
    NOT_FOUND,
    Found,
    Literal,
    StateRef,
    TaskResultRef,
    is_unresolved,
    parse_template,
    references,
    resolve,
    serialize_value,
)


def lookup_from(results: dict, state: dict):
    def lookup(ref):
        if isinstance(ref, TaskResultRef):
            return Found(results[ref.task_id]) if ref.task_id in results else NOT_FOUND
        return Found(state[ref.key]) if ref.key in state else NOT_FOUND
    return lookup


class TestParseTemplate:
    def test_segments(self):
        segments = parse_template("features: {taskResult:analyze} for {state.content_type}")
        assert segments == [
            Literal("features: "),
            TaskResultRef("analyze"),
            Literal(" for "),
            StateRef("content_type"),
        ]

    def test_plain_text(self):
        assert parse_template("no refs") == [Literal("no refs")]
        assert parse_template("") == []

    def test_other_braces_are_literal(self):
        assert parse_template('{"json": true} {state}') == [Literal('{"json": true} {state}')]

    def test_placeholders(self):
        assert TaskResultRef("a").placeholder == "{taskResult:a}"
        assert StateRef("x.y").placeholder == "{state.x.y}"

    def test_references_nested(self):
        template = {"a": "{taskResult:one}", "b": ["{state.two}", 3], "c": None}
        assert references(template) == [TaskResultRef("one"), StateRef("two")]


class TestResolve:
    def test_dependency_payload_serialized_compactly(self):
        lookup = lookup_from({"analyze": {"features": ["X"]}}, {})
        assert resolve("features: {taskResult:analyze}", lookup) == 'features: {"features":["X"]}'

    def test_strings_inserted_as_is(self):
        lookup = lookup_from({"strategy": "Lead with speed."}, {"content_type": "faq"})
        assert resolve("{state.content_type}: {taskResult:strategy}", lookup) == "faq: Lead with speed."

    def test_unresolved_keeps_placeholder(self):
        lookup = lookup_from({}, {})
        assert resolve("x {taskResult:missing} y {state.nope}", lookup) == "x {taskResult:missing} y {state.nope}"

    def test_nested_templates(self):
        lookup = lookup_from({"a": [1, 2]}, {"n": 3})
        resolved = resolve({"list": ["{taskResult:a}", "{state.n}"], "keep": 7}, lookup)
        assert resolved == {"list": ["[1,2]", "3"], "keep": 7}

    def test_non_string_template_passes_through(self):
        assert resolve(42, lookup_from({}, {})) == 42

    def test_pydantic_payload_dumped(self):
        content = Content(text="# Hi", content_type="faq", passed=True, score=90)
        text = serialize_value(content)
        assert text.startswith('{"text":"# Hi"')

    def test_unicode_kept(self):
        assert serialize_value({"name": "Café"}) == '{"name":"Café"}'


class TestIsUnresolved:
    def test_placeholder_only(self):
        assert is_unresolved("{taskResult:analyze}")
        assert is_unresolved("  {state.x}  ")

    def test_mixed_or_other(self):
        assert not is_unresolved("see {taskResult:analyze}")
        assert not is_unresolved({"a": 1})
