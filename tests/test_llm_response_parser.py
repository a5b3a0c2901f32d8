"""Tests for contentpilot/llm/response_parser.py."""

from contentpilot.llm.response_parser import parse_json_payload, unwrap_markdown


class TestParseJsonPayload:
    def test_plain_json(self):
        assert parse_json_payload('{"key": "value"}') == {"key": "value"}

    def test_json_with_fences(self):
        assert parse_json_payload('```json\n{"key": "value"}\n```') == {"key": "value"}

    def test_json_with_plain_fences(self):
        assert parse_json_payload('```\n{"key": "value"}\n```') == {"key": "value"}

    def test_json_inside_prose(self):
        text = 'Here is the analysis:\n{"name": "Lumen", "features": ["X"]}\nHope this helps.'
        assert parse_json_payload(text) == {"name": "Lumen", "features": ["X"]}

    def test_not_json(self):
        assert parse_json_payload("not json at all") is None

    def test_empty(self):
        assert parse_json_payload("") is None
        assert parse_json_payload("   ") is None

    def test_list_is_not_a_payload(self):
        assert parse_json_payload("[1, 2, 3]") is None


class TestUnwrapMarkdown:
    def test_unwraps_markdown_fence(self):
        assert unwrap_markdown("```markdown\n# Title\n\nBody\n```") == "# Title\n\nBody"

    def test_unwraps_bare_fence(self):
        assert unwrap_markdown("```\n# Title\n```") == "# Title"

    def test_leaves_inner_code_blocks(self):
        text = "# Title\n\n```bash\npip install x\n```"
        assert unwrap_markdown(text) == text

    def test_strips_whitespace(self):
        assert unwrap_markdown("\n\n# Title\n\n") == "# Title"
