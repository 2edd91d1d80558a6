"""Tests for strict LLM response decoding."""

import pytest

from briefing.common.errors import ParseError
from briefing.common.llm_utils import decode_json_object, strip_code_fence


class TestDecodeJsonObject:
    def test_valid_json(self):
        assert decode_json_object('{"key": "value"}') == {"key": "value"}

    def test_json_with_markdown_fences(self):
        raw = '```json\n{"capture": true, "reason": "test"}\n```'
        assert decode_json_object(raw) == {"capture": True, "reason": "test"}

    def test_json_with_plain_fences(self):
        assert decode_json_object('```\n{"a": 1}\n```') == {"a": 1}

    def test_json_embedded_in_text_is_rejected(self):
        raw = 'Here is the result: {"key": "value"} and some trailing text.'
        with pytest.raises(ParseError, match="not valid JSON"):
            decode_json_object(raw)

    def test_text_after_fence_is_rejected(self):
        with pytest.raises(ParseError):
            decode_json_object('```json\n{"a": 1}\n```\nHope this helps!')

    def test_empty_string(self):
        with pytest.raises(ParseError, match="Empty"):
            decode_json_object("   ")

    def test_array_is_not_an_object(self):
        with pytest.raises(ParseError, match="Expected a JSON object"):
            decode_json_object("[1, 2]")

    def test_error_keeps_raw_text(self):
        with pytest.raises(ParseError) as exc:
            decode_json_object('{"broken: json')
        assert exc.value.raw == '{"broken: json'


class TestStripCodeFence:
    def test_unfenced_text_unchanged(self):
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'

    def test_fence_removed(self):
        assert strip_code_fence('```json\n[1]\n```') == "[1]"
