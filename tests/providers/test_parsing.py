"""Tests for LLM response decoding."""

import json

import pytest

from suggestion_engine.core.types import SuggestionSource
from suggestion_engine.exceptions import ParseError
from suggestion_engine.providers import ParseResult, decode_suggestions, strip_code_fences


def payload(key="suggestions", **item):
    entry = {"suggested_text": "Hola", "confidence": 0.9}
    entry.update(item)
    return json.dumps({key: [entry]})


def decode(raw, key="suggestions"):
    return decode_suggestions(raw, key, SuggestionSource.NEURAL, "neural")


class TestStripCodeFences:
    """Tests for markdown fence removal."""

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestDecodeSuggestions:
    """Tests for schema-validated decoding."""

    def test_valid_payload(self):
        """Valid JSON becomes tagged suggestions."""
        result = decode(payload(reasoning="greeting", alternatives=["Buenas", " "]))

        assert result.ok
        [suggestion] = result.unwrap()
        assert suggestion.text == "Hola"
        assert suggestion.confidence == 0.9
        assert suggestion.source == SuggestionSource.NEURAL
        assert suggestion.provider_id == "neural"
        assert suggestion.reasoning == "greeting"
        assert suggestion.alternatives == ("Buenas",)

    def test_fenced_payload(self):
        """Fenced output decodes like bare JSON."""
        result = decode(f"```json\n{payload()}\n```")
        assert result.ok
        assert result.unwrap()[0].text == "Hola"

    def test_text_alias(self):
        """Items may use "text" instead of "suggested_text"."""
        raw = json.dumps({"suggestions": [{"text": "  Hola  ", "confidence": 0.5}]})
        assert decode(raw).unwrap()[0].text == "Hola"

    def test_predictions_key(self):
        """The predictive schema reads the "predictions" array."""
        result = decode(payload(key="predictions"), key="predictions")
        assert result.ok
        assert len(result.unwrap()) == 1

    def test_empty_list_is_valid(self):
        """An explicit empty list is a valid answer, not an error."""
        result = decode('{"suggestions": []}')
        assert result.ok
        assert result.unwrap() == []

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "I think you should say hola",
            '{"suggestions": "nope"}',
            '{"other": []}',
            '{"suggestions": [{"suggested_text": "Hola"}]}',
            '{"suggestions": [{"suggested_text": "Hola", "confidence": 1.5}]}',
            '{"suggestions": [{"suggested_text": "   ", "confidence": 0.5}]}',
        ],
    )
    def test_malformed_payloads_fail(self, raw):
        """Malformed output is a ParseError, never an empty success."""
        result = decode(raw)
        assert not result.ok
        assert isinstance(result.error, ParseError)
        with pytest.raises(ParseError):
            result.unwrap()

    def test_wrong_key_fails(self):
        """A payload for the other schema does not validate."""
        result = decode(payload(key="suggestions"), key="predictions")
        assert not result.ok

    def test_unknown_schema(self):
        result = decode(payload(), key="answers")
        assert not result.ok
        assert "answers" in str(result.error)

    def test_raw_is_truncated(self):
        result = decode("x" * 1000)
        assert len(result.error.raw) == 200


class TestParseResult:
    """Tests for the tagged result type."""

    def test_success(self):
        result = ParseResult.success([1, 2])
        assert result.ok
        assert result.unwrap() == [1, 2]

    def test_failure(self):
        error = ParseError("bad")
        result = ParseResult.failure(error)
        assert not result.ok
        assert result.value is None
        with pytest.raises(ParseError):
            result.unwrap()
