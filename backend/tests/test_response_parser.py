"""
Tests for the two-stage model response parser.
"""

import json
import pytest

from feedback_engine.models.feedback import Sentiment
from feedback_engine.services.response_parser import (
    DEFAULT_ACTIONS,
    DEFAULT_SUMMARY,
    DEFAULT_USER_RESPONSE,
    ResponseParseError,
    coerce_analysis,
    locate_json_object,
    parse_json_object,
    parse_model_response,
)

VALID_PAYLOAD = {
    "userResponse": "Thanks for the kind words about delivery!",
    "summary": "Customer praised fast delivery.",
    "sentiment": "positive",
    "recommendedActions": ["Share with logistics team", "Keep delivery SLAs"],
}


class TestLocateJsonObject:
    """Stage 1: finding the candidate span."""

    def test_bare_object(self):
        text = json.dumps(VALID_PAYLOAD)
        assert locate_json_object(text) == text

    def test_object_wrapped_in_prose_and_fences(self):
        body = json.dumps(VALID_PAYLOAD)
        text = f"Sure! Here is the analysis:\n```json\n{body}\n```\nLet me know if you need more."

        assert locate_json_object(text) == body

    def test_first_object_wins(self):
        text = '{"a": 1} and then {"b": 2}'
        assert locate_json_object(text) == '{"a": 1}'

    def test_nested_objects_and_braces_in_strings(self):
        text = 'prefix {"summary": "use {name} here }", "meta": {"k": "v"}} suffix'
        assert locate_json_object(text) == '{"summary": "use {name} here }", "meta": {"k": "v"}}'

    def test_escaped_quote_inside_string(self):
        text = '{"summary": "said \\"hi}\\" loudly"}'
        assert locate_json_object(text) == text

    @pytest.mark.parametrize("text", ["", "no json here", "[1, 2, 3]"])
    def test_no_object(self, text):
        with pytest.raises(ResponseParseError):
            locate_json_object(text)

    def test_unterminated_object(self):
        with pytest.raises(ResponseParseError):
            locate_json_object('{"summary": "cut off')


class TestParseJsonObject:
    """Stage 2: strict parsing of the span."""

    def test_valid_object(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_invalid_json(self):
        with pytest.raises(ResponseParseError):
            parse_json_object("{'single': 'quotes'}")

    def test_trailing_comma_is_rejected(self):
        with pytest.raises(ResponseParseError):
            parse_json_object('{"a": 1,}')


class TestCoerceAnalysis:
    """Field repair without raising."""

    def test_well_formed_payload_is_mirrored(self):
        analysis = coerce_analysis(VALID_PAYLOAD)

        assert analysis.user_response == VALID_PAYLOAD["userResponse"]
        assert analysis.summary == VALID_PAYLOAD["summary"]
        assert analysis.sentiment is Sentiment.POSITIVE
        assert analysis.recommended_actions == VALID_PAYLOAD["recommendedActions"]

    def test_missing_fields_get_defaults(self):
        analysis = coerce_analysis({})

        assert analysis.user_response == DEFAULT_USER_RESPONSE
        assert analysis.summary == DEFAULT_SUMMARY
        assert analysis.sentiment is Sentiment.NEUTRAL
        assert analysis.recommended_actions == DEFAULT_ACTIONS

    def test_blank_strings_get_defaults(self):
        analysis = coerce_analysis({"userResponse": "  ", "summary": ""})

        assert analysis.user_response == DEFAULT_USER_RESPONSE
        assert analysis.summary == DEFAULT_SUMMARY

    def test_unrecognized_sentiment_is_neutral(self):
        analysis = coerce_analysis({**VALID_PAYLOAD, "sentiment": "ecstatic"})
        assert analysis.sentiment is Sentiment.NEUTRAL

    def test_sentiment_case_is_normalized(self):
        analysis = coerce_analysis({**VALID_PAYLOAD, "sentiment": "Negative"})
        assert analysis.sentiment is Sentiment.NEGATIVE

    def test_actions_capped_at_four(self):
        actions = [f"action {i}" for i in range(7)]
        analysis = coerce_analysis({**VALID_PAYLOAD, "recommendedActions": actions})

        assert analysis.recommended_actions == actions[:4]

    def test_non_list_actions_get_defaults(self):
        analysis = coerce_analysis({**VALID_PAYLOAD, "recommendedActions": "call them"})
        assert analysis.recommended_actions == DEFAULT_ACTIONS

    def test_empty_action_list_is_kept(self):
        analysis = coerce_analysis({**VALID_PAYLOAD, "recommendedActions": []})
        assert analysis.recommended_actions == []

    def test_non_string_actions_are_stringified(self):
        analysis = coerce_analysis({**VALID_PAYLOAD, "recommendedActions": ["call", 3]})
        assert analysis.recommended_actions == ["call", "3"]


class TestParseModelResponse:
    """Both stages plus repair."""

    def test_end_to_end(self):
        text = "Analysis follows.\n" + json.dumps(VALID_PAYLOAD)
        analysis = parse_model_response(text)

        assert analysis.summary == VALID_PAYLOAD["summary"]

    def test_both_failure_modes_raise_the_same_error(self):
        with pytest.raises(ResponseParseError):
            parse_model_response("nothing useful")
        with pytest.raises(ResponseParseError):
            parse_model_response("{not json}")
