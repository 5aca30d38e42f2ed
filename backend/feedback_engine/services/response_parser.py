"""
Parsing of untrusted model output into an AIAnalysis.

Model replies are free text: the JSON object may be wrapped in prose or code
fences. Parsing happens in two independent stages, both raising
ResponseParseError on failure:

1. locate_json_object: find the first balanced {...} span in the text
2. parse_json_object: strict json.loads of that span, which must be an object

coerce_analysis then repairs missing or malformed fields without raising.
"""

import json
import logging
from typing import Any, Dict

from ..models.feedback import AIAnalysis, MAX_RECOMMENDED_ACTIONS
from .sentiment import classify_sentiment

logger = logging.getLogger(__name__)

DEFAULT_USER_RESPONSE = "Thank you for your feedback!"
DEFAULT_SUMMARY = "Customer provided feedback."
DEFAULT_ACTIONS = ["Review feedback", "Follow up with customer"]


class ResponseParseError(ValueError):
    """Model output did not contain a usable JSON object."""
    pass


def locate_json_object(text: str) -> str:
    """
    Return the first brace-delimited span that closes its opening brace.

    Braces inside JSON string literals are ignored so that values such as
    "use {name}" do not end the span early.
    """
    if not text:
        raise ResponseParseError("Empty model response")

    start = text.find("{")
    if start == -1:
        raise ResponseParseError("No JSON object found in model response")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    raise ResponseParseError("Unterminated JSON object in model response")


def parse_json_object(span: str) -> Dict[str, Any]:
    """Strictly parse a candidate span; anything but a JSON object is rejected."""
    try:
        payload = json.loads(span)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON in model response: {e}") from e

    if not isinstance(payload, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(payload).__name__}")
    return payload


def _text_field(payload: Dict[str, Any], key: str, default: str) -> str:
    value = payload.get(key)
    if isinstance(value, str) and value.strip():
        return value
    if value is not None and not isinstance(value, (str, dict, list)):
        return str(value)
    return default


def coerce_analysis(payload: Dict[str, Any]) -> AIAnalysis:
    """Build an AIAnalysis from a parsed payload, defaulting bad fields."""
    actions = payload.get("recommendedActions")
    if isinstance(actions, list):
        recommended_actions = [a if isinstance(a, str) else json.dumps(a) for a in actions]
        if len(recommended_actions) > MAX_RECOMMENDED_ACTIONS:
            logger.debug(f"Capping {len(recommended_actions)} recommended actions to {MAX_RECOMMENDED_ACTIONS}")
        recommended_actions = recommended_actions[:MAX_RECOMMENDED_ACTIONS]
    else:
        recommended_actions = list(DEFAULT_ACTIONS)

    return AIAnalysis(
        user_response=_text_field(payload, "userResponse", DEFAULT_USER_RESPONSE),
        summary=_text_field(payload, "summary", DEFAULT_SUMMARY),
        sentiment=classify_sentiment(payload.get("sentiment")),
        recommended_actions=recommended_actions,
    )


def parse_model_response(text: str) -> AIAnalysis:
    """Run both parse stages and field repair over raw model text."""
    return coerce_analysis(parse_json_object(locate_json_object(text)))
