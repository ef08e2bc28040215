"""Response interpreter: fences, doubled escapes, quoted JSON, embedded objects, error context."""
import pytest

from cvextract.extraction.response import find_balanced_object, parse_json_response
from cvextract.llm.errors import LLMResponseInvalid


def test_fenced_json_block() -> None:
    assert parse_json_response('```json\n{"a":1}\n```') == {"a": 1}


def test_fence_without_language_tag() -> None:
    assert parse_json_response('```\n{"a": [1, 2]}\n```') == {"a": [1, 2]}


def test_doubled_escaped_newlines_match_single_escape() -> None:
    single = parse_json_response('{"d": "line one\\nline two\\tend"}')
    doubled = parse_json_response('{"d": "line one\\\\nline two\\\\tend"}')
    assert doubled == single
    assert single["d"] == "line one\nline two\tend"


def test_prose_around_object() -> None:
    assert parse_json_response('Here is the result: {"a":1} Thanks!') == {"a": 1}


def test_quoted_json_string_is_unwrapped() -> None:
    raw = '"{\\"name\\": \\"Ada\\", \\"skills\\": [\\"math\\"]}"'
    assert parse_json_response(raw) == {"name": "Ada", "skills": ["math"]}


def test_braces_inside_strings_do_not_end_object() -> None:
    raw = 'Result: {"note": "use } and { freely", "n": {"x": "\\"}"}} trailing }'
    assert parse_json_response(raw) == {"note": "use } and { freely", "n": {"x": '"}'}}


def test_first_of_multiple_objects_wins() -> None:
    assert parse_json_response('{"a": 1} and also {"b": 2}') == {"a": 1}


def test_unbalanced_braces_fall_back_to_greedy_span() -> None:
    assert find_balanced_object('{"a": {"b": 1}', 0) is None
    with pytest.raises(LLMResponseInvalid):
        parse_json_response('{"a": {"b": 1}')


def test_literal_control_characters_inside_strings_are_accepted() -> None:
    assert parse_json_response('{"d": "two\nlines"}') == {"d": "two\nlines"}


def test_empty_input_raises() -> None:
    with pytest.raises(LLMResponseInvalid) as exc:
        parse_json_response("   ")
    assert exc.value.code == "RESPONSE_INVALID"


def test_error_carries_preview_and_context() -> None:
    raw = "prefix " + "x" * 600 + ' {"a": 1, "b": oops} suffix'
    with pytest.raises(LLMResponseInvalid) as exc:
        parse_json_response(raw)
    err = exc.value
    assert err.preview == raw[:500]
    assert err.parse_error
    assert err.context is not None and "oops" in err.context
    assert len(err.context) <= 100
    assert err.retryable is False
