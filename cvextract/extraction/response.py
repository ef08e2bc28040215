"""Recover a JSON value from raw generator output.

Handles only reproducible generator quirks, applied in order:
  1. one fenced code block wrapping the whole text
  2. doubled escapes of newline/tab/return (\\\\n -> \\n)
  3. the whole text being one quoted JSON string holding a nested object/array
  4. prose around an object: first '{' to its matching '}' by depth counting,
     falling back to first '{' .. last '}' when the braces never balance
No further repair (missing commas, unquoted keys) is attempted.
"""
from __future__ import annotations

import json
import re
from typing import Any

from cvextract.llm.errors import LLMResponseInvalid

PREVIEW_CHARS = 500
CONTEXT_CHARS = 50

_FENCE_RE = re.compile(r"^\s*```[\w-]*[ \t]*\n?(.*?)\n?[ \t]*```\s*$", re.DOTALL)
_DOUBLE_ESCAPES = (("\\\\n", "\\n"), ("\\\\t", "\\t"), ("\\\\r", "\\r"))


def strip_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


def unescape_doubled(text: str) -> str:
    for doubled, single in _DOUBLE_ESCAPES:
        text = text.replace(doubled, single)
    return text


def unwrap_quoted_json(text: str) -> str:
    """'"{\\"a\\":1}"' -> '{"a":1}'. Leaves anything else untouched."""
    stripped = text.strip()
    if len(stripped) < 2 or not (stripped.startswith('"') and stripped.endswith('"')):
        return text
    try:
        inner = json.loads(stripped, strict=False)
    except json.JSONDecodeError:
        return text
    if isinstance(inner, str) and inner.strip()[:1] in ("{", "["):
        return inner
    return text


def find_balanced_object(text: str, start: int) -> str | None:
    """Substring from text[start] == '{' to its matching '}', ignoring braces inside strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def extract_candidate(text: str) -> str:
    first = text.find("{")
    if first == -1:
        return text.strip()
    balanced = find_balanced_object(text, first)
    if balanced is not None:
        return balanced
    last = text.rfind("}")
    if last > first:
        return text[first : last + 1]
    return text[first:]


def _context_window(text: str, pos: int) -> str:
    return text[max(0, pos - CONTEXT_CHARS) : pos + CONTEXT_CHARS]


def parse_json_response(raw: str | None) -> Any:
    """Parse raw generator text into a JSON value or raise LLMResponseInvalid."""
    if raw is None or not raw.strip():
        raise LLMResponseInvalid("Empty response from generation service", preview="")
    text = strip_code_fence(raw)
    text = unescape_doubled(text)
    text = unwrap_quoted_json(text)
    candidate = extract_candidate(text)
    try:
        return json.loads(candidate, strict=False)
    except json.JSONDecodeError as e:
        raise LLMResponseInvalid(
            f"Could not parse JSON from response: {e.msg}",
            preview=raw[:PREVIEW_CHARS],
            parse_error=str(e),
            context=_context_window(candidate, e.pos),
            details=f"line {e.lineno} column {e.colno}",
        ) from e
