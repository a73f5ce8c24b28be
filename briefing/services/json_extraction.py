"""
Tolerant extraction of a JSON value from free-form model output.

Handles prose around the JSON, markdown fences, literal newlines inside string
values, and output cut off mid-object. Failures are reported with distinct error
kinds because they call for different retry policies:

* ``ModelOutputNotJSON``: no ``{`` anywhere in the output.
* ``ModelOutputTruncated``: a JSON start was found but could not be closed/parsed.
* ``ModelOutputSchemaInvalid``: a value was parsed but is not the expected type.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from briefing.core.errors import (
    ModelOutputNotJSON,
    ModelOutputSchemaInvalid,
    ModelOutputTruncated,
)

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```[ \t]*[A-Za-z]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_FENCE_OPEN = re.compile(r"```[ \t]*[A-Za-z]*[ \t]*\r?\n?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_DANGLING_KEY = re.compile(r',?\s*"(?:[^"\\]|\\.)*"\s*:\s*$')
_TAIL_CHARS = 300
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_TYPE_NAMES = {dict: "object", list: "array", str: "string", bool: "boolean"}

_MISSING = object()


def escape_control_characters(text: str) -> str:
    """Escape raw newlines, carriage returns, and tabs inside JSON strings."""
    out: List[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            continue
        if escaped:
            escaped = False
            # A backslash directly before a raw newline reads as "\n".
            out.append("n" if ch == "\n" else ch)
        elif ch == "\\":
            escaped = True
            out.append(ch)
        elif ch == '"':
            in_string = False
            out.append(ch)
        else:
            out.append(_CONTROL_ESCAPES.get(ch, ch))
    return "".join(out)


def extract_json(text: Optional[str], *, expect: type | tuple[type, ...] | None = None) -> Any:
    """Return the first JSON value found in ``text``.

    ``expect`` optionally restricts the accepted value type (``dict`` for objects).
    """
    if text is None or not text.strip():
        raise ModelOutputNotJSON("Empty model output")

    value = _try_parse(text.strip())
    if value is _MISSING:
        candidate = _strip_fencing(text)
        value = _try_parse(candidate)
        if value is _MISSING:
            value = _extract_embedded(candidate, text)

    if expect is not None and not isinstance(value, expect):
        if "{" not in text:
            raise ModelOutputNotJSON(
                f"No JSON object found in model output: got {_type_name(type(value))}. "
                f"{_describe(text)}"
            )
        raise ModelOutputSchemaInvalid(
            "Parsed a different JSON value than expected: got "
            f"{_type_name(type(value))}, expected {_expected_names(expect)}. {_describe(text)}",
            raw_output=text,
        )
    return value


def _strip_fencing(text: str) -> str:
    block = _FENCED_BLOCK.search(text)
    if block:
        return block.group(1).strip()
    opening = _FENCE_OPEN.search(text)
    if opening:
        # Opening fence without its closing fence: truncated output.
        return text[opening.end():].strip()
    return text.strip()


def _extract_embedded(candidate: str, text: str) -> Any:
    object_start = candidate.find("{")
    if object_start == -1:
        raise ModelOutputNotJSON(f'No JSON start "{{" found in model output. {_describe(text)}')

    start = object_start
    prefix = candidate[:object_start].rstrip()
    if prefix.endswith("["):
        start = len(prefix) - 1

    end, stack, in_string = _scan(candidate, start)
    if end is not None:
        span = candidate[start : end + 1]
        value = _try_parse(span)
        if value is _MISSING:
            value = _try_parse(_TRAILING_COMMA.sub(r"\1", span))
        if value is _MISSING:
            raise ModelOutputTruncated(
                f"Found JSON start but could not parse the extracted span "
                f"({len(span)} chars). {_describe(text)}"
            )
        return value

    repaired = _complete(candidate[start:], stack, in_string)
    value = _try_parse(repaired)
    if value is _MISSING:
        value = _try_parse(_TRAILING_COMMA.sub(r"\1", repaired))
    if value is _MISSING:
        raise ModelOutputTruncated(
            "No complete JSON found in model output; response may be truncated. "
            f"Depth at end: {len(stack)}, in string: {in_string}. {_describe(text)}"
        )
    logger.info("Repaired truncated model JSON by appending %r", "".join(reversed(stack)))
    return value


def _scan(candidate: str, start: int) -> Tuple[Optional[int], List[str], bool]:
    """Depth-count from ``start``; return the closing index or the open stack."""
    stack: List[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(candidate)):
        ch = candidate[index]
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
            stack.append("}")
        elif ch == "[":
            stack.append("]")
        elif ch in "}]":
            if stack:
                stack.pop()
            if not stack:
                return index, stack, False
    return None, stack, in_string


def _complete(fragment: str, stack: List[str], in_string: bool) -> str:
    repaired = fragment
    if in_string:
        if repaired.endswith("\\") and not repaired.endswith("\\\\"):
            repaired = repaired[:-1]
        repaired += '"'
    repaired = _DANGLING_KEY.sub("", repaired.rstrip()).rstrip()
    if repaired.endswith(","):
        repaired = repaired[:-1].rstrip()
    return repaired + "".join(reversed(stack))


def _try_parse(candidate: str) -> Any:
    try:
        return json.loads(escape_control_characters(candidate))
    except ValueError:
        return _MISSING


def _describe(text: str) -> str:
    tail = text[-_TAIL_CHARS:]
    return f"Input length: {len(text)}. End of response: ...{tail}"


def _type_name(kind: type) -> str:
    if kind in (int, float):
        return "number"
    if kind is type(None):
        return "null"
    return _TYPE_NAMES.get(kind, kind.__name__)


def _expected_names(expect: type | tuple[type, ...]) -> str:
    kinds = expect if isinstance(expect, tuple) else (expect,)
    return " or ".join(_type_name(kind) for kind in kinds)


__all__ = ["escape_control_characters", "extract_json"]
