from __future__ import annotations

import json
import re

_LEADING_FENCE_RE = re.compile(r"\A```[A-Za-z0-9_+-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?[ \t]*```\Z")


def strip_code_fences(text: str) -> str:
    """Remove a Markdown code fence wrapped around the whole reply.

    Only a fence anchored at the very start and one at the very end are removed
    (```json ... ``` or ``` ... ```); fences inside the text are left alone.
    """

    t = (text or "").strip()
    t = _LEADING_FENCE_RE.sub("", t, count=1)
    t = _TRAILING_FENCE_RE.sub("", t, count=1)
    return t.strip()


def _drop_trailing_commas(text: str) -> str:
    """Remove commas that directly precede '}' or ']', outside string literals."""

    out: list[str] = []
    in_string = False
    escaped = False
    n = len(text)
    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                continue
        out.append(ch)
    return "".join(out)


def _candidates(text: str):
    yield text

    # Prose around the object ("Here is the JSON: {...} Hope this helps").
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return
    span = text[start : end + 1]
    if span != text:
        yield span

    # Trailing comma before '}' or ']' is a common model slip.
    fixed = _drop_trailing_commas(span)
    if fixed != span:
        yield fixed


def parse_json_object(text: str) -> dict:
    """Parse sanitized model output into a JSON object.

    Raises ValueError when no candidate decodes to an object.
    """

    for candidate in _candidates(text):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value
    raise ValueError("model output is not a JSON object")
