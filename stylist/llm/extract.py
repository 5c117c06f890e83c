from __future__ import annotations

import re
from typing import Any, List

_FENCE_RE = re.compile(r"```[ \t]*[\w+-]*[ \t]*\r?\n?(.*?)(?:```|\Z)", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


def _unclosed(span: str) -> tuple[List[str], bool]:
    """Openers still pending at the end of ``span`` (outermost first), and whether a string is open.

    Brackets inside string literals are ignored.
    """

    stack: List[str] = []
    in_string = escaped = False
    for ch in span:
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
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in ("}", "]") and stack and _CLOSERS[stack[-1]] == ch:
            stack.pop()
    return stack, in_string


def _repair(span: str) -> str:
    pending, open_string = _unclosed(span)
    if not (pending or open_string):
        return span
    repaired = span + '"' if open_string else span.rstrip().rstrip(",")
    return repaired + "".join(_CLOSERS[ch] for ch in reversed(pending))


def extract_json(text: Any) -> str:
    """Best-effort recovery of a JSON object from raw model output.

    Unless the text already starts with an object, prefers a fenced code block,
    then the first ``{`` .. last ``}`` span, then closes arrays/objects left
    open by a truncated response. Falls back to the trimmed input so the
    caller's JSON parser reports a meaningful error.
    """

    if not isinstance(text, str):
        return "" if text is None else str(text).strip()

    # a bare object may itself contain ``` inside a string value
    fenced = None if text.lstrip().startswith("{") else _FENCE_RE.search(text)
    if fenced and fenced.group(1).strip():
        candidate = fenced.group(1).strip()
    else:
        candidate = text

    start = candidate.find("{")
    if start == -1:
        return candidate.strip()
    end = candidate.rfind("}")
    span = candidate[start : end + 1] if end > start else candidate[start:]
    return _repair(span.strip())
