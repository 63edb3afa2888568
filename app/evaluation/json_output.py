from __future__ import annotations

import json
import re
from typing import Any

from app.core.errors import ParseError

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _balanced_span(text: str, start: int) -> str | None:
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
                return text[start : index + 1]
    return None


def extract_json_object(raw: str) -> dict[str, Any]:
    """Parse the first balanced ``{...}`` span in a model response.

    Leading and trailing prose and markdown fences are tolerated. Raises ParseError
    when no JSON object can be recovered.
    """
    text = _FENCE_RE.sub("", (raw or "").strip())
    start = text.find("{")
    while start != -1:
        span = _balanced_span(text, start)
        if span is None:
            start = text.find("{", start + 1)
            continue
        try:
            parsed = json.loads(span)
        except ValueError:
            start = text.find("{", start + 1)
            continue
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)
    raise ParseError("Model returned invalid JSON", code="invalid_model_json")
