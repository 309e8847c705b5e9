"""Lenient JSON decoding for model output.

Models asked for "JSON only" still wrap it in prose or markdown fences, leave
trailing commas, or emit raw control characters inside strings.
:func:`loads_lenient` tries progressively more forgiving strategies and
returns ``None`` instead of raising when nothing works.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

_CLOSERS = {"{": "}", "[": "]"}


def find_balanced(text: str, opener: str = "{") -> str | None:
    """Return the first outermost balanced ``{...}`` (or ``[...]``) span.

    Delimiters inside JSON string literals are ignored.
    """
    closer = _CLOSERS[opener]
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == opener:
            if depth == 0:
                start = i
            depth += 1
        elif ch == closer and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _try(text: str) -> Any | None:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def loads_lenient(text: str, opener: str = "{") -> Any | None:
    """Decode JSON from free-form model output. Never raises.

    Strategy, in order:

    1. the whole (stripped) text
    2. the first outermost balanced delimiter span
    3. that span with trailing commas removed
    4. that span with trailing commas removed and control characters blanked
    """
    if not isinstance(text, str) or not text.strip():
        return None

    result = _try(text.strip())
    if result is not None:
        return result

    span = find_balanced(text, opener)
    if span is None:
        logger.debug("No balanced %s span in model output", opener)
        return None

    result = _try(span)
    if result is not None:
        return result

    without_commas = _TRAILING_COMMA.sub(r"\1", span)
    result = _try(without_commas)
    if result is not None:
        return result

    result = _try(_CONTROL_CHARS.sub(" ", without_commas))
    if result is None:
        logger.debug("Lenient JSON decode gave up (%d chars)", len(text))
    return result


def loads_object(text: str) -> dict[str, Any] | None:
    """Like :func:`loads_lenient` but only accepts a JSON object."""
    result = loads_lenient(text, "{")
    return result if isinstance(result, dict) else None
