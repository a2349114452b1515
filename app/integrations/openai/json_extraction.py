"""Pull the JSON object out of a model reply that may carry code fences or prose."""

import json
import re
from typing import Any, Dict, Optional

from app.core.exceptions import InvalidModelResponse

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n?|\n?\s*```")


def strip_wrappers(text: str) -> str:
    """Remove markdown code fences and surrounding whitespace."""
    return _FENCE_PATTERN.sub("", text or "").strip()


def find_object_span(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals are ignored, so values such as
    ``"summary": "users love {dark mode}"`` do not end the span early.
    Returns None when no opening brace is found or it is never closed.
    """
    start = text.find("{")
    if start == -1:
        return None

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


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the JSON object contained in a model reply.

    Args:
        text: Raw model output

    Returns:
        The decoded top-level object

    Raises:
        InvalidModelResponse: If no JSON object can be decoded
    """
    cleaned = strip_wrappers(text)
    candidate = find_object_span(cleaned) or cleaned
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as e:
        raise InvalidModelResponse(
            "Failed to parse AI response as JSON", details=str(e)
        ) from e

    if not isinstance(parsed, dict):
        raise InvalidModelResponse(
            "Failed to parse AI response as JSON",
            details=f"Expected a JSON object, got {type(parsed).__name__}",
        )
    return parsed
