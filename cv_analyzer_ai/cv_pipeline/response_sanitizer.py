"""Recover a JSON object from a raw LLM completion and normalize known schema quirks."""

import json
import re
from typing import Any, Dict, List

from cv_pipeline.errors import MalformedResponse
from utils.logger import get_logger

logger = get_logger(__name__)

# C0 and C1 control characters break json.loads inside string values
_CONTROL_CHARS = re.compile(r"[\u0000-\u001F\u007F-\u009F]")


def _collect_skills(value: Any, flat: List[Any]) -> None:
    """Append every non-empty leaf of a nested skills value to flat, in encounter order."""
    if isinstance(value, dict):
        for item in value.values():
            _collect_skills(item, flat)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _collect_skills(item, flat)
    elif isinstance(value, str):
        if value.strip():
            flat.append(value)
    elif value is not None:
        flat.append(str(value))


def flatten_skills(skills: Any) -> Any:
    """
    Collapse grouped skills into one flat list, keeping encounter order.

    A mapping of categories ({"tech": [...], "soft": {"people": [...]}}) keeps
    every leaf. A list of category objects ([{"category": "tech", "skills": [...]}])
    keeps the grouped values of each object; an object without any stays one item.
    Other shapes are returned as is.
    """
    if isinstance(skills, dict):
        flat: List[Any] = []
        _collect_skills(skills, flat)
        return flat
    if isinstance(skills, (list, tuple)) and any(isinstance(item, dict) for item in skills):
        flat = []
        for item in skills:
            if not isinstance(item, dict):
                _collect_skills(item, flat)
                continue
            groups = [v for v in item.values() if isinstance(v, (list, tuple, dict))]
            if not groups:
                flat.append(item)
            for group in groups:
                _collect_skills(group, flat)
        return flat
    return skills


def sanitize_response(raw: str) -> Dict[str, Any]:
    """
    Extract the JSON object between the first '{' and the last '}' of an LLM
    response, dropping any prose or markdown fences around it.
    Raises MalformedResponse (carrying the raw content) if nothing parses.
    """
    content = (raw or "").strip()
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise MalformedResponse(f"Failed to find JSON in AI response: {content[:200]}", raw)

    candidate = _CONTROL_CHARS.sub("", content[start:end + 1])
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Failed to parse AI response: {e}", raw) from e
    if not isinstance(parsed, dict):
        raise MalformedResponse("AI response is not a JSON object", raw)

    if isinstance(parsed.get("Skills"), (dict, list)):
        parsed["Skills"] = flatten_skills(parsed["Skills"])
    return parsed
