"""Helpers for coercing model output into usable data."""

import json
import re
from typing import Any, Optional


def extract_json_from_text(s: Optional[str]) -> Optional[str]:
    """Extract a JSON string from text, handling common LLM output formats."""
    if s is None:
        return None

    s = s.strip()

    # Strip code fences if present
    if s.startswith("```"):
        s = re.sub(r"^```(json|JSON)?\s*", "", s)
        s = re.sub(r"\s*```\s*$", "", s)

    if s.startswith("{") or s.startswith("["):
        return s

    obj_match = re.search(r"\{[\s\S]*\}", s)
    arr_match = re.search(r"\[[\s\S]*\]", s)

    # Prefer whichever block starts first
    candidates = []
    if obj_match:
        candidates.append((obj_match.start(), obj_match.group(0)))
    if arr_match:
        candidates.append((arr_match.start(), arr_match.group(0)))

    if not candidates:
        return None

    candidates.sort(key=lambda x: x[0])
    return candidates[0][1]


def parse_llm_json(text: Optional[str]) -> Any:
    """Parse JSON from LLM output robustly.

    Returns the Python object, or None if parsing fails.
    """
    candidate = extract_json_from_text(text)
    if candidate is None:
        return None

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    # Trailing ellipses or stray characters
    try:
        return json.loads(candidate.strip().rstrip('.').rstrip())
    except json.JSONDecodeError:
        pass

    # Trailing commas before a closing bracket
    try:
        return json.loads(re.sub(r",\s*([}\]])", r"\1", candidate))
    except json.JSONDecodeError:
        return None


def slugify_title(title: str) -> str:
    """Lower-case a title and replace whitespace runs with hyphens."""
    return re.sub(r"\s+", "-", (title or "").strip().lower())
