"""
captioncut.llm.parsing - LLM output JSON parsing with recovery.

Handles parsing LLM responses into structured JSON with error recovery,
and locating the suggestion list inside whatever shape the model chose.
"""

from __future__ import annotations

import json
import re
from typing import Any

from captioncut.exceptions import LLMResponseError

SUGGESTION_KEYS = ("words", "emphasis_words", "emphasisWords")


def extract_json_from_response(response: str) -> str:
    """Extract the outermost JSON object or array from an LLM response.

    Args:
        response: Raw LLM response text

    Returns:
        Extracted JSON string

    Raises:
        LLMResponseError: If no JSON found
    """
    text = response.strip()

    if "```" in text:
        text = re.sub(r"```json\s*", "", text)
        text = re.sub(r"```\s*", "", text)
        text = text.strip()

    starts = [i for i in (text.find("{"), text.find("[")) if i >= 0]
    if not starts:
        raise LLMResponseError("No JSON found in response")

    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return text[start:]
    return text[start : end + 1]


def repair_json(text: str) -> str:
    """Attempt to repair common JSON issues.

    Args:
        text: JSON string with potential issues

    Returns:
        Repaired JSON string
    """
    # trailing commas before } or ]
    text = re.sub(r",(\s*[}\]])", r"\1", text)

    open_braces = text.count("{") - text.count("}")
    open_brackets = text.count("[") - text.count("]")

    if open_brackets > 0:
        text += "]" * open_brackets
    if open_braces > 0:
        text += "}" * open_braces

    return text


def parse_llm_json(response: str) -> Any:
    """Parse JSON from LLM response with error recovery.

    Handles common issues:
    - Markdown code blocks (```json ... ```)
    - Trailing commas
    - Missing closing braces or brackets
    - Text before/after JSON

    Args:
        response: Raw LLM response text

    Returns:
        Parsed JSON value (object or array)

    Raises:
        LLMResponseError: If parsing fails
    """
    text = extract_json_from_response(response)

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    try:
        return json.loads(repair_json(text))
    except json.JSONDecodeError:
        pass

    # Truncate at the last complete item and close what is still open
    last_valid = text.rfind("},")
    if last_valid > 0:
        try:
            return json.loads(repair_json(text[: last_valid + 1]))
        except json.JSONDecodeError:
            pass

    raise LLMResponseError(
        f"Failed to parse LLM response as JSON after repair attempts.\n\n"
        f"Response (first 500 chars):\n{text[:500]}"
    )


def extract_suggestions(data: Any) -> list[dict[str, Any]]:
    """Find the list of emphasis suggestions in a parsed response.

    The list may be the root value, sit under one of the known keys, or
    under the first key whose value is a list. Entries without a usable
    ``word`` string are dropped.

    Raises:
        LLMResponseError: If no list can be found
    """
    items: list[Any] | None = None
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        for key in SUGGESTION_KEYS:
            if isinstance(data.get(key), list):
                items = data[key]
                break
        else:
            for value in data.values():
                if isinstance(value, list):
                    items = value
                    break

    if items is None:
        raise LLMResponseError("No suggestion list found in LLM response")

    suggestions = []
    for item in items:
        if isinstance(item, str):
            item = {"word": item}
        if not isinstance(item, dict) or not isinstance(item.get("word"), str):
            continue
        suggestions.append({"word": item["word"], "reason": str(item.get("reason", ""))})
    return suggestions
