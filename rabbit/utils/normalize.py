"""
List normalization utilities for model output.

Models sometimes return objects or numbers where strings were asked for.
This module reduces such lists to plain, stripped strings, and repairs
slightly malformed JSON arrays.
"""

import logging
from typing import Any, List, Optional

from json_repair import repair_json

logger = logging.getLogger(__name__)


def repair_llm_list(raw_content: str) -> Optional[List[Any]]:
    """
    Repair and parse a potentially malformed JSON array from model output.

    Uses json-repair library to fix common issues like:
    - Trailing commas
    - Missing closing bracket
    - Single quotes instead of double quotes

    Args:
        raw_content: Raw JSON array text (may be malformed)

    Returns:
        Parsed list if successful, None if repair failed

    Examples:
        >>> repair_llm_list('["a", "b",]')
        ['a', 'b']
    """
    if not raw_content or not raw_content.strip():
        return None

    try:
        repaired = repair_json(raw_content, return_objects=True)
    except Exception as e:
        logger.warning(f"JSON repair failed: {e}")
        return None

    if isinstance(repaired, list):
        return repaired

    logger.debug(f"JSON repair returned non-list: {type(repaired).__name__}")
    return None


# Priority order for extracting text from objects
TEXT_KEYS = (
    "question",
    "thought",
    "idea",
    "text",
    "content",
    "title",
    "value",
)


def normalize_string_list(items: Any, field_name: str = "items") -> List[str]:
    """
    Normalize a list that should contain strings but may contain objects.

    Args:
        items: The list to normalize (may be list of strings, objects, or mixed)
        field_name: Name of the field for logging purposes

    Returns:
        List[str]: Normalized list of non-empty strings

    Examples:
        >>> normalize_string_list(["a?", " b? "])
        ['a?', 'b?']

        >>> normalize_string_list([{"question": "Why?"}, "How?"])
        ['Why?', 'How?']
    """
    if not items:
        return []

    if not isinstance(items, list):
        logger.warning(f"{field_name}: expected list, got {type(items).__name__}")
        return []

    result: List[str] = []
    normalized_count = 0

    for item in items:
        if isinstance(item, str):
            if item.strip():
                result.append(item.strip())
        elif isinstance(item, dict):
            normalized_count += 1
            text = _extract_text_from_object(item)
            if text:
                result.append(text)
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            result.append(str(item))

    if normalized_count > 0:
        logger.info(
            f"{field_name}: normalized {normalized_count}/{len(items)} object items to strings"
        )

    return result


def _extract_text_from_object(obj: dict) -> str:
    """
    Extract text value from an object using known key patterns.

    Falls back to first string value if no known keys found.
    """
    for key in TEXT_KEYS:
        value = obj.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    for value in obj.values():
        if isinstance(value, str) and value.strip():
            return value.strip()

    return ""
