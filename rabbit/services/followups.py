"""
Follow-up ("related thoughts") extraction from free-text model output.

The model is asked for a JSON array of short strings, but nothing guarantees
it complies. Strategies are tried in order and the first one that yields at
least one usable string wins:

1. the whole text is a JSON array
2. the whole text is a JSON object holding an array
3. a bracketed array of strings appears somewhere in the text
4. line-by-line cleanup of a plain list
5. fixed placeholder thoughts
"""

import logging
import re
from typing import Any, Callable, List, Optional

import orjson

from rabbit.utils.exceptions import StructuredExtractionFailure
from rabbit.utils.normalize import normalize_string_list, repair_llm_list

logger = logging.getLogger(__name__)

MAX_ITEMS = 4
# Exclusive bounds for a usable plain-text line
MIN_LINE_LENGTH = 5
MAX_LINE_LENGTH = 100

PLACEHOLDER_THOUGHTS = (
    "What are the key assumptions here?",
    "How could this be applied practically?",
    "What is the strongest counter-argument?",
    "Where can I learn more about this?",
)

_QUOTED = r'"(?:[^"\\]|\\.)*"'
STRING_ARRAY_PATTERN = re.compile(
    r"\[\s*" + _QUOTED + r"(?:\s*,\s*" + _QUOTED + r")*\s*,?\s*\]", re.DOTALL
)
LOOSE_ARRAY_PATTERN = re.compile(r"\[[^\[\]]*\]", re.DOTALL)
LEADING_MARKERS = re.compile(r"^(?:\s*(?:\d+[.)]|[-*•>]|[\"'\[\],`]))+\s*")
TRAILING_MARKERS = re.compile(r"[\s\"'\[\],`]+$")


def _take(items: Any, source: str) -> Optional[List[str]]:
    cleaned = normalize_string_list(items, field_name=source)
    if not cleaned:
        return None
    return cleaned[:MAX_ITEMS]


def _parse_json(raw_text: str) -> Any:
    try:
        return orjson.loads(raw_text)
    except orjson.JSONDecodeError:
        return None


def from_json_array(raw_text: str) -> Optional[List[str]]:
    data = _parse_json(raw_text)
    if isinstance(data, list):
        return _take(data, "json_array")
    return None


def from_json_object(raw_text: str) -> Optional[List[str]]:
    data = _parse_json(raw_text)
    if not isinstance(data, dict):
        return None
    for key, value in data.items():
        if isinstance(value, list):
            logger.debug(f"Using list under key '{key}'")
            return _take(value, key)
    return None


def from_embedded_array(raw_text: str) -> Optional[List[str]]:
    match = STRING_ARRAY_PATTERN.search(raw_text)
    if match:
        data = _parse_json(match.group(0))
        if data is None:
            data = repair_llm_list(match.group(0))
        if isinstance(data, list):
            return _take(data, "embedded_array")

    # Single quotes, trailing commas and similar near-misses
    for loose in LOOSE_ARRAY_PATTERN.finditer(raw_text):
        candidate = loose.group(0)
        if '"' not in candidate and "'" not in candidate:
            continue
        repaired = repair_llm_list(candidate) or []
        result = _take([item for item in repaired if isinstance(item, str)], "repaired_array")
        if result:
            return result
    return None


def clean_line(line: str) -> str:
    """Strip enumeration, bullet, quote and bracket markers from one line."""
    line = LEADING_MARKERS.sub("", line.strip())
    return TRAILING_MARKERS.sub("", line).strip()


def from_lines(raw_text: str) -> Optional[List[str]]:
    lines = [clean_line(line) for line in raw_text.split("\n")]
    kept = [line for line in lines if MIN_LINE_LENGTH < len(line) < MAX_LINE_LENGTH]
    return kept[:MAX_ITEMS] or None


STRATEGIES: List[Callable[[str], Optional[List[str]]]] = [
    from_json_array,
    from_json_object,
    from_embedded_array,
    from_lines,
]


def parse_list(raw_text: str) -> List[str]:
    """Run the parse strategies in order.

    Raises:
        StructuredExtractionFailure: no strategy produced a usable list
    """
    if not raw_text or not raw_text.strip():
        raise StructuredExtractionFailure("empty response")

    text = raw_text.strip()
    for strategy in STRATEGIES:
        result = strategy(text)
        if result:
            if strategy is from_lines:
                logger.warning("Model did not return a JSON list; fell back to line parsing")
            return result
    raise StructuredExtractionFailure("no strategy produced a usable list")


def extract_list(raw_text: Optional[str]) -> List[str]:
    """Up to four follow-up strings from ``raw_text``. Never raises."""
    try:
        return parse_list(raw_text or "")
    except StructuredExtractionFailure as e:
        logger.info(f"Using placeholder thoughts: {e}")
    except Exception:
        logger.exception("Unexpected error while parsing related thoughts")
    return list(PLACEHOLDER_THOUGHTS)
