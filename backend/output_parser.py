"""Turn free-form vision-model output into validated item records.

Models wrap JSON in code fences, prepend prose, or drop the wrapping object
altogether. Decoding is attempted on the cleaned text first, then on the
bracketed spans found inside it.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from errors import ParseError
from log import get_logger
from models import DetectedItem
from normalize import normalize_item

log = get_logger("parser")

REQUIRED_ITEM_KEYS = (
    "name",
    "description",
    "estimated_value",
    "quantity",
    "accuracy",
    "item_type",
    "tags",
    "collector_details",
)
REQUIRED_DETAIL_KEYS = ("winery", "vintage", "wine_name", "artist", "album", "release_year")

_FENCE_START = re.compile(r"^```[\w+-]*[ \t]*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```\s*$")
_CLOSERS = {"[": "]", "{": "}"}
# Upper bound on decodable spans tried before giving up on a noisy text.
_MAX_CANDIDATES = 50


@dataclass
class ParsedItems:
    items: list[DetectedItem] = field(default_factory=list)
    dropped: int = 0


def strip_fences(text: str) -> str:
    """Strip markdown code fences if present."""
    text = (text or "").strip()
    text = _FENCE_START.sub("", text)
    text = _FENCE_END.sub("", text)
    return text.strip()


def _balanced_span(text: str, start: int) -> str | None:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
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
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _greedy_span(text: str, start: int) -> str | None:
    end = text.rfind(_CLOSERS[text[start]])
    if end <= start:
        return None
    return text[start : end + 1]


def _opener_positions(text: str, openers: str) -> list[int]:
    return [i for i, ch in enumerate(text) if ch in openers]


def _decode(candidate: str | None) -> tuple[bool, Any]:
    if candidate is None:
        return False, None
    try:
        return True, json.loads(candidate)
    except ValueError:
        return False, None


def extract_json(
    text: str,
    openers: str = "[{",
    accept: Callable[[Any], bool] | None = None,
) -> Any:
    """Decode the JSON container embedded in a model response.

    openers names the container types acceptable at the top level: "[" for
    arrays, "{" for objects. When the cleaned text is not JSON as a whole,
    embedded spans are tried in order and the first one accept() approves
    wins; if none is approved the first span that decoded is returned.
    Raises ParseError when nothing decodes.
    """
    cleaned = strip_fences(text)
    ok, data = _decode(cleaned)
    if ok:
        return data

    accept = accept or (lambda value: True)
    fallback: tuple[bool, Any] = (False, None)
    decoded = 0
    positions = _opener_positions(cleaned, openers)
    for start in positions:
        ok, data = _decode(_balanced_span(cleaned, start))
        if not ok:
            continue
        if accept(data):
            return data
        if not fallback[0]:
            fallback = (True, data)
        decoded += 1
        if decoded >= _MAX_CANDIDATES:
            break

    if positions:
        ok, data = _decode(_greedy_span(cleaned, positions[0]))
        if ok and accept(data):
            return data
        if ok and not fallback[0]:
            fallback = (True, data)

    if fallback[0]:
        log.warning("No embedded JSON had the expected shape; using the first decodable span")
        return fallback[1]

    log.error(
        "Could not decode model output (%d chars). Starts with: %r ... ends with: %r",
        len(cleaned),
        cleaned[: ParseError.PREVIEW_CHARS],
        cleaned[-ParseError.TAIL_CHARS :],
    )
    raise ParseError("Model response is not valid JSON", cleaned)


def missing_keys(raw: Any) -> list[str]:
    """Return the required keys absent from one raw item (all of them for non-objects)."""
    if not isinstance(raw, dict):
        return list(REQUIRED_ITEM_KEYS)
    missing = [k for k in REQUIRED_ITEM_KEYS if k not in raw]
    details = raw.get("collector_details")
    if isinstance(details, dict):
        missing.extend(f"collector_details.{k}" for k in REQUIRED_DETAIL_KEYS if k not in details)
    elif "collector_details" in raw:
        missing.append("collector_details")
    return missing


def looks_like_items(data: Any) -> bool:
    """True for the containers a multi-item reply can take."""
    if isinstance(data, list):
        return any(isinstance(element, dict) for element in data)
    if isinstance(data, dict):
        return "items" in data or not missing_keys(data)
    return False


def looks_like_single_item(data: Any) -> bool:
    return isinstance(data, dict) and ("item" in data or not missing_keys(data))


def parse_items(text: str) -> ParsedItems:
    """Parse a multi-item response: a bare array or an object with "items".

    Elements that fail validation are dropped and counted; the rest survive.
    """
    data = extract_json(text, "[{", accept=looks_like_items)

    if isinstance(data, list):
        raw_items = data
    elif isinstance(data, dict) and "items" in data:
        raw_items = data["items"]
    elif isinstance(data, dict) and not missing_keys(data):
        # Some replies skip the wrapper and return the lone item itself.
        raw_items = [data]
    else:
        raise ParseError('Response missing "items" field', strip_fences(text))

    if not isinstance(raw_items, list):
        raise ParseError('"items" is not an array', strip_fences(text))

    result = ParsedItems()
    for index, raw in enumerate(raw_items):
        missing = missing_keys(raw)
        if missing:
            log.warning("Dropping item %d: missing %s", index, ", ".join(missing))
            result.dropped += 1
            continue
        result.items.append(normalize_item(raw))

    if result.dropped:
        log.warning("Dropped %d of %d item(s) from model output", result.dropped, len(raw_items))
    log.info("Parsed %d item(s) from model output", len(result.items))
    return result


def parse_single_item(text: str) -> DetectedItem:
    """Parse a single-item response: an object with "item" or the bare item."""
    data = extract_json(text, "{", accept=looks_like_single_item)
    if not isinstance(data, dict):
        raise ParseError("Response is not a JSON object", strip_fences(text))

    if "item" in data:
        raw = data["item"]
    elif not missing_keys(data):
        raw = data
    else:
        raise ParseError('Response missing "item" field', strip_fences(text))

    missing = missing_keys(raw)
    if missing:
        raise ParseError(f"Item is missing required fields: {', '.join(missing)}", strip_fences(text))
    return normalize_item(raw)
