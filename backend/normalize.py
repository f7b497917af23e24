"""Repair model-supplied item fields against their declared bounds."""

import math
import re
from typing import Any, Mapping

from models import CollectorDetails, DetectedItem
from tags import dedupe_tags, enrichment_type_for_tags

_NUMBER_RE = re.compile(r"[-+]?\d+(?:[.,]\d+)?")

ITEM_TYPES = ("wine", "vinyl", "general")
WINE_FIELDS = ("winery", "vintage", "wine_name")
VINYL_FIELDS = ("artist", "album", "release_year")


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _NUMBER_RE.search(value.replace(" ", ""))
        if not m:
            return None
        return float(m.group(0).replace(",", "."))
    return None


def clamp_number(
    value: Any,
    minimum: float | None = None,
    maximum: float | None = None,
    *,
    integer: bool = False,
    default: Any = None,
) -> Any:
    """Coerce value to a finite number inside [minimum, maximum].

    Returns default when the value is not numeric or not finite. Integers are
    rounded before clamping so the bounds still hold afterwards.
    """
    number = _to_float(value)
    if number is None or not math.isfinite(number):
        return default
    if integer:
        number = round(number)
    if minimum is not None and number < minimum:
        number = minimum
    if maximum is not None and number > maximum:
        number = maximum
    return int(number) if integer else float(number)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def normalize_item_type(value: Any, tags: list[str]) -> str:
    if isinstance(value, str) and value.strip().lower() in ITEM_TYPES:
        return value.strip().lower()
    # A missing or unknown type may still be classified by the item's tags.
    return enrichment_type_for_tags(tags) or "general"


def normalize_collector_details(raw: Any, item_type: str) -> CollectorDetails:
    raw = raw if isinstance(raw, Mapping) else {}
    details = {
        "winery": _optional_text(raw.get("winery")),
        "vintage": clamp_number(raw.get("vintage"), integer=True),
        "wine_name": _optional_text(raw.get("wine_name")),
        "artist": _optional_text(raw.get("artist")),
        "album": _optional_text(raw.get("album")),
        "release_year": clamp_number(raw.get("release_year"), integer=True),
    }
    # Only the attribute set matching the item type survives.
    if item_type != "wine":
        details.update(dict.fromkeys(WINE_FIELDS))
    if item_type != "vinyl":
        details.update(dict.fromkeys(VINYL_FIELDS))
    return CollectorDetails(**details)


def normalize_item(raw: Mapping[str, Any]) -> DetectedItem:
    tags = dedupe_tags(raw.get("tags") if isinstance(raw.get("tags"), list) else [])
    item_type = normalize_item_type(raw.get("item_type"), tags)
    return DetectedItem(
        name=_text(raw.get("name")),
        description=_text(raw.get("description")),
        estimated_value=clamp_number(raw.get("estimated_value"), 0),
        quantity=clamp_number(raw.get("quantity"), 1, integer=True, default=1),
        accuracy=clamp_number(raw.get("accuracy"), 0.0, 1.0),
        item_type=item_type,
        tags=tags,
        collector_details=normalize_collector_details(raw.get("collector_details"), item_type),
    )
