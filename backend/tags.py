"""Classification vocabulary offered to the vision model.

The system vocabulary is fixed at import time and exposed read-only, so it
can be shared between concurrent requests without locking.
"""

from collections.abc import Iterable, Sequence
from types import MappingProxyType

SYSTEM_TAGS = MappingProxyType(
    {
        "wine": ("wine", "wijn", "vin", "vino", "wein"),
        "vinyl": ("vinyl", "plaat", "lp", "record", "album", "schijf"),
    }
)


def all_system_tags() -> list[str]:
    return [tag for synonyms in SYSTEM_TAGS.values() for tag in synonyms]


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    """Drop case-insensitive duplicates, keeping first-seen casing and order."""
    seen: set[str] = set()
    unique: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        key = tag.casefold()
        if not tag or key in seen:
            continue
        seen.add(key)
        unique.append(tag)
    return unique


def resolve_tags(caller_tags: Sequence[str] | None = None) -> list[str]:
    """Merge the system vocabulary with caller tags, system tags first."""
    if not isinstance(caller_tags, (list, tuple)):
        caller_tags = []
    return dedupe_tags([*all_system_tags(), *caller_tags])


def has_enrichable_tag(tags: Sequence[str] | None, category: str) -> bool:
    synonyms = SYSTEM_TAGS.get(category)
    if not synonyms or not isinstance(tags, (list, tuple)):
        return False
    return any(isinstance(t, str) and t.strip().casefold() in synonyms for t in tags)


def enrichment_type_for_tags(tags: Sequence[str] | None) -> str | None:
    """Return the collector category the tags point at, wine before vinyl."""
    for category in SYSTEM_TAGS:
        if has_enrichable_tag(tags, category):
            return category
    return None
