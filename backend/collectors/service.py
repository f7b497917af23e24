"""Routes detected items to their enrichment strategy and runs them concurrently."""

import asyncio
from collections.abc import Mapping, Sequence

from config import ENRICHMENT_DEADLINE_SECONDS
from log import get_logger
from models import CollectorStats, DetectedItem, EnrichedItem

from .base import CollectorEnricher, enriched

log = get_logger("collector")


def route(item: DetectedItem, enrichers: Mapping[str, CollectorEnricher]) -> CollectorEnricher | None:
    """Pick the strategy for the item's type; anything unrecognised gets none."""
    return enrichers.get(getattr(item, "item_type", None) or "")


class CollectorService:
    def __init__(
        self,
        enrichers: Sequence[CollectorEnricher],
        deadline: float | None = ENRICHMENT_DEADLINE_SECONDS,
    ):
        self.enrichers = {e.category: e for e in enrichers}
        self.deadline = deadline or None

    async def enrich_item(self, item: DetectedItem) -> EnrichedItem:
        enricher = route(item, self.enrichers)
        log.info("Processing item: %s (type: %s)", item.name, item.item_type)
        if enricher is None:
            return enriched(item, None)
        try:
            return await enricher.enrich(item)
        except Exception as exc:
            # Strategies report failures themselves; this keeps the item if one slips through.
            log.exception("Unexpected error enriching %r", item.name)
            return enriched(item, enricher.category, warning=f"Failed to enrich item: {exc}")

    async def enrich_all(self, items: Sequence[DetectedItem]) -> list[EnrichedItem]:
        """Enrich every item concurrently; results stay aligned with the input order."""
        if not items:
            return []
        log.info("Processing %d item(s) for collector enrichment", len(items))

        tasks = [asyncio.create_task(self.enrich_item(item)) for item in items]
        _, pending = await asyncio.wait(tasks, timeout=self.deadline)
        for t in pending:
            t.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            log.warning("%d enrichment(s) still running after %gs; giving up on them", len(pending), self.deadline)

        results = []
        for item, task in zip(items, tasks):
            if task in pending:
                category = item.item_type if item.item_type in self.enrichers else None
                results.append(
                    enriched(item, category, warning=f"Enrichment timed out after {self.deadline:g}s")
                )
            else:
                results.append(task.result())

        collector_count = sum(1 for r in results if r.collector_category is not None)
        log.info("Found %d collector item(s) out of %d total", collector_count, len(results))
        return results


def collector_stats(items: Sequence[EnrichedItem]) -> CollectorStats:
    stats = CollectorStats(total_items=len(items))
    for item in items:
        if item.collector_category == "wine":
            stats.collector_items += 1
            stats.wine_items += 1
        elif item.collector_category == "vinyl":
            stats.collector_items += 1
            stats.vinyl_items += 1
        else:
            stats.general_items += 1
        if item.collector_warning:
            stats.enrichment_failures += 1
    return stats
