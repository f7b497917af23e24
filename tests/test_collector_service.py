import asyncio

from collectors import CollectorService, build_collector_service, collector_stats, route
from collectors.base import CollectorEnricher, InsufficientDetails
from errors import ProviderError
from models import DetectedItem, WineData


class FakeWine(CollectorEnricher):
    category = "wine"
    not_found_warning = "Wine not found on Vivino"

    def __init__(self, delays=None, fail=()):
        self.delays = delays or {}
        self.fail = set(fail)

    async def lookup(self, item):
        await asyncio.sleep(self.delays.get(item.name, 0))
        if item.name in self.fail:
            raise ProviderError("Vivino API", "HTTP 500 Internal Server Error")
        return WineData(wine_name=item.name)


class Exploding(CollectorEnricher):
    category = "vinyl"
    not_found_warning = "Vinyl not found on Discogs"

    async def lookup(self, item):
        raise KeyError("tracklist")

    async def enrich(self, item):
        # Simulates a strategy bug that escapes its own error handling.
        return await self.lookup(item)


class Lost(CollectorEnricher):
    category = "vinyl"
    not_found_warning = "Vinyl not found on Discogs"

    async def lookup(self, item):
        return None


class Vague(CollectorEnricher):
    category = "vinyl"
    not_found_warning = "Vinyl not found on Discogs"

    async def lookup(self, item):
        raise InsufficientDetails("Insufficient vinyl details for enrichment")


def _wine(name):
    return DetectedItem(name=name, description="bottle", item_type="wine")


def _vinyl(name):
    return DetectedItem(name=name, description="record", item_type="vinyl")


def test_results_keep_input_order_under_varied_latency():
    items = [_wine("slow"), _wine("fast"), DetectedItem(name="Lamp", description="lamp"), _wine("medium")]
    service = CollectorService([FakeWine(delays={"slow": 0.05, "medium": 0.02})], deadline=None)

    results = asyncio.run(service.enrich_all(items))

    assert [r.name for r in results] == ["slow", "fast", "Lamp", "medium"]
    assert [r.collector_data.wine_name for r in results if r.collector_data] == ["slow", "fast", "medium"]


def test_one_failure_does_not_affect_siblings():
    items = [_wine("ok"), _wine("broken"), _wine("also ok")]
    service = CollectorService([FakeWine(fail={"broken"})], deadline=None)

    results = asyncio.run(service.enrich_all(items))

    assert results[1].collector_data is None
    assert results[1].collector_warning == "Vivino API error: HTTP 500 Internal Server Error"
    assert results[0].collector_data is not None
    assert results[2].collector_data is not None


def test_unexpected_strategy_error_becomes_warning():
    service = CollectorService([Exploding()], deadline=None)
    result = asyncio.run(service.enrich_item(_vinyl("Abbey Road")))
    assert result.collector_category == "vinyl"
    assert result.collector_data is None
    assert result.collector_warning.startswith("Failed to enrich item:")


def test_general_items_get_null_collector_fields():
    service = CollectorService([FakeWine()], deadline=None)
    result = asyncio.run(service.enrich_item(DetectedItem(name="Lamp", description="lamp")))
    dumped = result.model_dump()
    assert dumped["collector_category"] is None
    assert dumped["collector_data"] is None
    assert "collector_warning" not in dumped


def test_not_found_and_insufficient_details_warn():
    lost = asyncio.run(CollectorService([Lost()]).enrich_item(_vinyl("x")))
    vague = asyncio.run(CollectorService([Vague()]).enrich_item(_vinyl("y")))
    assert lost.collector_warning == "Vinyl not found on Discogs"
    assert vague.collector_warning == "Insufficient vinyl details for enrichment"


def test_deadline_bounds_the_whole_batch():
    items = [_wine("quick"), _wine("stuck")]
    service = CollectorService([FakeWine(delays={"stuck": 5})], deadline=0.05)

    results = asyncio.run(service.enrich_all(items))

    assert results[0].collector_data is not None
    assert results[1].collector_data is None
    assert results[1].collector_category == "wine"
    assert results[1].collector_warning == "Enrichment timed out after 0.05s"


def test_empty_batch():
    assert asyncio.run(CollectorService([FakeWine()]).enrich_all([])) == []


def test_route_by_item_type():
    enrichers = {"wine": FakeWine()}
    assert route(_wine("a"), enrichers) is enrichers["wine"]
    assert route(_vinyl("b"), enrichers) is None
    assert route(DetectedItem(name="c", description="d"), enrichers) is None


def test_stats_count_categories_and_failures():
    service = CollectorService([FakeWine(fail={"bad"}), Lost()], deadline=None)
    items = [_wine("good"), _wine("bad"), _vinyl("lp"), DetectedItem(name="Lamp", description="lamp")]
    stats = collector_stats(asyncio.run(service.enrich_all(items)))
    assert stats.model_dump() == {
        "total_items": 4,
        "collector_items": 3,
        "wine_items": 2,
        "vinyl_items": 1,
        "general_items": 1,
        "enrichment_failures": 2,
    }


def test_default_service_wires_both_providers(mock_client):
    service = build_collector_service(mock_client(lambda r: None))
    assert set(service.enrichers) == {"wine", "vinyl"}
