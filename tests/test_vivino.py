import asyncio

import httpx

from collectors.vivino import VivinoEnricher, format_region, wine_from_record
from models import CollectorDetails, WineData

VIVINO_SEARCH = {
    "explore_vintage": {
        "records": [
            {
                "vintage": {
                    "year": 2015,
                    "price": {"amount": 689.5, "currency": {"code": "EUR"}},
                    "wine": {
                        "id": 1130,
                        "name": "Château Margaux",
                        "type_id": 1,
                        "winery": {"name": "Château Margaux"},
                        "statistics": {"ratings_average": 4.7, "ratings_count": 12345},
                        "style": {"varietal_name": "Bordeaux Red"},
                        "region": {
                            "name": "Margaux",
                            "area": {"name": "Médoc"},
                            "country": {"name": "France"},
                        },
                        "image": {"location": "//images.vivino.com/thumbs/margaux.png"},
                    },
                }
            }
        ]
    }
}


def test_wine_scenario_maps_provider_match(mock_client, respond_json, wine_item):
    seen = []

    def handler(request):
        seen.append(request)
        return respond_json(VIVINO_SEARCH)

    enricher = VivinoEnricher(mock_client(handler))
    result = asyncio.run(enricher.enrich(wine_item))

    assert result.collector_category == "wine"
    assert result.collector_warning is None
    assert result.collector_data.vintage == 2015
    assert result.collector_data.vivino_url == "https://www.vivino.com/wines/1130"
    assert result.collector_data.region == "Margaux, Médoc, France"
    assert result.collector_data.wine_type == "Red wine"
    assert seen[0].url.params["q"] == "Château Margaux 2015"
    assert "collector_warning" not in result.model_dump()


def test_missing_upstream_fields_still_produce_every_key():
    wine = wine_from_record({"vintage": {"wine": {"id": 7}}}, requested_vintage=2001)
    dumped = wine.model_dump()
    assert set(dumped) == set(WineData.model_fields)
    assert wine.winery == "Unknown"
    assert wine.grape_variety == "Unknown"
    assert wine.vivino_rating == 0
    assert wine.vivino_reviews_count == 0
    assert wine.vintage == 2001
    assert wine.price_estimate is None
    assert wine.region == "Unknown"


def test_empty_result_set_warns_not_found(mock_client, respond_json, wine_item):
    enricher = VivinoEnricher(mock_client(lambda r: respond_json({"explore_vintage": {"records": []}})))
    result = asyncio.run(enricher.enrich(wine_item))
    assert result.collector_data is None
    assert result.collector_warning == "Wine not found on Vivino"


def test_http_error_degrades_with_message(mock_client, respond_json, wine_item):
    enricher = VivinoEnricher(mock_client(lambda r: respond_json({}, status_code=503)))
    result = asyncio.run(enricher.enrich(wine_item))
    assert result.collector_data is None
    assert result.collector_category == "wine"
    assert "503" in result.collector_warning
    assert result.name == wine_item.name


def test_timeout_degrades_like_provider_error(mock_client, wine_item):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = asyncio.run(VivinoEnricher(mock_client(handler), timeout=5).enrich(wine_item))
    assert result.collector_data is None
    assert "timed out" in result.collector_warning


def test_winery_is_used_when_wine_name_missing(mock_client, respond_json, wine_item):
    seen = []

    def handler(request):
        seen.append(request.url.params["q"])
        return respond_json(VIVINO_SEARCH)

    item = wine_item.model_copy(update={"collector_details": CollectorDetails(winery="Penfolds")})
    asyncio.run(VivinoEnricher(mock_client(handler)).enrich(item))
    assert seen == ["Penfolds"]


def test_no_query_text_skips_the_lookup(mock_client, wine_item):
    def handler(request):
        raise AssertionError("no request expected")

    item = wine_item.model_copy(update={"collector_details": CollectorDetails()})
    result = asyncio.run(VivinoEnricher(mock_client(handler)).enrich(item))
    assert result.collector_warning == "Insufficient wine details for enrichment"


def test_format_region_handles_partial_data():
    assert format_region({"country": {"name": "Italy"}}) == "Italy"
    assert format_region(None) == "Unknown"


def test_wrongly_typed_text_fields_fall_back_to_defaults():
    record = {
        "vintage": {
            "year": 2015,
            "price": {"amount": "12.50", "currency": {"code": 978}},
            "wine": {
                "id": 1,
                "name": 12345,
                "style": {"varietal_name": ["Merlot"], "description": None},
                "winery": {"name": {"nested": True}},
                "image": {"location": 0},
            },
        }
    }
    wine = wine_from_record(record)
    assert wine.wine_name == "Unknown"
    assert wine.grape_variety == "Unknown"
    assert wine.winery == "Unknown"
    assert wine.image_url is None
    assert wine.price_estimate == 12.5
    assert wine.price_currency == "EUR"


def test_inconsistent_document_still_enriches(mock_client, respond_json, wine_item):
    payload = {"explore_vintage": {"records": [{"vintage": {"year": 2015, "wine": {"id": 1, "name": 12345}}}]}}
    result = asyncio.run(VivinoEnricher(mock_client(lambda r: respond_json(payload))).enrich(wine_item))
    assert result.collector_warning is None
    assert result.collector_data.wine_name == "Unknown"
    assert result.collector_data.vintage == 2015
