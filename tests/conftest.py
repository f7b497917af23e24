import json

import httpx
import pytest

from models import CollectorDetails, DetectedItem


def _raw_item(**overrides):
    item = {
        "name": "Kitchen chair",
        "description": "Wooden chair",
        "estimated_value": 40.0,
        "quantity": 1,
        "accuracy": 0.9,
        "item_type": "general",
        "tags": [],
        "collector_details": {
            "winery": None,
            "vintage": None,
            "wine_name": None,
            "artist": None,
            "album": None,
            "release_year": None,
        },
    }
    details = overrides.pop("collector_details", None)
    item.update(overrides)
    if details:
        item["collector_details"].update(details)
    return item


@pytest.fixture
def raw_item():
    return _raw_item


@pytest.fixture
def wine_item():
    return DetectedItem(
        name="Château Margaux 2015",
        description="Bottle of red Bordeaux",
        estimated_value=600,
        item_type="wine",
        tags=["wine"],
        collector_details=CollectorDetails(winery="Château Margaux", wine_name="Château Margaux", vintage=2015),
    )


@pytest.fixture
def vinyl_item():
    return DetectedItem(
        name="The Dark Side of the Moon LP",
        description="Vinyl record in gatefold sleeve",
        estimated_value=35,
        item_type="vinyl",
        tags=["vinyl"],
        collector_details=CollectorDetails(
            artist="Pink Floyd", album="The Dark Side of the Moon", release_year=1973
        ),
    )


@pytest.fixture
def general_item():
    return DetectedItem(name="Lamp", description="Desk lamp", estimated_value=20)


@pytest.fixture
def mock_client():
    """Build an httpx.AsyncClient whose requests are answered by handler(request)."""

    def build(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build


def json_response(payload, status_code=200):
    return httpx.Response(status_code, content=json.dumps(payload), headers={"content-type": "application/json"})


@pytest.fixture
def respond_json():
    return json_response
