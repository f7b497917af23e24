"""Wine enrichment against Vivino.

Vivino has no official public API; this uses the search endpoint behind
their website, which may change shape without notice. Everything it returns
is mapped into WineData so callers always see the same keys.
"""

from typing import Any

import httpx

from config import ENRICHMENT_TIMEOUT_SECONDS
from log import get_logger
from models import DetectedItem, WineData
from normalize import clamp_number

from .base import CollectorEnricher, InsufficientDetails, get_json

log = get_logger("vivino")

VIVINO_BASE_URL = "https://www.vivino.com"
VIVINO_SEARCH_URL = f"{VIVINO_BASE_URL}/api/wines/search"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

WINE_TYPES = {
    1: "Red wine",
    2: "White wine",
    3: "Sparkling wine",
    4: "Rosé wine",
    7: "Dessert wine",
    24: "Fortified wine",
}

FOOD_PAIRINGS = {
    1: ["Red meat", "Game", "Mature cheese", "Pasta with red sauce"],
    2: ["Fish", "Seafood", "Poultry", "Soft cheese"],
    3: ["Appetizers", "Seafood", "Celebration dishes"],
    4: ["Salads", "Light pasta", "Grilled vegetables", "Mediterranean dishes"],
    7: ["Desserts", "Foie gras", "Blue cheese"],
    24: ["Desserts", "Nuts", "Blue cheese"],
}
DEFAULT_PAIRINGS = ["Red meat", "Cheese", "Pasta"]


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _str(value: Any) -> str | None:
    """Upstream text field, or None when it is missing, blank or not a string."""
    return value.strip() if isinstance(value, str) and value.strip() else None


def _name(value: Any) -> str | None:
    return _str(_dict(value).get("name"))


def format_region(region: Any) -> str:
    region = _dict(region)
    parts = [_name(region), _name(region.get("area")), _name(region.get("country"))]
    return ", ".join(p for p in parts if p) or "Unknown"


def wine_type_name(type_id: Any) -> str:
    if not isinstance(type_id, int):
        return "Unknown"
    return WINE_TYPES.get(type_id, "Wine")


def food_pairing(type_id: Any) -> list[str]:
    # Search results rarely carry pairings, so derive them from the wine type.
    if not isinstance(type_id, int):
        return list(DEFAULT_PAIRINGS)
    return list(FOOD_PAIRINGS.get(type_id, DEFAULT_PAIRINGS))


def wine_from_record(record: dict, requested_vintage: int | None = None) -> WineData | None:
    """Map one explore_vintage record to WineData; None when it has no wine."""
    vintage = _dict(record.get("vintage"))
    wine = _dict(vintage.get("wine"))
    if not wine:
        return None

    statistics = _dict(wine.get("statistics"))
    style = _dict(wine.get("style"))
    price = _dict(vintage.get("price"))
    type_id = wine.get("type_id")

    return WineData(
        vivino_url=f"{VIVINO_BASE_URL}/wines/{wine['id']}" if wine.get("id") is not None else None,
        vivino_rating=clamp_number(statistics.get("ratings_average"), 0, 5, default=0),
        vivino_reviews_count=clamp_number(statistics.get("ratings_count"), 0, integer=True, default=0),
        winery=_name(wine.get("winery")) or "Unknown",
        vintage=clamp_number(vintage.get("year"), integer=True, default=requested_vintage),
        wine_name=_str(wine.get("name")) or "Unknown",
        grape_variety=_str(style.get("varietal_name")) or _str(style.get("description")) or "Unknown",
        region=format_region(wine.get("region")),
        country=_name(_dict(wine.get("region")).get("country")) or "Unknown",
        food_pairing=food_pairing(type_id),
        wine_type=wine_type_name(type_id),
        image_url=_str(_dict(wine.get("image")).get("location")),
        price_estimate=clamp_number(price.get("amount"), 0),
        price_currency=_str(_dict(price.get("currency")).get("code")) or "EUR",
    )


class VivinoEnricher(CollectorEnricher):
    category = "wine"
    not_found_warning = "Wine not found on Vivino"

    def __init__(self, client: httpx.AsyncClient, timeout: float = ENRICHMENT_TIMEOUT_SECONDS):
        self.client = client
        self.timeout = timeout

    async def search(self, query: str, vintage: int | None = None) -> WineData | None:
        search_query = f"{query} {vintage}" if vintage else query
        log.info("Searching for: %s", search_query)

        data = await get_json(
            self.client,
            "Vivino API",
            VIVINO_SEARCH_URL,
            params={"q": search_query, "language": "en"},
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=self.timeout,
        )
        records = _dict(_dict(data).get("explore_vintage")).get("records") or []
        if not isinstance(records, list) or not records:
            log.info("No results found")
            return None

        wine = wine_from_record(_dict(records[0]), vintage)
        if wine is None:
            log.info("Top result has no wine record")
            return None
        log.info(
            "Found wine: %s - %s (%s), rating %s/5 from %d reviews",
            wine.winery,
            wine.wine_name,
            wine.vintage,
            wine.vivino_rating,
            wine.vivino_reviews_count,
        )
        return wine

    async def lookup(self, item: DetectedItem) -> WineData | None:
        details = item.collector_details
        query = details.wine_name or details.winery
        if not query:
            raise InsufficientDetails("Insufficient wine details for enrichment")
        return await self.search(query, details.vintage)
