"""Vinyl enrichment against the Discogs database API.

Uses key/secret authentication, which is enough for database queries. A
search picks the best release; a second call fetches the full release for
credits, community stats and marketplace price. When that second call fails
the coarser search result is used instead.
"""

import re
from typing import Any

import httpx

from config import DISCOGS_API_KEY, DISCOGS_API_SECRET, ENRICHMENT_TIMEOUT_SECONDS
from errors import ProviderError
from log import get_logger
from models import DetectedItem, VinylData
from normalize import clamp_number

from .base import CollectorEnricher, InsufficientDetails, get_json

log = get_logger("discogs")

DISCOGS_API_BASE = "https://api.discogs.com"
DISCOGS_WEB_BASE = "https://www.discogs.com"
USER_AGENT = "TrackMyHomeAPI/1.0 +https://trackmyhome.app"
PROVIDER = "Discogs API"

# Discogs disambiguates namesakes as "Name (2)".
_DISAMBIGUATION = re.compile(r"\s+\(\d+\)$")


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _str(value: Any) -> str | None:
    """Upstream text field, or None when it is missing, blank or not a string."""
    return value.strip() if isinstance(value, str) and value.strip() else None


def _strings(value: Any) -> list[str]:
    return [v for v in _list(value) if isinstance(v, str)]


def _web_url(uri: Any) -> str | None:
    if not isinstance(uri, str) or not uri:
        return None
    if uri.startswith("http"):
        return uri
    return f"{DISCOGS_WEB_BASE}{uri}"


def join_names(credits: Any) -> str | None:
    names = []
    for credit in _list(credits):
        name = _str(_dict(credit).get("name"))
        if name:
            names.append(_DISAMBIGUATION.sub("", name))
    return ", ".join(names) or None


def join_catalog_numbers(labels: Any) -> str | None:
    numbers = [_str(_dict(label).get("catno")) for label in _list(labels)]
    return ", ".join(n for n in numbers if n) or None


def format_formats(formats: Any) -> str:
    formats = _list(formats)
    if not formats:
        return "Vinyl"
    first = _dict(formats[0])
    parts = [_str(first.get("name")) or "Vinyl"]
    qty = clamp_number(first.get("qty"), integer=True, default=1)
    if qty > 1:
        parts.append(f"{qty}x")
    parts.extend(_strings(first.get("descriptions")))
    return ", ".join(parts)


def vinyl_from_release(release: dict) -> VinylData:
    """Map a /releases/{id} document."""
    community = _dict(release.get("community"))
    rating = _dict(community.get("rating"))
    images = _list(release.get("images"))
    lowest = release.get("lowest_price")
    # Marketplace stats nest the price as {"value", "currency"}; release documents carry a bare number.
    currency = _str(_dict(lowest).get("currency")) or "EUR"
    lowest_price = clamp_number(_dict(lowest).get("value") if isinstance(lowest, dict) else lowest, 0)
    return VinylData(
        discogs_url=_web_url(release.get("uri")),
        discogs_id=clamp_number(release.get("id"), integer=True),
        artist=join_names(release.get("artists")) or "Unknown",
        album=_str(release.get("title")) or "Unknown",
        release_year=clamp_number(release.get("year"), 1, integer=True),
        label=join_names(release.get("labels")) or "Unknown",
        catalog_number=join_catalog_numbers(release.get("labels")),
        genres=_strings(release.get("genres")),
        styles=_strings(release.get("styles")),
        format=format_formats(release.get("formats")),
        country=_str(release.get("country")) or "Unknown",
        tracklist_count=len(_list(release.get("tracklist"))),
        discogs_rating=clamp_number(rating.get("average"), 0, 5),
        discogs_votes=clamp_number(rating.get("count"), 0, integer=True, default=0),
        discogs_have=clamp_number(community.get("have"), 0, integer=True, default=0),
        discogs_want=clamp_number(community.get("want"), 0, integer=True, default=0),
        image_url=_str(_dict(images[0]).get("uri")) if images else None,
        # Only the lowest listing is available, so it doubles as the average.
        discogs_avg_price=lowest_price,
        discogs_min_price=lowest_price,
        discogs_currency=currency,
        discogs_num_for_sale=clamp_number(release.get("num_for_sale"), 0, integer=True, default=0),
    )


def vinyl_from_search_result(result: dict) -> VinylData:
    """Map a /database/search hit, whose title reads "Artist - Album"."""
    title = _str(result.get("title")) or ""
    artist, sep, album = title.partition(" - ")
    if not sep:
        artist, album = "", title
    labels = _strings(result.get("label"))
    formats = _strings(result.get("format"))
    return VinylData(
        discogs_url=_web_url(result.get("uri")),
        discogs_id=clamp_number(result.get("id"), integer=True),
        artist=_DISAMBIGUATION.sub("", artist.strip()) or "Unknown",
        album=album.strip() or "Unknown",
        release_year=clamp_number(result.get("year"), 1, integer=True),
        label=labels[0] if labels else "Unknown",
        catalog_number=_str(result.get("catno")),
        genres=_strings(result.get("genre")),
        styles=_strings(result.get("style")),
        format=formats[0] if formats else "Vinyl",
        country=_str(result.get("country")) or "Unknown",
        image_url=_str(result.get("cover_image")) or _str(result.get("thumb")),
        discogs_currency="EUR",
    )


class DiscogsEnricher(CollectorEnricher):
    category = "vinyl"
    not_found_warning = "Vinyl not found on Discogs"

    def __init__(
        self,
        client: httpx.AsyncClient,
        key: str | None = DISCOGS_API_KEY,
        secret: str | None = DISCOGS_API_SECRET,
        timeout: float = ENRICHMENT_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.key = key
        self.secret = secret
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": USER_AGENT, "Accept": "application/json"}

    @property
    def auth_params(self) -> dict[str, str]:
        return {"key": self.key or "", "secret": self.secret or ""}

    async def search(self, artist: str, album: str, release_year: int | None = None) -> dict | None:
        query = f'artist:"{artist}" release_title:"{album}"'
        if release_year:
            query += f" year:{release_year}"
        log.info("Searching for: %s - %s", artist, album)

        data = await get_json(
            self.client,
            PROVIDER,
            f"{DISCOGS_API_BASE}/database/search",
            params={"q": query, "type": "release", "format": "vinyl", **self.auth_params},
            headers=self.headers,
            timeout=self.timeout,
        )
        results = _list(_dict(data).get("results"))
        if not results or not isinstance(results[0], dict):
            log.info("No results found")
            return None
        return results[0]

    async def release(self, release_id: Any) -> dict:
        data = await get_json(
            self.client,
            PROVIDER,
            f"{DISCOGS_API_BASE}/releases/{release_id}",
            params={"curr_abbr": "EUR", **self.auth_params},
            headers=self.headers,
            timeout=self.timeout,
        )
        if not isinstance(data, dict):
            raise ProviderError(PROVIDER, "release document is not an object")
        return data

    async def lookup(self, item: DetectedItem) -> VinylData | None:
        details = item.collector_details
        if not details.artist or not details.album:
            raise InsufficientDetails("Insufficient vinyl details for enrichment")
        if not self.key or not self.secret:
            log.warning("Consumer key/secret not configured; set DISCOGS_API_KEY and DISCOGS_API_SECRET")
            raise InsufficientDetails("Discogs credentials not configured")

        top = await self.search(details.artist, details.album, details.release_year)
        if top is None:
            return None

        try:
            vinyl = vinyl_from_release(await self.release(top.get("id")))
        except ProviderError as exc:
            log.warning("Release details unavailable (%s); using search result", exc)
            vinyl = vinyl_from_search_result(top)

        log.info("Found vinyl: %s - %s (%s)", vinyl.artist, vinyl.album, vinyl.release_year)
        return vinyl
