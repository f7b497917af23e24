from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import BaseModel

from errors import ProviderError
from log import get_logger
from models import DetectedItem, EnrichedItem

log = get_logger("collector")


class InsufficientDetails(Exception):
    """The model did not extract enough attributes to query a provider."""


def enriched(
    item: DetectedItem,
    category: str | None,
    data: BaseModel | None = None,
    warning: str | None = None,
) -> EnrichedItem:
    return EnrichedItem(
        **item.model_dump(),
        collector_category=category,
        collector_data=data,
        collector_warning=warning if category else None,
    )


async def get_json(
    client: httpx.AsyncClient,
    provider: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float,
) -> Any:
    """GET a provider endpoint and decode its JSON body, raising ProviderError on any failure."""
    try:
        response = await client.get(url, params=params, headers=headers, timeout=timeout)
    except httpx.TimeoutException:
        raise ProviderError(provider, f"request timed out after {timeout:g}s")
    except httpx.HTTPError as exc:
        raise ProviderError(provider, str(exc) or exc.__class__.__name__)

    if response.status_code == 429:
        raise ProviderError(provider, "rate limit exceeded (HTTP 429)")
    if response.is_error:
        raise ProviderError(provider, f"HTTP {response.status_code} {response.reason_phrase}".strip())
    try:
        return response.json()
    except ValueError:
        raise ProviderError(provider, "response is not valid JSON")


class CollectorEnricher(ABC):
    """One enrichment strategy per collector category.

    enrich() never raises: missing attributes, empty results and provider
    failures all come back as the item with null data and a warning.
    """

    category: str
    not_found_warning: str

    @abstractmethod
    async def lookup(self, item: DetectedItem) -> BaseModel | None:
        """Query the provider; None means no match. May raise ProviderError or InsufficientDetails."""

    async def enrich(self, item: DetectedItem) -> EnrichedItem:
        try:
            data = await self.lookup(item)
        except InsufficientDetails as exc:
            log.info("Skipping %s enrichment for %r: %s", self.category, item.name, exc)
            return enriched(item, self.category, warning=str(exc))
        except ProviderError as exc:
            log.warning("%s enrichment failed for %r: %s", self.category, item.name, exc)
            return enriched(item, self.category, warning=str(exc))

        if data is None:
            return enriched(item, self.category, warning=self.not_found_warning)
        return enriched(item, self.category, data=data)
