import httpx

from .base import CollectorEnricher
from .discogs import DiscogsEnricher
from .service import CollectorService, collector_stats, route
from .vivino import VivinoEnricher


def build_collector_service(client: httpx.AsyncClient) -> CollectorService:
    return CollectorService([VivinoEnricher(client), DiscogsEnricher(client)])


__all__ = [
    "CollectorEnricher",
    "CollectorService",
    "DiscogsEnricher",
    "VivinoEnricher",
    "build_collector_service",
    "collector_stats",
    "route",
]
