"""Process-wide service instances, built once and injected with ``Depends``."""
from __future__ import annotations

from functools import lru_cache

from .catalog.config import DEFAULT_CATALOG_CONFIG
from .catalog.record_store import RecordStore
from .places.client import GooglePlacesClient
from .places.config import DEFAULT_PLACES_CONFIG
from .ranking.config import DEFAULT_RANKING_CONFIG
from .ranking.match_engine import MatchEngine
from .ranking.profiles import get_profile_weights
from .ranking.service import RankingService
from .resolution.cache import QualityCache
from .resolution.config import DEFAULT_CACHE_CONFIG, DEFAULT_RESOLVER_CONFIG
from .resolution.resolver import EntityResolver
from .throttling.limiter import DEFAULT_RATE_LIMIT_CONFIG, RateLimiter


@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    return RecordStore(DEFAULT_CATALOG_CONFIG)


@lru_cache(maxsize=1)
def get_directory_client() -> GooglePlacesClient:
    return GooglePlacesClient(DEFAULT_PLACES_CONFIG)


@lru_cache(maxsize=1)
def get_entity_resolver() -> EntityResolver:
    return EntityResolver(get_directory_client(), DEFAULT_RESOLVER_CONFIG)


@lru_cache(maxsize=1)
def get_quality_cache() -> QualityCache:
    return QualityCache(DEFAULT_CACHE_CONFIG)


@lru_cache(maxsize=1)
def get_match_engine() -> MatchEngine:
    return MatchEngine(get_profile_weights(DEFAULT_RANKING_CONFIG.profile))


@lru_cache(maxsize=1)
def get_ranking_service() -> RankingService:
    return RankingService(
        engine=get_match_engine(),
        cache=get_quality_cache(),
        resolver=get_entity_resolver(),
        config=DEFAULT_RANKING_CONFIG,
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter(DEFAULT_RATE_LIMIT_CONFIG)
