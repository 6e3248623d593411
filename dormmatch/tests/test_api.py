from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from dormmatch.app import app
from dormmatch.catalog.record_store import RecordStore
from dormmatch.places.models import Candidate, PlaceDetails
from dormmatch.ranking.config import RankingConfig
from dormmatch.ranking.match_engine import MatchEngine
from dormmatch.ranking.service import RankingService
from dormmatch.resolution.aliases import AliasTable
from dormmatch.resolution.cache import QualityCache
from dormmatch.resolution.config import CacheConfig, ResolverConfig
from dormmatch.resolution.resolver import EntityResolver
from dormmatch.services import (
    get_quality_cache,
    get_ranking_service,
    get_rate_limiter,
    get_record_store,
)
from dormmatch.throttling.limiter import RateLimitConfig, RateLimiter

client = TestClient(app)

SEARCH = {"roomType": "Double", "maxBudget": 4000, "location": "North Campus"}


@pytest.fixture
def services(make_catalog_config, scenario_records, fake_directory):
    directory = fake_directory(
        results={"Hall A Texas A&M University": [
            Candidate(name="Hall A", external_id="p-a", category_tags=frozenset({"university"}),
                      formatted_address="College Station, TX"),
        ]},
        details={"p-a": PlaceDetails(
            external_id="p-a",
            name="Hall A",
            rating=4.1,
            user_ratings_total=64,
            reviews=[{"author_name": "Reveille", "rating": 5, "text": "Close to class", "time": 10}],
        )},
    )
    store = RecordStore(make_catalog_config(scenario_records))
    cache = QualityCache(CacheConfig(positive_ttl=600, negative_ttl=60))
    ranking = RankingService(
        engine=MatchEngine(reference_year=2026),
        cache=cache,
        resolver=EntityResolver(directory, ResolverConfig(aliases_path=None), aliases=AliasTable()),
        config=RankingConfig(max_concurrency=2, request_deadline=5.0),
    )
    limiter = RateLimiter(RateLimitConfig(max_requests=100, window_seconds=900))

    app.dependency_overrides.update({
        get_record_store: lambda: store,
        get_quality_cache: lambda: cache,
        get_ranking_service: lambda: ranking,
        get_rate_limiter: lambda: limiter,
    })
    yield SimpleNamespace(store=store, cache=cache, ranking=ranking, limiter=limiter, directory=directory)
    app.dependency_overrides.clear()
    ranking.close()


def test_health():
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


# ── Search ───────────────────────────────────────────────────────────────


def test_search_ranks_matching_dorms(services):
    resp = client.post("/search", json=SEARCH)
    assert resp.status_code == 200
    body = resp.json()
    assert [d["name"] for d in body["dorms"]] == ["Hall A", "Hall C"]
    assert body["totalCandidates"] == 2

    hall_a = body["dorms"][0]
    assert hall_a["roomTypes"] == ["Double"]
    assert hall_a["scoreDetails"]["priceScore"] == 3.0
    assert hall_a["scoreDetails"]["qualityResolved"] is True
    assert hall_a["qualitySignal"]["reviewCount"] == 64
    assert hall_a["matchedRates"] == [{"roomType": "Double", "amount": 3800.0}]
    assert hall_a["score"] == hall_a["scoreDetails"]["total"]


def test_rank_dorms_alias(services):
    resp = client.post("/rank-dorms", json={**SEARCH, "roomType": "2", "location": "north campus"})
    assert resp.status_code == 200
    assert [d["name"] for d in resp.json()["dorms"]] == ["Hall A", "Hall C"]


def test_search_limit(services):
    resp = client.post("/search", json={**SEARCH, "limit": 1})
    assert resp.status_code == 200
    assert len(resp.json()["dorms"]) == 1


def test_search_with_no_matches_returns_message(services):
    resp = client.post("/search", json={**SEARCH, "roomType": "Single Suite"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["dorms"] == []
    assert "No dorms found" in body["message"]


def test_search_missing_fields(services):
    resp = client.post("/search", json={})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid search request"
    assert {"roomType", "maxBudget", "location"} <= set(body["details"])


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"roomType": "Penthouse"}, "roomType"),
        ({"location": "Downtown"}, "location"),
        ({"maxBudget": "lots"}, "maxBudget"),
        ({"maxBudget": -100}, "maxBudget"),
        ({"limit": 0}, "limit"),
    ],
)
def test_search_invalid_field(services, overrides, field):
    resp = client.post("/search", json={**SEARCH, **overrides})
    assert resp.status_code == 400
    assert field in resp.json()["details"]


def test_search_catalog_failure(services):
    services.store.config.catalog_path.unlink()
    resp = client.post("/search", json=SEARCH)
    assert resp.status_code == 500
    assert resp.json()["error"] == "Unable to load dorm data"


def test_search_rate_limited(services):
    limiter = RateLimiter(RateLimitConfig(max_requests=2, window_seconds=900))
    app.dependency_overrides[get_rate_limiter] = lambda: limiter

    assert client.post("/search", json=SEARCH).status_code == 200
    assert client.post("/search", json=SEARCH).status_code == 200
    resp = client.post("/search", json=SEARCH)
    assert resp.status_code == 429
    assert int(resp.headers["Retry-After"]) > 0


# ── Listing ──────────────────────────────────────────────────────────────


def test_list_dorms(services):
    resp = client.get("/dorms")
    assert resp.status_code == 200
    body = resp.json()
    assert [d["name"] for d in body] == ["Hall A", "Hall B", "Hall C"]
    assert all(d["qualitySignal"] is None for d in body)
    # Listing never triggers directory lookups.
    assert services.directory.search_calls == []


def test_list_dorms_includes_cached_signals(services):
    client.post("/search", json=SEARCH)
    body = client.get("/dorms").json()
    hall_a = next(d for d in body if d["name"] == "Hall A")
    assert hall_a["qualitySignal"]["rating"] == 4.1


def test_map_keeps_missing_coordinates_absent(services):
    resp = client.get("/map")
    assert resp.status_code == 200
    assert all(d["coordinates"] is None for d in resp.json())


# ── Reviews ──────────────────────────────────────────────────────────────


def test_reviews_for_resolved_dorm(services):
    resp = client.get("/dorms/Hall A/reviews")
    assert resp.status_code == 200
    body = resp.json()
    assert body["placeName"] == "Hall A"
    assert body["recentReviews"][0]["author"] == "Reveille"


def test_reviews_unknown_dorm(services):
    assert client.get("/dorms/Nowhere Hall/reviews").status_code == 404


def test_reviews_without_place(services):
    assert client.get("/dorms/Hall B/reviews").status_code == 404


def test_cache_stats(services):
    client.get("/dorms/Hall A/reviews")
    client.get("/dorms/Hall A/reviews")
    body = client.get("/cache/stats").json()
    assert body["hits"] == 1
    assert body["misses"] == 1
    assert "hit_rate" in body
