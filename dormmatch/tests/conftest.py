from __future__ import annotations

import json
import threading

import pytest

from dormmatch.catalog.config import CatalogConfig


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDirectoryClient:
    """Serves canned search results keyed by query and details keyed by place id."""

    def __init__(self, results=None, details=None, search_error=None, details_error=None):
        self.results = results or {}
        self.details_by_id = details or {}
        self.search_error = search_error
        self.details_error = details_error
        self.search_calls: list[str] = []
        self.details_calls: list[str] = []
        self._lock = threading.Lock()

    def search(self, query, location=None, radius=None):
        with self._lock:
            self.search_calls.append(query)
        if self.search_error is not None:
            raise self.search_error
        return list(self.results.get(query, []))

    def details(self, external_id, fields=()):
        with self._lock:
            self.details_calls.append(external_id)
        if self.details_error is not None:
            raise self.details_error
        return self.details_by_id[external_id]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_directory():
    return FakeDirectoryClient


@pytest.fixture
def scenario_records():
    return [
        {
            "name": "Hall A",
            "zone": "North Campus",
            "roomTypes": ["Double"],
            "rates": [{"type": "Double", "amount": 3800}],
            "buildingYear": 2015,
        },
        {
            "name": "Hall B",
            "zone": "South Campus",
            "roomTypes": ["Single"],
            "rates": [{"type": "Single", "amount": 5200}],
            "buildingYear": 1995,
        },
        {
            "name": "Hall C",
            "zone": "North Campus",
            "roomTypes": ["Double", "Suite"],
            "rates": [{"type": "Double", "amount": 4100}, {"type": "Suite", "amount": 6000}],
            "buildingYear": 2022,
        },
    ]


@pytest.fixture
def make_catalog_config(tmp_path):
    """Write catalog (and optional coordinate) JSON to tmp_path and return a config for it."""

    def _make(records, coordinates=None, ttl_seconds=300.0):
        catalog_path = tmp_path / "dorms.json"
        catalog_path.write_text(json.dumps(records), encoding="utf-8")
        coordinates_path = None
        if coordinates is not None:
            coordinates_path = tmp_path / "dormcords.json"
            coordinates_path.write_text(json.dumps(coordinates), encoding="utf-8")
        return CatalogConfig(
            catalog_path=catalog_path,
            coordinates_path=coordinates_path,
            ttl_seconds=ttl_seconds,
            strict=False,
        )

    return _make
