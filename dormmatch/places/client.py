from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..catalog.models import Coordinates
from ..errors import ExternalServiceError
from .config import DEFAULT_PLACES_CONFIG, PlacesConfig
from .models import Candidate, PlaceDetails

logger = logging.getLogger(__name__)

DETAIL_FIELDS: tuple[str, ...] = (
    "name",
    "rating",
    "user_ratings_total",
    "reviews",
    "formatted_address",
)

_SUCCESS_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


class DirectoryClient(Protocol):
    def search(
        self,
        query: str,
        location: Coordinates | None = None,
        radius: int | None = None,
    ) -> list[Candidate]: ...

    def details(
        self,
        external_id: str,
        fields: Sequence[str] = DETAIL_FIELDS,
    ) -> PlaceDetails: ...


def _parse_candidate(item: object) -> Candidate | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    place_id = item.get("place_id")
    if not isinstance(name, str) or not isinstance(place_id, str):
        return None

    coordinates = None
    geometry = item.get("geometry")
    location = geometry.get("location") if isinstance(geometry, dict) else None
    if isinstance(location, dict):
        try:
            coordinates = Coordinates(lat=location.get("lat"), lng=location.get("lng"))
        except ValueError:
            coordinates = None

    types = item.get("types") or []
    tags = frozenset(t for t in types if isinstance(t, str)) if isinstance(types, list) else frozenset()

    return Candidate(
        name=name,
        external_id=place_id,
        coordinates=coordinates,
        category_tags=tags,
        formatted_address=item.get("formatted_address") or "",
    )


class GooglePlacesClient:
    """Thin wrapper over the Places text-search and details endpoints."""

    def __init__(
        self,
        config: PlacesConfig = DEFAULT_PLACES_CONFIG,
        session: requests.Session | None = None,
    ) -> None:
        self._config = config
        self._session = session or self._build_session(config)

    @staticmethod
    def _build_session(config: PlacesConfig) -> requests.Session:
        retry = Retry(
            total=config.max_retries,
            backoff_factor=config.backoff_factor,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
        )
        adapter = HTTPAdapter(max_retries=retry)
        session = requests.Session()
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    @property
    def enabled(self) -> bool:
        return bool(self._config.api_key)

    def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.enabled:
            raise ExternalServiceError("Google Places API key not configured")

        url = f"{self._config.base_url}/{endpoint}/json"
        try:
            response = self._session.get(
                url,
                params={**params, "key": self._config.api_key},
                timeout=self._config.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            # The request URL carries the API key, so keep it out of the message.
            raise ExternalServiceError(
                f"Places {endpoint} request failed ({type(exc).__name__})"
            ) from exc
        except ValueError as exc:
            raise ExternalServiceError(f"Places {endpoint} returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise ExternalServiceError(f"Places {endpoint} returned a non-object payload")

        status = payload.get("status", "OK")
        if status not in _SUCCESS_STATUSES:
            raise ExternalServiceError(
                f"Places {endpoint} returned status {status}: {payload.get('error_message', '')}"
            )
        return payload

    def search(
        self,
        query: str,
        location: Coordinates | None = None,
        radius: int | None = None,
    ) -> list[Candidate]:
        params: dict[str, Any] = {"query": query}
        if location is not None:
            params["location"] = f"{location.lat},{location.lng}"
            if radius:
                params["radius"] = str(radius)

        payload = self._get("textsearch", params)
        results = payload.get("results", [])
        if not isinstance(results, list):
            raise ExternalServiceError("Places textsearch returned malformed results")

        candidates: list[Candidate] = []
        for item in results:
            candidate = _parse_candidate(item)
            if candidate is None:
                logger.debug("Skipping malformed search result %r", item)
                continue
            candidates.append(candidate)
        return candidates

    def details(
        self,
        external_id: str,
        fields: Sequence[str] = DETAIL_FIELDS,
    ) -> PlaceDetails:
        payload = self._get(
            "details",
            {"place_id": external_id, "fields": ",".join(fields)},
        )
        result = payload.get("result")
        if not isinstance(result, dict):
            raise ExternalServiceError(f"No place details found for {external_id}")

        try:
            rating = result.get("rating")
            total = result.get("user_ratings_total")
            details = PlaceDetails(
                external_id=external_id,
                name=str(result.get("name") or ""),
                rating=float(rating) if rating is not None else None,
                user_ratings_total=int(total) if total is not None else None,
                formatted_address=result.get("formatted_address") or "",
                reviews=[r for r in result.get("reviews") or [] if isinstance(r, dict)],
            )
        except (TypeError, ValueError) as exc:
            raise ExternalServiceError(f"Malformed place details for {external_id}") from exc
        return details
