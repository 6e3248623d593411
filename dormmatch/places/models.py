from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..catalog.models import Coordinates


@dataclass(frozen=True)
class Candidate:
    """A tentative directory match, discarded once resolution finishes."""

    name: str
    external_id: str
    coordinates: Coordinates | None = None
    category_tags: frozenset[str] = frozenset()
    formatted_address: str = ""


@dataclass(frozen=True)
class PlaceDetails:
    external_id: str
    name: str
    rating: float | None = None
    user_ratings_total: int | None = None
    formatted_address: str = ""
    reviews: list[dict[str, Any]] = field(default_factory=list)
