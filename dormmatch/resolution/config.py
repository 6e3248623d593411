from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from ..catalog.models import Coordinates

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@dataclass(frozen=True)
class ResolverWeights:
    """Integer points awarded to a directory candidate; see ``EntityResolver.score_candidates``."""

    name_containment: int = 3
    category: int = 2
    locality: int = 2
    near: int = 2
    mid: int = 1
    near_meters: float = 1000.0
    mid_meters: float = 2000.0
    acceptance_threshold: int = 3
    # Category, locality and proximity alone can reach the threshold; a
    # candidate must also match the entity name to be accepted.
    require_name_match: bool = True


@dataclass(frozen=True)
class ResolverConfig:
    institution: str = os.getenv("RESOLVER_INSTITUTION", "Texas A&M University")
    institution_short: str = os.getenv("RESOLVER_INSTITUTION_SHORT", "Texas A&M")
    locality: str = os.getenv("RESOLVER_LOCALITY", "College Station")
    campus_center: Coordinates = Coordinates(lat=30.6280, lng=-96.3344)
    search_radius: int = int(os.getenv("RESOLVER_SEARCH_RADIUS", "5000"))
    query_templates: tuple[str, ...] = (
        "{name} {institution}",
        "{base} Residence Hall {institution_short}",
        "{base} Dorm {institution_short}",
        "{name}",
    )
    allowed_categories: frozenset[str] = frozenset({"university", "lodging", "point_of_interest"})
    stop_words: frozenset[str] = frozenset({
        "a", "a&m", "and", "at", "college", "dorm", "dormitory", "hall", "halls",
        "of", "residence", "station", "texas", "the", "tx", "university",
    })
    max_reviews: int = 3
    review_text_limit: int = 200
    aliases_path: Path | None = Path(os.getenv("DORMS_ALIASES_PATH", str(_DATA_DIR / "aliases.json")))
    weights: ResolverWeights = ResolverWeights()


@dataclass(frozen=True)
class CacheConfig:
    positive_ttl: float = float(os.getenv("QUALITY_POSITIVE_TTL", "21600"))
    negative_ttl: float = float(os.getenv("QUALITY_NEGATIVE_TTL", "900"))


DEFAULT_RESOLVER_CONFIG = ResolverConfig()
DEFAULT_CACHE_CONFIG = CacheConfig()
