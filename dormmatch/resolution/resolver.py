from __future__ import annotations

import logging
import re
import threading
import time
from typing import Any, Callable, Sequence

import numpy as np

from ..catalog.models import Coordinates
from ..errors import ExternalServiceError, ResolutionCancelled
from ..places.client import DirectoryClient
from ..places.models import Candidate
from .aliases import AliasTable
from .config import DEFAULT_RESOLVER_CONFIG, ResolverConfig
from .models import QualitySignal, Review

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0

_TOKEN_RE = re.compile(r"[a-z0-9&']+")
_HALL_SUFFIX_RE = re.compile(r"\s+hall$", re.IGNORECASE)

# Directory client failures surface as ExternalServiceError; requests and
# socket errors are OSError subclasses.
_LOOKUP_ERRORS = (ExternalServiceError, OSError)


def haversine_meters(origin: Coordinates, lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
    """Great-circle distance from *origin* to each point; NaN where a point is unknown."""
    lat1 = np.radians(origin.lat)
    lng1 = np.radians(origin.lng)
    lat2 = np.radians(lats)
    lng2 = np.radians(lngs)
    a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(a))


def truncate_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _clamp_rating(value: Any) -> float | None:
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, min(5.0, rating))


class EntityResolver:
    """
    Resolves a catalog entity to a directory place and returns its quality signal.

    Usage:
        resolver = EntityResolver(GooglePlacesClient())
        signal = resolver.resolve("Hobby Hall", entity.coordinates)
        if signal is not None:
            print(signal.rating, signal.review_count)
    """

    def __init__(
        self,
        client: DirectoryClient,
        config: ResolverConfig = DEFAULT_RESOLVER_CONFIG,
        aliases: AliasTable | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._config = config
        self._aliases = aliases if aliases is not None else AliasTable.load(config.aliases_path)
        self._clock = clock

    # ── Queries ──────────────────────────────────────────────────────────

    def build_queries(self, entity_name: str) -> list[str]:
        """Alias overrides first, then the generic templates, without duplicates."""
        base = _HALL_SUFFIX_RE.sub("", entity_name.strip()) or entity_name
        values = {
            "name": entity_name,
            "base": base,
            "institution": self._config.institution,
            "institution_short": self._config.institution_short,
        }

        queries: list[str] = []
        seen: set[str] = set()
        templated = (t.format(**values) for t in self._config.query_templates)
        for query in (*self._aliases.queries_for(entity_name), *templated):
            query = " ".join(query.split())
            if query and query.lower() not in seen:
                seen.add(query.lower())
                queries.append(query)
        return queries

    # ── Scoring ──────────────────────────────────────────────────────────

    def _match_names(self, entity_name: str) -> list[str]:
        names = [entity_name, *self._aliases.names_for(entity_name)]
        return [n.lower().strip() for n in names if n.strip()]

    @staticmethod
    def _contains_name(candidate_name: str, names: list[str]) -> bool:
        candidate_name = candidate_name.lower().strip()
        return bool(candidate_name) and any(n in candidate_name or candidate_name in n for n in names)

    def eligible_candidates(self, candidates: Sequence[Candidate], entity_name: str) -> list[bool]:
        """Which candidates may be accepted at all, independent of their score."""
        if not self._config.weights.require_name_match:
            return [True] * len(candidates)
        names = self._match_names(entity_name)
        return [self._contains_name(c.name, names) for c in candidates]

    def score_candidates(
        self,
        candidates: Sequence[Candidate],
        entity_name: str,
        reference_point: Coordinates | None,
    ) -> list[int]:
        """
        Integer score per candidate: name containment, category tag,
        locality in the address, and a near/mid/far proximity band.
        """
        weights = self._config.weights
        names = self._match_names(entity_name)
        locality = self._config.locality.lower()

        lats = np.array(
            [c.coordinates.lat if c.coordinates else np.nan for c in candidates], dtype=float
        )
        lngs = np.array(
            [c.coordinates.lng if c.coordinates else np.nan for c in candidates], dtype=float
        )
        if reference_point is not None:
            distances = haversine_meters(reference_point, lats, lngs)
        else:
            distances = np.full(len(candidates), np.nan)

        scores: list[int] = []
        for candidate, distance in zip(candidates, distances):
            score = 0
            if self._contains_name(candidate.name, names):
                score += weights.name_containment
            if candidate.category_tags & self._config.allowed_categories:
                score += weights.category
            if locality and locality in candidate.formatted_address.lower():
                score += weights.locality
            if distance <= weights.near_meters:
                score += weights.near
            elif distance <= weights.mid_meters:
                score += weights.mid
            scores.append(score)
        return scores

    def _significant_tokens(self, text: str) -> set[str]:
        return set(_TOKEN_RE.findall(text.lower())) - self._config.stop_words

    def name_matches(self, place_name: str, entity_name: str) -> bool:
        """False-positive guard applied to the detail record's own name."""
        place = place_name.lower().strip()
        target = entity_name.lower().strip()
        if not place or not target:
            return False
        if place in target or target in place:
            return True
        if self._significant_tokens(place) & self._significant_tokens(target):
            return True
        return any(alias in place for alias in self._match_names(entity_name)[1:])

    # ── Resolution ───────────────────────────────────────────────────────

    def resolve(
        self,
        entity_name: str,
        reference_point: Coordinates | None = None,
        cancel_event: threading.Event | None = None,
    ) -> QualitySignal | None:
        """
        Run the fallback query loop and return the accepted place's signal.

        Returns ``None`` when nothing acceptable is found or a directory
        call fails. Raises ``ResolutionCancelled`` once *cancel_event* is
        set, so a cancelled request is not mistaken for a miss.
        """
        reference = reference_point or self._config.campus_center
        threshold = self._config.weights.acceptance_threshold

        for query in self.build_queries(entity_name):
            self._check_cancelled(entity_name, cancel_event)
            try:
                candidates = self._client.search(
                    query, location=reference, radius=self._config.search_radius
                )
            except _LOOKUP_ERRORS:
                logger.warning("Directory search %r failed for %s", query, entity_name, exc_info=True)
                continue

            if not candidates:
                logger.debug("Query %r returned no candidates", query)
                continue

            scores = np.array(self.score_candidates(candidates, entity_name, reference))
            eligible = np.array(self.eligible_candidates(candidates, entity_name))
            best = int(np.argmax(np.where(eligible, scores, -1)))
            if eligible[best] and scores[best] >= threshold:
                logger.info(
                    "Accepted %r for %s via %r (score %d)",
                    candidates[best].name, entity_name, query, scores[best],
                )
                self._check_cancelled(entity_name, cancel_event)
                return self._fetch_signal(candidates[best], entity_name)

            logger.debug(
                "Best candidate %r scored %d for %r, below threshold %d",
                candidates[best].name, scores[best], query, threshold,
            )

        logger.info("No directory match for %s", entity_name)
        return None

    @staticmethod
    def _check_cancelled(entity_name: str, cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ResolutionCancelled(f"Resolution of {entity_name} cancelled")

    def _fetch_signal(self, candidate: Candidate, entity_name: str) -> QualitySignal | None:
        try:
            details = self._client.details(candidate.external_id)
        except _LOOKUP_ERRORS:
            logger.warning(
                "Directory details for %s (%s) failed", entity_name, candidate.external_id,
                exc_info=True,
            )
            return None

        if not self.name_matches(details.name, entity_name):
            logger.warning("Discarding place %r for %s: name mismatch", details.name, entity_name)
            return None

        return QualitySignal(
            rating=_clamp_rating(details.rating),
            review_count=max(0, details.user_ratings_total or 0),
            recent_reviews=self._recent_reviews(details.reviews),
            resolved_at=self._clock(),
            place_id=candidate.external_id,
            place_name=details.name,
            formatted_address=details.formatted_address or candidate.formatted_address,
        )

    def _recent_reviews(self, raw_reviews: list[dict[str, Any]]) -> tuple[Review, ...]:
        def _time(review: dict[str, Any]) -> int:
            value = review.get("time")
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

        newest_first = sorted(raw_reviews, key=_time, reverse=True)
        reviews: list[Review] = []
        for raw in newest_first[: self._config.max_reviews]:
            reviews.append(Review(
                author=str(raw.get("author_name") or "Anonymous"),
                rating=_clamp_rating(raw.get("rating")),
                text=truncate_text(str(raw.get("text") or ""), self._config.review_text_limit),
                time=_time(raw) or None,
            ))
        return tuple(reviews)
